"""Exception hierarchy shared by the posts, media, mixins and feeds packages."""


class ContentEngineError(Exception):
    """Base exception for domain errors."""


class NotFoundError(ContentEngineError):
    """An id for a stored record (document, tag, mixin, feed source...) did not resolve."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id!r} not found")
        self.entity = entity
        self.entity_id = entity_id


class MediaResolutionError(ContentEngineError):
    """A delta referenced an upload that is not present in the batch."""

    def __init__(self, file_ref: str):
        super().__init__(f"No uploaded file for reference {file_ref!r}")
        self.file_ref = file_ref


class UploadFailedError(ContentEngineError):
    """The blob store rejected (or timed out on) a write."""


class UnsupportedMediaTypeError(UploadFailedError):
    """The upload's MIME type is not in the configured allow-list."""

    def __init__(self, mime_type: str):
        super().__init__(f"File type not supported: {mime_type}")
        self.mime_type = mime_type


class InvalidConcatTypeError(ContentEngineError):
    """No MixinSetting exists for the requested listing context."""

    def __init__(self, concat_type: str):
        super().__init__(f"Invalid mixin concat type {concat_type!r}")
        self.concat_type = concat_type


class OrderConflictError(ContentEngineError):
    """Reserved for strict order validation.

    Colliding orders are currently resolved by renumbering, so nothing
    raises this yet.
    """


class FeedFetchError(ContentEngineError):
    """Fetching or parsing an external feed failed for one tick."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch feed {url}: {reason}")
        self.url = url
        self.reason = reason
