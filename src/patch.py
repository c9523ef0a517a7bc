"""
Tri-state field values for partial updates.

A patch field is in one of three states:

- ``UNSET``: absent from the request, leave the stored value alone
- ``None``: present and null, clear the stored value
- any other value: present, replace the stored value

``None`` alone cannot tell "absent" from "clear", which is why the
sentinel exists.
"""

from enum import Enum
from typing import Any, TypeVar

T = TypeVar("T")


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset.UNSET

# Type alias helper: ``Maybe[str]`` reads as "str, or UNSET"
Maybe = T | _Unset


def is_set(value: Any) -> bool:
    """True when the field was supplied (including an explicit None)."""
    return value is not UNSET


def set_fields(patch: Any, names: tuple[str, ...]) -> dict[str, Any]:
    """Collect the supplied fields of a patch object into a dict."""
    values = {}
    for name in names:
        value = getattr(patch, name)
        if value is not UNSET:
            values[name] = value
    return values
