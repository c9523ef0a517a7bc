"""
FastAPI service for the content engine.

Provides REST endpoints for:
- /posts - Posts with block reconciliation and media uploads
- /mixins - Mixins and per-context settings
- /feeds - Feed sources and their polling tasks
- /health - Service health check
"""

from src.api.app import create_app

__all__ = ["create_app"]
