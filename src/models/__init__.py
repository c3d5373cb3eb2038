"""Document data models.

A single entity kind (``Document``) covers both posts and drafts; the
resolver tracks progress through ``ResolutionState``.
"""

from inkwell.models.document import (
    RECOGNIZED_KEYS,
    Document,
    DocumentStatus,
)
from inkwell.models.state import ResolutionState

__all__ = [
    "RECOGNIZED_KEYS",
    "Document",
    "DocumentStatus",
    "ResolutionState",
]
