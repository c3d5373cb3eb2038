"""Canonical document model: one entity kind for posts and drafts."""

from __future__ import annotations

import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Front-matter keys the model interprets. Everything else is carried
# through untouched in ``Document.front_matter``.
RECOGNIZED_KEYS = frozenset(
    {"layout", "title", "category", "categories", "tags", "summary", "date"}
)
REVISION_KEYS = ("revision_of", "revisionOf")
STATUS_KEYS = ("status", "published")


class DocumentStatus(StrEnum):
    """Editorial status of a document."""

    DRAFT = "draft"
    PUBLISHED = "published"

    @property
    def rank(self) -> int:
        """Ordering rank: drafts precede published documents."""
        return 0 if self is DocumentStatus.DRAFT else 1


class Document(BaseModel):
    """A post or draft as loaded from the content tree.

    Instances are frozen. Anything derived after load (for example a
    resolved ``revision_of``) is a new instance via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    status: DocumentStatus
    title: str | None = None
    date: datetime.date | None = None
    categories: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()
    summary: str | None = None
    layout: str | None = None
    body: str = ""
    revision_of: str | None = None
    source_path: Path = Path(".")
    relative_path: str = ""
    front_matter: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_published(self) -> bool:
        return self.status is DocumentStatus.PUBLISHED

    @property
    def is_draft(self) -> bool:
        return self.status is DocumentStatus.DRAFT

    @property
    def extra(self) -> dict[str, Any]:
        """Front-matter keys the model does not interpret."""
        interpreted = RECOGNIZED_KEYS | set(REVISION_KEYS) | set(STATUS_KEYS)
        return {k: v for k, v in self.front_matter.items() if k not in interpreted}

    def with_revision_of(self, target: str | None) -> Document:
        """Return a copy of this document pointing at another revision."""
        return self.model_copy(update={"revision_of": target})
