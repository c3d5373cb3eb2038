"""Document builder and the immutable corpus snapshot.

Turns ``RawContent`` units into validated ``Document`` instances and
enforces the corpus-level invariants: unique ids and no dangling
``revision_of`` references. Invalid documents are skipped and recorded
on the run report; they never abort the load.
"""

from __future__ import annotations

import datetime
import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path, PurePosixPath
from typing import Any

from inkwell.config import InkwellConfig
from inkwell.errors import CorpusReport, ValidationError
from inkwell.loader import RawContent, load_content
from inkwell.models.document import REVISION_KEYS, Document, DocumentStatus

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:$|[T ])")
_FILENAME_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-")
_LIST_SPLIT_RE = re.compile(r"[,\s]+")

DEFAULT_DRAFTS_COLLECTIONS = ("_drafts", "drafts")


def derive_id(relative_path: str) -> str:
    """Stable document id: relative POSIX path without its suffix."""
    path = PurePosixPath(relative_path)
    return path.with_suffix("").as_posix()


def infer_status(
    front_matter: dict[str, Any],
    relative_path: str,
    drafts_collections: Sequence[str] = DEFAULT_DRAFTS_COLLECTIONS,
) -> DocumentStatus:
    """Work out a document's status.

    An explicit ``status`` key wins, then ``published: false``, then the
    source location: anything under a drafts collection is a draft.

    Raises:
        ValidationError: If ``status`` holds an unknown value.
    """
    raw_status = front_matter.get("status")
    if raw_status is not None:
        try:
            return DocumentStatus(str(raw_status).strip().lower())
        except ValueError:
            raise ValidationError(
                f"unknown status {raw_status!r} (expected draft or published)",
                source=relative_path,
            ) from None

    if front_matter.get("published") is False:
        return DocumentStatus.DRAFT

    parents = PurePosixPath(relative_path).parts[:-1]
    if any(part in drafts_collections for part in parents):
        return DocumentStatus.DRAFT
    return DocumentStatus.PUBLISHED


def parse_date(value: Any, *, source: str = "") -> datetime.date | None:
    """Coerce a front-matter date value into a calendar date.

    Accepts YAML dates/datetimes and ISO-style strings with an optional
    time and offset (``2016-08-01 10:00:00 +0200``).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        match = _ISO_DATE_RE.match(value.strip())
        if match:
            try:
                return datetime.date(*(int(g) for g in match.groups()))
            except ValueError as exc:
                raise ValidationError(f"invalid date {value!r}: {exc}", source=source) from exc
    raise ValidationError(f"invalid date {value!r}", source=source)


def date_from_filename(relative_path: str) -> datetime.date | None:
    """Read a ``YYYY-MM-DD-`` prefix from the file name, if there is one."""
    match = _FILENAME_DATE_RE.match(PurePosixPath(relative_path).name)
    if not match:
        return None
    try:
        return datetime.date.fromisoformat(match.group(1))
    except ValueError:
        return None


def _as_string_set(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items: Iterable[Any] = _LIST_SPLIT_RE.split(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        items = [value]
    return frozenset(str(item).strip() for item in items if str(item).strip())


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_document(
    raw: RawContent,
    *,
    drafts_collections: Sequence[str] = DEFAULT_DRAFTS_COLLECTIONS,
) -> Document:
    """Convert a raw content unit into a validated Document.

    Raises:
        ValidationError: If a published document lacks a title or date,
            or a field holds a value that cannot be interpreted.
    """
    fm = raw.front_matter
    source = raw.relative_path
    status = infer_status(fm, source, drafts_collections)

    doc_date = parse_date(fm.get("date"), source=source)
    if doc_date is None:
        doc_date = date_from_filename(source)

    categories = _as_string_set(fm.get("categories")) | _as_string_set(fm.get("category"))

    revision_of = None
    for key in REVISION_KEYS:
        if fm.get(key) is not None:
            revision_of = _optional_text(fm[key])
            break

    document = Document(
        id=derive_id(source),
        status=status,
        title=_optional_text(fm.get("title")),
        date=doc_date,
        categories=categories,
        tags=_as_string_set(fm.get("tags")),
        summary=_optional_text(fm.get("summary")),
        layout=_optional_text(fm.get("layout")),
        body=raw.body,
        revision_of=revision_of,
        source_path=raw.source_path,
        relative_path=source,
        front_matter=dict(fm),
    )

    if document.is_published:
        missing = [
            name
            for name, value in (("title", document.title), ("date", document.date))
            if value is None
        ]
        if missing:
            raise ValidationError(
                f"published document is missing {' and '.join(missing)}",
                source=source,
            )

    return document


class Corpus:
    """Read-only snapshot of the loaded documents, keyed by id.

    Iteration follows load order (relative path order).
    """

    def __init__(self, documents: Iterable[Document]) -> None:
        self._documents: dict[str, Document] = {}
        for doc in documents:
            if doc.id in self._documents:
                raise ValidationError(f"duplicate document id {doc.id!r}", source=doc.relative_path)
            self._documents[doc.id] = doc

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents

    def __getitem__(self, doc_id: str) -> Document:
        return self._documents[doc_id]

    def get(self, doc_id: str) -> Document | None:
        return self._documents.get(doc_id)

    @property
    def ids(self) -> list[str]:
        return list(self._documents)

    @property
    def documents(self) -> list[Document]:
        return list(self._documents.values())

    def published(self) -> list[Document]:
        return [d for d in self._documents.values() if d.is_published]

    def drafts(self) -> list[Document]:
        return [d for d in self._documents.values() if d.is_draft]


def build_corpus(
    raws: Iterable[RawContent],
    *,
    config: InkwellConfig | None = None,
    report: CorpusReport | None = None,
) -> Corpus:
    """Build documents and enforce corpus invariants.

    Invalid documents, duplicate ids and dangling ``revision_of``
    references are recorded on the report and left out of the corpus.
    """
    config = config or InkwellConfig()
    report = report if report is not None else CorpusReport()
    drafts_collections = tuple(config.content.drafts_collections)

    built: dict[str, Document] = {}
    for raw in raws:
        try:
            doc = build_document(raw, drafts_collections=drafts_collections)
        except ValidationError as exc:
            report.record("build", exc)
            continue
        if doc.id in built:
            report.record(
                "build",
                ValidationError(
                    f"duplicate document id {doc.id!r} (already loaded from "
                    f"{built[doc.id].relative_path})",
                    source=raw.relative_path,
                ),
            )
            continue
        built[doc.id] = doc

    # A document whose target was itself rejected dangles too, so repeat
    # until the set is stable.
    changed = True
    while changed:
        changed = False
        for doc_id, doc in list(built.items()):
            if doc.revision_of is None:
                continue
            if doc.revision_of == doc_id or doc.revision_of not in built:
                reason = "itself" if doc.revision_of == doc_id else "a missing document"
                report.record(
                    "build",
                    ValidationError(
                        f"revision_of {doc.revision_of!r} references {reason}",
                        source=doc.relative_path,
                    ),
                )
                del built[doc_id]
                changed = True

    report.items_processed["documents"] = len(built)
    report.mark_stage_complete("build")
    logger.info("Built corpus of %d document(s)", len(built))
    return Corpus(built.values())


def load_corpus(
    root: Path | None = None,
    config: InkwellConfig | None = None,
    report: CorpusReport | None = None,
) -> tuple[Corpus, CorpusReport]:
    """Load and build the corpus under ``root`` in one call.

    Raises:
        ContentRootError: If root is missing or unreadable.
    """
    config = config or InkwellConfig()
    report = report if report is not None else CorpusReport()
    root = Path(root) if root is not None else Path(config.content.root)
    report.root = str(root)
    raws = load_content(root, config=config, report=report)
    return build_corpus(raws, config=config, report=report), report
