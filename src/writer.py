"""Re-serialization of documents and export of a resolved corpus."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from inkwell.models import Document
from inkwell.models.document import REVISION_KEYS
from inkwell.resolver import ResolvedCorpus

logger = logging.getLogger(__name__)

HISTORY_DIRNAME = "_history"
REVISION_INDEX_FILENAME = "revisions.json"
MANIFEST_FILENAME = ".inkwell-manifest.json"


def front_matter_for(document: Document) -> dict[str, Any]:
    """The metadata mapping to write back for a document.

    Original keys keep their values and order; only the revision link
    reflects resolution.
    """
    fm = dict(document.front_matter)
    revision_key = next((k for k in REVISION_KEYS if k in fm), REVISION_KEYS[0])
    for key in REVISION_KEYS:
        fm.pop(key, None)
    if document.revision_of is not None:
        fm[revision_key] = document.revision_of
    return fm


def dump_front_matter(document: Document) -> str:
    """Serialize a document's metadata as a delimited YAML block.

    Returns an empty string when there is nothing to write.
    """
    fm = front_matter_for(document)
    if not fm:
        return ""
    block = yaml.safe_dump(
        fm, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
    return f"---\n{block}---\n"


def render_document(document: Document) -> str:
    """Front matter followed by the untouched body."""
    return dump_front_matter(document) + document.body


def _atomic_write(path: Path, content: str) -> None:
    """Write content to path via a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def document_output_path(output_dir: Path, document: Document, *, historical: bool = False) -> Path:
    """Where an exported document lands under the output directory."""
    base = output_dir / HISTORY_DIRNAME if historical else output_dir
    suffix = Path(document.relative_path).suffix or ".md"
    return base / f"{document.id}{suffix}"


def _read_manifest(output_dir: Path) -> list[str]:
    """Relative paths written by the previous export, if any."""
    manifest_path = output_dir / MANIFEST_FILENAME
    if not manifest_path.exists():
        return []
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable export manifest %s: %s", manifest_path, exc)
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring malformed export manifest %s", manifest_path)
        return []
    return [p for p in data if isinstance(p, str)]


def _prune_stale(output_dir: Path, previous: list[str], written: list[Path]) -> list[Path]:
    """Remove files from the previous export that this export did not rewrite."""
    current = {p.relative_to(output_dir).as_posix() for p in written}
    removed: list[Path] = []
    for relative in previous:
        if relative in current:
            continue
        path = output_dir / relative
        # Only files inside output_dir.
        if output_dir.resolve() not in path.resolve().parents:
            continue
        if path.is_file():
            path.unlink()
            removed.append(path)
    if removed:
        logger.info("Removed %d stale export file(s) from %s", len(removed), output_dir)
    return removed


def export_corpus(
    resolved: ResolvedCorpus,
    output_dir: Path,
    *,
    include_history: bool = False,
) -> list[Path]:
    """Write canonical documents, optional history, and the revision index.

    Files left by a previous export that are not rewritten (a document
    that became historical, or joined an ambiguous cluster) are removed,
    so the output directory always agrees with ``revisions.json``. Files
    the export never wrote are left alone.

    Returns:
        Paths written, in write order.
    """
    previous = _read_manifest(output_dir)
    written: list[Path] = []

    for document in resolved.canonical:
        path = document_output_path(output_dir, document)
        _atomic_write(path, render_document(document))
        written.append(path)

    if include_history:
        for document in resolved.historical:
            path = document_output_path(output_dir, document, historical=True)
            _atomic_write(path, render_document(document))
            written.append(path)

    index_path = output_dir / REVISION_INDEX_FILENAME
    _atomic_write(index_path, json.dumps(resolved.revision_index, indent=2) + "\n")
    written.append(index_path)

    _prune_stale(output_dir, previous, written)
    manifest = [p.relative_to(output_dir).as_posix() for p in written]
    _atomic_write(output_dir / MANIFEST_FILENAME, json.dumps(manifest, indent=2) + "\n")

    resolved.report.outputs_written.extend(str(p) for p in written)
    resolved.report.mark_stage_complete("export")
    logger.info("Exported %d file(s) to %s", len(written), output_dir)
    return written
