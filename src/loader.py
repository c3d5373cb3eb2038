"""Content loader: discovers source files and splits front matter from body.

The loader is a pure read transform. It does not interpret the body
beyond separating it from the metadata block.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from inkwell.config import ContentConfig, InkwellConfig
from inkwell.errors import ContentRootError, CorpusReport, ParseError

logger = logging.getLogger(__name__)

FRONT_MATTER_OPEN = "---"
FRONT_MATTER_CLOSE = ("---", "...")


class RawContent(BaseModel):
    """A content unit as read from disk, before any interpretation."""

    model_config = ConfigDict(frozen=True)

    source_path: Path
    relative_path: str
    text: str
    front_matter: dict[str, Any] = Field(default_factory=dict)
    body: str = ""


def split_front_matter(text: str, *, source: str | Path = "") -> tuple[dict[str, Any], str]:
    """Split a delimited front-matter block from the body.

    Args:
        text: Full file contents.
        source: Path used in error messages.

    Returns:
        Tuple of (front matter mapping, body text).

    Raises:
        ParseError: If the block is unterminated, is not valid YAML, or
            does not decode to a mapping keyed by strings.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONT_MATTER_OPEN:
        return {}, text

    for idx in range(1, len(lines)):
        if lines[idx].rstrip() in FRONT_MATTER_CLOSE:
            block = "".join(lines[1:idx])
            body = "".join(lines[idx + 1 :])
            break
    else:
        raise ParseError("unterminated front matter block", source=source)

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 2}" if mark is not None else ""
        raise ParseError(f"invalid front matter{where}: {exc}", source=source) from exc
    except ValueError as exc:
        # Implicit timestamps such as 2016-13-45 fail inside the constructor.
        raise ParseError(f"invalid front matter value: {exc}", source=source) from exc

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise ParseError(
            f"front matter must be key: value pairs, got {type(data).__name__}",
            source=source,
        )

    bad_keys = [k for k in data if not isinstance(k, str) or not k.strip()]
    if bad_keys:
        raise ParseError(f"invalid front matter key(s): {bad_keys!r}", source=source)

    return data, body


def read_content_unit(path: Path, root: Path) -> RawContent:
    """Read a single content file into a RawContent.

    Raises:
        ParseError: On malformed front matter.
        OSError: If the file cannot be read.
    """
    text = path.read_text(encoding="utf-8-sig")
    relative = path.relative_to(root).as_posix()
    front_matter, body = split_front_matter(text, source=relative)
    return RawContent(
        source_path=path,
        relative_path=relative,
        text=text,
        front_matter=front_matter,
        body=body,
    )


def discover_content(
    root: Path,
    content: ContentConfig | None = None,
    *,
    skip: Iterable[Path] = (),
) -> list[Path]:
    """Find content files under root, ordered by relative POSIX path.

    Hidden directories, excluded directory names, and any directory in
    ``skip`` (compared after resolving) are not descended into.

    Raises:
        ContentRootError: If root is missing or not a readable directory.
    """
    content = content or ContentConfig()
    skipped = {Path(p).resolve() for p in skip}
    if not root.exists():
        raise ContentRootError(f"Content root does not exist: {root}")
    if not root.is_dir():
        raise ContentRootError(f"Content root is not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise ContentRootError(f"Content root is not readable: {root}")

    extensions = {ext.lower() for ext in content.extensions}
    excluded = set(content.exclude)
    found: list[Path] = []

    def _on_error(exc: OSError) -> None:
        if Path(exc.filename or "") == root:
            raise ContentRootError(f"Content root is not readable: {root}") from exc
        logger.warning("Skipping unreadable directory: %s", exc.filename)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [
            d
            for d in dirnames
            if not d.startswith(".")
            and d not in excluded
            and (not skipped or (Path(dirpath) / d).resolve() not in skipped)
        ]
        for name in filenames:
            if name.startswith("."):
                continue
            if Path(name).suffix.lower() in extensions:
                found.append(Path(dirpath) / name)

    return sorted(found, key=lambda p: p.relative_to(root).as_posix())


def load_content(
    root: Path,
    *,
    config: InkwellConfig | None = None,
    report: CorpusReport | None = None,
) -> list[RawContent]:
    """Discover and read every content file under root.

    Per-file parse and read errors are recorded on the report and the
    file is skipped. Files may be read on a thread pool; the result keeps
    discovery order either way. The configured output directory is never
    read back as content.

    Raises:
        ContentRootError: If root is missing or unreadable.
    """
    config = config or InkwellConfig()
    report = report if report is not None else CorpusReport()
    paths = discover_content(
        root, config.content, skip=[Path(config.output.directory)]
    )
    logger.info("Discovered %d content file(s) under %s", len(paths), root)

    def _read(path: Path) -> RawContent | Exception:
        try:
            return read_content_unit(path, root)
        except (ParseError, OSError, UnicodeDecodeError) as exc:
            return exc

    workers = config.loader.workers
    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(_read, paths))
    else:
        results = [_read(path) for path in paths]

    # Report order follows discovery order.
    raws: list[RawContent] = []
    for path, result in zip(paths, results, strict=True):
        if isinstance(result, ParseError):
            report.record("load", result)
        elif isinstance(result, Exception):
            report.add_error(
                "load",
                f"could not read file: {result}",
                source=path.relative_to(root).as_posix(),
                error_type=type(result).__name__,
            )
            logger.warning("Could not read content file %s: %s", path, result)
        else:
            raws.append(result)

    report.items_processed["files"] = len(paths)
    report.mark_stage_complete("load")
    return raws
