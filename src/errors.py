"""Error taxonomy and structured error reporting for corpus runs."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

REPORT_FILENAME = ".inkwell-last-run.json"


class InkwellError(Exception):
    """Base class for all inkwell errors."""


class ContentRootError(InkwellError):
    """The content root is missing or unreadable. Aborts the whole run."""


class DocumentError(InkwellError):
    """An error tied to a single source document."""

    def __init__(self, message: str, *, source: str | Path = "") -> None:
        self.message = message
        self.source = str(source)
        super().__init__(f"{self.source}: {message}" if self.source else message)


class ParseError(DocumentError):
    """Malformed front matter (unterminated delimiter, invalid key syntax)."""


class ValidationError(DocumentError):
    """A document violates a corpus invariant (required fields, dangling links)."""


class AmbiguousRevisionError(InkwellError):
    """Members of a revision cluster cannot be ordered unambiguously."""

    def __init__(self, message: str, *, document_ids: list[str]) -> None:
        self.message = message
        self.document_ids = list(document_ids)
        super().__init__(f"{message} ({', '.join(self.document_ids)})")


class InvalidTransitionError(InkwellError):
    """A resolution state was asked to move backwards or skip ahead."""


class CorpusError(BaseModel):
    """A single non-fatal error captured during a corpus run."""

    stage: str
    source: str = ""
    error_type: str = "unknown"
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class CorpusReport(BaseModel):
    """Summary report of a load/resolve run."""

    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    root: str = ""
    stages_completed: list[str] = Field(default_factory=list)
    errors: list[CorpusError] = Field(default_factory=list)
    items_processed: dict[str, int] = Field(default_factory=dict)
    outputs_written: list[str] = Field(default_factory=list)

    def add_error(
        self,
        stage: str,
        message: str,
        *,
        source: str = "",
        error_type: str = "unknown",
    ) -> None:
        """Record an error during the run."""
        self.errors.append(
            CorpusError(
                stage=stage,
                source=source,
                error_type=error_type,
                message=message,
            )
        )

    def record(self, stage: str, exc: InkwellError) -> None:
        """Record an inkwell exception, keeping its class name as the type."""
        if isinstance(exc, DocumentError):
            self.add_error(
                stage, exc.message, source=exc.source, error_type=type(exc).__name__
            )
        elif isinstance(exc, AmbiguousRevisionError):
            self.add_error(
                stage,
                exc.message,
                source=", ".join(exc.document_ids),
                error_type=type(exc).__name__,
            )
        else:
            self.add_error(stage, str(exc), error_type=type(exc).__name__)
        logger.warning("%s [%s] %s", stage, type(exc).__name__, exc)

    def mark_stage_complete(self, stage: str) -> None:
        """Record that a stage completed."""
        if stage not in self.stages_completed:
            self.stages_completed.append(stage)

    def finish(self) -> None:
        """Mark the report as finished."""
        self.finished_at = datetime.now()

    @property
    def success(self) -> bool:
        """True if no document or cluster errors were recorded."""
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def errors_of(self, error_type: str) -> list[CorpusError]:
        return [e for e in self.errors if e.error_type == error_type]

    def summary_text(self) -> str:
        """Human-readable summary of the run."""
        duration = ""
        if self.finished_at and self.started_at:
            secs = (self.finished_at - self.started_at).total_seconds()
            duration = f" in {secs:.1f}s"

        status = "clean" if self.success else "completed with errors"
        lines = [f"Corpus run {status}{duration}"]

        if self.root:
            lines.append(f"Root: {self.root}")

        if self.stages_completed:
            lines.append(f"Stages: {', '.join(self.stages_completed)}")

        if self.items_processed:
            parts = [f"{k}: {v}" for k, v in self.items_processed.items()]
            lines.append(f"Processed: {', '.join(parts)}")

        if self.outputs_written:
            lines.append(f"Outputs: {len(self.outputs_written)} files")

        if self.errors:
            lines.append(f"Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                where = f" {err.source}" if err.source else ""
                lines.append(f"  [{err.error_type}]{where}: {err.message}")
            if len(self.errors) > 5:
                lines.append(f"  ... and {len(self.errors) - 5} more")

        return "\n".join(lines)


def save_report(report: CorpusReport, output_dir: Path) -> Path:
    """Save the run report to disk."""
    report_path = output_dir / REPORT_FILENAME
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return report_path


def load_report(output_dir: Path) -> CorpusReport | None:
    """Load the last run report from disk."""
    report_path = output_dir / REPORT_FILENAME
    if not report_path.exists():
        return None
    try:
        data = json.loads(report_path.read_text(encoding="utf-8"))
        return CorpusReport.model_validate(data)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Corrupt report at %s", report_path)
        return None
