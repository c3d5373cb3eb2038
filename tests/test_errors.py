"""Tests for src/errors.py: error taxonomy and CorpusReport."""

import json

from inkwell.errors import (
    AmbiguousRevisionError,
    ContentRootError,
    CorpusError,
    CorpusReport,
    DocumentError,
    InkwellError,
    ParseError,
    ValidationError,
    load_report,
    save_report,
)


class TestErrorTaxonomy:
    def test_all_errors_share_base(self):
        for cls in (ContentRootError, ParseError, ValidationError, AmbiguousRevisionError):
            assert issubclass(cls, InkwellError)

    def test_document_errors_carry_source(self):
        err = ParseError("unterminated front matter block", source="_drafts/a.md")
        assert isinstance(err, DocumentError)
        assert err.source == "_drafts/a.md"
        assert err.message == "unterminated front matter block"
        assert str(err) == "_drafts/a.md: unterminated front matter block"

    def test_document_error_without_source(self):
        err = ValidationError("missing title")
        assert str(err) == "missing title"

    def test_ambiguous_revision_lists_documents(self):
        err = AmbiguousRevisionError("dates disagree", document_ids=["a", "b"])
        assert err.document_ids == ["a", "b"]
        assert "a, b" in str(err)


class TestCorpusReport:
    def test_empty_report_success(self):
        report = CorpusReport()
        assert report.success is True
        assert report.error_count == 0

    def test_add_error(self):
        report = CorpusReport()
        report.add_error("load", "bad yaml", source="post.md", error_type="ParseError")
        assert report.error_count == 1
        assert report.errors[0].stage == "load"
        assert report.errors[0].source == "post.md"
        assert report.success is False

    def test_record_document_error(self):
        report = CorpusReport()
        report.record("build", ValidationError("missing date", source="post.md"))
        err = report.errors[0]
        assert err.error_type == "ValidationError"
        assert err.source == "post.md"
        assert err.message == "missing date"

    def test_record_ambiguous_revision(self):
        report = CorpusReport()
        report.record(
            "resolve",
            AmbiguousRevisionError("dates disagree", document_ids=["a", "b"]),
        )
        err = report.errors[0]
        assert err.error_type == "AmbiguousRevisionError"
        assert err.source == "a, b"

    def test_errors_of(self):
        report = CorpusReport()
        report.record("load", ParseError("x", source="a.md"))
        report.record("build", ValidationError("y", source="b.md"))
        assert [e.source for e in report.errors_of("ParseError")] == ["a.md"]

    def test_mark_stage_complete(self):
        report = CorpusReport()
        report.mark_stage_complete("load")
        report.mark_stage_complete("load")  # duplicate ignored
        assert report.stages_completed == ["load"]

    def test_finish(self):
        report = CorpusReport()
        assert report.finished_at is None
        report.finish()
        assert report.finished_at is not None

    def test_summary_text_clean(self):
        report = CorpusReport(root="content")
        report.mark_stage_complete("load")
        report.items_processed = {"files": 3}
        report.finish()
        text = report.summary_text()
        assert "clean" in text
        assert "content" in text
        assert "files: 3" in text

    def test_summary_text_truncates_errors(self):
        report = CorpusReport()
        for i in range(7):
            report.add_error("build", f"problem {i}", source=f"{i}.md")
        text = report.summary_text()
        assert "Errors: 7" in text
        assert "... and 2 more" in text


class TestReportPersistence:
    def test_save_and_load(self, tmp_path):
        report = CorpusReport(root="content")
        report.record("load", ParseError("bad", source="a.md"))
        report.finish()
        path = save_report(report, tmp_path)
        assert path.exists()

        loaded = load_report(tmp_path)
        assert loaded is not None
        assert loaded.root == "content"
        assert loaded.errors[0].error_type == "ParseError"

    def test_load_missing(self, tmp_path):
        assert load_report(tmp_path) is None

    def test_load_corrupt(self, tmp_path):
        (tmp_path / ".inkwell-last-run.json").write_text("{not json")
        assert load_report(tmp_path) is None

    def test_saved_report_is_json(self, tmp_path):
        report = CorpusReport()
        report.errors.append(CorpusError(stage="load", message="m"))
        path = save_report(report, tmp_path)
        data = json.loads(path.read_text())
        assert data["errors"][0]["stage"] == "load"
