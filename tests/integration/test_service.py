"""Integration tests for the alignment session service."""

import threading
from pathlib import Path

import pytest

from tm_alignment.audit import AuditLogger
from tm_alignment.config import Configuration
from tm_alignment.converters import TextConverter
from tm_alignment.exceptions import BackendError, BackendUnconfigured, Busy, NoDocument
from tm_alignment.interfaces.ai_provider import CostEstimate, IAIProvider
from tm_alignment.interfaces.audit import AuditEventType
from tm_alignment.models import AlignmentDocument, AlignmentLink, OperationClass, Segment, Side
from tm_alignment.persistence import read_alignment, write_alignment
from tm_alignment.refinement import estimate_cost
from tm_alignment.segments.extractor import extract_all
from tm_alignment.service import AlignmentService, AlignRequest


WAIT = 30


class StubProvider(IAIProvider):
    """Provider returning canned links."""

    def __init__(self, links=None, error=None, configured=True):
        self.links = links or []
        self.error = error
        self.configured = configured
        self.languages = None

    @property
    def provider_name(self) -> str:
        return "Stub"

    @property
    def model_name(self) -> str:
        return "stub-model"

    def is_configured(self) -> bool:
        return self.configured

    def analyze(self, sources, targets, uncertain):
        if self.error is not None:
            raise self.error
        return self.links

    def estimate_cost(self, sources, targets, uncertain) -> CostEstimate:
        return estimate_cost(sources, targets, uncertain, 3.0, 15.0, self.provider_name, self.model_name)


class BlockingProvider(StubProvider):
    """Provider that waits for a release signal inside ``analyze``."""

    def __init__(self, links=None):
        super().__init__(links=links)
        self.started = threading.Event()
        self.release = threading.Event()

    def analyze(self, sources, targets, uncertain):
        self.started.set()
        self.release.wait(WAIT)
        return super().analyze(sources, targets, uncertain)


class BlockingConverter(TextConverter):
    """Converter that waits for a release signal before converting."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def convert(self, request):
        self.started.set()
        self.release.wait(WAIT)
        return super().convert(request)


def factory_for(provider):
    def factory(config, prompt_builder=None):
        provider.languages = (prompt_builder.source_language, prompt_builder.target_language)
        return provider
    return factory


@pytest.fixture
def config(tmp_path):
    return Configuration(environ={}, config_path=tmp_path / "config.properties")


@pytest.fixture
def audit(tmp_path):
    logger = AuditLogger(database_url=f"sqlite:///{tmp_path / 'audit.db'}")
    yield logger
    logger.close()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def service(config, audit, provider):
    return AlignmentService(config=config, audit_logger=audit, provider_factory=factory_for(provider))


@pytest.fixture
def align_request(tmp_path):
    source = tmp_path / "source.txt"
    source.write_text("The cat sleeps on the mat. The dog barks loudly.\nIt is very late now.\n", encoding="utf-8")
    target = tmp_path / "target.txt"
    target.write_text("Le chat dort sur le tapis. Le chien aboie fort.\nIl est très tard maintenant.\n", encoding="utf-8")
    return AlignRequest(
        source_file=str(source),
        source_lang="en",
        target_file=str(target),
        target_lang="fr",
        alignment_file=str(tmp_path / "result.algn"),
    )


@pytest.fixture
def saved_document(tmp_path) -> Path:
    document = AlignmentDocument(
        src_lang="en",
        tgt_lang="de",
        sources=[Segment.from_text(text) for text in ["One.", "Two.", "Three."]],
        targets=[Segment.from_text(text) for text in ["Eins.", "Zwei.", "Drei."]],
    )
    path = tmp_path / "saved.algn"
    write_alignment(document, path)
    return path


def open_document(service, path):
    service.open_file(str(path))
    status = service.wait(OperationClass.LOAD, WAIT)
    assert status.error == ""
    return service.document


class TestAlignmentRun:
    """Tests for the background alignment run."""

    def test_align_files(self, service, align_request):
        started = service.align_files(align_request)
        status = service.wait(OperationClass.ALIGN, WAIT)

        assert started.busy
        assert not status.busy
        assert status.error == ""
        document = service.document
        assert extract_all(document.sources) == [
            "The cat sleeps on the mat.", "The dog barks loudly.", "It is very late now.",
        ]
        assert len(document.targets) == 3
        assert service.last_result.method == "Gale-Church"
        assert service.last_result.total_links == 3
        assert Path(align_request.alignment_file).exists()
        assert len(read_alignment(align_request.alignment_file).sources) == 3

    def test_ledger_is_populated(self, service, align_request):
        service.align_files(align_request)
        service.wait(OperationClass.ALIGN, WAIT)

        for row in range(3):
            assert service.document.ledger.get(row).method

    def test_align_is_audited(self, service, audit, align_request):
        service.align_files(align_request)
        service.wait(OperationClass.ALIGN, WAIT)

        events = audit.get_events(
            document_id=service.document.id,
            event_type=AuditEventType.ALIGNMENT_COMPLETED,
        )
        assert len(events) == 1
        assert events[0].details["total_pairs"] == 3

    def test_paragraph_mode(self, service, align_request):
        align_request.paragraph = True

        service.align_files(align_request)
        service.wait(OperationClass.ALIGN, WAIT)

        assert len(service.document.sources) == 2

    def test_converter_failure_is_reported(self, service, align_request, tmp_path):
        align_request.source_file = str(tmp_path / "missing.txt")

        service.align_files(align_request)
        status = service.wait(OperationClass.ALIGN, WAIT)

        assert not status.busy
        assert status.error.startswith("Cannot read text file")
        assert service.document is None

    def test_busy_while_running(self, config, align_request):
        converter = BlockingConverter()
        service = AlignmentService(config=config, converter=converter)
        service.align_files(align_request)
        assert converter.started.wait(WAIT)

        try:
            with pytest.raises(Busy) as exc_info:
                service.align_files(align_request)
            assert exc_info.value.operation == "align"

            with pytest.raises(Busy) as exc_info:
                service.remove_segment(Side.SOURCE, 0)
            assert exc_info.value.operation == "edit"

            assert not service.status(OperationClass.SAVE).busy
        finally:
            converter.release.set()
        assert not service.wait(OperationClass.ALIGN, WAIT).busy
        assert service.document is not None


class TestFiles:
    """Tests for opening, saving and closing alignment files."""

    def test_open_file(self, service, saved_document):
        document = open_document(service, saved_document)

        assert service.file_info() == {
            "file": str(saved_document),
            "srcLang": "en",
            "tgtLang": "de",
            "srcRows": 3,
            "tgtRows": 3,
        }
        assert document.uncertain_ids() == [0, 1, 2]

    def test_open_missing_file(self, service, tmp_path):
        service.open_file(str(tmp_path / "none.algn"))
        status = service.wait(OperationClass.LOAD, WAIT)

        assert status.error.startswith("Cannot read alignment file")

    def test_save_as(self, service, saved_document, tmp_path):
        open_document(service, saved_document)
        service.remove_segment(Side.TARGET, 0)
        copy = tmp_path / "copy.algn"

        service.save_file(str(copy))
        status = service.wait(OperationClass.SAVE, WAIT)

        assert status.error == ""
        assert extract_all(read_alignment(copy).targets) == ["Zwei.", "Drei."]
        assert service.file_info()["file"] == str(copy)

    def test_save_without_document(self, service):
        with pytest.raises(NoDocument):
            service.save_file()

    def test_rename_then_save(self, service, saved_document, tmp_path):
        open_document(service, saved_document)
        renamed = tmp_path / "renamed.algn"

        service.rename(str(renamed))
        service.save_file()
        service.wait(OperationClass.SAVE, WAIT)

        assert renamed.exists()

    def test_close_file(self, service, saved_document):
        open_document(service, saved_document)

        service.close_file()

        assert service.document is None
        with pytest.raises(NoDocument):
            service.stats()


class TestEditing:
    """Tests for the editor calls on the service."""

    def test_edit_result(self, service, saved_document):
        open_document(service, saved_document)

        result = service.merge_next(Side.SOURCE, 0)

        assert result.applied
        assert extract_all(service.document.sources) == ["One. Two.", "Three."]

    def test_rejected_edit_is_not_applied(self, service, saved_document):
        open_document(service, saved_document)

        result = service.segment_down(Side.TARGET, 2)

        assert not result.applied
        assert result.reason
        assert extract_all(service.document.targets) == ["Eins.", "Zwei.", "Drei."]

    def test_replace_counts_changed_segments(self, service, saved_document):
        open_document(service, saved_document)

        result = service.replace_text(Side.TARGET, r"(\w+)\.", "$1!", regex=True)

        assert result.count == 3
        assert extract_all(service.document.targets) == ["Eins!", "Zwei!", "Drei!"]

    def test_edits_are_audited(self, service, audit, saved_document):
        document = open_document(service, saved_document)

        service.remove_segment(Side.SOURCE, 1)
        service.set_languages("en-GB", "de-AT")

        events = audit.get_events(document_id=document.id, event_type=AuditEventType.SEGMENT_EDITED)
        operations = sorted(event.details["operation"] for event in events)
        assert operations == ["remove", "set_languages"]

    def test_toggle_mark_and_stats(self, service, saved_document):
        open_document(service, saved_document)
        for row in range(3):
            service.document.ledger.set_confidence(row, 0.9)

        assert service.toggle_manual_mark(1) is True
        stats = service.stats()

        assert service.uncertain_ids() == [1]
        assert stats["totalRows"] == 3
        assert stats["uncertainRows"] == 1
        assert stats["overallConfidence"] == pytest.approx(2 / 3)
        assert stats["lastResult"] is None

    def test_get_rows(self, service, saved_document):
        open_document(service, saved_document)

        page = service.get_rows(1, 5)

        assert len(page["rows"]) == 2
        assert page["srcRows"] == 3

    def test_edit_without_document(self, service):
        with pytest.raises(NoDocument):
            service.remove_segment(Side.SOURCE, 0)


class TestRefinement:
    """Tests for AI refinement through the service."""

    def test_unconfigured_provider(self, config, saved_document):
        service = AlignmentService(
            config=config, provider_factory=factory_for(StubProvider(configured=False))
        )
        open_document(service, saved_document)

        with pytest.raises(BackendUnconfigured):
            service.refine()

        assert not service.status(OperationClass.REFINE).busy

    def test_refine_applies_suggestions(self, service, provider, saved_document):
        document = open_document(service, saved_document)
        provider.links = [AlignmentLink([0], [2], 0.95, "Changed from T0 to T2", ai_reviewed=True)]

        service.refine()
        status = service.wait(OperationClass.REFINE, WAIT)

        assert status.error == ""
        assert provider.languages == ("en", "de")
        assert extract_all(document.targets) == ["Drei.", "Zwei.", "Eins."]
        assert document.ledger.get(0).ai_reviewed
        assert service.last_report.refined_count == 1
        assert service.last_report.swapped_count == 1
        assert service.stats()["lastRefinement"]["refinedCount"] == 1

    def test_refine_failure_leaves_document(self, service, provider, saved_document):
        document = open_document(service, saved_document)
        provider.error = BackendError(message="Request failed: timeout")

        service.refine()
        status = service.wait(OperationClass.REFINE, WAIT)

        assert status.error == "Request failed: timeout"
        assert extract_all(document.targets) == ["Eins.", "Zwei.", "Drei."]
        assert document.ledger.ai_reviewed_count() == 0

    def test_reads_are_busy_while_refining(self, config, saved_document):
        provider = BlockingProvider(links=[AlignmentLink([0], [0], 0.95, "", ai_reviewed=True)])
        service = AlignmentService(config=config, provider_factory=factory_for(provider))
        document = open_document(service, saved_document)
        service.refine()
        assert provider.started.wait(WAIT)

        try:
            for read in (service.stats, service.uncertain_ids, service.get_rows,
                         service.file_info, service.estimate_ai_cost):
                with pytest.raises(Busy) as exc_info:
                    read()
                assert exc_info.value.operation == "edit"
        finally:
            provider.release.set()

        assert service.wait(OperationClass.REFINE, WAIT).error == ""
        assert service.stats()["totalRows"] == 3
        assert document.ledger.get(0).ai_reviewed

    def test_estimate(self, service, saved_document):
        open_document(service, saved_document)

        estimate = service.estimate_ai_cost()

        assert estimate.uncertain_segments == 3
        assert estimate.provider == "Stub"


class TestExport:
    """Tests for exports through the service."""

    @pytest.mark.parametrize("export_format", ["tmx", "csv", "docx"])
    def test_export(self, service, audit, saved_document, tmp_path, export_format):
        document = open_document(service, saved_document)
        path = tmp_path / f"out.{export_format}"

        count = service.export(export_format, str(path))

        assert count == 3
        assert path.exists()
        events = audit.get_events(document_id=document.id, event_type=AuditEventType.EXPORT_COMPLETED)
        assert events[0].details["format"] == export_format

    def test_unknown_format(self, service, saved_document, tmp_path):
        open_document(service, saved_document)

        with pytest.raises(ValueError):
            service.export("xlsx", str(tmp_path / "out.xlsx"))
