"""Integration tests for the HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

from tm_alignment.api import create_app, status_code_for
from tm_alignment.audit import AuditLogger
from tm_alignment.config import Configuration
from tm_alignment.exceptions import Busy, HttpError, InvalidPattern, NoDocument
from tm_alignment.models import AlignmentDocument, OperationClass, Segment
from tm_alignment.persistence import write_alignment
from tm_alignment.refinement import create_provider
from tm_alignment.service import AlignmentService


WAIT = 30


@pytest.fixture
def config(tmp_path):
    return Configuration(environ={}, config_path=tmp_path / "config.properties")


@pytest.fixture
def service(config, tmp_path):
    audit = AuditLogger(database_url=f"sqlite:///{tmp_path / 'audit.db'}")
    service = AlignmentService(config=config, audit_logger=audit, provider_factory=create_provider)
    yield service
    service.close()


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def alignment_file(tmp_path):
    document = AlignmentDocument(
        src_lang="en",
        tgt_lang="fr",
        sources=[Segment.from_text(text) for text in ["Hello.", "Goodbye.", "Thanks."]],
        targets=[Segment.from_text(text) for text in ["Bonjour.", "Au revoir.", "Merci."]],
    )
    path = tmp_path / "project.algn"
    write_alignment(document, path)
    return path


@pytest.fixture
def opened(client, service, alignment_file):
    response = client.post("/api/files/open", json={"path": str(alignment_file)})
    assert response.status_code == 202
    assert service.wait(OperationClass.LOAD, WAIT).error == ""
    return client


class TestStatusCodes:
    """Tests for the error-kind to status mapping."""

    def test_mapping(self):
        assert status_code_for(Busy(message="busy")) == 409
        assert status_code_for(NoDocument(message="none")) == 404
        assert status_code_for(HttpError(message="bad gateway", status_code=500)) == 502
        assert status_code_for(InvalidPattern(message="bad")) == 422


class TestStatusAndConfig:
    """Tests for health, worker status and configuration endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_worker_status(self, client):
        data = client.get("/api/status").json()

        assert set(data) == {"align", "load", "save", "refine"}
        assert data["align"] == {"busy": False, "error": "", "status": ""}

    def test_unknown_operation(self, client):
        assert client.get("/api/status/compile").status_code == 404

    def test_config(self, client):
        data = client.get("/api/config").json()

        assert data["properties"]["server.port"] == "8040"
        assert data["validation"]["valid"] is True

    def test_invalid_config(self, client, config):
        config.set("server.port", "0")

        response = client.post("/api/config/validate")

        assert response.status_code == 400
        assert response.json()["validation"]["valid"] is False


class TestDocumentEndpoints:
    """Tests for file, row and edit endpoints."""

    def test_no_document(self, client):
        response = client.get("/api/files/info")

        assert response.status_code == 404
        assert response.json()["error_type"] == "NoDocument"

    def test_file_info(self, opened, alignment_file):
        data = opened.get("/api/files/info").json()

        assert data["file"] == str(alignment_file)
        assert data["srcRows"] == 3

    def test_rows(self, opened):
        data = opened.get("/api/rows", params={"start": 0, "count": 2}).json()

        assert len(data["rows"]) == 2
        assert data["rows"][0].startswith('<tr id="0"')
        assert data["tgtRows"] == 3

    def test_remove_and_rejected_move(self, opened, service):
        removed = opened.post("/api/edit/remove", json={"side": "tgt", "index": 0})
        rejected = opened.post("/api/edit/up", json={"side": "source", "index": 0})

        assert removed.json()["applied"] is True
        assert rejected.status_code == 200
        assert rejected.json()["applied"] is False
        assert len(service.document.targets) == 2

    def test_bad_side(self, opened):
        assert opened.post("/api/edit/merge", json={"side": "middle", "index": 0}).status_code == 422

    def test_split_and_save(self, opened, service):
        split = opened.post(
            "/api/edit/split",
            json={"side": "source", "index": 0, "prefix": "Hel", "suffix": "lo."},
        )
        saved = opened.post(
            "/api/edit/save",
            json={"side": "target", "index": 1, "markup": 'Au <ph id="1"/>revoir.'},
        )

        assert split.json()["applied"] is True
        assert saved.json()["applied"] is True
        assert len(service.document.sources) == 4
        assert service.document.targets[1].has_markup()

    def test_malformed_markup(self, opened):
        response = opened.post(
            "/api/edit/save",
            json={"side": "target", "index": 1, "markup": "<g>open"},
        )

        assert response.status_code == 422
        assert response.json()["error_type"] == "MalformedSegmentTree"

    def test_replace(self, opened):
        ok = opened.post("/api/edit/replace", json={"side": "source", "search": ".", "replacement": "!"})
        bad = opened.post("/api/edit/replace", json={"side": "source", "search": "(", "regex": True})

        bad_template = opened.post(
            "/api/edit/replace",
            json={"side": "source", "search": r"(\w+)", "replacement": r"\d$1", "regex": True},
        )

        assert ok.json()["count"] == 3
        assert bad.status_code == 422
        assert bad_template.status_code == 422
        assert bad_template.json()["error_type"] == "InvalidPattern"

    def test_bulk_edits(self, opened, service):
        assert opened.post("/api/edit/remove-duplicates").json()["count"] == 0
        assert opened.post("/api/edit/remove-tags", json={}).json()["applied"] is True
        languages = opened.post("/api/edit/languages", json={"srcLang": "en-US", "tgtLang": "fr-CA"})

        assert languages.status_code == 200
        assert service.document.tgt_lang == "fr-CA"

    def test_mark_uncertain_and_stats(self, opened, service):
        for row in range(3):
            service.document.ledger.set_confidence(row, 0.9)

        marked = opened.post("/api/rows/2/mark").json()
        uncertain = opened.get("/api/uncertain").json()
        stats = opened.get("/api/stats").json()

        assert marked == {"id": 2, "manuallyMarked": True}
        assert uncertain == {"ids": [2]}
        assert stats["uncertainRows"] == 1

    def test_rename_and_close(self, opened, tmp_path):
        new_path = str(tmp_path / "renamed.algn")

        assert opened.post("/api/files/rename", json={"path": new_path}).json() == {"file": new_path}
        assert opened.post("/api/files/close").json() == {"closed": True}
        assert opened.get("/api/stats").status_code == 404

    def test_save(self, opened, service, tmp_path):
        target = tmp_path / "saved-again.algn"

        response = opened.post("/api/files/save", json={"path": str(target)})
        service.wait(OperationClass.SAVE, WAIT)

        assert response.status_code == 202
        assert target.exists()


class TestWorkersAndRefinement:
    """Tests for the long-running operation endpoints."""

    def test_align(self, client, service, tmp_path):
        source = tmp_path / "en.txt"
        source.write_text("One sentence here. Another one there.", encoding="utf-8")
        target = tmp_path / "de.txt"
        target.write_text("Ein Satz hier. Noch einer dort.", encoding="utf-8")

        response = client.post("/api/align", json={
            "sourceFile": str(source),
            "srcLang": "en",
            "targetFile": str(target),
            "tgtLang": "de",
            "alignmentFile": str(tmp_path / "out.algn"),
        })
        status = service.wait(OperationClass.ALIGN, WAIT)

        assert response.status_code == 202
        assert status.error == ""
        stats = client.get("/api/stats").json()
        assert stats["totalRows"] == 2
        assert stats["lastResult"]["method"] == "Gale-Church"

    def test_busy(self, client, service):
        service._status[OperationClass.REFINE].busy = True
        service.document = AlignmentDocument(src_lang="en", tgt_lang="fr")
        service.config.set("claude.apiKey", "sk-test")

        response = client.post("/api/ai/refine")

        assert response.status_code == 409
        assert response.json()["error_type"] == "Busy"

    def test_refine_without_key(self, opened):
        response = opened.post("/api/ai/refine")

        assert response.status_code == 400
        assert response.json()["error_type"] == "BackendUnconfigured"

    def test_estimate(self, opened):
        data = opened.get("/api/ai/estimate").json()

        assert data["provider"] == "Claude (Anthropic)"
        assert data["uncertainSegments"] == 3


class TestExportAndAudit:
    """Tests for the export and audit endpoints."""

    def test_export(self, opened, tmp_path):
        path = str(tmp_path / "out.tmx")

        response = opened.post("/api/export", json={"format": "tmx", "path": path})

        assert response.json() == {"rows": 3, "path": path}

    def test_unknown_export_format(self, opened, tmp_path):
        response = opened.post("/api/export", json={"format": "xlsx", "path": str(tmp_path / "x")})

        assert response.status_code == 422

    def test_audit_log(self, opened, service):
        opened.post("/api/edit/remove", json={"side": "source", "index": 2})

        response = opened.get("/api/audit")

        data = json.loads(response.json()["content"])
        types = {event["event_type"] for event in data["events"]}
        assert types == {"document_loaded", "segment_edited"}

    def test_audit_csv_and_bad_format(self, opened):
        assert opened.get("/api/audit", params={"format": "csv"}).json()["format"] == "csv"
        assert opened.get("/api/audit", params={"format": "xml"}).status_code == 422

    def test_audit_disabled(self, config):
        client = TestClient(create_app(AlignmentService(config=config)))

        assert client.get("/api/audit").status_code == 404
