"""FastAPI application exposing the alignment service.

Usage (from project root, after installing the package):

    python -m tm_alignment

or, for development:

    uvicorn tm_alignment.api.app:create_app --factory --reload

Long operations (``/api/align``, ``/api/files/open``, ``/api/files/save``,
``/api/ai/refine``) start a background worker and return its status; poll
``/api/status/{operation}`` until ``busy`` is false.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config.models import ConfigurationError
from ..exceptions import (
    AlignmentError,
    BackendError,
    BackendUnavailable,
    BackendUnconfigured,
    Busy,
    ConverterFailure,
    InvalidPattern,
    IoError,
    MalformedSegmentTree,
    NoDocument,
    ResponseParseError,
)
from ..models.enums import OperationClass, Side
from ..service import AlignRequest, AlignmentService
from ..version import VERSION


logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (Busy, 409),
    (NoDocument, 404),
    (BackendUnconfigured, 400),
    (BackendError, 502),
    (BackendUnavailable, 502),
    (ResponseParseError, 502),
    (MalformedSegmentTree, 422),
    (InvalidPattern, 422),
    (ConverterFailure, 422),
    (IoError, 500),
)


def status_code_for(error: AlignmentError) -> int:
    """HTTP status for an error kind."""
    for kind, code in ERROR_STATUS:
        if isinstance(error, kind):
            return code
    return 500


# =========================================================================
# Request bodies
# =========================================================================

class AlignBody(BaseModel):
    sourceFile: str
    srcLang: str
    targetFile: str
    tgtLang: str
    alignmentFile: str
    srcType: Optional[str] = None
    tgtType: Optional[str] = None
    srcEnc: str = "utf-8"
    tgtEnc: str = "utf-8"
    paragraph: bool = False
    srx: Optional[str] = None
    catalog: Optional[str] = None
    xmlfilter: Optional[str] = None


class PathBody(BaseModel):
    path: str


class SaveBody(BaseModel):
    path: Optional[str] = None


class SegmentBody(BaseModel):
    side: str
    index: int


class SplitBody(SegmentBody):
    prefix: str
    suffix: str


class SaveEditBody(SegmentBody):
    markup: str


class ReplaceBody(BaseModel):
    side: str
    search: str
    replacement: str = ""
    regex: bool = False


class SideBody(BaseModel):
    side: Optional[str] = None


class LanguagesBody(BaseModel):
    srcLang: str
    tgtLang: str


class ExportBody(BaseModel):
    format: str
    path: str
    showConfidence: bool = False


def _side(value: str) -> Side:
    try:
        return Side.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _operation(value: str) -> OperationClass:
    try:
        return OperationClass(value)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown operation: {value}") from exc


def create_app(service: Optional[AlignmentService] = None) -> FastAPI:
    """
    Build the application around one service instance.

    Args:
        service: Session service; a default one is created if omitted.

    Returns:
        Configured FastAPI application. The service is available as
        ``app.state.service``.
    """
    app = FastAPI(title="TM Alignment API", version=VERSION)
    app.state.service = service or AlignmentService()

    def svc() -> AlignmentService:
        return app.state.service

    @app.exception_handler(AlignmentError)
    async def alignment_error_handler(request: Request, exc: AlignmentError) -> JSONResponse:
        code = status_code_for(exc)
        if code >= 500:
            logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=code, content=exc.to_dict())

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        content = {"error_type": "ConfigurationError", "message": exc.message}
        if exc.validation_result is not None:
            content["validation"] = exc.validation_result.to_dict()
        return JSONResponse(status_code=400, content=content)

    # ---------------------------------------------------------------------
    # Status and configuration
    # ---------------------------------------------------------------------

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse(status_code=200, content={"status": "ok", "version": VERSION})

    @app.get("/api/status")
    async def all_status() -> JSONResponse:
        content = {op.value: svc().status(op).to_dict() for op in OperationClass}
        return JSONResponse(status_code=200, content=content)

    @app.get("/api/status/{operation}")
    async def operation_status(operation: str) -> JSONResponse:
        status = svc().status(_operation(operation))
        return JSONResponse(status_code=200, content=status.to_dict())

    @app.get("/api/config")
    async def get_config() -> JSONResponse:
        config = svc().config
        content = {"properties": config.to_dict(), "validation": config.validate().to_dict()}
        return JSONResponse(status_code=200, content=content)

    @app.post("/api/config/validate")
    async def validate_config() -> JSONResponse:
        result = svc().config.require_valid()
        return JSONResponse(status_code=200, content=result.to_dict())

    # ---------------------------------------------------------------------
    # Workers
    # ---------------------------------------------------------------------

    @app.post("/api/align")
    def align(body: AlignBody) -> JSONResponse:
        """Convert, align and save two documents in the background."""
        status = svc().align_files(AlignRequest(
            source_file=body.sourceFile,
            source_lang=body.srcLang,
            target_file=body.targetFile,
            target_lang=body.tgtLang,
            alignment_file=body.alignmentFile,
            source_type=body.srcType,
            target_type=body.tgtType,
            source_encoding=body.srcEnc,
            target_encoding=body.tgtEnc,
            paragraph=body.paragraph,
            srx=body.srx,
            catalog=body.catalog,
            xml_filter=body.xmlfilter,
        ))
        return JSONResponse(status_code=202, content=status.to_dict())

    @app.post("/api/files/open")
    def open_file(body: PathBody) -> JSONResponse:
        return JSONResponse(status_code=202, content=svc().open_file(body.path).to_dict())

    @app.post("/api/files/save")
    def save_file(body: SaveBody) -> JSONResponse:
        return JSONResponse(status_code=202, content=svc().save_file(body.path).to_dict())

    @app.post("/api/ai/refine")
    def refine() -> JSONResponse:
        return JSONResponse(status_code=202, content=svc().refine().to_dict())

    @app.get("/api/ai/estimate")
    def estimate() -> JSONResponse:
        return JSONResponse(status_code=200, content=svc().estimate_ai_cost().to_dict())

    # ---------------------------------------------------------------------
    # Document
    # ---------------------------------------------------------------------

    @app.get("/api/files/info")
    def file_info() -> JSONResponse:
        return JSONResponse(status_code=200, content=svc().file_info())

    @app.post("/api/files/close")
    def close_file() -> JSONResponse:
        svc().close_file()
        return JSONResponse(status_code=200, content={"closed": True})

    @app.post("/api/files/rename")
    def rename(body: PathBody) -> JSONResponse:
        svc().rename(body.path)
        return JSONResponse(status_code=200, content={"file": body.path})

    @app.get("/api/rows")
    def rows(start: int = 0, count: int = 100) -> JSONResponse:
        return JSONResponse(status_code=200, content=svc().get_rows(start, count))

    @app.get("/api/stats")
    def stats() -> JSONResponse:
        return JSONResponse(status_code=200, content=svc().stats())

    @app.get("/api/uncertain")
    def uncertain() -> JSONResponse:
        return JSONResponse(status_code=200, content={"ids": svc().uncertain_ids()})

    @app.post("/api/rows/{segment_id}/mark")
    def toggle_mark(segment_id: int) -> JSONResponse:
        marked = svc().toggle_manual_mark(segment_id)
        return JSONResponse(status_code=200, content={"id": segment_id, "manuallyMarked": marked})

    # ---------------------------------------------------------------------
    # Editing
    # ---------------------------------------------------------------------

    @app.post("/api/edit/remove")
    def remove_segment(body: SegmentBody) -> JSONResponse:
        result = svc().remove_segment(_side(body.side), body.index)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/up")
    def segment_up(body: SegmentBody) -> JSONResponse:
        result = svc().segment_up(_side(body.side), body.index)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/down")
    def segment_down(body: SegmentBody) -> JSONResponse:
        result = svc().segment_down(_side(body.side), body.index)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/merge")
    def merge_next(body: SegmentBody) -> JSONResponse:
        result = svc().merge_next(_side(body.side), body.index)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/split")
    def split_segment(body: SplitBody) -> JSONResponse:
        result = svc().split_segment(_side(body.side), body.index, body.prefix, body.suffix)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/save")
    def save_edit(body: SaveEditBody) -> JSONResponse:
        result = svc().save_edit(_side(body.side), body.index, body.markup)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/replace")
    def replace_text(body: ReplaceBody) -> JSONResponse:
        result = svc().replace_text(_side(body.side), body.search, body.replacement, body.regex)
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.post("/api/edit/remove-duplicates")
    def remove_duplicates() -> JSONResponse:
        return JSONResponse(status_code=200, content=svc().remove_duplicates().to_dict())

    @app.post("/api/edit/remove-tags")
    def remove_tags(body: SideBody) -> JSONResponse:
        side = _side(body.side) if body.side else None
        return JSONResponse(status_code=200, content=svc().remove_tags(side).to_dict())

    @app.post("/api/edit/languages")
    def set_languages(body: LanguagesBody) -> JSONResponse:
        result = svc().set_languages(body.srcLang, body.tgtLang)
        return JSONResponse(status_code=200, content=result.to_dict())

    # ---------------------------------------------------------------------
    # Export and audit
    # ---------------------------------------------------------------------

    @app.post("/api/export")
    def export(body: ExportBody) -> JSONResponse:
        try:
            count = svc().export(body.format, body.path, body.showConfidence)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse(status_code=200, content={"rows": count, "path": body.path})

    @app.get("/api/audit")
    def audit_log(format: str = "json") -> JSONResponse:
        service_ = svc()
        if service_.audit is None:
            raise HTTPException(status_code=404, detail="Audit trail is disabled")
        document = service_.document
        if document is None:
            raise NoDocument(message="No alignment is open")
        try:
            content = service_.audit.export_log(document.id, format=format)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse(status_code=200, content={"format": format, "content": content})

    return app
