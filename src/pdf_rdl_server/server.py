"""FastAPI REST API for PDF layout analysis and RDL generation."""

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .analysis import (
    AnalysisConfig,
    DocumentAnalysis,
    DocumentAnalyzer,
    ExtractionError,
    HeaderTextbox,
    TableBodyData,
    header_textboxes,
    load_zero_shot_classifier,
    render_rdl,
    table_body_data,
)
from .logger import log_context, logger


# --- Request/Response Models ---


class AnalyzeResponse(BaseModel):
    file_name: str
    analysis: DocumentAnalysis
    header_textboxes: list[HeaderTextbox]
    table_body_data: TableBodyData


class HealthResponse(BaseModel):
    status: str
    checks: dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    code: str
    message: str


# --- App State ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build config and the optional zero-shot classifier once per process."""
    logger.info("starting server")

    config = AnalysisConfig()
    app.state.config = config
    app.state.zero_shot = await asyncio.to_thread(
        load_zero_shot_classifier, config.classifier_backend
    )

    yield

    logger.info("server shutdown")


app = FastAPI(
    title="PDF RDL API",
    description="PDF layout analysis and SSRS report definition generation",
    version="0.1.0",
    lifespan=lifespan,
)


def _config(request: Request) -> AnalysisConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        config = AnalysisConfig()
        request.app.state.config = config
    return config


def _analyzer(request: Request) -> DocumentAnalyzer:
    return DocumentAnalyzer(_config(request), getattr(request.app.state, "zero_shot", None))


# --- Exception Handlers ---


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request, exc: ExtractionError):
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(code="ANALYSIS_FAILED", message=str(exc)).model_dump(),
    )


@app.exception_handler(FileNotFoundError)
async def file_not_found_handler(request, exc: FileNotFoundError):
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(code="FILE_NOT_FOUND", message=str(exc)).model_dump(),
    )


# --- Health Endpoints ---


@app.get("/health", response_model=HealthResponse)
async def health():
    """Liveness check."""
    return HealthResponse(status="healthy")


@app.get("/ready", response_model=HealthResponse)
async def ready(request: Request):
    """Readiness check - reports whether the configured classifier loaded."""
    config = _config(request)
    checks = {"config": True}
    if config.classifier_backend != "none":
        checks["classifier"] = getattr(request.app.state, "zero_shot", None) is not None

    status = "healthy" if all(checks.values()) else "degraded"
    return HealthResponse(status=status, checks=checks)


# --- Analysis Endpoints ---


def _validate_pdf_content(file_path: Path) -> bool:
    """Validate file is a PDF by checking magic bytes."""
    with open(file_path, "rb") as f:
        header = f.read(5)
    return header == b"%PDF-"


def _save_upload_to_temp(file_obj, tmp_path: Path) -> None:
    """Save uploaded file to temp path."""
    with open(tmp_path, "wb") as f:
        shutil.copyfileobj(file_obj, f)


def _report_name(filename: str) -> str:
    """File stem safe for a quoted Content-Disposition filename."""
    stem = Path(filename).stem
    for char in ('"', "\\", "\r", "\n"):
        stem = stem.replace(char, "")
    return stem or "report"


def _run_analysis(analyzer: DocumentAnalyzer, tmp_path: Path, file_name: str) -> DocumentAnalysis:
    with log_context(document=file_name):
        return analyzer.analyze_pdf(tmp_path)


async def _analyze_upload(request: Request, file: UploadFile) -> DocumentAnalysis:
    """Validate an uploaded PDF, spool it to disk and analyze page 1."""
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    max_size = _config(request).max_upload_size
    if file.size and file.size > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB",
        )

    with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp:
        tmp_path = Path(tmp.name)

    try:
        await asyncio.to_thread(_save_upload_to_temp, file.file, tmp_path)

        is_valid_pdf = await asyncio.to_thread(_validate_pdf_content, tmp_path)
        if not is_valid_pdf:
            raise HTTPException(
                status_code=400,
                detail="Invalid PDF file. File does not have valid PDF header.",
            )

        # Model inference and PyMuPDF parsing are blocking
        return await asyncio.to_thread(_run_analysis, _analyzer(request), tmp_path, file.filename)
    finally:
        tmp_path.unlink(missing_ok=True)


@app.post("/api/v1/analyze", response_model=AnalyzeResponse)
async def analyze(request: Request, file: UploadFile = File(...)):
    """Analyze the first page of an uploaded PDF."""
    analysis = await _analyze_upload(request, file)
    return AnalyzeResponse(
        file_name=file.filename,
        analysis=analysis,
        header_textboxes=header_textboxes(analysis),
        table_body_data=table_body_data(analysis),
    )


@app.post("/api/v1/rdl")
async def generate_rdl(request: Request, file: UploadFile = File(...)):
    """Generate an RDL report definition from an uploaded PDF."""
    analysis = await _analyze_upload(request, file)
    rdl = render_rdl(analysis)
    report_name = _report_name(file.filename)
    return Response(
        content=rdl,
        media_type="application/xml",
        headers={"Content-Disposition": f'attachment; filename="{report_name}.rdl"'},
    )
