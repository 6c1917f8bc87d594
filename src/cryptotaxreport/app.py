# app.py
"""
Small stateless HTTP front-end for the report builder (FastAPI).

Nothing is stored between requests: each call builds a fresh ExchangeReport,
registers the posted operations and returns the exported text.

Endpoints:
  GET  /health       -> liveness check
  GET  /version      -> app version metadata
  POST /export       -> JSON (exchange + operations) -> report file (text/plain)
  POST /upload/csv   -> CSV of operations + exchange form fields -> JSON preview

  Command to start the server: uvicorn cryptotaxreport.app:app --reload
"""

from typing import Any, Dict, List

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse

from .__about__ import __title__, __version__
from .config import load_settings
from .csv_normalizer import load_csv_into
from .digest import sha256_text
from .errors import EncodingWidthExceeded, ValidationError
from .logging_setup import configure_logging, get_logger
from .report import ExchangeReport
from .schemas import CSVExportPreview, ExportRequest

SETTINGS = load_settings()
configure_logging(SETTINGS.log_level, SETTINGS.json_logs)
logger = get_logger(__name__)

app = FastAPI(
    title=__title__,
    version=__version__,
    description="Builds the exchange crypto-operations report file from manually entered operations.",
)


def _new_report(exchange: Dict[str, Any]) -> ExchangeReport:
    try:
        return ExchangeReport(exchange, settings=SETTINGS)
    except ValidationError as ve:
        raise HTTPException(status_code=422, detail={"exchange": ve.as_list()})


def _export(report: ExchangeReport) -> str:
    try:
        return report.export_file()
    except EncodingWidthExceeded as exc:
        raise HTTPException(
            status_code=422,
            detail={"field": exc.field, "max_width": exc.max_width, "actual_width": exc.actual_width},
        )


# -----------------------------------------------------------------------------
# Health + version endpoints (simple sanity checks)
# -----------------------------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, str]:
    """Quick liveness check for monitoring or manual testing."""
    return {"status": "ok"}


@app.get("/version")
def version() -> Dict[str, str]:
    """Show the backend name and version (useful to confirm deployments)."""
    return {"name": __title__, "version": __version__}


# -----------------------------------------------------------------------------
# Report endpoints
# -----------------------------------------------------------------------------
@app.post("/export", response_class=PlainTextResponse)
def export_report(payload: ExportRequest) -> PlainTextResponse:
    """
    Validate every operation, then return the report file.

    All-or-nothing: if any operation is rejected, the response is 422 with the
    errors of every rejected item (by position) and no file.
    """
    report = _new_report(payload.exchange)

    errors: List[Dict[str, Any]] = []
    for index, raw in enumerate(payload.operations):
        data = dict(raw)
        kind = data.pop("operation", None)
        try:
            report.add_operation(kind, data)
        except ValidationError as ve:
            errors.append({"index": index, "errors": ve.as_list()})

    if errors:
        raise HTTPException(status_code=422, detail={"operations": errors})

    text = _export(report)
    return PlainTextResponse(
        text,
        headers={
            "X-Report-SHA256": sha256_text(text),
            "Content-Disposition": 'attachment; filename="exchange_report.txt"',
        },
    )


@app.post("/upload/csv", response_model=CSVExportPreview)
async def upload_csv(
    file: UploadFile = File(...),
    exchange_name: str = Form(...),
    exchange_url: str = Form(...),
    exchange_country: str = Form(""),
) -> Dict[str, Any]:
    """
    Accept a CSV of operations and return a preview.

    Rows with errors are listed (first 5); the report text is only returned
    when every row was accepted.
    """
    filename = file.filename or ""
    if not filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Please upload a .csv file")

    data = await file.read()
    if len(data) == 0:
        raise HTTPException(status_code=400, detail="Empty file")

    report = _new_report(
        {"exchange_name": exchange_name, "exchange_url": exchange_url, "exchange_country": exchange_country}
    )

    try:
        errors = load_csv_into(report, data)
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded")

    text = None
    if not errors:
        text = _export(report)

    logger.info("csv_uploaded", filename=filename, valid=len(report), errors=len(errors))
    return {
        "filename": filename,
        "total_valid": len(report),
        "total_errors": len(errors),
        "errors": errors[:5],  # return only the first few errors to keep response small
        "report": text,
        "sha256": sha256_text(text) if text is not None else None,
    }
