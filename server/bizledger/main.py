import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from .config import settings
from .errors import DatabaseUnavailable, LedgerError, TransactionTimeout, is_timeout_error, is_unreachable_error
from .routers import health, loans, payables, payments, records, reports

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(location) -> str:
    parts = [str(part) for part in location if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors: dict = {}
    for error in exc.errors():
        errors.setdefault(_field_name(error.get("loc", ())), []).append(error.get("msg", "Invalid input"))
    first = next(iter(errors.values()), ["Invalid input"])[0]
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, first)
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "message": first, "errors": errors},
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    if is_timeout_error(exc):
        error = TransactionTimeout()
    elif is_unreachable_error(exc):
        error = DatabaseUnavailable()
    else:
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})
    logger.error("Database failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


app.include_router(health.router)
app.include_router(payments.router)
app.include_router(payables.router)
app.include_router(loans.router)
app.include_router(records.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {"status": "ok"}
