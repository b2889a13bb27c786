from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .db import Store
from .logging_config import configure_logging, get_logger
from .routers.items import router as items_router
from .routers.payments import router as payments_router
from .routers.price_chart import router as price_chart_router
from .routers.print_status import router as print_status_router
from .routers.users import router as users_router
from .routers.vendor_records import router as vendor_records_router
from .routers.vendors import router as vendors_router
from .services import AttachmentStore, LedgerError, LedgerQueryService

logger = get_logger("api")

GENERIC_ERROR_MESSAGE = "Something went wrong!"


def _describe_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        content = {"error": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [_describe_validation_error(error) for error in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Payal Wire Ledger",
        description="IN/OUT management of wire stock issued to vendors, with pricing and payments",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = Store(settings.database_url)
    app.state.attachments = AttachmentStore(settings.upload_dir, settings.max_upload_bytes)

    register_error_handlers(app)

    app.include_router(vendors_router)
    app.include_router(items_router)
    app.include_router(price_chart_router)
    app.include_router(payments_router)
    app.include_router(print_status_router)
    app.include_router(vendor_records_router)
    app.include_router(users_router)

    @app.get("/api/health", tags=["Health"])
    @app.get("/api", tags=["Health"])
    def health():
        return {
            "status": "OK",
            "message": "IN/OUT Management API is running",
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.on_event("startup")
    def on_startup():
        store = app.state.store
        store.create_all()
        db = store.session()
        try:
            if LedgerQueryService.balances_missing(db):
                LedgerQueryService.rebuild_balances(db)
                db.commit()
        finally:
            db.close()
        logger.info("Ledger API %s ready", __version__)

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.store.dispose()

    return app
