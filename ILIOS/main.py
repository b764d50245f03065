# file: ILIOS/main.py
"""
MTN Mobile Money payment API (Y-Note / Paynote) for Ilios campaigns.
- Initiate payments, poll their status, receive Y-Note callbacks
- Manual refund requests (admin)
"""
import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from firebase_admin import auth
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from ILIOS.core import config
from ILIOS.core.errors import ErrorKind, PaymentError
from ILIOS.core.firebase import get_db
from ILIOS.core.logger import setup_logging
from ILIOS.core.middleware import AccessLogMiddleware
from ILIOS.core.rate_limit import limiter
from ILIOS.payment.firestore_adapter import FirestoreStore
from ILIOS.payment.payment_orchestrator import PaymentOrchestrator
from ILIOS.payment.routes import router as payment_router
from ILIOS.payment.ynote_gateway import YnoteGateway
from ILIOS.webhooks.routes import router as webhook_router

logger = logging.getLogger("main")

HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.INVALID_PHONE: 400,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.INTERNAL: 500,
}


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PaymentError)
    async def payment_error_handler(request: Request, exc: PaymentError):
        status_code = HTTP_STATUS_BY_KIND.get(exc.kind, 500)
        if status_code >= 500:
            logger.error("❌ %s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind.value, exc.message)
        return _error(status_code, exc.message, exc.kind.value)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            return _error(400, "Invalid JSON in request body", "INVALID_JSON")
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
        return _error(400, message, ErrorKind.INVALID_ARGUMENT.value)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, f"Route {request.method} {request.url.path} not found", ErrorKind.NOT_FOUND.value)
        return _error(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return _error(429, f"Too many requests. Please slow down ({exc.detail}).", "RATE_LIMITED")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("❌ Unhandled error on %s %s", request.method, request.url.path)
        message = "Internal server error" if config.IS_PRODUCTION else str(exc)
        return _error(500, message, ErrorKind.INTERNAL.value)


def create_app(orchestrator: PaymentOrchestrator = None, store=None, verify_token=None) -> FastAPI:
    """
    Build the API. Collaborators left as None are created from the environment
    (Firestore, Y-Note, Firebase Auth) when the app starts.
    """
    setup_logging()

    app = FastAPI(
        title="Ilios MTN Mobile Money Payment API",
        version=config.API_VERSION,
        docs_url="/api/docs",
    )
    app.state.limiter = limiter
    app.state.orchestrator = orchestrator
    app.state.store = store or (orchestrator.store if orchestrator else None)
    app.state.verify_token = verify_token
    app.state.gateway = None

    # CORS: any origin in development, the allow-list in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS if config.IS_PRODUCTION else ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )
    app.add_middleware(AccessLogMiddleware)

    _register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {
            "success": True,
            "service": "payment-api",
            "status": "healthy",
            "version": config.API_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": config.ENVIRONMENT,
        }

    @app.get("/")
    async def index():
        return {
            "success": True,
            "message": "Y-Note / MTN Mobile Money payment API",
            "version": config.API_VERSION,
            "documentation": "/api/docs",
            "endpoints": {
                "health": "GET /health",
                "payments": {
                    "initiate": "POST /api/payments/initiate",
                    "status": "POST /api/payments/status",
                    "statusGet": "GET /api/payments/status/{referenceId}",
                    "refund": "POST /api/payments/refund (admin)",
                    "validatePhone": "POST /api/payments/validate-phone",
                },
                "webhooks": {
                    "callback": "POST /api/webhooks/ynote-callback",
                    "health": "GET /api/webhooks/health",
                },
            },
        }

    app.include_router(payment_router)
    app.include_router(webhook_router)

    @app.on_event("startup")
    async def startup_event():
        config.validate_env()
        config.log_config()

        if app.state.orchestrator is None:
            store = app.state.store or FirestoreStore(get_db())
            gateway = YnoteGateway.from_config()
            app.state.store = store
            app.state.gateway = gateway
            app.state.orchestrator = PaymentOrchestrator(store, gateway)
        if app.state.verify_token is None:
            app.state.verify_token = auth.verify_id_token
        logger.info("✅ Payment API ready")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.gateway is not None:
            await app.state.gateway.aclose()
        logger.info("👋 Payment API stopped")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("ILIOS.main:app", host="0.0.0.0", port=config.PORT)
