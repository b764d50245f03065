# file: ILIOS/webhooks/routes.py
import json
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPIError

from ILIOS.core import config
from ILIOS.core.errors import ErrorKind, PaymentError
from ILIOS.core.rate_limit import WEBHOOK_LIMIT, limiter

logger = logging.getLogger("webhooks.ynote")

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _read_json(request: Request):
    raw_body = await request.body()
    try:
        return json.loads(raw_body.decode("utf-8") or "null")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise PaymentError(ErrorKind.INVALID_ARGUMENT, "Malformed callback body")


async def _process_callback(request: Request, payload) -> JSONResponse:
    orchestrator = request.app.state.orchestrator
    try:
        await orchestrator.handle_callback(payload)
    except PaymentError as e:
        logger.error("[WEBHOOK] callback processing error (%s): %s", e.kind.value, e.message)
        if e.kind is ErrorKind.NOT_FOUND:
            return JSONResponse(status_code=404, content={"success": False, "error": e.message})
        if e.kind is ErrorKind.INVALID_ARGUMENT:
            return JSONResponse(status_code=400, content={"success": False, "error": e.message})
        # Answer 200 so Y-Note does not retry; the failure is in the logs
        return JSONResponse(status_code=200, content={"success": False, "error": e.message})
    except GoogleAPIError as e:
        logger.exception("[WEBHOOK] store error while processing callback: %s", e)
        return JSONResponse(status_code=200, content={"success": False, "error": "Internal processing error"})
    except Exception as e:
        # e.g. ValueError from Firestore for a reference containing "/"
        logger.exception("[WEBHOOK] unexpected error while processing callback: %s", e)
        return JSONResponse(status_code=200, content={"success": False, "error": "Internal processing error"})
    return JSONResponse(status_code=200, content={"success": True, "message": "Callback processed"})


# ------------------------------
# Y-Note -> this service
# ------------------------------
@router.post("/ynote-callback")
@limiter.limit(WEBHOOK_LIMIT)
async def ynote_callback(request: Request):
    """
    Status push from Y-Note. Body shape varies:
    referenceId | order_id, status | transactionStatus, financialTransactionId, amount, message.
    """
    logger.info("[WEBHOOK] Y-Note callback received")
    logger.debug("[WEBHOOK] headers=%s", dict(request.headers))

    try:
        payload = await _read_json(request)
    except PaymentError as e:
        logger.error("[WEBHOOK] %s", e.message)
        return JSONResponse(status_code=400, content={"success": False, "error": e.message})

    logger.debug("[WEBHOOK] body=%s", payload)
    return await _process_callback(request, payload)


@router.get("/ynote-callback")
async def ynote_callback_probe():
    # Some providers GET the URL before registering it
    logger.info("[WEBHOOK] Y-Note GET probe")
    return {"success": True, "message": "Webhook endpoint active", "timestamp": _timestamp()}


@router.post("/test")
async def simulate_callback(request: Request):
    """Simulate a vendor callback (development only)."""
    if config.IS_PRODUCTION:
        return JSONResponse(status_code=404, content={"success": False, "error": "Not found"})

    try:
        body = await _read_json(request)
    except PaymentError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": e.message})
    if not isinstance(body, dict) or not body.get("referenceId"):
        return JSONResponse(status_code=400, content={"success": False, "error": "referenceId is required for the test"})

    logger.info("[WEBHOOK] test callback: %s", body)
    payload = {
        "referenceId": body["referenceId"],
        "status": body.get("status") or "SUCCESSFUL",
        "financialTransactionId": f"TEST_{int(time.time() * 1000)}",
    }
    return await _process_callback(request, payload)


@router.get("/health")
async def webhook_health():
    return {"success": True, "service": "webhook", "status": "healthy", "timestamp": _timestamp()}
