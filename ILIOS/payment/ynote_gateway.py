# file: ILIOS/payment/ynote_gateway.py
"""
Y-Note / Paynote gateway for MTN Mobile Money Cameroon (async).
- Token:   POST {YNOTE_TOKEN_URL}                  (OAuth2 client credentials, Basic auth)
- Payment: POST {YNOTE_BASE_URL}/webpayment
- Status:  POST {YNOTE_BASE_URL}/webpaymentmtn/status
Notes:
- The access token is cached on the gateway instance (see TokenCache).
- Y-Note can answer HTTP 200 with an error body; errorCode 200/201 are successes.
"""
import base64
import logging
from typing import Any, Dict, Optional

import httpx

from ILIOS.core import config
from ILIOS.core.errors import ErrorKind, PaymentError
from ILIOS.payment.token_cache import TokenCache

# ----------------------
# Logging
# ----------------------
logger = logging.getLogger("payment.ynote")

PAYMENT_METHOD = "MTN_CMR"

# Vendor error codes that actually mean success
SUCCESS_CODES = (200, 201, "200", "201")


# ----------------------
# Utilities
# ----------------------
def _safe_json(resp: httpx.Response) -> Any:
    """Return parsed json or text if JSON fails."""
    try:
        return resp.json()
    except ValueError:
        return resp.text


def raise_for_vendor_error(body: Any) -> None:
    """Raise UPSTREAM when Y-Note embeds a non-success errorCode in the body."""
    if not isinstance(body, dict):
        return
    error_code = body.get("errorCode") or body.get("ErrorCode")
    if error_code and error_code not in SUCCESS_CODES:
        message = body.get("ErrorMessage") or body.get("body") or body.get("message") or "Unknown error"
        logger.error("[Y-Note] vendor error %s: %s", error_code, body)
        raise PaymentError(ErrorKind.UPSTREAM, f"Y-Note error ({error_code}): {message}", vendor_code=error_code)


class YnoteGateway:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        customer_key: str,
        subscription_key: str,
        token_url: str = config.YNOTE_TOKEN_URL,
        base_url: str = config.YNOTE_BASE_URL,
        notif_url: str = config.CALLBACK_URL,
        timeout: float = config.YNOTE_TIMEOUT,
        token_cache: Optional[TokenCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.customer_key = customer_key
        self.subscription_key = subscription_key
        self.token_url = token_url
        self.base_url = base_url.rstrip("/")
        self.notif_url = notif_url
        self.token_cache = token_cache or TokenCache()
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls) -> "YnoteGateway":
        return cls(
            client_id=config.YNOTE_CLIENT_ID,
            client_secret=config.YNOTE_CLIENT_SECRET,
            customer_key=config.YNOTE_CUSTOMER_KEY,
            subscription_key=config.YNOTE_SUBSCRIPTION_KEY,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def validate_credentials(self) -> None:
        logger.debug(
            "[Y-Note] credentials check client_id=%s client_secret=%s customer_key=%s subscription_key=%s",
            bool(self.client_id), bool(self.client_secret), bool(self.customer_key), bool(self.subscription_key),
        )
        if not self.client_id or not self.client_secret:
            raise PaymentError(ErrorKind.CONFIGURATION, "Y-Note credentials (clientId/clientSecret) are not configured")
        if not self.customer_key or not self.subscription_key:
            raise PaymentError(ErrorKind.CONFIGURATION, "Y-Note customer credentials (customerKey/subscriptionKey) are not configured")

    # ----------------------
    # OAuth token
    # ----------------------
    async def get_access_token(self) -> str:
        cached = self.token_cache.get()
        if cached:
            logger.debug("[Y-Note] using cached access token")
            return cached

        basic = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode("utf-8")).decode("ascii")
        headers = {
            "Authorization": f"Basic {basic}",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        logger.info("[Y-Note] requesting a new access token")
        try:
            resp = await self._client.post(self.token_url, content="grant_type=client_credentials", headers=headers)
        except httpx.RequestError as e:
            logger.exception("[Y-Note] request error get_access_token")
            raise PaymentError(ErrorKind.UPSTREAM, f"Y-Note authentication error: {str(e)}")

        body = _safe_json(resp)
        if resp.status_code >= 400 or not isinstance(body, dict) or not body.get("access_token"):
            logger.error("[Y-Note] token error %s %s", resp.status_code, body)
            raise PaymentError(ErrorKind.UPSTREAM, f"Y-Note authentication error: {resp.status_code}")

        self.token_cache.put(body["access_token"], body.get("expires_in"))
        logger.info("[Y-Note] access token obtained")
        return body["access_token"]

    async def _post(self, path: str, payload: Dict[str, Any], operation: str) -> Any:
        token = await self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            resp = await self._client.post(f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.exception("[Y-Note] request error %s", operation)
            raise PaymentError(ErrorKind.UPSTREAM, f"Y-Note request error: {str(e)}")

        body = _safe_json(resp)
        if resp.status_code >= 400:
            logger.error("[Y-Note] %s error %s %s", operation, resp.status_code, body)
            raise PaymentError(ErrorKind.UPSTREAM, f"Y-Note {operation} failed with HTTP {resp.status_code}")
        return body

    # ----------------------
    # Payment + status
    # ----------------------
    async def request_payment(self, order_id: str, msisdn: str, amount: int, description: str) -> Dict[str, Any]:
        """
        POST /webpayment
        - order_id: our reference id, echoed back as `order_id` in callbacks
        - msisdn: 237XXXXXXXXX
        """
        payload = {
            "API_MUT": {
                "notifUrl": self.notif_url,
                "subscriberMsisdn": msisdn,
                "description": description,
                "amount": str(amount),
                "order_id": order_id,
                "customerkey": self.customer_key,
                "customersecret": self.subscription_key,
                "PaiementMethod": PAYMENT_METHOD,
            }
        }
        logger.info("[Y-Note] request_payment order_id=%s amount=%s", order_id, amount)

        body = await self._post("/webpayment", payload, "webpayment")
        logger.debug("[Y-Note] webpayment response: %s", body)
        raise_for_vendor_error(body)
        if not isinstance(body, dict):
            raise PaymentError(ErrorKind.UPSTREAM, "Y-Note returned an unreadable payment response")
        return body

    async def get_payment_status(self, message_id: str) -> Dict[str, Any]:
        payload = {
            "message_id": message_id,
            "customerkey": self.customer_key,
            "customersecret": self.subscription_key,
        }
        logger.info("[Y-Note] get_payment_status message_id=%s", message_id)

        body = await self._post("/webpaymentmtn/status", payload, "status")
        logger.debug("[Y-Note] status response: %s", body)
        if not isinstance(body, dict):
            raise PaymentError(ErrorKind.UPSTREAM, "Y-Note returned an unreadable status response")
        return body


def extract_message_id(payment_response: Dict[str, Any]) -> Optional[str]:
    """Y-Note's MessageId is what the status endpoint expects."""
    parameters = payment_response.get("parameters")
    if isinstance(parameters, dict) and parameters.get("MessageId"):
        return str(parameters["MessageId"])
    return None
