import httpx
import logging
import time
from typing import Optional
from config.settings import PAYPAL_BASE_URL, PAYPAL_CLIENT_ID, PAYPAL_CLIENT_SECRET, PAYPAL_TIMEOUT
from utils.retry import retry_token_request
from utils.error_handler import PayPalAPIError

logger = logging.getLogger(__name__)

# Refresh the token this many seconds before PayPal expires it
TOKEN_EXPIRY_MARGIN = 60


class PayPalAPI:
    """PayPal REST API client (Async)"""

    def __init__(self, client_id: str = PAYPAL_CLIENT_ID, client_secret: str = PAYPAL_CLIENT_SECRET,
                 base_url: str = PAYPAL_BASE_URL, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=PAYPAL_TIMEOUT, transport=transport)
        self._access_token = None
        self._token_expires_at = 0.0

    @retry_token_request(max_attempts=3)
    async def _fetch_token(self) -> dict:
        response = await self.client.post(
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.client_id or "", self.client_secret or ""),
            headers={"Accept": "application/json"}
        )
        if response.status_code >= 400:
            raise PayPalAPIError(
                message="PayPal authentication failed",
                status_code=response.status_code,
                details=self._error_details(response)
            )
        return response.json()

    async def get_access_token(self) -> str:
        """OAuth2 client-credentials token, cached until shortly before it expires"""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        if not self.client_id or not self.client_secret:
            raise PayPalAPIError(
                message="PayPal credentials are not configured",
                status_code=401,
                details={"hint": "Set PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET"}
            )

        data = await self._fetch_token()
        self._access_token = data["access_token"]
        expires_in = float(data.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        logger.info(f"✓ PayPal access token obtained (expires in {int(expires_in)}s)")
        return self._access_token

    async def request(self, method: str, path: str, json: dict = None, params: dict = None):
        """
        Call a PayPal REST endpoint

        Args:
            method: HTTP method
            path: Path below the API base URL (e.g. "/v2/checkout/orders")
            json: Request body
            params: Query parameters

        Returns:
            dict: Decoded response body ({} for 204 No Content)

        Raises:
            PayPalAPIError: PayPal answered with an error status
            httpx.TransportError: the request never got an answer
        """
        token = await self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation"
        }

        try:
            response = await self.client.request(method, path, json=json, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            details = self._error_details(e.response)
            error_msg = details.get("message") or details.get("error_description") or str(e)
            logger.error(f"❌ PayPal {method} {path} failed: {error_msg}")
            raise PayPalAPIError(
                message=error_msg,
                status_code=e.response.status_code,
                details=details
            )
        except httpx.TransportError as e:
            logger.error(f"❌ PayPal {method} {path} transport error: {e}")
            raise

        logger.info(f"✓ PayPal {method} {path} -> {response.status_code}")
        if response.status_code == 204 or not response.content:
            return {}

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return {"content": response.text}
        return response.json()

    def _error_details(self, response: httpx.Response) -> dict:
        try:
            details = response.json()
        except ValueError:
            details = {"response": response.text}
        return details if isinstance(details, dict) else {"response": details}

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
