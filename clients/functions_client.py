"""
Client for the hosted backend's callable functions.

Functions are invoked with POST {base_url}/functions/v1/{name}, authorized by
the calling operator's access token. Every function answers with JSON that is
either a result object or {"error": "..."}.
"""

import json
import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)


class FunctionCallError(Exception):
    """Raised when a callable function fails or reports an error."""

    def __init__(self, function_name: str, message: str):
        self.function_name = function_name
        super().__init__(f"Function '{function_name}' failed: {message}")


class FunctionAuthError(FunctionCallError):
    """The backend rejected the operator's access token (expired or revoked)."""


class FunctionsClient:
    """Invoke callable backend functions over HTTP."""

    def __init__(self, base_url: str, anon_key: str, timeout_seconds: int = 10):
        """
        Args:
            base_url: Backend project URL (e.g. https://xyz.supabase.co)
            anon_key: Public API key sent as the apikey header
            timeout_seconds: Per-request timeout

        Raises:
            ValueError: If base_url or anon_key is empty
        """
        if not base_url:
            raise ValueError("base_url is required")
        if not anon_key:
            raise ValueError("anon_key is required")

        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout_seconds = timeout_seconds

    def _function_url(self, name: str) -> str:
        return f"{self.base_url}/functions/v1/{name}"

    def invoke(self, name: str, payload: dict, access_token: str | None) -> dict[str, Any]:
        """
        Call a function and return its JSON body.

        Raises:
            FunctionAuthError: The access token was rejected (401/403)
            FunctionCallError: On connection failure, non-JSON reply,
                non-2xx status or an "error" field in the reply
        """
        if not access_token:
            raise FunctionCallError(name, "no access token for the current operator")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
            "apikey": self.anon_key,
        }

        try:
            response = requests.post(
                self._function_url(name),
                data=json.dumps(payload),
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Function {name} connection failed: {e}")
            raise FunctionCallError(name, f"connection failed: {e}")

        if response.status_code in (401, 403):
            logger.warning(f"Function {name} rejected the access token: HTTP {response.status_code}")
            raise FunctionAuthError(name, "access token rejected; sign in again")

        try:
            body = response.json()
        except ValueError:
            logger.error(f"Function {name} returned invalid JSON: {response.text}")
            raise FunctionCallError(name, "invalid response")

        if not response.ok or (isinstance(body, dict) and body.get("error")):
            error_msg = body.get("error") if isinstance(body, dict) else None
            error_msg = error_msg or f"HTTP {response.status_code}"
            logger.error(f"Function {name} error: {error_msg}")
            raise FunctionCallError(name, str(error_msg))

        return body

    def send_invoice_email(self, invoice_id, access_token: str | None) -> dict[str, Any]:
        """Ask the backend to email an invoice to its recipient."""
        result = self.invoke(
            "send-invoice-email",
            {"invoice_id": str(invoice_id)},
            access_token,
        )
        logger.info(f"Invoice email dispatched for {invoice_id}")
        return result
