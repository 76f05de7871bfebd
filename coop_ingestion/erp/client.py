"""
OdooClient -- JSON-RPC transport to an Odoo-compatible ERP.

Calls ``POST {url}/jsonrpc`` with the ``common.authenticate`` and
``object.execute_kw`` services.  The authenticated uid is cached on the
instance, so a cached client skips the handshake on later fetches.

Error mapping:
    * Falsy uid from authenticate      -> ``ErpAuthenticationError``
    * HTTP status >= 400, network error,
      non-JSON body, JSON-RPC ``error`` -> ``ErpTransportError``
"""

from __future__ import annotations

import itertools
import threading
from typing import Any

import httpx

from coop_ingestion.domain.types import ErpCredentials
from coop_kernel.exceptions import ErpAuthenticationError, ErpTransportError
from coop_kernel.logging_config import get_logger

logger = get_logger("ingestion.erp.client")

DEFAULT_TIMEOUT_S = 15.0


def _rpc_error_message(error: Any) -> str:
    if isinstance(error, dict):
        data = error.get("data")
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        if error.get("message"):
            return str(error["message"])
    return str(error)


class OdooClient:
    """Synchronous JSON-RPC client for one set of ERP credentials."""

    def __init__(
        self,
        credentials: ErpCredentials,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.credentials = credentials
        self._endpoint = credentials.url.rstrip("/") + "/jsonrpc"
        self._http = http_client or httpx.Client(timeout=timeout_s)
        self._owns_http = http_client is None
        self._uid: int | None = None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def uid(self) -> int | None:
        return self._uid

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _call(self, service: str, method: str, args: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": next(self._ids),
        }
        try:
            response = self._http.post(self._endpoint, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise ErpTransportError(
                self.credentials.url, f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ErpTransportError(self.credentials.url, str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise ErpTransportError(self.credentials.url, "response is not valid JSON") from exc

        if not isinstance(body, dict):
            raise ErpTransportError(self.credentials.url, "unexpected JSON-RPC response shape")
        if body.get("error"):
            raise ErpTransportError(self.credentials.url, _rpc_error_message(body["error"]))
        return body.get("result")

    def authenticate(self) -> int:
        """Return the ERP user id, authenticating on first use."""
        with self._lock:
            if self._uid is not None:
                return self._uid
            c = self.credentials
            uid = self._call("common", "authenticate", [c.database, c.username, c.api_key, {}])
            if not uid:
                logger.warning(
                    "erp_authentication_failed",
                    extra={"erp_url": c.url, "erp_username": c.username},
                )
                raise ErpAuthenticationError(c.url, c.username)
            self._uid = int(uid)
            logger.info("erp_authenticated", extra={"erp_url": c.url, "erp_uid": self._uid})
            return self._uid

    def execute_kw(
        self,
        model: str,
        method: str,
        args: list[Any],
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        uid = self.authenticate()
        c = self.credentials
        return self._call(
            "object",
            "execute_kw",
            [c.database, uid, c.api_key, model, method, args, kwargs or {}],
        )

    def search_read(
        self,
        model: str,
        domain: list[Any],
        fields: list[str],
        **options: Any,
    ) -> list[dict[str, Any]]:
        result = self.execute_kw(model, "search_read", [domain], {"fields": fields, **options})
        if result is None:
            return []
        if not isinstance(result, list):
            raise ErpTransportError(
                self.credentials.url,
                f"search_read on {model} returned {type(result).__name__}",
            )
        return result
