"""
Request executor for the clinic backend REST API.

Sends one HTTP call, enforces the deadline and cancellation, and normalizes
every failure into the data-access exception hierarchy. No retries.
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from ..core.config import ApiConfig, get_settings
from ..core.exceptions import (
    ApiError,
    NetworkError,
    ParseError,
    RequestCancelledError,
    TimeoutError,
)
from ..core.models import ApiResponse
from .cancellation import CancelToken
from .token_store import FileTokenStore, TokenStore

logger = structlog.get_logger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _error_message(payload: Any) -> Optional[str]:
    """Pull ``error.message`` then ``message`` out of an envelope."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if payload.get("message"):
        return str(payload["message"])
    return None


def _error_code(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"].get("code")
    return None


class RequestExecutor:
    """
    Async HTTP executor that returns validated ``ApiResponse`` envelopes.

    The base URL and auth token are resolved on every call, so configuration
    and token changes take effect without rebuilding the executor.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        token_store: Optional[TokenStore] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._token_store = token_store
        self._client = client
        self._owns_client = client is None
        self._transport = transport

    @property
    def config(self) -> ApiConfig:
        return self._config or get_settings().api

    @property
    def token_store(self) -> TokenStore:
        if self._token_store is None:
            return FileTokenStore(self.config.auth_storage_path)
        return self._token_store

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            # Deadlines are enforced by the executor, not by httpx
            self._client = httpx.AsyncClient(
                transport=self._transport, timeout=httpx.Timeout(None), follow_redirects=True
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this executor created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _build_headers(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        # File-backed stores do blocking I/O; keep it off the event loop
        token = await asyncio.to_thread(self.token_store.get_token)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> ApiResponse[Any]:
        """
        Perform one API call.

        Args:
            endpoint: Path relative to the API base path, e.g. ``/clients``
            method: HTTP method
            body: JSON-serializable payload, sent only for POST/PUT/PATCH
            timeout: Deadline in seconds; defaults to the configured timeout
            headers: Extra headers applied after the defaults
            cancel_token: Token that aborts the call when cancelled

        Returns:
            Validated response envelope

        Raises:
            TimeoutError: The deadline expired
            RequestCancelledError: The cancel token fired first
            NetworkError: The transport failed
            ApiError: Non-2xx status or ``success: false``
            ParseError: The body was not a JSON envelope
        """
        method = method.upper()
        config = self.config
        timeout = config.timeout_seconds if timeout is None else timeout
        url = f"{config.root_url}{endpoint}"

        if cancel_token is not None and cancel_token.cancelled:
            raise RequestCancelledError(cancel_token.reason or "Request cancelled")

        content = None
        if method in BODY_METHODS and body is not None:
            content = json.dumps(to_jsonable_python(body)).encode("utf-8")

        request_headers = await self._build_headers(headers)

        logger.debug("API request", method=method, endpoint=endpoint, has_body=content is not None)
        start = time.perf_counter()

        send_task = asyncio.ensure_future(
            self._send(method, url, request_headers, content, timeout)
        )
        cancel_task = None
        waiters = {send_task}
        if cancel_token is not None:
            cancel_task = asyncio.ensure_future(cancel_token.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if cancel_task is not None and not cancel_task.done():
                cancel_task.cancel()
            if not send_task.done():
                send_task.cancel()
                await asyncio.gather(send_task, return_exceptions=True)

        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        if send_task not in done:
            if cancel_task is not None and cancel_task in done:
                logger.debug("API request cancelled", method=method, endpoint=endpoint)
                raise RequestCancelledError(cancel_token.reason or "Request cancelled")
            logger.warning(
                "API request timed out",
                method=method,
                endpoint=endpoint,
                timeout_seconds=timeout,
            )
            raise TimeoutError(
                f"Request timeout after {round(timeout * 1000)}ms", timeout_seconds=timeout
            )

        response = send_task.result()
        logger.debug(
            "API response",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return self._handle_response(response, method, endpoint)

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        content: Optional[bytes],
        timeout: float,
    ) -> httpx.Response:
        try:
            return await self.client.request(method, url, headers=headers, content=content)
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"Request timeout after {round(timeout * 1000)}ms", timeout_seconds=timeout
            ) from e
        except httpx.HTTPError as e:
            logger.error("API transport failure", method=method, url=url, error=str(e))
            raise NetworkError(f"Network error: {e}") from e

    def _handle_response(
        self, response: httpx.Response, method: str, endpoint: str
    ) -> ApiResponse[Any]:
        status = response.status_code

        if status == 204 or not response.content:
            payload: Any = {"success": response.is_success, "data": {}}
        else:
            try:
                payload = response.json()
            except ValueError as e:
                logger.error("API response is not JSON", endpoint=endpoint, status_code=status)
                raise ParseError(
                    f"Failed to parse response from {endpoint}: {e}", status_code=status
                ) from e

        if not response.is_success:
            message = _error_message(payload) or f"HTTP {status}: {response.reason_phrase}"
            logger.warning(
                "API request failed",
                method=method,
                endpoint=endpoint,
                status_code=status,
                error=message,
            )
            raise ApiError(message, status_code=status, code=_error_code(payload))

        if not isinstance(payload, dict) or not payload.get("success"):
            message = _error_message(payload) or "API request failed"
            logger.warning("API reported failure", method=method, endpoint=endpoint, error=message)
            raise ApiError(message, status_code=status, code=_error_code(payload))

        envelope = dict(payload)
        # Acknowledgements (deletes, mark-as-read) may come back without data
        if envelope.get("data") is None:
            envelope["data"] = {}

        try:
            return ApiResponse[Any].model_validate(envelope)
        except PydanticValidationError as e:
            raise ParseError(
                f"Malformed response envelope from {endpoint}: {e}", status_code=status
            ) from e

    async def get(self, endpoint: str, **options) -> ApiResponse[Any]:
        return await self.request(endpoint, "GET", **options)

    async def post(self, endpoint: str, body: Any = None, **options) -> ApiResponse[Any]:
        return await self.request(endpoint, "POST", body=body, **options)

    async def put(self, endpoint: str, body: Any = None, **options) -> ApiResponse[Any]:
        return await self.request(endpoint, "PUT", body=body, **options)

    async def patch(self, endpoint: str, body: Any = None, **options) -> ApiResponse[Any]:
        return await self.request(endpoint, "PATCH", body=body, **options)

    async def delete(self, endpoint: str, **options) -> ApiResponse[Any]:
        return await self.request(endpoint, "DELETE", **options)
