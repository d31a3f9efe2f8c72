from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import asyncio
import logging
import httpx

from app.core.config import settings
from app.services.protocol_wizard.errors import (
    AuthError,
    InvalidInputError,
    NetworkError,
    PayloadTooLargeError,
    ServerError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Bearer credentials passed explicitly to every call"""

    token: str
    user: Optional[Dict[str, Any]] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def _detail(response: httpx.Response):
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return body["detail"]
    return body


def _json(response: httpx.Response) -> Any:
    """Decode a success body; a proxy page or truncated body is a server fault"""
    status = response.status_code
    try:
        return response.json()
    except ValueError as e:
        request = response.request
        logger.error(f"Undecodable {status} body from {request.method} {request.url}: {e}")
        raise ServerError(f"Server sent an invalid response body ({status})", status_code=status) from e


def _records(body: Any, what: str) -> List[Dict[str, Any]]:
    if not isinstance(body, list) or not all(isinstance(item, dict) for item in body):
        raise ServerError(f"Server sent a malformed {what} list", status_code=200)
    return body


def _raise_for_status(response: httpx.Response, payload_bytes: Optional[int] = None) -> None:
    status = response.status_code
    if status < 400:
        return
    detail = _detail(response)
    if status in (401, 403):
        raise AuthError(f"Not authorized ({status}): {detail}", status_code=status)
    if status == 413:
        limit = None
        try:
            limit = response.json().get("limit")
        except (ValueError, AttributeError):
            pass
        raise PayloadTooLargeError(payload_bytes if payload_bytes is not None else 0, limit=limit)
    if status < 500:
        raise InvalidInputError(f"Request rejected ({status}): {detail}", status_code=status, detail=detail)
    logger.error(f"Server error {status} from {response.request.method} {response.request.url}: {detail}")
    raise ServerError(f"Server error ({status})", status_code=status)


class ProtocolApiClient:
    """httpx client for the endpoints the protocol wizard consumes"""

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or settings.api_base_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.http_timeout_s,
            transport=transport,
        )

    async def _send(self, method: str, url: str, payload_bytes: Optional[int] = None, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"Network error on {method} {url}: {e}")
            raise NetworkError(f"Could not reach the server: {e}") from e
        _raise_for_status(response, payload_bytes)
        return response

    async def _with_retry(self, method: str, url: str, ctx: AuthContext, **kwargs) -> Any:
        """Idempotent call retried with exponential backoff on network and 5xx errors"""
        attempts = settings.fetch_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self._send(method, url, headers=ctx.headers, **kwargs)
                return _json(response)
            except (NetworkError, ServerError) as e:
                if attempt == attempts:
                    raise
                delay = settings.fetch_retry_backoff_s * (2 ** (attempt - 1))
                logger.info(f"Retrying {method} {url} in {delay}s after attempt {attempt} failed: {e.message}")
                await asyncio.sleep(delay)

    async def login(self, email: str, password: str) -> AuthContext:
        response = await self._send("POST", "/api/auth/login", json={"email": email, "password": password})
        body = _json(response)
        if not isinstance(body, dict) or "token" not in body:
            raise ServerError("Login response carries no token", status_code=response.status_code)
        return AuthContext(token=body["token"], user=body.get("user"))

    async def list_customers(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        body = await self._with_retry("GET", "/api/trainer/customers", ctx)
        return _records(body, "customer")

    async def list_templates(self, ctx: AuthContext) -> List[Dict[str, Any]]:
        body = await self._with_retry("GET", "/api/protocol-templates", ctx)
        if isinstance(body, dict):
            body = body.get("data", [])
        return _records(body, "template")

    async def create_protocol(self, ctx: AuthContext, body: bytes) -> Dict[str, Any]:
        """Send an encoded creation request once. Never retried here."""
        headers = dict(ctx.headers)
        headers["Content-Type"] = "application/json"
        response = await self._send(
            "POST",
            "/api/trainer/health-protocols",
            payload_bytes=len(body),
            content=body,
            headers=headers,
        )
        created = _json(response)
        if not isinstance(created, dict):
            raise ServerError("Create response is not a protocol object", status_code=response.status_code)
        return created

    async def check_safety(self, ctx: AuthContext, profile: Dict[str, Any]) -> Dict[str, Any]:
        """Screen a health profile. Read-only on the server, so it is retried like a GET."""
        body = await self._with_retry("POST", "/api/trainer/safety-check", ctx, json=profile)
        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            raise ServerError("Safety check response carries no report", status_code=200)
        return body["data"]

    async def close(self):
        await self.client.aclose()
