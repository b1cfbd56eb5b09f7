"""Thin HTTP client for the local companion file service."""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from urllib import parse, request
from urllib.error import HTTPError, URLError

LOGGER = logging.getLogger(__name__)

DEFAULT_PORT = 5005


class ServiceError(RuntimeError):
    """Raised when the companion service rejects or cannot receive a write."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class CompanionClient:
    """Typed wrappers around the companion service endpoints.

    Reads and listings degrade to ``None`` on any failure. Writes raise
    :class:`ServiceError` because a failed write must fail its action.
    """

    def __init__(
        self,
        *,
        port: int = DEFAULT_PORT,
        host: str = "127.0.0.1",
        timeout: float = 10.0,
    ) -> None:
        self.port = port
        self.host = host
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def health(self) -> bool:
        try:
            payload = self._get_json("/health")
        except (HTTPError, URLError, TimeoutError, OSError, ValueError, HTTPException):
            return False
        return isinstance(payload, dict) and payload.get("status") == "ok"

    def read_file(self, path: str) -> dict[str, object] | None:
        return self._get_or_none("/read_file", {"path": path})

    def list_directory(self, path: str) -> dict[str, object] | None:
        return self._get_or_none("/list_directory", {"path": path})

    def write_file(self, path: str, content: str) -> dict[str, object]:
        result = self._post_json("/write_file", {"path": path, "content": content})
        return result if isinstance(result, dict) else {"success": True}

    def execute(self, tool: str, args: dict[str, object] | None = None) -> dict[str, object] | None:
        try:
            result = self._post_json("/execute", {"tool": tool, "args": args or {}})
        except ServiceError:
            return None
        return result if isinstance(result, dict) else None

    def _url(self, route: str, query: dict[str, str] | None = None) -> str:
        url = f"{self.base_url}{route}"
        if query:
            url = f"{url}?{parse.urlencode(query)}"
        return url

    def _get_json(self, route: str, query: dict[str, str] | None = None) -> object:
        req = request.Request(self._url(route, query), method="GET")
        with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
            return json.loads(resp.read().decode("utf-8"))

    def _get_or_none(self, route: str, query: dict[str, str]) -> dict[str, object] | None:
        try:
            payload = self._get_json(route, query)
        except HTTPError as exc:
            LOGGER.info(
                "companion_request_rejected",
                extra={"route": route, "http_status": exc.code, "query": query},
            )
            return None
        except (URLError, TimeoutError, OSError, ValueError, HTTPException) as exc:
            LOGGER.info(
                "companion_request_failed",
                extra={"route": route, "error": str(exc), "query": query},
            )
            return None
        return payload if isinstance(payload, dict) else None

    def _post_json(self, route: str, body: dict[str, object]) -> object:
        data = json.dumps(body).encode("utf-8")
        req = request.Request(
            self._url(route),
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                raw = resp.read().decode("utf-8")
        except HTTPError as exc:
            error_body = _read_error_body(exc)
            LOGGER.error(
                "companion_write_failed",
                extra={"route": route, "http_status": exc.code, "response_excerpt": error_body},
            )
            raise ServiceError(
                f"{route} failed with HTTP {exc.code}: {error_body or exc.reason}",
                status=exc.code,
                body=error_body,
            ) from exc
        except (URLError, TimeoutError, OSError, HTTPException) as exc:
            LOGGER.error("companion_transport_error", extra={"route": route, "error": str(exc)})
            raise ServiceError(f"{route} failed: {exc}") from exc

        try:
            return json.loads(raw) if raw else None
        except json.JSONDecodeError:
            return None


def _read_error_body(exc: HTTPError, *, max_chars: int = 500) -> str:
    if exc.fp is None:
        return ""
    try:
        raw = exc.read()
    except OSError:
        return ""
    text = raw.decode("utf-8", errors="replace").strip()
    if len(text) > max_chars:
        return f"{text[:max_chars]}..."
    return text
