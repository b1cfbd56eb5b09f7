"""Thin model client that asks a chat backend for a file-action plan."""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from urllib import request
from urllib.error import HTTPError, URLError

from raze.agent.models import ProviderName

PLAN_SYSTEM_PROMPT_PARTS = [
    "You are raze, a developer assistant that edits files in the user's project.",
    (
        "Translate the user's request into file operations and respond with a single"
        " JSON object and nothing else."
    ),
    (
        'The JSON object has the shape {"actions": [...], "primaryFile": string or null}.'
        " Each action is one of:"
    ),
    '{"action": "write_file", "path": "./file", "content": "full new file content"}',
    (
        '{"action": "edit_file", "path": "./file", "find": "text or /regex/flags",'
        ' "replace": "replacement"}'
    ),
    '{"action": "read_file", "path": "./file"}',
    '{"action": "list_directory", "path": "./dir"}',
    "Paths are relative to the project root and should start with ./.",
    (
        "Prefer edit_file with a small, unique find string over rewriting whole files;"
        " use write_file to create new files."
    ),
    (
        "When the request concerns the look or content of a web page and no file is"
        " named, target ./index.html."
    ),
    "Set primaryFile to the file the user will most likely want to work on next.",
]

DEFAULT_OPENAI_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models"
SUPPORTED_PROVIDERS: set[ProviderName] = {"openai", "gemini"}
LOGGER = logging.getLogger(__name__)


class LLMRequestError(RuntimeError):
    """Raised when the model backend cannot produce response text."""


class LLMClient:
    """Small HTTP client for plan-oriented model calls."""

    def __init__(
        self,
        *,
        provider: ProviderName,
        model: str,
        api_key: str | None,
        api_url: str | None = None,
        system_prompt: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        if provider not in SUPPORTED_PROVIDERS:
            msg = f"Unsupported model provider: {provider}"
            raise ValueError(msg)
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.api_url = api_url or (
            DEFAULT_OPENAI_URL if provider == "openai" else DEFAULT_GEMINI_URL
        )
        self.system_prompt = system_prompt or " ".join(PLAN_SYSTEM_PROMPT_PARTS)
        self.timeout = timeout

    def complete(self, prompt: str, *, current_file: str | None = None) -> str:
        """Return the raw text the model produced for ``prompt``."""
        if not self.api_key:
            env_name = "OPENAI_API_KEY" if self.provider == "openai" else "GEMINI_API_KEY"
            raise LLMRequestError(f"No API key configured. Set {env_name} in the environment.")

        url, payload, headers = self._build_request(prompt, current_file=current_file)
        body = json.dumps(payload).encode("utf-8")

        LOGGER.debug(
            "llm_request_prepared",
            extra={
                "provider": self.provider,
                "model": self.model,
                "payload_bytes": len(body),
                "current_file": current_file,
            },
        )

        req = request.Request(url, data=body, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                raw_response = json.loads(resp.read().decode("utf-8"))
        except HTTPError as exc:
            body_excerpt = self._read_error_body_excerpt(exc)
            LOGGER.error(
                "llm_request_http_error",
                extra={
                    "provider": self.provider,
                    "model": self.model,
                    "http_status": exc.code,
                    "reason": exc.reason,
                    "response_excerpt": body_excerpt,
                },
            )
            details = f"Model request failed with HTTP {exc.code}: {exc.reason}"
            if body_excerpt:
                details = f"{details}. Response body: {body_excerpt}"
            raise LLMRequestError(details) from exc
        except URLError as exc:
            LOGGER.error(
                "llm_request_transport_error",
                extra={"provider": self.provider, "reason": str(exc.reason)},
            )
            raise LLMRequestError(f"Model request transport error: {exc.reason}") from exc
        except TimeoutError as exc:
            LOGGER.error(
                "llm_request_timeout",
                extra={"provider": self.provider, "timeout_seconds": self.timeout},
            )
            raise LLMRequestError(f"Model request timed out after {self.timeout:.1f}s") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.error("llm_response_parse_error", extra={"error": str(exc)})
            raise LLMRequestError(f"Model response parsing error: {exc}") from exc
        except (OSError, HTTPException) as exc:
            LOGGER.error(
                "llm_request_connection_error",
                extra={"provider": self.provider, "error": repr(exc)},
            )
            raise LLMRequestError(f"Model request connection error: {exc!r}") from exc

        text = self._extract_text(raw_response)
        if text is None:
            raise LLMRequestError("Model response contained no text")
        return text

    def _build_request(
        self, prompt: str, *, current_file: str | None
    ) -> tuple[str, dict[str, object], dict[str, str]]:
        user_message = self._build_user_message(prompt, current_file)
        headers = {"Content-Type": "application/json"}

        if self.provider == "openai":
            headers["Authorization"] = f"Bearer {self.api_key}"
            payload: dict[str, object] = {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": user_message},
                ],
            }
            return self.api_url, payload, headers

        headers["x-goog-api-key"] = str(self.api_key)
        payload = {
            "systemInstruction": {"parts": [{"text": self.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_message}]}],
        }
        url = f"{self.api_url.rstrip('/')}/{self.model}:generateContent"
        return url, payload, headers

    @staticmethod
    def _build_user_message(prompt: str, current_file: str | None) -> str:
        if not current_file:
            return prompt
        return f"Current file: {current_file}\n\nRequest:\n{prompt}"

    def _extract_text(self, payload: object) -> str | None:
        if not isinstance(payload, dict):
            return None
        if self.provider == "openai":
            choices = payload.get("choices")
            if not isinstance(choices, list) or not choices:
                return None
            first = choices[0]
            message = first.get("message") if isinstance(first, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            return content if isinstance(content, str) else None

        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return None
        first = candidates[0]
        content = first.get("content") if isinstance(first, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return None
        texts = [
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        return "".join(texts) if texts else None

    @staticmethod
    def _read_error_body_excerpt(exc: HTTPError, *, max_chars: int = 500) -> str | None:
        if exc.fp is None:
            return None
        try:
            raw = exc.read()
        except OSError:
            return None

        if not raw:
            return None

        excerpt = raw.decode("utf-8", errors="replace").replace("\n", " ").strip()
        if len(excerpt) > max_chars:
            return f"{excerpt[:max_chars]}..."
        return excerpt
