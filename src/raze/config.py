"""Environment-backed application configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from raze.companion.client import DEFAULT_PORT

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-1.5-flash-latest",
}


def _to_bool(value: str | None, default: bool = False) -> bool:
    """Convert common env var truthy/falsy values into booleans."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(slots=True)
class AppConfig:
    """Runtime settings loaded from environment variables and config files."""

    provider: str
    model: str
    openai_api_key: str | None
    gemini_api_key: str | None
    openai_api_url: str | None
    gemini_api_url: str | None
    port: int
    auto: bool
    dry_run: bool
    log_dir: str
    log_level: str
    system_prompt: str | None
    request_timeout: float

    @classmethod
    def from_env(cls) -> AppConfig:
        file_config = _load_preferred_file_config()
        openai_config = _section(file_config, "openai")
        gemini_config = _section(file_config, "gemini")
        model_config = _section(file_config, "models")

        provider = (
            os.getenv("RAZE_PROVIDER")
            or _to_optional_string(file_config.get("provider"))
            or "gemini"
        ).strip().lower()
        provider_model = _to_optional_string(model_config.get(provider))

        return cls(
            provider=provider,
            model=(
                os.getenv("RAZE_MODEL")
                or _to_optional_string(file_config.get("default_model"))
                or provider_model
                or DEFAULT_MODELS.get(provider, "")
            ),
            openai_api_key=(
                os.getenv("RAZE_OPENAI_API_KEY")
                or os.getenv("OPENAI_API_KEY")
                or _to_optional_string(openai_config.get("api_key"))
            ),
            gemini_api_key=(
                os.getenv("RAZE_GEMINI_API_KEY")
                or os.getenv("GEMINI_API_KEY")
                or _to_optional_string(gemini_config.get("api_key"))
            ),
            openai_api_url=(
                os.getenv("RAZE_OPENAI_API_URL")
                or _to_optional_string(openai_config.get("api_url"))
            ),
            gemini_api_url=(
                os.getenv("RAZE_GEMINI_API_URL")
                or _to_optional_string(gemini_config.get("api_url"))
            ),
            port=_to_positive_int(
                os.getenv("RAZE_PORT") or file_config.get("port"),
                default=DEFAULT_PORT,
            ),
            auto=_to_bool(
                os.getenv("RAZE_AUTO"),
                default=bool(file_config.get("auto", False)),
            ),
            dry_run=_to_bool(
                os.getenv("RAZE_DRY_RUN"),
                default=bool(file_config.get("dry_run", False)),
            ),
            log_dir=(
                os.getenv("RAZE_LOG_DIR")
                or _to_optional_string(file_config.get("log_dir"))
                or ".raze/logs"
            ),
            log_level=(
                os.getenv("RAZE_LOG_LEVEL")
                or _to_optional_string(file_config.get("log_level"))
                or "WARNING"
            ).upper(),
            system_prompt=(
                os.getenv("RAZE_SYSTEM_PROMPT")
                or _to_optional_string(file_config.get("system_prompt"))
            ),
            request_timeout=_to_positive_float(
                os.getenv("RAZE_REQUEST_TIMEOUT") or file_config.get("request_timeout"),
                default=60.0,
            ),
        )

    def api_key_for(self, provider: str) -> str | None:
        return self.openai_api_key if provider == "openai" else self.gemini_api_key

    def api_url_for(self, provider: str) -> str | None:
        return self.openai_api_url if provider == "openai" else self.gemini_api_url

    def default_model_for(self, provider: str) -> str:
        if provider == self.provider and self.model:
            return self.model
        return DEFAULT_MODELS.get(provider, self.model)


def _section(file_config: dict[str, object], key: str) -> dict[str, object]:
    value = file_config.get(key)
    return value if isinstance(value, dict) else {}


def _to_optional_string(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _load_file_config(path_value: str) -> dict[str, object]:
    path = Path(path_value)
    if not path.exists() or not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            parsed = json.load(fh)
    except (OSError, json.JSONDecodeError):
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {}


def _load_preferred_file_config() -> dict[str, object]:
    explicit_path = os.getenv("RAZE_CONFIG_FILE")
    if explicit_path:
        return _load_file_config(explicit_path)

    shared_config = _load_file_config("raze.config.json")
    local_override = _load_file_config("raze.config.local.json")
    return _merge_dicts(shared_config, local_override)


def _merge_dicts(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    merged: dict[str, object] = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_dicts(base_value, value)
        else:
            merged[key] = value
    return merged


def _to_positive_int(value: object, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _to_positive_float(value: object, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default
