"""Runtime settings: defaults, then optional YAML file, then environment."""
from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from poet_proxy.common.errors import ConfigurationError

TEXT_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.5-flash-preview-09-2025:generateContent"
)
IMAGE_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.5-flash-image-preview:generateContent"
)
MAX_RETRIES = 3
MIN_API_KEY_LENGTH = 10

DEFAULT_CONFIG_PATH = "configs/proxy.yaml"

# env var -> settings field
_ENV_FIELDS: dict[str, str] = {
    "GEMINI_API_KEY": "api_key",
    "GEMINI_TEXT_API_URL": "text_api_url",
    "GEMINI_IMAGE_API_URL": "image_api_url",
    "MAX_RETRIES": "max_retries",
    "BACKOFF_BASE_S": "backoff_base_s",
    "HTTP_TIMEOUT_S": "timeout_s",
    "CORS_ALLOW_ORIGIN": "cors_allow_origin",
    "TEXT_SYSTEM_PROMPT_PATH": "text_system_prompt_path",
    "IMAGE_SYSTEM_PROMPT_PATH": "image_system_prompt_path",
    "LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class ProxySettings:
    api_key: str = ""
    text_api_url: str = TEXT_API_URL
    image_api_url: str = IMAGE_API_URL
    max_retries: int = MAX_RETRIES
    backoff_base_s: float = 1.0
    timeout_s: float = 120.0
    cors_allow_origin: str = "*"
    text_system_prompt_path: str | None = "configs/text_system_prompt.txt"
    image_system_prompt_path: str | None = "configs/image_system_prompt.txt"
    log_level: str = "INFO"

    def require_api_key(self) -> str:
        """Return the credential or raise if it is absent or implausibly short."""
        if not self.api_key or len(self.api_key) < MIN_API_KEY_LENGTH:
            raise ConfigurationError("Configuration Error: API Key not found or too short.")
        return self.api_key

    @property
    def text_model(self) -> str:
        return _model_name(self.text_api_url)

    @property
    def image_model(self) -> str:
        return _model_name(self.image_api_url)


def _model_name(url: str) -> str:
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    return tail.split(":", 1)[0]


# Fields that may legitimately be unset (null in YAML).
_OPTIONAL_FIELDS = {"text_system_prompt_path", "image_system_prompt_path"}


def _number(name: str, raw: Any, kind: type) -> Any:
    try:
        return kind(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _coerce(name: str, raw: Any) -> Any:
    if raw is None:
        if name in _OPTIONAL_FIELDS:
            return None
        raise ConfigurationError(f"{name} must not be null")
    if name == "max_retries":
        value = _number(name, raw, int)
        if value < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {value}")
        return value
    if name in ("backoff_base_s", "timeout_s"):
        value = _number(name, raw, float)
        if value < 0:
            raise ConfigurationError(f"{name} must be >= 0, got {value}")
        return value
    return str(raw)


def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: str | None = None, env: dict[str, str] | None = None) -> ProxySettings:
    """
    Build settings from defaults, an optional YAML file and the environment.

    Args:
        path: YAML config path; defaults to ``$POET_PROXY_CONFIG`` or
            ``configs/proxy.yaml``. A missing file is not an error.
        env: Environment mapping (``os.environ`` when omitted).
    """
    env = os.environ if env is None else env
    path = path or env.get("POET_PROXY_CONFIG", DEFAULT_CONFIG_PATH)
    known = {f.name for f in fields(ProxySettings)}

    overrides: dict[str, Any] = {}
    if Path(path).is_file():
        cfg = load_cfg(path)
        if not isinstance(cfg, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        unknown = set(cfg) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings in {path}: {sorted(unknown)}")
        overrides.update({k: _coerce(k, v) for k, v in cfg.items()})

    for var, name in _ENV_FIELDS.items():
        if var in env:
            overrides[name] = _coerce(name, env[var])

    return replace(ProxySettings(), **overrides)
