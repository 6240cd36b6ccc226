"""Configuration helpers for the MorphyFace project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_MODEL_ID = "gemini-2.5-flash-image"
DEFAULT_PROMPT = "Turn this face into a futuristic cyborg with neon accents"
DEFAULT_HISTORY_LIMIT = 10


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    gemini_api_key: str = ""
    model_id: str = DEFAULT_MODEL_ID
    default_prompt: str = DEFAULT_PROMPT
    history_limit: int = DEFAULT_HISTORY_LIMIT
    log_dir: Path = Path("logs")
    server_name: Optional[str] = None
    server_port: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _read_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    # An absent key is passed through as "" and rejected by the provider.
    api_key = (
        os.getenv("GEMINI_API_KEY")
        or os.getenv("API_KEY")
        or os.getenv("GOOGLE_API_KEY")
        or ""
    )

    history_limit = _read_int("MORPH_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)
    if history_limit is None or history_limit < 1:
        history_limit = DEFAULT_HISTORY_LIMIT

    metadata: dict[str, Any] = {}
    if config_path:
        metadata["env_file"] = str(env_path)

    return AppConfig(
        gemini_api_key=api_key,
        model_id=os.getenv("MORPH_MODEL_ID") or DEFAULT_MODEL_ID,
        default_prompt=os.getenv("MORPH_DEFAULT_PROMPT") or DEFAULT_PROMPT,
        history_limit=history_limit,
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
        server_name=os.getenv("GRADIO_SERVER_NAME") or None,
        server_port=_read_int("GRADIO_SERVER_PORT", None),
        metadata=metadata,
    )
