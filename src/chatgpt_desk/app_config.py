from __future__ import annotations

import json
import os
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

APP_DIR_NAME = "chatgpt-desk"
MESSAGE_DB_NAME = "chat_history.db"
IMAGE_CACHE_NAME = "temp.png"

DEFAULT_MODELS = ["gpt-4", "gpt-3.5-turbo"]
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0


@dataclass
class RuntimeEnv:
    openai_api_key: str | None
    anthropic_api_key: str | None


@dataclass
class AppConfig:
    provider_name: str = "openai"
    model: str = "gpt-4"
    models: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    temperature: float = 0.7
    max_tokens: int = 4096
    image_model: str = "dall-e-3"
    image_size: str = "1024x1024"
    data_directory: str | None = None
    request_timeout_seconds: float = 600.0
    max_request_attempts: int = 1
    credential_store: str = "keyring"
    keyring_service: str = APP_DIR_NAME
    log_level: str = "INFO"
    log_consumers: list | None = None

    @property
    def data_dir(self) -> Path:
        path = Path(self.data_directory) if self.data_directory else default_data_dir()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def message_db_path(self) -> Path:
        return self.data_dir / MESSAGE_DB_NAME

    @property
    def image_cache_path(self) -> Path:
        return self.data_dir / IMAGE_CACHE_NAME


def default_data_dir() -> Path:
    """Per-user configuration directory for the app, or the temp dir as a last resort."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
    elif sys.platform == "darwin":
        home = os.environ.get("HOME")
        base = str(Path(home) / "Library" / "Application Support") if home else None
    else:
        base = os.environ.get("XDG_CONFIG_HOME")
        if not base:
            home = os.environ.get("HOME")
            base = str(Path(home) / ".config") if home else None

    if not base:
        return Path(tempfile.gettempdir()) / APP_DIR_NAME
    return Path(base) / APP_DIR_NAME


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def clamp_temperature(value: float) -> float:
    return min(MAX_TEMPERATURE, max(MIN_TEMPERATURE, value))


def parse_app_config(config: dict) -> AppConfig:
    model = str(config.get("Model", "gpt-4")).strip()
    models = [str(m).strip() for m in config.get("Models", DEFAULT_MODELS) if str(m).strip()]
    if model not in models:
        models.insert(0, model)

    return AppConfig(
        provider_name=str(config.get("Provider", "openai")).strip().lower(),
        model=model,
        models=models,
        temperature=clamp_temperature(float(config.get("Temperature", 0.7))),
        max_tokens=int(config.get("MaxTokens", 4096)),
        image_model=str(config.get("ImageModel", "dall-e-3")),
        image_size=str(config.get("ImageSize", "1024x1024")),
        data_directory=str(config.get("DataDirectory", "")).strip() or None,
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 600)),
        max_request_attempts=max(1, int(config.get("MaxRequestAttempts", 1))),
        credential_store=str(config.get("CredentialStore", "keyring")).strip().lower(),
        keyring_service=str(config.get("KeyringService", APP_DIR_NAME)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    return RuntimeEnv(
        openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY") or None,
    )
