from __future__ import annotations

import getpass
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

import keyring
from dotenv import set_key
from keyring.errors import KeyringError
from loguru import logger

from chatgpt_desk.app_config import RuntimeEnv

_KEY_NAMES = {
    "openai": ("OPENAI_API_KEY", "openai-api-key", "OpenAI"),
    "anthropic": ("ANTHROPIC_API_KEY", "anthropic-api-key", "Anthropic"),
}


class CredentialError(Exception):
    pass


@runtime_checkable
class CredentialProvider(Protocol):
    def get(self, service: str, key: str) -> str | None: ...
    def set(self, service: str, key: str, secret: str) -> bool: ...


class KeyringCredentialProvider:
    """Secrets kept in the OS key store."""

    def get(self, service: str, key: str) -> str | None:
        try:
            return keyring.get_password(service, key) or None
        except KeyringError as ex:
            logger.warning(f"Key store lookup failed for {service}/{key}: {ex}")
            return None

    def set(self, service: str, key: str, secret: str) -> bool:
        try:
            keyring.set_password(service, key, secret)
            return True
        except KeyringError as ex:
            logger.warning(f"Key store write failed for {service}/{key}: {ex}")
            return False


class DotenvCredentialProvider:
    """Secrets kept as environment variables, persisted to a .env file.

    The service name is ignored; ``key`` is used as the variable name.
    """

    def __init__(self, dotenv_path: str | Path = ".env"):
        self._dotenv_path = Path(dotenv_path)

    def get(self, service: str, key: str) -> str | None:
        return os.environ.get(key) or None

    def set(self, service: str, key: str, secret: str) -> bool:
        try:
            self._dotenv_path.touch(exist_ok=True)
            success, _, _ = set_key(str(self._dotenv_path), key, secret)
        except OSError as ex:
            logger.warning(f"Could not write {key} to {self._dotenv_path}: {ex}")
            return False
        if success:
            os.environ[key] = secret
        return bool(success)


def _prompt_hidden(label: str) -> str:
    return getpass.getpass(f"Please enter your {label} API key: ")


def resolve_api_key(
    provider_name: str,
    env: RuntimeEnv,
    credentials: CredentialProvider,
    service: str,
    *,
    prompt: Callable[[str], str] = _prompt_hidden,
) -> str:
    """Find the API key for a provider: environment, then the credential store, then ask once."""
    name = provider_name.strip().lower()
    if name not in _KEY_NAMES:
        raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'openai', 'anthropic'")
    env_var, store_key, label = _KEY_NAMES[name]

    from_env = env.openai_api_key if name == "openai" else env.anthropic_api_key
    if from_env:
        logger.debug(f"{label} API key taken from {env_var}")
        return from_env

    stored = credentials.get(service, store_key)
    if stored:
        logger.debug(f"{label} API key taken from credential store ({service}/{store_key})")
        return stored

    entered = prompt(label).strip()
    if not entered:
        raise CredentialError(f"No {label} API key provided")

    if credentials.set(service, store_key, entered):
        logger.info(f"{label} API key saved to credential store ({service}/{store_key})")
    else:
        logger.error(f"Failed to save {label} API key; it will be used for this session only")
    return entered
