"""Credential lookup collaborators."""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, List, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

WELL_KNOWN_ENV_NAMES: Dict[str, List[str]] = {
    "openai": ["OPENAI_API_KEY"],
    "anthropic": ["ANTHROPIC_API_KEY"],
    "resend": ["RESEND_API_KEY"],
    "sendgrid": ["SENDGRID_API_KEY"],
    "mailgun": ["MAILGUN_API_KEY"],
}

_VALIDATORS: Dict[str, Callable[[str], bool]] = {
    "openai": lambda key: key.startswith("sk-") and len(key) > 20,
    "anthropic": lambda key: key.startswith("sk-ant-") and len(key) > 20,
    "sendgrid": lambda key: key.startswith("SG.") and len(key) > 60,
    "resend": lambda key: key.startswith("re_") and len(key) > 30,
    "mailgun": lambda key: key.startswith("key-") and len(key) > 30,
    "mailchimp": lambda key: "-" in key and len(key) > 30,
}


class CredentialStore(Protocol):
    """Anything able to resolve a secret for a named service."""

    def get_credential(self, service: str) -> Optional[str]:
        """Return the secret for ``service`` or ``None``."""


def validate_key(service: str, api_key: str) -> bool:
    """Check ``api_key`` against the known format for ``service``.

    Services without a known format are accepted.
    """
    validator = _VALIDATORS.get(service.lower())
    if validator is None:
        logger.debug(f"No key format known for service {service}")
        return True
    return validator(api_key)


class EnvCredentialStore:
    """Resolve credentials from environment variables.

    ``AGENTFLOW_<SERVICE>_API_KEY`` wins over the provider's conventional
    variable name (``OPENAI_API_KEY`` and friends).
    """

    def __init__(self, env: Mapping[str, str] | None = None, prefix: str = "AGENTFLOW_") -> None:
        self._env = env
        self._prefix = prefix

    def _environ(self) -> Mapping[str, str]:
        return self._env if self._env is not None else os.environ

    def get_credential(self, service: str) -> Optional[str]:
        env = self._environ()
        service_key = service.upper().replace("-", "_")
        names = [f"{self._prefix}{service_key}_API_KEY"]
        names.extend(WELL_KNOWN_ENV_NAMES.get(service.lower(), []))
        for name in names:
            value = env.get(name)
            if value and value.strip():
                return value.strip()
        return None


class InMemoryCredentialStore:
    """Session-only credential store, handy for tests and embedding."""

    def __init__(self, keys: Mapping[str, str] | None = None) -> None:
        self._keys: Dict[str, str] = {}
        for service, key in (keys or {}).items():
            self.store_key(service, key)

    def store_key(self, service: str, api_key: str) -> None:
        if not api_key or not api_key.strip():
            raise ValueError(f"API key for {service} cannot be empty")
        if not validate_key(service, api_key):
            logger.warning(f"API key for {service} does not match the expected format")
        self._keys[service.lower()] = api_key.strip()

    def remove_key(self, service: str) -> None:
        self._keys.pop(service.lower(), None)

    def has_key(self, service: str) -> bool:
        return self.get_credential(service) is not None

    def list_services(self) -> List[str]:
        return sorted(self._keys)

    def get_credential(self, service: str) -> Optional[str]:
        return self._keys.get(service.lower())


class ChainedCredentialStore:
    """Try several stores in order and return the first hit."""

    def __init__(self, *stores: CredentialStore) -> None:
        self._stores = stores

    def get_credential(self, service: str) -> Optional[str]:
        for store in self._stores:
            value = store.get_credential(service)
            if value:
                return value
        return None
