"""Credential resolution and the authorization gate for paid models."""

from __future__ import annotations

import asyncio
import getpass
import logging
import os
from typing import Callable, Protocol

from .errors import AuthorizationUnavailable
from .models.registry import ModelRegistry

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


class CredentialHost(Protocol):
    async def has_selected_api_key(self) -> bool:
        ...

    async def open_select_key(self) -> None:
        ...


def resolve_api_key() -> str:
    """Read the ambient credential at call time. Empty when none is configured."""
    for name in API_KEY_ENV_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    logger.error("No API key configured; set %s.", " or ".join(API_KEY_ENV_VARS))
    return ""


class PromptCredentialHost:
    """Terminal stand-in for an interactive key picker."""

    def __init__(
        self,
        env_var: str = API_KEY_ENV_VARS[0],
        prompt: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self.env_var = env_var
        self._prompt = prompt

    async def has_selected_api_key(self) -> bool:
        return any((os.getenv(name) or "").strip() for name in API_KEY_ENV_VARS)

    async def open_select_key(self) -> None:
        value = (await asyncio.to_thread(self._prompt, "Paste an API key with billing enabled: ")).strip()
        if value:
            os.environ[self.env_var] = value


class AuthorizationGate:
    def __init__(self, host: CredentialHost | None, registry: ModelRegistry | None = None) -> None:
        self.host = host
        self.registry = registry or ModelRegistry()

    async def ensure_authorized(self, model: str) -> None:
        if not self.registry.requires_paid_key(model):
            return
        try:
            host = self._require_host()
            if await host.has_selected_api_key():
                return
            await host.open_select_key()
            # The selection flow is assumed to succeed; the next upstream call reports otherwise.
            logger.info("Key selection completed for %s; proceeding.", model)
        except AuthorizationUnavailable as exc:
            logger.warning("%s Skipping key selection for %s.", exc, model)
        except Exception as exc:
            logger.warning("Key selection unavailable for %s, continuing with ambient key: %s", model, exc)

    async def reauthorize(self) -> None:
        try:
            await self._require_host().open_select_key()
        except AuthorizationUnavailable as exc:
            logger.warning("%s Skipping key re-selection.", exc)
        except Exception as exc:
            logger.warning("Key re-selection failed: %s", exc)

    def _require_host(self) -> CredentialHost:
        if self.host is None:
            raise AuthorizationUnavailable("No credential host configured.")
        return self.host
