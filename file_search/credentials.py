"""
Credential providers for authenticating remote store calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from django.conf import settings


class CredentialProvider(ABC):
    """Supplies the API credential used by a backend."""

    @abstractmethod
    def get_credential(self) -> str | None:
        """Return the credential, or None when none is configured."""
        pass

    def has_credential(self) -> bool:
        return bool(self.get_credential())


class SettingsCredentialProvider(CredentialProvider):
    """Reads the credential from a Django setting (``GEMINI_API_KEY`` by default)."""

    def __init__(self, setting_name: str = "GEMINI_API_KEY"):
        self.setting_name = setting_name

    def get_credential(self) -> str | None:
        return getattr(settings, self.setting_name, None) or None


class StaticCredentialProvider(CredentialProvider):
    """Fixed credential, mainly for scripts and tests."""

    def __init__(self, credential: str | None):
        self._credential = credential

    def get_credential(self) -> str | None:
        return self._credential or None
