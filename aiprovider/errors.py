"""Error types raised by the provider store, secret store and settings targets."""

from typing import List, Optional


class ProviderError(ValueError):
    """Base class for every handled ai-provider failure."""


class ProviderExistsError(ProviderError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Provider '{name}' already exists")


class ProviderNotFoundError(ProviderError):
    def __init__(self, name: str, similar: Optional[List[str]] = None):
        self.name = name
        self.similar = similar or []
        message = f"Provider '{name}' not found"
        if self.similar:
            message += f". Did you mean: {', '.join(self.similar)}?"
        super().__init__(message)


class ProviderValidationError(ProviderError):
    """Invalid provider name, provider type or env entry."""


class ConfigFileError(ProviderError):
    """The config file exists but cannot be parsed."""


class SettingsNotFoundError(ProviderError):
    """A settings file that must exist is missing."""


class SecretStoreError(ProviderError):
    """The OS secret store refused a read, write or delete."""


class TargetWriteError(ProviderError):
    """A settings target could not be read or written."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Could not update {target}: {reason}")
