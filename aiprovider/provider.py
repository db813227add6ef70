import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import BaseProvider, Config, ConfigManager, requires_api_key
from .env import DiscoveredProvider, EnvManager, get_env_section
from .errors import ProviderExistsError, ProviderValidationError, SettingsNotFoundError
from .secret_store import SecretStore
from .targets import ClaudeSettingsTarget, TargetResult, VSCodeSettingsTarget
from .utils import is_valid_provider_name, validate_environment_variable_name

logger = logging.getLogger(__name__)

PREVIOUS_PROVIDER_ALIAS = "-"


@dataclass
class SwitchResult:
    provider: BaseProvider
    previous_provider: Optional[str]
    applied_keys: List[str]
    cleared_keys: List[str]
    updated_targets: List[str]
    secondary_results: List[TargetResult] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [f"Could not update {r.target}: {r.error}" for r in self.secondary_results if r.error]


class ProviderManager:
    def __init__(
        self,
        config_dir: Optional[Path] = None,
        secret_store: Optional[SecretStore] = None,
        claude_target: Optional[ClaudeSettingsTarget] = None,
        vscode_target: Optional[VSCodeSettingsTarget] = None,
    ):
        self.secret_store = secret_store or SecretStore()
        self.config_manager = ConfigManager(config_dir, secret_store=self.secret_store)
        self.env_manager = EnvManager()
        self.claude_target = claude_target or ClaudeSettingsTarget()
        self.vscode_target = vscode_target or VSCodeSettingsTarget()

    def add_provider(self, provider: BaseProvider, api_key: Optional[str] = None) -> Config:
        if requires_api_key(provider) and not api_key:
            raise ProviderValidationError(f"Provider type '{provider.type}' requires an API key")
        for key in provider.custom_envs:
            if not validate_environment_variable_name(key):
                raise ProviderValidationError(f"Invalid environment variable name '{key}'")

        config = self.config_manager.add_provider(provider, api_key)
        logger.debug("Added %s provider %s", provider.type, provider.name)
        return config

    def remove_provider(self, name: str) -> Tuple[BaseProvider, Optional[str]]:
        """删除provider，返回 (被删除的provider, 新的active provider)"""
        removed = self.config_manager.remove_provider(name)
        return removed, self.config_manager.load().active_provider

    def resolve_name(self, name: str, config: Optional[Config] = None) -> str:
        if name != PREVIOUS_PROVIDER_ALIAS:
            return name
        config = config or self.config_manager.load()
        if not config.previous_provider:
            raise ProviderValidationError("No previous provider to switch back to")
        return config.previous_provider

    def switch_provider(self, name: str) -> SwitchResult:
        config = self.config_manager.load()
        name = self.resolve_name(name, config)
        provider = self.config_manager.require_provider(config, name)

        previous = config.active_provider
        config.previous_provider = previous
        config.active_provider = name

        credential = self.secret_store.get(name) if requires_api_key(provider) else None
        if requires_api_key(provider) and credential is None:
            logger.warning("No API key found in keychain for provider %s", name)

        settings = self.claude_target.load()
        applied, cleared = self.env_manager.apply_provider(
            settings,
            provider,
            credential=credential,
            previous_keys=config.last_applied_env_keys,
        )
        self.claude_target.save(settings)
        updated_targets = [self.claude_target.label]

        secondary = self.vscode_target.project(get_env_section(settings), provider.model)
        if secondary.updated:
            updated_targets.append(secondary.target)
        elif secondary.error:
            logger.warning("Could not update %s: %s", secondary.target, secondary.error)

        config.last_applied_env_keys = applied
        self.config_manager.save(config)

        logger.debug("Switched %s -> %s, applied %s", previous, name, applied)
        return SwitchResult(
            provider=provider,
            previous_provider=previous,
            applied_keys=applied,
            cleared_keys=cleared,
            updated_targets=updated_targets,
            secondary_results=[secondary] if secondary.error else [],
        )

    def get_active_provider(self) -> Optional[Tuple[BaseProvider, Optional[str]]]:
        config = self.config_manager.load()
        if not config.active_provider:
            return None

        provider = config.find(config.active_provider)
        if provider is None:
            return None

        api_key = self.secret_store.get(provider.name) if requires_api_key(provider) else None
        return provider, api_key

    def show_provider(self, name: Optional[str] = None) -> Tuple[BaseProvider, bool, Optional[str]]:
        """返回 (provider, 是否active, api key)"""
        config = self.config_manager.load()
        provider_name = name or config.active_provider
        if not provider_name:
            raise ProviderValidationError(
                "No active provider. Specify a provider name or switch to one first."
            )

        provider = self.config_manager.require_provider(config, provider_name)
        api_key = self.secret_store.get(provider.name) if requires_api_key(provider) else None
        return provider, provider.name == config.active_provider, api_key

    def set_env(self, name: str, key: str, value: str):
        self.set_envs(name, {key: value})

    def set_envs(self, name: str, envs: Dict[str, str]):
        """All keys are validated before anything is saved."""
        for key in envs:
            if not validate_environment_variable_name(key):
                raise ProviderValidationError(f"Invalid environment variable name '{key}'")
        self.config_manager.update_provider_envs(name, envs)

    def unset_env(self, name: str, key: str) -> bool:
        return self.config_manager.delete_provider_env(name, key)

    def list_env(self, name: str) -> dict:
        config = self.config_manager.load()
        return dict(self.config_manager.require_provider(config, name).custom_envs)

    def discover(self) -> DiscoveredProvider:
        if not self.claude_target.exists():
            raise SettingsNotFoundError(f"{self.claude_target.path} not found")
        return self.env_manager.discover_provider(self.claude_target.load())

    def import_discovered(self, name: str, discovered: Optional[DiscoveredProvider] = None) -> SwitchResult:
        """Save discovered settings as a provider and make it active."""
        if not is_valid_provider_name(name):
            raise ProviderValidationError(
                f"Invalid provider name '{name}'. Use only letters, numbers, hyphens, and underscores."
            )
        if self.config_manager.provider_exists(name):
            raise ProviderExistsError(name)

        discovered = discovered or self.discover()
        provider = discovered.to_provider(name)
        self.config_manager.add_provider(provider, discovered.api_key)
        return self.switch_provider(name)
