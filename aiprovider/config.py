import json
import logging
import os
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import (
    ConfigFileError,
    ProviderExistsError,
    ProviderNotFoundError,
    ProviderValidationError,
)
from .secret_store import SecretStore
from .utils import is_valid_provider_name, load_lenient_json, write_json_atomic

logger = logging.getLogger(__name__)

PROVIDER_TYPES = ("claude", "litellm", "subscription")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProviderOptions(_CamelModel):
    always_thinking: Optional[bool] = Field(default=None, alias="alwaysThinking")
    disable_telemetry: Optional[bool] = Field(default=None, alias="disableTelemetry")
    disable_betas: Optional[bool] = Field(default=None, alias="disableBetas")

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class BaseProvider(_CamelModel):
    name: str
    model: Optional[str] = None
    small_model: Optional[str] = Field(default=None, alias="smallModel")
    options: Optional[ProviderOptions] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    custom_envs: Dict[str, str] = Field(default_factory=dict, alias="customEnvs")


class ClaudeProvider(BaseProvider):
    type: Literal["claude"] = "claude"
    endpoint: str
    has_api_key: Literal[True] = Field(default=True, alias="hasApiKey")


class LiteLLMProvider(BaseProvider):
    type: Literal["litellm"] = "litellm"
    endpoint: str
    has_api_key: Literal[True] = Field(default=True, alias="hasApiKey")


class SubscriptionProvider(BaseProvider):
    type: Literal["subscription"] = "subscription"
    tool: str
    has_api_key: Literal[False] = Field(default=False, alias="hasApiKey")


Provider = Annotated[
    Union[ClaudeProvider, LiteLLMProvider, SubscriptionProvider],
    Field(discriminator="type"),
]


class Config(_CamelModel):
    providers: List[Provider] = Field(default_factory=list)
    active_provider: Optional[str] = Field(default=None, alias="activeProvider")
    previous_provider: Optional[str] = Field(default=None, alias="previousProvider")
    last_applied_env_keys: List[str] = Field(default_factory=list, alias="lastAppliedEnvKeys")

    @model_validator(mode="after")
    def check_unique_names(self) -> "Config":
        seen = set()
        for provider in self.providers:
            if provider.name in seen:
                raise ValueError(f"duplicate provider name '{provider.name}'")
            seen.add(provider.name)
        return self

    def find(self, name: str) -> Optional[BaseProvider]:
        for provider in self.providers:
            if provider.name == name:
                return provider
        return None


def requires_api_key(provider: BaseProvider) -> bool:
    return isinstance(provider, (ClaudeProvider, LiteLLMProvider))


def is_valid_provider_type(provider_type: str) -> bool:
    return provider_type in PROVIDER_TYPES


def build_provider(name: str, provider_type: str, **fields) -> BaseProvider:
    """Construct the record variant for ``provider_type`` from keyword fields.

    Fields left as ``None`` are dropped so the model defaults apply.
    """
    if not is_valid_provider_name(name):
        raise ProviderValidationError(
            f"Invalid provider name '{name}'. Use only letters, numbers, hyphens, and underscores."
        )
    if not is_valid_provider_type(provider_type):
        raise ProviderValidationError(
            f"Invalid provider type: {provider_type}. Must be one of: {', '.join(PROVIDER_TYPES)}"
        )

    model_cls = {
        "claude": ClaudeProvider,
        "litellm": LiteLLMProvider,
        "subscription": SubscriptionProvider,
    }[provider_type]

    data = {key: value for key, value in fields.items() if value is not None}
    try:
        return model_cls(name=name, **data)
    except PydanticValidationError as e:
        raise ProviderValidationError(f"Invalid {provider_type} provider '{name}': {e}") from e


class ConfigManager:
    def __init__(self, config_dir: Optional[Path] = None, secret_store: Optional[SecretStore] = None):
        self.config_dir = Path(config_dir) if config_dir else self._get_config_dir()
        self.config_path = self.config_dir / "config.json"
        self.secret_store = secret_store or SecretStore()

    def _get_config_dir(self) -> Path:
        override = os.environ.get("AI_PROVIDER_HOME")
        if override:
            return Path(override).expanduser()
        return Path.home() / ".ai-providers"

    def load(self) -> Config:
        if not self.config_path.exists():
            config = Config()
            self.save(config)
            return config

        try:
            data = load_lenient_json(self.config_path)
            return Config.model_validate(data or {})
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"Config file {self.config_path} is not valid JSON: {e}") from e
        except PydanticValidationError as e:
            raise ConfigFileError(f"Config file {self.config_path} has invalid content: {e}") from e

    def save(self, config: Config):
        data = config.model_dump(by_alias=True, exclude_none=True)
        write_json_atomic(self.config_path, data, mode=0o600)
        logger.debug("Saved %d provider(s) to %s", len(config.providers), self.config_path)

    def require_provider(self, config: Config, name: str) -> BaseProvider:
        provider = config.find(name)
        if provider is None:
            raise ProviderNotFoundError(name, self._similar_names(config, name))
        return provider

    def add_provider(self, provider: BaseProvider, api_key: Optional[str] = None) -> Config:
        if not is_valid_provider_name(provider.name):
            raise ProviderValidationError(
                f"Invalid provider name '{provider.name}'. Use only letters, numbers, hyphens, and underscores."
            )

        config = self.load()
        if config.find(provider.name) is not None:
            raise ProviderExistsError(provider.name)

        # The credential must be stored before the config references it
        if api_key and requires_api_key(provider):
            self.secret_store.set(provider.name, api_key)

        config.providers.append(provider)

        # The first provider becomes active; projection waits for an explicit switch
        if len(config.providers) == 1:
            config.active_provider = provider.name

        self.save(config)
        return config

    def remove_provider(self, name: str) -> BaseProvider:
        config = self.load()
        provider = self.require_provider(config, name)

        if requires_api_key(provider):
            self.secret_store.delete(name)

        config.providers = [p for p in config.providers if p.name != name]

        if config.active_provider == name:
            config.active_provider = config.providers[0].name if config.providers else None

        if config.previous_provider == name:
            config.previous_provider = None

        self.save(config)
        return provider

    def set_provider_env(self, name: str, key: str, value: str):
        config = self.load()
        provider = self.require_provider(config, name)
        provider.custom_envs[key] = value
        self.save(config)

    def update_provider_envs(self, name: str, envs: Dict[str, str]):
        """Merge several custom envs into one provider with a single save."""
        config = self.load()
        provider = self.require_provider(config, name)
        provider.custom_envs.update(envs)
        self.save(config)

    def delete_provider_env(self, name: str, key: str) -> bool:
        config = self.load()
        provider = self.require_provider(config, name)
        if key not in provider.custom_envs:
            return False
        del provider.custom_envs[key]
        self.save(config)
        return True

    def get_provider(self, name: str) -> Optional[BaseProvider]:
        return self.load().find(name)

    def list_providers(self) -> List[BaseProvider]:
        return list(self.load().providers)

    def provider_exists(self, name: str) -> bool:
        return self.get_provider(name) is not None

    def get_similar_provider_names(self, name: str) -> List[str]:
        return self._similar_names(self.load(), name)

    def _similar_names(self, config: Config, name: str) -> List[str]:
        similar = []

        name_lower = name.lower()
        for provider in config.providers:
            provider_lower = provider.name.lower()
            if (name_lower in provider_lower or
                provider_lower in name_lower or
                abs(len(name_lower) - len(provider_lower)) <= 2):
                similar.append(provider.name)

        return similar[:3]
