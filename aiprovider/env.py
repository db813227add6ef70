from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from .config import (
    BaseProvider,
    ClaudeProvider,
    ProviderOptions,
    SubscriptionProvider,
    requires_api_key,
)


class EnvKeys:
    """Env names derived from a provider record."""

    AUTH_TOKEN = "ANTHROPIC_AUTH_TOKEN"
    API_KEY = "ANTHROPIC_API_KEY"
    BASE_URL = "ANTHROPIC_BASE_URL"
    MODEL = "ANTHROPIC_MODEL"
    SMALL_MODEL = "ANTHROPIC_DEFAULT_HAIKU_MODEL"
    DISABLE_TELEMETRY = "DISABLE_TELEMETRY"
    DISABLE_BETAS = "CLAUDE_CODE_DISABLE_EXPERIMENTAL_BETAS"


# Shared by apply and discovery so both agree on what counts as derived
DERIVED_ENV_KEYS = frozenset({
    EnvKeys.AUTH_TOKEN,
    EnvKeys.API_KEY,
    EnvKeys.BASE_URL,
    EnvKeys.MODEL,
    EnvKeys.SMALL_MODEL,
    EnvKeys.DISABLE_TELEMETRY,
    EnvKeys.DISABLE_BETAS,
})

# Removed on every switch to a subscription provider
CREDENTIAL_ENV_KEYS = (EnvKeys.AUTH_TOKEN, EnvKeys.API_KEY, EnvKeys.BASE_URL)

ALWAYS_THINKING_FIELD = "alwaysThinkingEnabled"
DEFAULT_ENDPOINT = "https://api.anthropic.com"
DEFAULT_SUBSCRIPTION_TOOL = "claude-code"
FLAG_ON = "1"


class DiscoveredProvider(BaseModel):
    """Provider fields recovered from an existing settings object."""

    api_key: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    model: Optional[str] = None
    small_model: Optional[str] = None
    always_thinking: Optional[bool] = None
    disable_telemetry: bool = False
    disable_betas: bool = False
    custom_envs: Dict[str, str] = Field(default_factory=dict)

    def to_provider(self, name: str) -> BaseProvider:
        options = ProviderOptions(
            always_thinking=self.always_thinking,
            disable_telemetry=self.disable_telemetry or None,
            disable_betas=self.disable_betas or None,
        )
        common = {
            "name": name,
            "model": self.model,
            "small_model": self.small_model,
            "options": None if options.is_empty() else options,
            "custom_envs": dict(self.custom_envs),
        }
        if self.api_key:
            return ClaudeProvider(endpoint=self.endpoint, **common)
        return SubscriptionProvider(tool=DEFAULT_SUBSCRIPTION_TOOL, **common)


def get_env_section(settings: Dict[str, Any]) -> Dict[str, str]:
    env = settings.get("env")
    if not isinstance(env, dict):
        return {}
    return dict(env)


class EnvManager:
    """Moves a settings object's ``env`` section from one provider to another."""

    def clear_applied(self, env: Dict[str, str], previous_keys: List[str]) -> List[str]:
        """Remove every key the previous switch wrote; return those that were present."""
        cleared = []
        for key in previous_keys:
            if key in env:
                del env[key]
                cleared.append(key)
        return cleared

    def apply_provider(
        self,
        settings: Dict[str, Any],
        provider: BaseProvider,
        credential: Optional[str] = None,
        previous_keys: Optional[List[str]] = None,
    ) -> Tuple[List[str], List[str]]:
        """把provider的配置写入settings对象

        The previous provider's keys are removed before anything is written so
        that keys shared by both providers end up with the new values. Keys
        that no switch ever wrote stay as they are.

        返回：(写入的变量列表, 清除的变量列表)
        """
        env = get_env_section(settings)
        cleared = self.clear_applied(env, previous_keys or [])
        applied: List[str] = []

        def put(key: str, value: str):
            env[key] = value
            if key in applied:
                applied.remove(key)
            applied.append(key)

        if requires_api_key(provider):
            if credential:
                put(EnvKeys.AUTH_TOKEN, credential)
            put(EnvKeys.BASE_URL, provider.endpoint)
        else:
            for key in CREDENTIAL_ENV_KEYS:
                if env.pop(key, None) is not None and key not in cleared:
                    cleared.append(key)

        if provider.model:
            put(EnvKeys.MODEL, provider.model)
        if provider.small_model:
            put(EnvKeys.SMALL_MODEL, provider.small_model)

        options = provider.options or ProviderOptions()
        if options.disable_telemetry:
            put(EnvKeys.DISABLE_TELEMETRY, FLAG_ON)
        if options.disable_betas:
            put(EnvKeys.DISABLE_BETAS, FLAG_ON)
        if options.always_thinking is not None:
            settings[ALWAYS_THINKING_FIELD] = options.always_thinking

        for key, value in provider.custom_envs.items():
            put(key, value)

        settings["env"] = env
        return applied, cleared

    def discover_provider(self, settings: Dict[str, Any]) -> DiscoveredProvider:
        """Reverse-map a settings object onto provider fields."""
        env = get_env_section(settings)
        always_thinking = settings.get(ALWAYS_THINKING_FIELD)

        return DiscoveredProvider(
            api_key=env.get(EnvKeys.AUTH_TOKEN) or env.get(EnvKeys.API_KEY) or None,
            endpoint=env.get(EnvKeys.BASE_URL) or DEFAULT_ENDPOINT,
            model=env.get(EnvKeys.MODEL) or None,
            small_model=env.get(EnvKeys.SMALL_MODEL) or None,
            always_thinking=always_thinking if isinstance(always_thinking, bool) else None,
            disable_telemetry=env.get(EnvKeys.DISABLE_TELEMETRY) == FLAG_ON,
            disable_betas=env.get(EnvKeys.DISABLE_BETAS) == FLAG_ON,
            custom_envs={
                key: str(value) for key, value in env.items() if key not in DERIVED_ENV_KEYS
            },
        )
