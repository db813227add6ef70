"""
ai-provider - AI provider切换工具

一个轻量级的命令行工具，用于管理多个AI provider配置，并在Claude Code的settings.json中切换active provider。
"""

__version__ = "1.0.0"
__author__ = "ai-provider Contributors"
__description__ = "Manage multiple AI providers (Claude API, LiteLLM, Claude.ai subscription) for Claude Code"

from .config import (
    ClaudeProvider,
    Config,
    ConfigManager,
    LiteLLMProvider,
    ProviderOptions,
    SubscriptionProvider,
    build_provider,
    requires_api_key,
)
from .env import EnvKeys, EnvManager
from .provider import ProviderManager, SwitchResult
from .secret_store import SecretStore
from .targets import ClaudeSettingsTarget, TargetResult, VSCodeSettingsTarget
from .utils import is_valid_provider_name, mask_api_key

__all__ = [
    "ClaudeProvider",
    "Config",
    "ConfigManager",
    "LiteLLMProvider",
    "ProviderOptions",
    "SubscriptionProvider",
    "build_provider",
    "requires_api_key",
    "EnvKeys",
    "EnvManager",
    "ProviderManager",
    "SwitchResult",
    "SecretStore",
    "ClaudeSettingsTarget",
    "TargetResult",
    "VSCodeSettingsTarget",
    "is_valid_provider_name",
    "mask_api_key",
]
