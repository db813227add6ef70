import click
import logging
import sys
from typing import Optional

from . import __version__
from .config import PROVIDER_TYPES, ProviderOptions, build_provider, is_valid_provider_type, requires_api_key
from .env import DEFAULT_ENDPOINT, DEFAULT_SUBSCRIPTION_TOOL
from .provider import ProviderManager
from .shell_integration import ShellIntegration
from .utils import (
    hint_message,
    is_valid_provider_name,
    mask_api_key,
    parse_key_value_pairs,
    success_message,
)

DEFAULT_LITELLM_ENDPOINT = "http://localhost:4000/v1"


# Windows GBK终端兼容性：安全输出Unicode字符
def safe_echo(message, **kwargs):
    """在Windows GBK终端下安全输出Unicode字符"""
    try:
        click.echo(message, **kwargs)
    except UnicodeEncodeError:
        # 替换Unicode符号为ASCII
        safe_message = message.replace('✓', '[OK]').replace('→', '->')
        click.echo(safe_message, **kwargs)


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="ai-provider")
@click.option('--verbose', '-v', is_flag=True, help='输出调试日志')
def cli(verbose: bool):
    """ai-provider - 管理多个AI provider并切换Claude Code使用的配置

    核心命令:
      - add: 添加provider (API key保存在系统钥匙串)
      - switch: 切换active provider，改写 ~/.claude/settings.json
      - list/show/current: 查看provider
      - env: 管理provider的自定义环境变量
      - discover: 从现有的 ~/.claude/settings.json 导入provider
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@cli.command()
@click.argument('name', required=False)
@click.option('--type', 'provider_type', help='Provider类型: claude, litellm, subscription')
@click.option('--endpoint', help='API endpoint (claude/litellm)')
@click.option('--api-key', help='API key (claude/litellm)，保存到系统钥匙串')
@click.option('--tool', help='订阅使用的工具 (subscription)')
@click.option('--model', help='主模型')
@click.option('--small-model', help='小模型/haiku模型')
@click.option('--always-thinking/--no-always-thinking', default=None, help='写入 alwaysThinkingEnabled')
@click.option('--disable-telemetry', is_flag=True, help='设置 DISABLE_TELEMETRY=1')
@click.option('--disable-betas', is_flag=True, help='设置 CLAUDE_CODE_DISABLE_EXPERIMENTAL_BETAS=1')
@click.option('--env', 'env_pairs', multiple=True, help='自定义环境变量 KEY=VALUE (可重复)')
@click.option('--header', 'header_pairs', multiple=True, help='自定义请求头 NAME=VALUE (可重复)')
def add(name: Optional[str], provider_type: Optional[str], endpoint: Optional[str],
        api_key: Optional[str], tool: Optional[str], model: Optional[str],
        small_model: Optional[str], always_thinking: Optional[bool], disable_telemetry: bool,
        disable_betas: bool, env_pairs: tuple, header_pairs: tuple):
    """添加新的provider

    缺少的必填项会交互式询问。

    示例: ai-provider add work --type claude --endpoint https://api.anthropic.com --model claude-opus-4-6
    """
    try:
        if not name:
            name = click.prompt("Provider name")

        if not is_valid_provider_name(name):
            _fail("Invalid provider name. Use only letters, numbers, hyphens, and underscores.")

        if not provider_type:
            provider_type = click.prompt(
                "Provider type", type=click.Choice(PROVIDER_TYPES), default="claude"
            )

        if not is_valid_provider_type(provider_type):
            _fail(f"Invalid provider type: {provider_type}. Must be one of: {', '.join(PROVIDER_TYPES)}")

        custom_envs = parse_key_value_pairs(list(env_pairs))
        headers = parse_key_value_pairs(list(header_pairs))

        fields = {}
        if provider_type == "subscription":
            fields["tool"] = tool or click.prompt("Tool name", default=DEFAULT_SUBSCRIPTION_TOOL)
            api_key = None
        else:
            default_endpoint = DEFAULT_LITELLM_ENDPOINT if provider_type == "litellm" else DEFAULT_ENDPOINT
            fields["endpoint"] = endpoint or click.prompt("API endpoint", default=default_endpoint)
            if not api_key:
                api_key = click.prompt("API key", hide_input=True)

        options = ProviderOptions(
            always_thinking=always_thinking,
            disable_telemetry=disable_telemetry or None,
            disable_betas=disable_betas or None,
        )

        provider = build_provider(
            name,
            provider_type,
            model=model,
            small_model=small_model,
            options=None if options.is_empty() else options,
            headers=headers,
            custom_envs=custom_envs,
            **fields,
        )

        manager = ProviderManager()
        config = manager.add_provider(provider, api_key)

        safe_echo(success_message(f"Provider '{name}' added successfully"))
        if config.active_provider == name and len(config.providers) == 1:
            click.echo(f"  Set as active provider (first provider).")
            click.echo(hint_message(f"  Run 'ai-provider switch {name}' to apply it to {manager.claude_target.label}"))

    except ValueError as e:
        _fail(str(e))
    except click.Abort:
        raise
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('name')
def remove(name: str):
    """删除provider，并从系统钥匙串删除其API key"""
    try:
        manager = ProviderManager()
        removed, new_active = manager.remove_provider(name)

        safe_echo(success_message(f"Provider '{removed.name}' removed"))
        if new_active:
            click.echo(f"  Active provider: {new_active}")

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('name')
def switch(name: str):
    """切换active provider ('-' 切换回上一个provider)"""
    try:
        manager = ProviderManager()
        result = manager.switch_provider(name)

        safe_echo(success_message(f"Switched to provider '{result.provider.name}'"))
        for target in result.updated_targets:
            click.echo(hint_message(f"{target} updated"))

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('name', required=False)
@click.option('--reveal', is_flag=True, help='显示完整API key')
def show(name: Optional[str], reveal: bool):
    """显示provider详情 (默认当前active provider)"""
    try:
        manager = ProviderManager()
        provider, is_active, api_key = manager.show_provider(name)

        click.echo(f"\nProvider: {provider.name}{' (active)' if is_active else ''}\n")
        click.echo(f"  Type:    {provider.type}")

        if requires_api_key(provider):
            if api_key:
                click.echo(f"  API Key: {api_key if reveal else mask_api_key(api_key)}")
            else:
                click.echo("  API Key: not found in keychain")
            click.echo(f"  Endpoint: {provider.endpoint}")
        else:
            click.echo(f"  Tool:    {provider.tool}")

        if provider.model:
            click.echo(f"  Model:   {provider.model}")
        if provider.small_model:
            click.echo(f"  Small model: {provider.small_model}")

        options = provider.options
        if options and not options.is_empty():
            click.echo("  Options:")
            if options.always_thinking is not None:
                click.echo(f"    Always thinking: {str(options.always_thinking).lower()}")
            if options.disable_telemetry:
                click.echo("    Disable telemetry: true")
            if options.disable_betas:
                click.echo("    Disable betas: true")

        if provider.headers:
            click.echo("  Headers:")
            for key, value in provider.headers.items():
                click.echo(f"    {key}: {value}")

        if provider.custom_envs:
            click.echo("  Custom envs:")
            for key, value in provider.custom_envs.items():
                click.echo(f"    {key}={value}")

        click.echo()
        if not reveal and requires_api_key(provider):
            click.echo(hint_message("  Use --reveal to show the full API key"))

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--name', help='保存的provider名称')
@click.option('--yes', '-y', is_flag=True, help='不询问，直接导入')
def discover(name: Optional[str], yes: bool):
    """从现有的 ~/.claude/settings.json 导入provider并设为active"""
    try:
        manager = ProviderManager()
        found = manager.discover()

        click.echo(f"\nDiscovered settings from {manager.claude_target.label}:\n")
        click.echo(f"  API Key:  {mask_api_key(found.api_key) if found.api_key else 'none'}")
        click.echo(f"  Endpoint: {found.endpoint}")
        if found.model:
            click.echo(f"  Model:    {found.model}")
        if found.small_model:
            click.echo(f"  Small model: {found.small_model}")
        if found.always_thinking is not None:
            click.echo(f"  Always thinking: {str(found.always_thinking).lower()}")
        if found.disable_telemetry:
            click.echo("  Disable telemetry: true")
        if found.disable_betas:
            click.echo("  Disable betas: true")
        if found.custom_envs:
            click.echo("  Custom envs:")
            for key, value in found.custom_envs.items():
                click.echo(f"    {key}={value}")
        click.echo()

        if not name:
            name = click.prompt("Save as provider name", default="discovered")

        if not yes and not click.confirm(f"Import as provider '{name}' and set as active?", default=True):
            click.echo("Operation cancelled")
            return

        manager.import_discovered(name, found)
        safe_echo(success_message(f"Provider '{name}' imported and set as active"))

    except ValueError as e:
        _fail(str(e))
    except click.Abort:
        raise
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command(name="list")
@click.option('--names-only', is_flag=True, help='只输出provider名称 (用于shell补全)')
def list_cmd(names_only: bool):
    """列出所有provider"""
    try:
        manager = ProviderManager()
        config = manager.config_manager.load()

        if names_only:
            for provider in config.providers:
                click.echo(provider.name)
            return

        if not config.providers:
            click.echo("No providers found. Use 'ai-provider add' to create one.")
            return

        click.echo("Available providers:")
        for provider in config.providers:
            marker = "* " if provider.name == config.active_provider else "  "
            target = provider.tool if provider.type == "subscription" else provider.endpoint
            click.echo(f"{marker}{provider.name:<15} - {provider.type:<12} {target}")

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
def current():
    """显示当前active provider"""
    try:
        manager = ProviderManager()
        active = manager.get_active_provider()

        if not active:
            click.echo("No active provider. Use 'ai-provider switch <name>' to set one.")
            return

        provider, _ = active
        click.echo(f"Current provider: {provider.name} ({provider.type})")
        previous = manager.config_manager.load().previous_provider
        if previous:
            click.echo(hint_message(f"Previous provider: {previous} (ai-provider switch -)"))

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.group()
def env():
    """管理provider的自定义环境变量 (切换时最后写入，可覆盖派生变量)"""


@env.command(name="set")
@click.argument('name')
@click.argument('pairs', nargs=-1, required=True)
def env_set(name: str, pairs: tuple):
    """设置自定义环境变量: env set <provider> KEY=VALUE [KEY2=VALUE2 ...]"""
    try:
        manager = ProviderManager()
        envs = parse_key_value_pairs(list(pairs))
        manager.set_envs(name, envs)
        for key in envs:
            safe_echo(success_message(f"Set {key} on provider '{name}'"))

        if manager.config_manager.load().active_provider == name:
            click.echo(hint_message(f"Run 'ai-provider switch {name}' to apply the change"))

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@env.command(name="unset")
@click.argument('name')
@click.argument('key')
def env_unset(name: str, key: str):
    """删除自定义环境变量"""
    try:
        manager = ProviderManager()
        if not manager.unset_env(name, key):
            _fail(f"Environment variable '{key}' is not set on provider '{name}'")
        safe_echo(success_message(f"Removed {key} from provider '{name}'"))

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@env.command(name="list")
@click.argument('name')
def env_list(name: str):
    """列出provider的自定义环境变量"""
    try:
        manager = ProviderManager()
        custom_envs = manager.list_env(name)

        if not custom_envs:
            click.echo(f"No custom environment variables on provider '{name}'")
            return

        for key, value in custom_envs.items():
            click.echo(f"{key}={value}")

    except ValueError as e:
        _fail(str(e))
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('shell', required=False)
def completion(shell: Optional[str]):
    """输出shell补全脚本 (bash, zsh, fish)"""
    try:
        click.echo(ShellIntegration().get_completion_script(shell))
    except ValueError as e:
        _fail(str(e))


@cli.command()
def info():
    """显示配置文件路径信息"""
    try:
        manager = ProviderManager()

        click.echo("ai-provider configuration:")
        click.echo(f"  Config file: {manager.config_manager.config_path}")
        click.echo(f"  Keychain service: {manager.secret_store.service}")
        click.echo(f"  Claude settings: {manager.claude_target.path}")
        click.echo(f"    Exists: {'Yes' if manager.claude_target.exists() else 'No'}")
        click.echo(f"  VSCode settings: {manager.vscode_target.path or 'unsupported platform'}")
        click.echo(f"    Exists: {'Yes' if manager.vscode_target.exists() else 'No'}")

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


def main():
    """主入口点"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Fatal error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
