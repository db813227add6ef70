"""End-to-end tests for ProviderManager switching against real settings files."""

import json
import logging

import pytest
from keyring.errors import KeyringLocked

from aiprovider.config import ClaudeProvider, ProviderOptions, SubscriptionProvider
from aiprovider.errors import (
    ProviderExistsError,
    ProviderNotFoundError,
    ProviderValidationError,
    SecretStoreError,
    SettingsNotFoundError,
)
from aiprovider.provider import ProviderManager
from aiprovider.targets import VSCodeSettingsTarget


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


@pytest.fixture()
def manager(temp_config_dir):
    return ProviderManager()


@pytest.fixture()
def vscode_settings_path(temp_config_dir, tmp_path):
    path = tmp_path / "vscode" / "settings.json"
    _write(path, {"editor.fontSize": 14})
    return path


def test_work_then_personal_scenario(manager, claude_settings_path, read_json):
    manager.add_provider(ClaudeProvider(name="work", endpoint="https://api.anthropic.com"), "sk-abc123")

    result = manager.switch_provider("work")
    env = read_json(claude_settings_path)["env"]
    assert env["ANTHROPIC_AUTH_TOKEN"] == "sk-abc123"
    assert env["ANTHROPIC_BASE_URL"] == "https://api.anthropic.com"
    assert result.updated_targets == ["~/.claude/settings.json"]

    manager.add_provider(SubscriptionProvider(name="personal", tool="claude-code"))
    manager.switch_provider("personal")

    env = read_json(claude_settings_path)["env"]
    assert "ANTHROPIC_AUTH_TOKEN" not in env
    assert "ANTHROPIC_BASE_URL" not in env


def test_subscription_clears_keys_not_in_applied_list(manager, claude_settings_path, read_json):
    _write(claude_settings_path, {"env": {
        "ANTHROPIC_AUTH_TOKEN": "sk-hand-written",
        "ANTHROPIC_BASE_URL": "https://hand-written",
    }})
    manager.add_provider(SubscriptionProvider(name="personal", tool="claude-code"))

    manager.switch_provider("personal")

    assert read_json(claude_settings_path)["env"] == {}


def test_switch_updates_pointers_and_applied_keys(manager):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a", model="m"), "sk-a")
    manager.add_provider(SubscriptionProvider(name="b", tool="claude-code"))

    manager.switch_provider("a")
    manager.switch_provider("b")

    config = manager.config_manager.load()
    assert config.active_provider == "b"
    assert config.previous_provider == "a"
    assert config.last_applied_env_keys == []

    manager.switch_provider("a")
    config = manager.config_manager.load()
    assert config.last_applied_env_keys == ["ANTHROPIC_AUTH_TOKEN", "ANTHROPIC_BASE_URL", "ANTHROPIC_MODEL"]


def test_switch_dash_goes_to_previous_provider(manager):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")
    manager.add_provider(ClaudeProvider(name="b", endpoint="https://b"), "sk-b")
    manager.switch_provider("a")
    manager.switch_provider("b")

    result = manager.switch_provider("-")

    assert result.provider.name == "a"
    assert result.previous_provider == "b"
    assert manager.config_manager.load().previous_provider == "b"


def test_switch_dash_without_previous(manager):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")
    with pytest.raises(ProviderValidationError):
        manager.switch_provider("-")


def test_switch_unknown_provider_leaves_state(manager, claude_settings_path):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")

    with pytest.raises(ProviderNotFoundError):
        manager.switch_provider("nope")

    assert not claude_settings_path.exists()
    assert manager.config_manager.load().previous_provider is None


def test_switch_preserves_unrelated_settings(manager, claude_settings_path, read_json):
    _write(claude_settings_path, {
        "model": "sonnet",
        "permissions": {"allow": ["Read"]},
        "env": {"MY_KEY": "mine"},
    })
    manager.add_provider(
        ClaudeProvider(name="a", endpoint="https://a", options=ProviderOptions(always_thinking=True)),
        "sk-a",
    )

    manager.switch_provider("a")
    settings = read_json(claude_settings_path)

    assert settings["model"] == "sonnet"
    assert settings["permissions"] == {"allow": ["Read"]}
    assert settings["env"]["MY_KEY"] == "mine"
    assert settings["alwaysThinkingEnabled"] is True


def test_switch_reads_settings_with_trailing_commas(manager, claude_settings_path, read_json):
    claude_settings_path.parent.mkdir(parents=True, exist_ok=True)
    claude_settings_path.write_text('{\n  "env": {\n    "KEEP": "1",\n  },\n}\n', encoding="utf-8")
    manager.add_provider(SubscriptionProvider(name="s", tool="claude-code", model="opus"))

    manager.switch_provider("s")

    assert read_json(claude_settings_path)["env"] == {"KEEP": "1", "ANTHROPIC_MODEL": "opus"}


def test_switch_keeps_commas_inside_user_strings(manager, claude_settings_path, read_json):
    claude_settings_path.parent.mkdir(parents=True, exist_ok=True)
    claude_settings_path.write_text(
        '{"statusLine": {"command": "printf \'%s,]\' x",}, "env": {"NOTE": "a,}",},}',
        encoding="utf-8",
    )
    manager.add_provider(SubscriptionProvider(name="s", tool="claude-code"))

    manager.switch_provider("s")
    settings = read_json(claude_settings_path)

    assert settings["statusLine"] == {"command": "printf '%s,]' x"}
    assert settings["env"] == {"NOTE": "a,}"}


def test_add_rejects_name_with_trailing_newline(manager):
    with pytest.raises(ProviderValidationError):
        manager.add_provider(SubscriptionProvider(name="work\n", tool="claude-code"))

    assert manager.config_manager.list_providers() == []


def test_custom_env_wins_after_switch(manager, claude_settings_path, read_json):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")
    manager.set_env("a", "ANTHROPIC_BASE_URL", "https://override")

    manager.switch_provider("a")

    assert read_json(claude_settings_path)["env"]["ANTHROPIC_BASE_URL"] == "https://override"


def test_missing_credential_is_logged(manager, memory_keyring, claude_settings_path, read_json, caplog):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")
    memory_keyring.passwords.clear()

    with caplog.at_level(logging.WARNING, logger="aiprovider"):
        manager.switch_provider("a")

    assert "No API key found" in caplog.text
    assert read_json(claude_settings_path)["env"] == {"ANTHROPIC_BASE_URL": "https://a"}


def test_secret_store_failure_aborts_switch(manager, memory_keyring, claude_settings_path, monkeypatch):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")

    def locked(service, username):
        raise KeyringLocked("keychain is locked")

    monkeypatch.setattr(memory_keyring, "get_password", locked)

    with pytest.raises(SecretStoreError):
        manager.switch_provider("a")

    assert not claude_settings_path.exists()
    assert manager.config_manager.load().last_applied_env_keys == []


def test_vscode_target_receives_sorted_env(temp_config_dir, vscode_settings_path, read_json):
    manager = ProviderManager(vscode_target=VSCodeSettingsTarget(vscode_settings_path))
    manager.add_provider(
        ClaudeProvider(name="a", endpoint="https://a", model="opus", custom_envs={"AAA": "first"}),
        "sk-a",
    )

    result = manager.switch_provider("a")
    settings = read_json(vscode_settings_path)

    assert result.updated_targets == ["~/.claude/settings.json", "VSCode settings.json"]
    assert settings["editor.fontSize"] == 14
    assert settings["claudeCode.selectedModel"] == "opus"
    assert settings["claudeCode.environmentVariables"] == [
        {"name": "AAA", "value": "first"},
        {"name": "ANTHROPIC_AUTH_TOKEN", "value": "sk-a"},
        {"name": "ANTHROPIC_BASE_URL", "value": "https://a"},
        {"name": "ANTHROPIC_MODEL", "value": "opus"},
    ]


def test_vscode_failure_does_not_abort_switch(temp_config_dir, tmp_path, claude_settings_path, read_json, caplog):
    broken = tmp_path / "vscode" / "settings.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("{ this is not json", encoding="utf-8")

    manager = ProviderManager(vscode_target=VSCodeSettingsTarget(broken))
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")

    with caplog.at_level(logging.WARNING, logger="aiprovider"):
        result = manager.switch_provider("a")

    assert result.updated_targets == ["~/.claude/settings.json"]
    assert len(result.warnings) == 1
    assert "Could not update VSCode settings.json" in caplog.text
    assert read_json(claude_settings_path)["env"]["ANTHROPIC_AUTH_TOKEN"] == "sk-a"
    assert manager.config_manager.load().active_provider == "a"
    assert broken.read_text(encoding="utf-8") == "{ this is not json"


def test_vscode_skipped_when_absent(temp_config_dir, tmp_path):
    manager = ProviderManager(vscode_target=VSCodeSettingsTarget(tmp_path / "missing" / "settings.json"))
    manager.add_provider(SubscriptionProvider(name="s", tool="claude-code"))

    result = manager.switch_provider("s")

    assert result.updated_targets == ["~/.claude/settings.json"]
    assert result.warnings == []
    assert not (tmp_path / "missing").exists()


def test_remove_active_then_show_fails(manager, memory_keyring):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")
    manager.switch_provider("a")

    removed, new_active = manager.remove_provider("a")

    assert removed.name == "a"
    assert new_active is None
    assert memory_keyring.passwords == {}
    with pytest.raises(ProviderNotFoundError):
        manager.show_provider("a")


def test_show_defaults_to_active(manager):
    manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"), "sk-a")

    provider, is_active, api_key = manager.show_provider()

    assert provider.name == "a"
    assert is_active is True
    assert api_key == "sk-a"


def test_show_without_active_provider(manager):
    with pytest.raises(ProviderValidationError):
        manager.show_provider()


def test_add_credential_bearing_provider_requires_key(manager):
    with pytest.raises(ProviderValidationError):
        manager.add_provider(ClaudeProvider(name="a", endpoint="https://a"))


def test_discover_requires_settings_file(manager):
    with pytest.raises(SettingsNotFoundError):
        manager.discover()


def test_import_discovered_adds_and_switches(manager, memory_keyring, claude_settings_path, read_json):
    _write(claude_settings_path, {"env": {
        "ANTHROPIC_AUTH_TOKEN": "sk-found",
        "ANTHROPIC_MODEL": "opus",
        "HTTP_PROXY": "http://proxy",
    }})

    result = manager.import_discovered("found")

    provider = manager.config_manager.get_provider("found")
    assert isinstance(provider, ClaudeProvider)
    assert provider.endpoint == "https://api.anthropic.com"
    assert provider.custom_envs == {"HTTP_PROXY": "http://proxy"}
    assert memory_keyring.passwords[("ai-provider-cli", "found")] == "sk-found"
    assert result.provider.name == "found"

    config = manager.config_manager.load()
    assert config.active_provider == "found"
    assert "HTTP_PROXY" in config.last_applied_env_keys
    assert read_json(claude_settings_path)["env"]["ANTHROPIC_BASE_URL"] == "https://api.anthropic.com"


def test_import_discovered_rejects_existing_name(manager, claude_settings_path):
    _write(claude_settings_path, {"env": {}})
    manager.add_provider(SubscriptionProvider(name="taken", tool="claude-code"))

    with pytest.raises(ProviderExistsError):
        manager.import_discovered("taken")
