import json
import os

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError


class MemoryKeyring(KeyringBackend):
    """In-process keyring so tests never touch the real OS keychain."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError(f"No password for {username}")


@pytest.fixture(autouse=True)
def restore_environ():
    """Keep global environment stable across CLI invocations."""
    original = os.environ.copy()
    try:
        yield
    finally:
        os.environ.clear()
        os.environ.update(original)


@pytest.fixture(autouse=True)
def memory_keyring():
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    try:
        yield backend
    finally:
        keyring.set_keyring(previous)


@pytest.fixture()
def temp_config_dir(tmp_path, monkeypatch):
    """Put ai-provider config, Claude settings and home directories in a temp location."""
    home_dir = tmp_path / "home"
    config_dir = tmp_path / "ai-providers"
    claude_dir = tmp_path / "claude"
    home_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    monkeypatch.setenv("APPDATA", str(home_dir / "AppData"))
    monkeypatch.setenv("AI_PROVIDER_HOME", str(config_dir))
    monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(claude_dir))

    return config_dir


@pytest.fixture()
def claude_settings_path(temp_config_dir, tmp_path):
    return tmp_path / "claude" / "settings.json"


@pytest.fixture()
def read_json():
    def _read(path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    return _read
