"""Tests for the shell completion scripts."""

import pytest

from aiprovider.shell_integration import COMMANDS, SUPPORTED_SHELLS, ShellIntegration


class TestShellIntegration:
    def setup_method(self):
        self.integration = ShellIntegration()

    @pytest.mark.parametrize("shell_path,expected", [
        ("/bin/zsh", "zsh"),
        ("/usr/bin/fish", "fish"),
        ("/bin/bash", "bash"),
        ("", "bash"),
    ])
    def test_get_shell_type(self, monkeypatch, shell_path, expected):
        monkeypatch.setenv("SHELL", shell_path)
        assert self.integration.get_shell_type() == expected

    def test_bash_script(self):
        script = self.integration.get_completion_script("bash")
        assert "complete -F _ai_provider_complete ai-provider" in script
        assert "ai-provider list --names-only" in script
        for command in COMMANDS:
            assert command in script

    def test_zsh_script(self):
        script = self.integration.get_completion_script("zsh")
        assert script.startswith("#compdef ai-provider")
        assert "'switch:Switch to a different provider'" in script
        assert "'-:Switch to previous provider'" in script
        assert "'1: :->command' \\" in script

    def test_fish_script(self):
        script = self.integration.get_completion_script("fish")
        assert 'complete -c ai-provider -f -n "__fish_use_subcommand" -a "discover"' in script
        assert "__fish_seen_subcommand_from switch remove show" in script
        assert "bash zsh fish" in script

    def test_defaults_to_detected_shell(self, monkeypatch):
        monkeypatch.setenv("SHELL", "/bin/zsh")
        assert self.integration.get_completion_script().startswith("#compdef")

    def test_unsupported_shell(self):
        with pytest.raises(ValueError) as exc_info:
            self.integration.get_completion_script("powershell")
        assert "Supported: " + ", ".join(SUPPORTED_SHELLS) in str(exc_info.value)
