"""Settings files that a provider switch writes into.

``ClaudeSettingsTarget`` is the primary target and must succeed for a switch
to count. ``VSCodeSettingsTarget`` is only updated when its file already
exists, and its failures are reported through :class:`TargetResult` instead of
being raised; logging them is left to the caller.
"""

import json
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import TargetWriteError
from .utils import load_lenient_json, write_json_atomic

logger = logging.getLogger(__name__)

VSCODE_ENV_KEY = "claudeCode.environmentVariables"
VSCODE_MODEL_KEY = "claudeCode.selectedModel"


@dataclass
class TargetResult:
    """Outcome of writing one settings target."""
    target: str
    updated: bool
    error: Optional[str] = None


class ClaudeSettingsTarget:
    label = "~/.claude/settings.json"

    def __init__(self, settings_path: Optional[Path] = None):
        self.path = Path(settings_path) if settings_path else self._get_settings_path()

    def _get_settings_path(self) -> Path:
        override = os.environ.get("CLAUDE_CONFIG_DIR")
        base = Path(override).expanduser() if override else Path.home() / ".claude"
        return base / "settings.json"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = load_lenient_json(self.path)
        except json.JSONDecodeError as e:
            raise TargetWriteError(self.label, f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise TargetWriteError(self.label, f"{self.path} does not contain a JSON object")
        return data

    def save(self, settings: Dict[str, Any]):
        write_json_atomic(self.path, settings)
        logger.debug("Wrote %s", self.path)


class VSCodeSettingsTarget:
    label = "VSCode settings.json"

    def __init__(self, settings_path: Optional[Path] = None):
        self.path = Path(settings_path) if settings_path else self._get_settings_path()

    def _get_settings_path(self) -> Optional[Path]:
        system = platform.system()
        if system == "Darwin":
            return Path.home() / "Library" / "Application Support" / "Code" / "User" / "settings.json"
        elif system == "Linux":
            return Path.home() / ".config" / "Code" / "User" / "settings.json"
        elif system == "Windows":
            app_data = os.environ.get("APPDATA")
            if not app_data:
                return None
            return Path(app_data) / "Code" / "User" / "settings.json"
        return None

    def exists(self) -> bool:
        return self.path is not None and self.path.exists()

    def project(self, env: Dict[str, str], model: Optional[str] = None) -> TargetResult:
        """Best-effort copy of ``env`` into the editor settings; never raises."""
        if not self.exists():
            return TargetResult(self.label, updated=False)

        try:
            settings = load_lenient_json(self.path)
            if not isinstance(settings, dict):
                raise ValueError("settings file does not contain a JSON object")

            settings[VSCODE_ENV_KEY] = [
                {"name": name, "value": value} for name, value in sorted(env.items())
            ]
            if model:
                settings[VSCODE_MODEL_KEY] = model

            write_json_atomic(self.path, settings)
        except (OSError, ValueError) as e:
            return TargetResult(self.label, updated=False, error=str(e))

        logger.debug("Wrote %s", self.path)
        return TargetResult(self.label, updated=True)
