import json
import os
import re
import shutil
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO

_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[}\]])')
_PROVIDER_NAME = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_provider_name(name: str) -> bool:
    """验证provider名称是否有效"""
    if not name or not _PROVIDER_NAME.fullmatch(name):
        return False

    # "-" is reserved for "previous provider" on the command line
    if name.startswith("-"):
        return False

    return True


def validate_environment_variable_name(name: str) -> bool:
    """验证环境变量名称是否有效"""
    if not name:
        return False

    return re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", name) is not None


def mask_api_key(value: str) -> str:
    """遮盖API key，只保留前8位"""
    if len(value) <= 8:
        return "***"
    return value[:8] + "***"


def parse_key_value_pairs(pairs: List[str]) -> Dict[str, str]:
    """解析KEY=VALUE格式的字符串列表"""
    result = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid format '{pair}'. Expected KEY=VALUE")

        key, value = pair.split("=", 1)
        key = key.strip()

        if not key:
            raise ValueError("Key cannot be empty")

        result[key] = value

    return result


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing brace or bracket.

    String literals are matched first and put back unchanged, so a value such
    as ``"a,]"`` keeps its comma.
    """
    return _TRAILING_COMMA.sub(lambda m: m.group(1) or m.group(2), text)


def load_lenient_json(path: Path) -> Any:
    """Parse a JSON file that may have been hand-edited with trailing commas."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()
    return json.loads(strip_trailing_commas(raw))


@contextmanager
def atomic_write(path: Path, mode: Optional[int] = None) -> Iterator[TextIO]:
    """Yield a text handle whose contents replace ``path`` only on success.

    The data goes to a temporary file in the destination directory and is
    moved into place with ``os.replace``. On any failure the temporary file
    is removed and ``path`` is left as it was. Without an explicit ``mode``
    an existing file keeps its permissions.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())

        if mode is not None:
            tmp_path.chmod(mode)
        elif path.exists():
            shutil.copymode(path, tmp_path)

        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def write_json_atomic(path: Path, data: Any, mode: Optional[int] = None):
    """以2空格缩进原子写入JSON文件"""
    with atomic_write(path, mode=mode) as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def colorize(text: str, color: str) -> str:
    """为文本添加颜色（仅在支持的终端中）"""
    if not sys.stdout.isatty():
        return text

    colors = {
        "red": "\033[31m",
        "green": "\033[32m",
        "yellow": "\033[33m",
        "cyan": "\033[36m",
        "gray": "\033[90m",
        "reset": "\033[0m",
    }

    if color.lower() in colors:
        return f"{colors[color.lower()]}{text}{colors['reset']}"

    return text


def success_message(text: str) -> str:
    """成功消息格式化"""
    return colorize(f"✓ {text}", "green")


def hint_message(text: str) -> str:
    return colorize(text, "gray")
