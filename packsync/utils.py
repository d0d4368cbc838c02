import json
import re
from pathlib import Path
from typing import Tuple

import toml
import yaml

from packsync.exceptions import ConfigParseError


_NUMBER = re.compile(r"\d+")


def load_config_file(config_path: str) -> dict:
    """
    加载配置文件，支持 toml / json / yaml

    Raises:
        ConfigParseError: 文件不存在、格式不支持或内容无法解析
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigParseError(
            f"配置文件不存在: {config_path}", context={"path": config_path}
        )

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            data = toml.load(config_path)
        elif suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        else:
            raise ConfigParseError(
                f"不支持的配置文件格式: {suffix}", context={"path": config_path}
            )
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(
            f"配置文件解析失败: {e}", context={"path": config_path}
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(
            "配置文件顶层必须是表/字典", context={"path": config_path}
        )
    return data


def version_key(version: str) -> Tuple[int, ...]:
    """
    宽松的版本排序键

    提取版本字符串中的所有数字段，例如 "1.20.1-47.2.0" -> (1, 20, 1, 47, 2, 0)。
    无数字的版本排在最前。
    """
    return tuple(int(part) for part in _NUMBER.findall(version))
