import json

import pytest

from packsync.models import PackSyncConfig
from packsync.models.config import DEFAULT_VERSION_PATTERN
from packsync.exceptions import ConfigParseError, ConfigValidationError
from packsync.utils import load_config_file, version_key


def test_defaults():
    config = PackSyncConfig.from_dict({})

    assert config.sync.max_concurrent == 5
    assert config.sync.max_retries == 3
    assert config.duplicates.categories == ["mods", "resourcepacks", "shaderpacks"]
    assert config.duplicates.version_pattern == DEFAULT_VERSION_PATTERN
    assert config.catalog.base_url == "https://api.modpacks.ch/public"
    assert config.auth.token_env == "PACKSYNC_TOKEN"
    assert config.log.level is None
    assert config.log.file is None
    assert config.log.rotation == "10 MB"


@pytest.mark.parametrize(
    "filename, content",
    [
        (
            "packsync.toml",
            '[sync]\nmax_concurrent = 2\n\n[duplicates]\ncategories = ["mods"]\n',
        ),
        (
            "packsync.json",
            json.dumps({"sync": {"max_concurrent": 2}, "duplicates": {"categories": ["mods"]}}),
        ),
        (
            "packsync.yaml",
            "sync:\n  max_concurrent: 2\nduplicates:\n  categories: [mods]\n",
        ),
    ],
)
def test_load_supported_formats(tmp_path, filename, content):
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8")

    config = PackSyncConfig.from_dict(load_config_file(str(path)))

    assert config.sync.max_concurrent == 2
    assert config.sync.max_retries == 3
    assert config.duplicates.categories == ["mods"]


def test_empty_yaml_is_default(tmp_path):
    path = tmp_path / "packsync.yml"
    path.write_text("", encoding="utf-8")

    assert load_config_file(str(path)) == {}


@pytest.mark.parametrize(
    "filename, content",
    [
        ("packsync.ini", "[sync]"),
        ("packsync.toml", "[sync\nmax_concurrent ="),
        ("packsync.json", "{"),
        ("packsync.yaml", "sync: [unclosed"),
        ("packsync.json", "[1, 2]"),
    ],
)
def test_unparseable_files(tmp_path, filename, content):
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigParseError) as exc_info:
        load_config_file(str(path))
    assert exc_info.value.code == "E101"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigParseError):
        load_config_file(str(tmp_path / "nope.toml"))


@pytest.mark.parametrize(
    "data",
    [
        {"sync": {"max_concurrent": 0}},
        {"sync": {"max_retries": -1}},
        {"sync": {"retry_delay": -0.5}},
        {"sync": {"timeout": 0}},
        {"sync": {"unknown": 1}},
        {"sync": "fast"},
        {"duplicates": {"categories": []}},
        {"duplicates": {"version_pattern": "[unclosed"}},
        {"catalog": {"url": "https://x"}},
        {"log": {"level": "LOUD"}},
        {"log": {"retention": -1}},
    ],
)
def test_invalid_values(data):
    with pytest.raises(ConfigValidationError) as exc_info:
        PackSyncConfig.from_dict(data)
    assert exc_info.value.code == "E102"


def test_version_key():
    assert version_key("1.20.1-47.2.0") == (1, 20, 1, 47, 2, 0)
    assert version_key("47.10.0") > version_key("47.9.1")
    assert version_key("beta") == ()
