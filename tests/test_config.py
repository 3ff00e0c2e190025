# tests/test_config.py
import os
from pathlib import Path

import pytest

from heos_core import ConfigError
from heos_core.config import (
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)


@pytest.fixture
def clean_env():
    """清理 HEOS_ 前缀的环境变量 (load_dotenv 会直接写入 os.environ)。"""

    def _clear():
        for key in [k for k in os.environ if k.startswith("HEOS_")]:
            del os.environ[key]

    _clear()
    yield
    _clear()


# --- Factory 测试 (核心逻辑) ---


def test_create_with_defaults():
    """只提供 host 时其余字段使用默认值"""
    config = create_config_from_dict({"host": " 192.168.1.50 "})

    assert config.host == "192.168.1.50"
    assert config.port == 1255
    assert config.heartbeat_enabled is True
    assert config.heartbeat_interval == 30.0
    assert config.heartbeat_initial_delay == 0.0
    assert config.retries == 3


def test_create_converts_strings():
    """环境变量都是字符串，需要转换为强类型"""
    config = create_config_from_dict(
        {
            "host": "heos.local",
            "port": "1256",
            "heartbeat_enabled": "off",
            "heartbeat_interval": "2.5",
            "retries": "0",
        }
    )
    assert config.port == 1256
    assert config.heartbeat_enabled is False
    assert config.heartbeat_interval == 2.5
    assert config.retries == 0


@pytest.mark.parametrize("raw", [{}, {"host": ""}, {"host": None}])
def test_create_missing_host(raw):
    with pytest.raises(ConfigError, match="配置缺失"):
        create_config_from_dict(raw)


@pytest.mark.parametrize(
    "key, value, message",
    [
        ("port", "abc", "整数格式无效"),
        ("port", 70000, "端口超出范围"),
        ("port", 0, "不能小于"),
        ("retries", -1, "不能小于"),
        ("heartbeat_enabled", "maybe", "布尔值格式无效"),
        ("heartbeat_interval", 0, "必须为正数"),
        ("read_timeout", "slow", "数值格式无效"),
        ("heartbeat_initial_delay", -1, "必须为正数"),
    ],
)
def test_create_rejects_invalid_values(key, value, message):
    with pytest.raises(ConfigError, match=message):
        create_config_from_dict({"host": "h", key: value})


def test_config_is_frozen():
    config = create_config_from_dict({"host": "h"})
    with pytest.raises(AttributeError):
        config.host = "other"


# --- Loader 测试 (I/O) ---


def test_load_toml_heos_section(tmp_path):
    f = tmp_path / "heos.toml"
    f.write_text(
        """
        [heos]
        host = "10.0.0.2"
        heartbeat_interval = 15
        """,
        encoding="utf-8",
    )

    config = load_config_from_toml(f)
    assert config.host == "10.0.0.2"
    assert config.heartbeat_interval == 15.0


def test_load_toml_profile(tmp_path):
    f = tmp_path / "heos.toml"
    f.write_text(
        """
        [profile.default]
        host = "10.0.0.2"

        [profile.bedroom]
        host = "10.0.0.3"
        heartbeat_enabled = false
        """,
        encoding="utf-8",
    )

    assert load_config_from_toml(f).host == "10.0.0.2"
    bedroom = load_config_from_toml(f, profile="bedroom")
    assert bedroom.host == "10.0.0.3"
    assert bedroom.heartbeat_enabled is False

    with pytest.raises(ConfigError, match="未找到预设"):
        load_config_from_toml(f, profile="garage")


def test_load_toml_root(tmp_path):
    f = tmp_path / "heos.toml"
    f.write_text('host = "10.0.0.9"\nport = 1255\n', encoding="utf-8")
    assert load_config_from_toml(f).host == "10.0.0.9"


def test_load_toml_not_found():
    with pytest.raises(ConfigError, match="配置文件未找到"):
        load_config_from_toml(Path("non_existent.toml"))


def test_load_toml_broken(tmp_path):
    f = tmp_path / "broken.toml"
    f.write_text("host = ", encoding="utf-8")
    with pytest.raises(ConfigError, match="读取 TOML 失败"):
        load_config_from_toml(f)


def test_load_env(monkeypatch, clean_env):
    monkeypatch.setenv("HEOS_HOST", "10.0.0.5")
    monkeypatch.setenv("HEOS_HEARTBEAT_ENABLED", "false")
    monkeypatch.setenv("HEOS_READ_TIMEOUT", "3")

    config = load_config_from_env()
    assert config.host == "10.0.0.5"
    assert config.heartbeat_enabled is False
    assert config.read_timeout == 3.0


def test_load_env_empty(clean_env):
    with pytest.raises(ConfigError, match="未检测到"):
        load_config_from_env()


def test_load_dotenv_file(tmp_path, monkeypatch, clean_env):
    f = tmp_path / ".env"
    f.write_text("HEOS_HOST=10.0.0.7\nHEOS_RETRIES=1\n", encoding="utf-8")
    # 已存在的环境变量优先于 .env
    monkeypatch.setenv("HEOS_RETRIES", "5")

    config = load_config_from_env(f)
    assert config.host == "10.0.0.7"
    assert config.retries == 5


def test_load_dotenv_missing(tmp_path, clean_env):
    with pytest.raises(ConfigError, match=".env 文件未找到"):
        load_config_from_env(tmp_path / ".env")
