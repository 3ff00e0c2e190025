"""
HEOS 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (可选 .env 文件) 或字典中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError
from .protocols.constants import DEFAULT_PORT

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_INTERVAL = 30.0
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 10.0
DEFAULT_RETRIES = 3


@dataclass(frozen=True)
class HeosConfig:
    """HeosCore 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        host: HEOS 设备 IP 地址或主机名。
        port: CLI 协议端口 (固定为 1255)。
        heartbeat_enabled: 是否启用后台心跳。
        heartbeat_interval: 心跳间隔 (秒)，按上一次完成时间计算。
        heartbeat_initial_delay: 首次心跳前的等待时间 (秒)。
        connect_timeout: 建立 TCP 连接的超时 (秒)。
        read_timeout: 等待单条响应行的超时 (秒)。
        retries: 分发层对传输错误的重试次数。
    """

    host: str
    port: int = DEFAULT_PORT
    heartbeat_enabled: bool = True
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL
    heartbeat_initial_delay: float = 0.0
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    retries: int = DEFAULT_RETRIES


def create_config_from_dict(raw_data: dict[str, Any]) -> HeosConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        HeosConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """

    def _req(key: str) -> Any:
        """获取必要字段，缺失则报错"""
        if key not in raw_data or raw_data[key] in (None, ""):
            raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
        return raw_data[key]

    def _to_int(key: str, default: int, minimum: int) -> int:
        val = raw_data.get(key, default)
        try:
            num = int(val)
        except (TypeError, ValueError):
            raise ConfigError(f"整数格式无效 '{key}': {val}") from None
        if num < minimum:
            raise ConfigError(f"'{key}' 不能小于 {minimum}: {num}")
        return num

    def _to_float(key: str, default: float, positive: bool = True) -> float:
        val = raw_data.get(key, default)
        try:
            num = float(val)
        except (TypeError, ValueError):
            raise ConfigError(f"数值格式无效 '{key}': {val}") from None
        if num < 0 or (positive and num == 0):
            raise ConfigError(f"'{key}' 必须为正数: {num}")
        return num

    def _to_bool(key: str, default: bool) -> bool:
        val = raw_data.get(key, default)
        if isinstance(val, bool):
            return val
        text = str(val).strip().lower()
        if text in ("true", "1", "yes", "on", "t"):
            return True
        if text in ("false", "0", "no", "off", "f"):
            return False
        raise ConfigError(f"布尔值格式无效 '{key}': {val}")

    port = _to_int("port", DEFAULT_PORT, 1)
    if port > 0xFFFF:
        raise ConfigError(f"端口超出范围: {port}")

    return HeosConfig(
        host=str(_req("host")).strip(),
        port=port,
        heartbeat_enabled=_to_bool("heartbeat_enabled", True),
        heartbeat_interval=_to_float(
            "heartbeat_interval", DEFAULT_HEARTBEAT_INTERVAL
        ),
        heartbeat_initial_delay=_to_float(
            "heartbeat_initial_delay", 0.0, positive=False
        ),
        connect_timeout=_to_float("connect_timeout", DEFAULT_CONNECT_TIMEOUT),
        read_timeout=_to_float("read_timeout", DEFAULT_READ_TIMEOUT),
        retries=_to_int("retries", DEFAULT_RETRIES, 0),
    )


def load_config_from_toml(file_path: Path, profile: str = "default") -> HeosConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [heos]: 单设备配置块。
    3. Root: 兼容根目录直接配置。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]
    elif "heos" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [heos] 节，忽略 profile='{profile}'。")
        raw_config = data["heos"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(dotenv_path: Path | None = None) -> HeosConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    读取所有以 `HEOS_` 开头的环境变量，并映射到配置字段。
    例如: `HEOS_HOST` -> `host`。
    如果提供了 dotenv_path，会先将该 .env 文件载入环境 (不覆盖已有变量)。

    Raises:
        ConfigError: 未检测到任何相关环境变量。
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise ConfigError(f".env 文件未找到: {dotenv_path}")
        load_dotenv(dotenv_path=dotenv_path, override=False)

    env_map = {
        "host": "HOST",
        "port": "PORT",
        "heartbeat_enabled": "HEARTBEAT_ENABLED",
        "heartbeat_interval": "HEARTBEAT_INTERVAL",
        "heartbeat_initial_delay": "HEARTBEAT_INITIAL_DELAY",
        "connect_timeout": "CONNECT_TIMEOUT",
        "read_timeout": "READ_TIMEOUT",
        "retries": "RETRIES",
    }

    raw_data = {}
    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"HEOS_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError("未检测到 HEOS_ 前缀的环境变量")

    return create_config_from_dict(raw_data)
