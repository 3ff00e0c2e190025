# src/heos_core/__init__.py
"""
HEOS-Core v0.1.0
HEOS CLI 协议 (TCP 1255) 的异步客户端核心库。
"""

# 暴露核心配置
from .config import (
    HeosConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露引擎与状态
from .core import HeosCore
from .dispatch import Dispatcher, ErrorKind, Outcome
from .heartbeat import HeartbeatScheduler
from .network import ProtocolConnection

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    CommandFailure,
    ConfigError,
    ErrorId,
    HeosError,
    ProtocolError,
    StateError,
    TransportError,
    ValidationError,
)
from .protocols import Attributes, AttributesBuilder, Command, CommandGroup, Envelope
from .state import ConnectionState

__version__ = "0.1.0"

__all__ = [
    "HeosCore",
    "HeosConfig",
    "ConnectionState",
    "ProtocolConnection",
    "HeartbeatScheduler",
    "Dispatcher",
    "Outcome",
    "ErrorKind",
    "Attributes",
    "AttributesBuilder",
    "Command",
    "CommandGroup",
    "Envelope",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "HeosError",
    "ConfigError",
    "ValidationError",
    "CommandFailure",
    "ErrorId",
    "TransportError",
    "ProtocolError",
    "StateError",
]
