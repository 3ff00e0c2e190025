# src/heos_core/protocols/__init__.py
"""
HEOS 协议层 (Protocol Layer)

本包负责命令字符串的纯粹构建 (Build) 与响应行的解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何状态管理 (State)。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .attributes import (
    Attributes,
    AttributesBuilder,
    decode_attributes,
    encode_attributes,
)
from .command import GroupedCommand, build_command
from .constants import Command, CommandGroup
from .response import Envelope, Result, check_result, parse_envelope, parse_response

# 公共 API
__all__ = [
    "constants",
    "Attributes",
    "AttributesBuilder",
    "encode_attributes",
    "decode_attributes",
    "Command",
    "CommandGroup",
    "GroupedCommand",
    "build_command",
    "Envelope",
    "Result",
    "parse_envelope",
    "check_result",
    "parse_response",
]
