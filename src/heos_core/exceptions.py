# File: src/heos_core/exceptions.py
"""
HEOS 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，分发层 (Dispatch) 依据异常类型决定是否重试，
上层应用（如 CLI / RPC 前端）据此进行精细的错误处理。
"""

from collections.abc import Mapping
from enum import IntEnum
from typing import Any


class HeosError(Exception):
    """HEOS 核心库的所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 heos-core 抛出的已知错误。
    """

    pass


class ConfigError(HeosError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host)。
    2. 字段格式错误 (如端口非数字、超时为负数)。
    3. 找不到配置文件或环境变量。
    """

    pass


class ValidationError(HeosError):
    """调用方输入缺失或格式错误 (客户端错误)。

    在任何 I/O 之前检测到，永远不会被重试。
    """

    pass


class TransportError(HeosError):
    """共享连接上的 I/O 错误。

    触发场景:
    1. TCP 连接建立失败或超时。
    2. 写入 / 读取失败，或读取超时。
    3. 设备关闭连接 (读到 EOF)。
    4. 连接已被显式关闭 (Closed)。

    注意: 此类错误通常是暂时的，分发层会在重连后重试。
    """

    pass


class ProtocolError(HeosError):
    """响应结构错误 (逻辑级别)。

    触发场景:
    1. 响应行不是合法的 JSON。
    2. 缺少 heos / command / result 字段。
    3. 未知的命令组、命令名或结果状态。
    """

    pass


class StateError(HeosError):
    """状态机错误，例如在已关闭的客户端上启动心跳。"""

    pass


class ErrorId(IntEnum):
    """HEOS 设备返回的错误代码 (message 中的 eid 属性)。"""

    UNKNOWN = 0
    UNRECOGNIZED_COMMAND = 1
    INVALID_ID = 2
    WRONG_NUMBER_OF_COMMAND_ARGUMENTS = 3
    REQUESTED_DATA_NOT_AVAILABLE = 4
    RESOURCE_CURRENTLY_NOT_AVAILABLE = 5
    INVALID_CREDENTIALS = 6
    COMMAND_COULD_NOT_BE_EXECUTED = 7
    USER_NOT_LOGGED_IN = 8
    PARAMETER_OUT_OF_RANGE = 9
    USER_NOT_FOUND = 10
    INTERNAL_ERROR = 11
    SYSTEM_ERROR = 12
    PROCESSING_PREVIOUS_COMMAND = 13
    MEDIA_CANNOT_BE_PLAYED = 14
    OPTION_NOT_SUPPORTED = 15

    @classmethod
    def from_value(cls, eid: int | None) -> "ErrorId":
        """将原始 eid 转换为枚举，未知或缺失时返回 UNKNOWN。"""
        if eid is None:
            return cls.UNKNOWN
        try:
            return cls(eid)
        except ValueError:
            return cls.UNKNOWN

    @property
    def description(self) -> str:
        """获取错误码对应的人类可读描述。"""
        return self.name.replace("_", " ").lower()


DEFAULT_ERROR_TEXT = "no error message"


class CommandFailure(HeosError):
    """设备明确拒绝了命令 (响应 result 为 fail)。

    重试无法改变结果，因此分发层永远不会重试此类错误。
    """

    def __init__(self, eid: int | None, text: str = DEFAULT_ERROR_TEXT) -> None:
        """初始化命令失败错误。

        Args:
            eid: 原始错误代码。构造函数会自动将其转换为 ErrorId 枚举，
                原始整数保存在 raw_eid 中。
            text: 设备返回的错误文本。
        """
        self.eid = ErrorId.from_value(eid)
        self.raw_eid = eid
        self.text = text
        super().__init__(f"eid: {self.eid.value}, text: {text}")

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "CommandFailure":
        """从响应 message 属性集构建错误。

        eid 缺失或非数字时使用 UNKNOWN，text 缺失时使用默认文本。
        """
        eid: int | None = None
        raw = _first(message.get("eid"))
        if raw is not None:
            try:
                eid = int(raw)
            except ValueError:
                eid = None

        text = _first(message.get("text"))
        return cls(eid, text if text is not None else DEFAULT_ERROR_TEXT)


def _first(values: Any) -> str | None:
    if not values:
        return None
    return values[0]
