# src/heos_core/dispatch.py
"""
HEOS 核心库 - 分发层 (Dispatch)

职责：
1. 在事件循环中执行一次协议操作 (闭包)。
2. 错误分类：ValidationError / CommandFailure / TransportError / 其他。
3. 仅对传输错误重试：每次重试前先调用恢复钩子 (通常是重连)，预算固定为 3 次。
4. 将结果映射为稳定的 Outcome (成功值 XOR 错误类型 + 错误)。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from .exceptions import CommandFailure, ErrorId, TransportError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3


class ErrorKind(Enum):
    """对外可见的错误分类。重试决策只取决于该标签。"""

    VALIDATION = "validation"
    COMMAND = "command"
    TRANSPORT = "transport"
    UNEXPECTED = "unexpected"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.TRANSPORT


# 设备错误码 -> 对外状态码 (供 RPC / HTTP 前端使用)
EID_STATUS: dict[ErrorId, int] = {
    ErrorId.UNRECOGNIZED_COMMAND: 400,
    ErrorId.INVALID_ID: 400,
    ErrorId.WRONG_NUMBER_OF_COMMAND_ARGUMENTS: 400,
    ErrorId.REQUESTED_DATA_NOT_AVAILABLE: 422,
    ErrorId.RESOURCE_CURRENTLY_NOT_AVAILABLE: 422,
    ErrorId.INVALID_CREDENTIALS: 403,
    ErrorId.COMMAND_COULD_NOT_BE_EXECUTED: 422,
    ErrorId.USER_NOT_LOGGED_IN: 403,
    ErrorId.PARAMETER_OUT_OF_RANGE: 400,
    ErrorId.USER_NOT_FOUND: 403,
    ErrorId.INTERNAL_ERROR: 500,
    ErrorId.SYSTEM_ERROR: 500,
    ErrorId.PROCESSING_PREVIOUS_COMMAND: 429,
    ErrorId.MEDIA_CANNOT_BE_PLAYED: 415,
    ErrorId.OPTION_NOT_SUPPORTED: 400,
}

STATUS_OK = 200
STATUS_BAD_REQUEST = 400
STATUS_INTERNAL_ERROR = 500


def classify(error: BaseException) -> ErrorKind:
    """将异常映射为错误分类 (纯函数)。"""
    if isinstance(error, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(error, CommandFailure):
        return ErrorKind.COMMAND
    if isinstance(error, TransportError):
        return ErrorKind.TRANSPORT
    return ErrorKind.UNEXPECTED


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """分发结果: 成功值 XOR (错误分类, 错误)。"""

    value: T | None = None
    kind: ErrorKind | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome[T]":
        return cls(kind=classify(error), error=error)

    @property
    def ok(self) -> bool:
        return self.kind is None

    def unwrap(self) -> T:
        """成功时返回值，失败时重新抛出原始错误。"""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @property
    def status(self) -> int:
        """对外状态码: 校验错误与设备错误可以明确区分。"""
        if self.kind is None:
            return STATUS_OK
        if self.kind is ErrorKind.VALIDATION:
            return STATUS_BAD_REQUEST
        if self.kind is ErrorKind.COMMAND and isinstance(self.error, CommandFailure):
            return EID_STATUS.get(self.error.eid, STATUS_INTERNAL_ERROR)
        return STATUS_INTERNAL_ERROR

    @property
    def reason(self) -> str:
        return "" if self.error is None else str(self.error)


class Dispatcher:
    """带有限重试与重连的协议操作分发器 (Async)。"""

    def __init__(
        self,
        recover: Callable[[], Awaitable[Any]],
        retries: int = DEFAULT_RETRIES,
    ) -> None:
        """初始化分发器。

        Args:
            recover: 传输错误后、重试前调用的恢复钩子，通常是 reconnect。
            retries: 每次调用独立的重试预算。
        """
        if retries < 0:
            raise ValueError(f"重试次数不能为负数: {retries}")
        self._recover = recover
        self.retries = retries

    async def dispatch(self, operation: Callable[[], Awaitable[T]]) -> Outcome[T]:
        """执行操作，返回 Outcome。除取消外不会抛出异常。"""
        retries_left = self.retries

        while True:
            try:
                return Outcome.success(await operation())
            except Exception as e:
                error: Exception = e

            kind = classify(error)
            if not kind.retryable:
                self._log_failure(kind, error)
                return Outcome.failure(error)

            # 传输错误：先恢复连接再重试，恢复失败同样消耗预算
            while True:
                if retries_left == 0:
                    logger.error(
                        f"发送命令失败，重试已耗尽，连接不太可能自行恢复: {error}"
                    )
                    return Outcome.failure(error)

                logger.warning(
                    f"发送命令失败，将重试 (剩余 {retries_left} 次): {error}"
                )
                retries_left -= 1
                try:
                    await self._recover()
                    break
                except Exception as e:
                    if classify(e) is not ErrorKind.TRANSPORT:
                        self._log_failure(ErrorKind.UNEXPECTED, e)
                        return Outcome(kind=ErrorKind.UNEXPECTED, error=e)
                    logger.warning(f"恢复连接失败: {e}")
                    error = e

    def submit(self, operation: Callable[[], Awaitable[T]]) -> "asyncio.Task[Outcome[T]]":
        """在后台任务中分发，调用方可以稍后 await 该任务。"""
        return asyncio.create_task(self.dispatch(operation))

    @staticmethod
    def _log_failure(kind: ErrorKind, error: BaseException) -> None:
        if kind is ErrorKind.VALIDATION:
            logger.debug(f"请求参数错误: {error}")
        elif kind is ErrorKind.COMMAND:
            logger.info(f"设备拒绝执行命令: {error}")
        else:
            logger.error(f"分发过程中发生未知错误: {error!r}", exc_info=error)
