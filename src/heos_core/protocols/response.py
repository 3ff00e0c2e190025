# src/heos_core/protocols/response.py
"""
HEOS 协议层 - 响应解析 (Response Parser)

每条响应是一行 JSON:
    {"heos": {"command": "player/get_volume",
              "result": "success",
              "message": "pid=1&level=10"},
     "payload": ..., "options": ...}

message 字段的字符串内容本身是属性线上格式，由 attributes 模块解码。
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..exceptions import CommandFailure, ProtocolError
from .attributes import Attributes, decode_attributes
from .command import GroupedCommand


class Result(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"


@dataclass(frozen=True)
class Envelope:
    """响应信封: 命令回显 + 结果状态 + message 属性集。

    payload 与 options 的结构因命令而异，这里原样保留解析后的 JSON 值。
    """

    command: GroupedCommand
    result: Result
    message: Attributes = field(default_factory=Attributes)
    payload: Any = None
    options: Any = None

    @property
    def is_success(self) -> bool:
        return self.result is Result.SUCCESS


def parse_envelope(line: str) -> Envelope:
    """解析一行响应为 Envelope，不判断成功与否。

    Raises:
        ProtocolError: JSON 非法或缺少必要字段。
    """
    try:
        data = json.loads(line)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"响应不是合法的 JSON: {line!r}") from e

    heos = data.get("heos") if isinstance(data, dict) else None
    if not isinstance(heos, dict):
        raise ProtocolError(f"响应缺少 heos 字段: {line!r}")

    try:
        command = GroupedCommand.parse(str(heos["command"]))
        result = Result(str(heos["result"]).lower())
    except KeyError as e:
        raise ProtocolError(f"响应缺少字段 {e}: {line!r}") from e
    except ValueError as e:
        raise ProtocolError(f"未知的结果状态: {heos.get('result')!r}") from e

    return Envelope(
        command=command,
        result=result,
        message=decode_attributes(str(heos.get("message") or "")),
        payload=data.get("payload"),
        options=data.get("options"),
    )


def check_result(envelope: Envelope) -> Envelope:
    """成功时原样返回 Envelope，失败时抛出 CommandFailure。

    Raises:
        CommandFailure: result 为 fail，携带 eid 与 text。
    """
    if not envelope.is_success:
        raise CommandFailure.from_message(envelope.message)
    return envelope


def parse_response(line: str) -> Envelope:
    """解析响应行并检查结果状态。"""
    return check_result(parse_envelope(line))
