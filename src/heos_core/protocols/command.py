# src/heos_core/protocols/command.py
"""
HEOS 协议层 - 命令构建 (Command Builder)

线上命令格式:
    heos://<group>/<command>[?<attr1>[=<val1>]&<attr2>=<val2>...]
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ..exceptions import ProtocolError
from .attributes import encode_attributes
from .constants import SCHEME, Command, CommandGroup


@dataclass(frozen=True)
class GroupedCommand:
    """(命令组, 命令名) 二元组，序列化为 "<group>/<command>"。"""

    group: CommandGroup
    command: Command

    def __str__(self) -> str:
        return f"{self.group.value}/{self.command.value}"

    @classmethod
    def parse(cls, text: str) -> "GroupedCommand":
        """解析响应中回显的命令字符串。

        Raises:
            ProtocolError: 格式错误或命令组 / 命令名未知。
        """
        group, sep, command = text.partition("/")
        if not sep:
            raise ProtocolError(f"命令格式无效: {text!r}")
        try:
            return cls(CommandGroup(group), Command(command))
        except ValueError as e:
            raise ProtocolError(f"未知命令: {text!r}") from e


def build_command(
    command: GroupedCommand,
    attributes: Mapping[str, Iterable[str]] | None = None,
) -> str:
    """构建完整的命令字符串 (不含行结束符)。

    仅当属性集非空时追加 "?" 与编码后的属性。
    """
    line = f"{SCHEME}://{command}"
    if attributes:
        line += f"?{encode_attributes(attributes)}"
    return line
