"""
HEOS 核心库 - 状态模块

定义连接生命周期状态。本模块不包含业务逻辑，仅作为数据容器。
"""

from enum import Enum, auto


class ConnectionState(Enum):
    """协议连接的生命周期状态枚举。

    状态流转示意:
    DISCONNECTED --connect--> CONNECTED --I/O 失败--> DISCONNECTED
         |                        |
         +------- close() --------+--> CLOSED (终态)
    """

    DISCONNECTED = auto()
    """尚未建立连接，或上一次 I/O 失败后连接已失效。"""

    CONNECTED = auto()
    """TCP 连接已建立，可以收发命令。"""

    CLOSED = auto()
    """已显式关闭。终态，不会再回到 CONNECTED。"""

    @property
    def is_terminal(self) -> bool:
        return self is ConnectionState.CLOSED
