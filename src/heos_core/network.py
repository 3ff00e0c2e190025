# src/heos_core/network.py
"""
HEOS 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP 流的建立、收发与关闭逻辑。
HEOS CLI 协议没有请求 ID，响应完全依靠顺序匹配，
因此 send_and_receive 必须在同一把锁内完成 "写一行 -> 读一行"。
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, Tuple

from .config import HeosConfig
from .exceptions import TransportError
from .protocols.constants import COMMAND_DELIMITER, ENCODING
from .state import ConnectionState

logger = logging.getLogger(__name__)

# 浏览类命令的 payload 可能很大，放宽 StreamReader 的单行上限
STREAM_LIMIT = 4 * 1024 * 1024

Streams = Tuple[asyncio.StreamReader, asyncio.StreamWriter]
Opener = Callable[[str, int], Awaitable[Streams]]


class ProtocolConnection:
    """
    HEOS 设备的单条持久连接。

    状态机见 ConnectionState。CLOSED 为终态: 关闭后的 send_and_receive /
    connect / reconnect 都会立即抛出 TransportError，而不是阻塞。
    """

    def __init__(self, config: HeosConfig, opener: Optional[Opener] = None):
        self.config = config
        self._opener: Opener = opener or functools.partial(
            asyncio.open_connection, limit=STREAM_LIMIT
        )
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._state = ConnectionState.DISCONNECTED
        # 整个 "写 + 读" 过程的互斥锁
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def address(self) -> str:
        return f"{self.config.host}:{self.config.port}"

    async def connect(self) -> None:
        """
        建立 TCP 连接。已连接时直接返回。

        Raises:
            TransportError: 连接失败、超时，或连接已关闭。
        """
        async with self._lock:
            await self._connect_locked()

    async def send_and_receive(self, line: str) -> str:
        """
        发送一行命令并读取一行响应 (原子操作)。

        任何 I/O 失败都会把状态切换为 DISCONNECTED 并抛出 TransportError；
        锁在任何情况下都会被释放。

        Returns:
            str: 去掉行结束符的响应行。
        """
        async with self._lock:
            if self._state is ConnectionState.CLOSED:
                raise TransportError(f"连接已关闭: {self.address}")
            if self._reader is None or self._writer is None:
                raise TransportError(f"连接尚未建立: {self.address}")

            reader, writer = self._reader, self._writer
            logger.debug(f">>> {line}")

            try:
                writer.write(f"{line}{COMMAND_DELIMITER}".encode(ENCODING))
                await writer.drain()
                raw = await asyncio.wait_for(
                    reader.readline(), timeout=self.config.read_timeout
                )
            except asyncio.TimeoutError:
                self._mark_broken()
                raise TransportError(
                    f"接收超时 ({self.config.read_timeout}s): {self.address}"
                ) from None
            except asyncio.CancelledError:
                # 响应仍可能在稍后到达，继续使用这条流会导致响应错位
                self._mark_broken()
                raise
            except (OSError, ValueError) as e:
                self._mark_broken()
                raise TransportError(f"与 {self.address} 通信失败: {e}") from e

            if not raw.endswith(b"\n"):
                self._mark_broken()
                raise TransportError(f"设备关闭了连接: {self.address}")

            response = raw.decode(ENCODING, errors="replace").rstrip("\r\n")
            logger.debug(f"<<< {response}")
            return response

    async def reconnect(self) -> None:
        """
        丢弃当前连接并建立一条新的连接。

        关闭后 (CLOSED) 不允许重连。

        Raises:
            TransportError: 连接已关闭或新连接建立失败。
        """
        async with self._lock:
            if self._state is ConnectionState.CLOSED:
                raise TransportError(f"连接已关闭，不允许重连: {self.address}")

            logger.info(f"正在重连 {self.address}")
            await self._close_streams()
            self._state = ConnectionState.DISCONNECTED
            await self._connect_locked()

    async def close(self) -> None:
        """关闭连接。幂等，任何状态下都会进入 CLOSED。"""
        if self._state is ConnectionState.CLOSED:
            return

        self._state = ConnectionState.CLOSED
        await self._close_streams()
        logger.info(f"已关闭与 {self.address} 的连接")

    async def _connect_locked(self) -> None:
        if self._state is ConnectionState.CLOSED:
            raise TransportError(f"连接已关闭: {self.address}")
        if self._state is ConnectionState.CONNECTED:
            return

        try:
            reader, writer = await asyncio.wait_for(
                self._opener(self.config.host, self.config.port),
                timeout=self.config.connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"连接超时 ({self.config.connect_timeout}s): {self.address}"
            ) from None
        except OSError as e:
            raise TransportError(f"连接失败 {self.address}: {e}") from e

        if self._state is ConnectionState.CLOSED:
            # 建立连接期间被 close()
            writer.close()
            raise TransportError(f"连接已关闭: {self.address}")

        self._reader, self._writer = reader, writer
        self._state = ConnectionState.CONNECTED
        logger.info(f"已连接到 {self.address}")

    def _mark_broken(self) -> None:
        """I/O 失败后丢弃当前流。已关闭的连接保持 CLOSED。"""
        if self._writer is not None:
            self._writer.close()
        self._reader = None
        self._writer = None
        if not self._state.is_terminal:
            self._state = ConnectionState.DISCONNECTED

    async def _close_streams(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except Exception as e:
            logger.debug(f"关闭旧连接时出错 (已忽略): {e}")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
