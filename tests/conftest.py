# tests/conftest.py
import asyncio
import json
import sys
import time
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from heos_core.config import HeosConfig


class FakeWriter:
    """模拟 StreamWriter：每写入一行命令，就把设备的响应喂给配对的 reader。"""

    def __init__(self, reader: asyncio.StreamReader, device: "FakeDevice"):
        self.reader = reader
        self.device = device
        self.written: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError("writer closed")
        if self.device.write_error is not None:
            raise self.device.write_error
        self.written.append(data)

        line = data.decode("utf-8").rstrip("\r\n")
        self.device.events.append(("write", line))
        response = self.device.respond(line)
        if response is None:
            return

        def _feed():
            if self.closed:
                return
            self.device.events.append(("respond", line))
            self.reader.feed_data(response.encode("utf-8") + b"\r\n")

        if self.device.delay:
            asyncio.get_running_loop().call_later(self.device.delay, _feed)
        else:
            _feed()

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.reader.feed_eof()

    async def wait_closed(self) -> None:
        pass


class FakeDevice:
    """内存中的 HEOS 设备，按命令回显成功响应。

    Attributes:
        failures: 命令 ("group/command") -> message，返回 fail 响应。
        silent: 为 True 时不响应 (用于测试读取超时)。
        hangup_next: 接下来 N 条命令直接断开连接 (读到 EOF)。
        refuse: 为 True 时拒绝新连接。
        delay: 响应延迟 (秒)。
    """

    def __init__(self):
        self.failures: dict[str, str] = {}
        self.payloads: dict[str, object] = {}
        self.silent = False
        self.hangup_next = 0
        self.refuse = False
        self.delay = 0.0
        self.write_error: Exception | None = None
        self.connections: list[FakeWriter] = []
        self.events: list[tuple[str, str]] = []

    @property
    def lines(self) -> list[str]:
        return [line for kind, line in self.events if kind == "write"]

    def respond(self, line: str) -> str | None:
        if self.silent:
            return None
        if self.hangup_next:
            self.hangup_next -= 1
            self.connections[-1].close()
            return None

        body = line.split("://", 1)[1]
        command, _, message = body.partition("?")
        if command in self.failures:
            heos = {"command": command, "result": "fail", "message": self.failures[command]}
        else:
            heos = {"command": command, "result": "success", "message": message}

        data: dict[str, object] = {"heos": heos}
        if command in self.payloads:
            data["payload"] = self.payloads[command]
        return json.dumps(data)

    async def open(self, host: str, port: int):
        if self.refuse:
            raise ConnectionRefusedError(f"{host}:{port} refused")
        reader = asyncio.StreamReader()
        writer = FakeWriter(reader, self)
        self.connections.append(writer)
        return reader, writer


@pytest.fixture
def valid_config():
    """[Fixture] 返回一个用于测试的 HeosConfig，超时均较短。"""
    return HeosConfig(
        host="192.168.1.50",
        port=1255,
        heartbeat_enabled=True,
        heartbeat_interval=0.02,
        heartbeat_initial_delay=0.0,
        connect_timeout=0.5,
        read_timeout=0.2,
        retries=3,
    )


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def wait_until():
    """[Fixture] 轮询等待条件成立。"""

    async def _wait(predicate, timeout: float = 2.0) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("等待条件超时")
            await asyncio.sleep(0.005)

    return _wait
