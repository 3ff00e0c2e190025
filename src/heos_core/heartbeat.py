# src/heos_core/heartbeat.py
"""
HEOS 核心库 - 心跳调度 (Heartbeat)

固定延迟 (fixed-delay) 的后台保活任务: 每次心跳在上一次完成之后
再等待 interval 秒，慢速设备不会导致心跳重叠。
单次心跳的失败只记录日志，不会终止后续调度。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .exceptions import CommandFailure, TransportError

logger = logging.getLogger(__name__)

DEFAULT_STOP_GRACE = 10.0


class HeartbeatScheduler:
    """周期性心跳任务 (Async)。"""

    def __init__(
        self,
        beat: Callable[[], Awaitable[Any]],
        interval: float,
        initial_delay: float = 0.0,
        stop_grace: float = DEFAULT_STOP_GRACE,
    ) -> None:
        """初始化心跳调度器。

        Args:
            beat: 执行一次心跳的协程函数，通常是 HeosCore.heartbeat。
            interval: 两次心跳之间的间隔 (秒)，从上一次完成时开始计算。
            initial_delay: 首次心跳前的等待时间 (秒)。
            stop_grace: stop() 等待进行中心跳完成的最长时间 (秒)。
        """
        if interval <= 0:
            raise ValueError(f"心跳间隔必须为正数: {interval}")
        if initial_delay < 0:
            raise ValueError(f"初始延迟不能为负数: {initial_delay}")

        self._beat = beat
        self.interval = interval
        self.initial_delay = initial_delay
        self.stop_grace = stop_grace

        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        # stop() 正在等待结束的旧任务
        self._draining: asyncio.Task | None = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """启动后台心跳任务。已在运行时不做任何操作。

        必须在事件循环中调用。
        """
        if self.is_running:
            return

        # 每个循环持有自己的停止信号，重新 start 不会唤醒或覆盖旧循环
        previous = self._draining
        if previous is not None and previous.done():
            previous = None
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._loop(self._stop_event, previous), name="HeosHeartbeatTask"
        )
        logger.info(f"心跳已启动 (间隔 {self.interval}s)")

    async def stop(self) -> None:
        """停止心跳。幂等，且从不抛出异常。

        之后不会再有新的心跳开始；进行中的心跳允许完成，其结果被丢弃。
        """
        self._stop_event.set()
        task, self._task = self._task, None

        if task is None or task.done() or task is asyncio.current_task():
            return

        logger.info("正在停止心跳")
        self._draining = task
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self.stop_grace)
        except asyncio.TimeoutError:
            logger.warning(f"心跳未能在 {self.stop_grace}s 内结束，强制取消")
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        finally:
            if self._draining is task:
                self._draining = None

    async def _loop(
        self, stop_event: asyncio.Event, previous: asyncio.Task | None = None
    ) -> None:
        """[Internal] 固定延迟循环。

        previous 为尚未结束的旧循环，先等它退出，两个循环的心跳不会重叠。
        """
        try:
            if previous is not None:
                await asyncio.wait({previous})
            if self.initial_delay > 0 and await _wait_stop(
                stop_event, self.initial_delay
            ):
                return

            while not stop_event.is_set():
                await self._run_once()
                if await _wait_stop(stop_event, self.interval):
                    break
        except asyncio.CancelledError:
            logger.debug("心跳任务被取消")
            raise

    async def _run_once(self) -> None:
        self.runs += 1
        try:
            logger.info("发送心跳命令")
            response = await self._beat()
            logger.debug(f"收到心跳响应 {response}")
        except CommandFailure as e:
            logger.warning(
                f"心跳命令返回失败状态: eid({e.eid.value}, {e.eid.description}) text({e.text})"
            )
        except TransportError as e:
            logger.warning(f"心跳发送失败: {e}")
        except Exception:
            logger.exception("心跳发生未知错误")


async def _wait_stop(stop_event: asyncio.Event, timeout: float) -> bool:
    """等待停止信号，返回 True 表示收到停止信号。"""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        return False
