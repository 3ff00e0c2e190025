# File: src/heos_core/core.py
"""
HEOS 核心引擎 (Core Engine)

职责：
1. 资源组装：Config + Connection + Dispatcher + Heartbeat。
2. 命令封装：参数校验 (在任何 I/O 之前) -> 构建命令 -> 收发 -> 解析。
3. 生命周期：Connect -> Heartbeat -> Close。
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from enum import Enum
from typing import Any, TypeVar

from .config import HeosConfig
from .dispatch import Dispatcher, Outcome
from .exceptions import StateError, ValidationError
from .heartbeat import HeartbeatScheduler
from .network import Opener, ProtocolConnection
from .protocols import (
    AttributesBuilder,
    Envelope,
    GroupedCommand,
    build_command,
    parse_response,
)
from .protocols.constants import (
    AddCriteria,
    Command,
    CommandGroup,
    Limits,
    MuteState,
    PlayState,
    RepeatState,
    ShuffleState,
)
from .state import ConnectionState

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


class HeosCore:
    """HEOS 设备控制核心引擎 (Async)。"""

    def __init__(self, config: HeosConfig, opener: Opener | None = None) -> None:
        """初始化核心引擎。

        Args:
            config: 全局配置对象。
            opener: [可选] 建立 TCP 流的协程函数，默认为 asyncio.open_connection。
        """
        self.config = config
        self.connection = ProtocolConnection(config, opener)
        self.dispatcher = Dispatcher(self.reconnect, retries=config.retries)
        self.heartbeat_scheduler = HeartbeatScheduler(
            self.heartbeat,
            interval=config.heartbeat_interval,
            initial_delay=config.heartbeat_initial_delay,
        )

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    # =========================================================================
    # 生命周期
    # =========================================================================

    async def connect(self) -> None:
        await self.connection.connect()

    async def reconnect(self) -> None:
        """重建连接。也是分发层的恢复钩子。"""
        await self.connection.reconnect()

    def start_heartbeat(self) -> None:
        """按配置启动后台心跳。配置关闭心跳时不做任何操作。"""
        if not self.config.heartbeat_enabled:
            logger.info("配置已禁用心跳，跳过")
            return
        if self.connection.state.is_terminal:
            raise StateError("无法启动心跳：连接已关闭")
        self.heartbeat_scheduler.start()

    async def stop_heartbeat(self) -> None:
        await self.heartbeat_scheduler.stop()

    async def close(self) -> None:
        """停止心跳并关闭连接。幂等。"""
        await self.heartbeat_scheduler.stop()
        await self.connection.close()

    async def __aenter__(self):
        await self.connect()
        self.start_heartbeat()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =========================================================================
    # 发送与分发
    # =========================================================================

    async def send_command(
        self,
        group: CommandGroup,
        command: Command,
        attributes: Mapping[str, Any] | None = None,
    ) -> Envelope:
        """发送一条命令并返回成功的响应信封。

        Raises:
            TransportError: 通信失败。
            CommandFailure: 设备返回 fail。
            ProtocolError: 响应无法解析。
        """
        grouped = GroupedCommand(group, command)
        attrs = AttributesBuilder().merge(attributes or {}).build()
        line = build_command(grouped, attrs)
        return parse_response(await self.connection.send_and_receive(line))

    async def run(self, operation: Callable[[], Awaitable[T]]) -> Outcome[T]:
        """通过分发层执行一次操作 (带重连重试)。

        用法: outcome = await core.run(lambda: core.set_volume(CommandGroup.PLAYER, "1", 20))
        """
        return await self.dispatcher.dispatch(operation)

    async def execute(
        self,
        group: CommandGroup,
        command: Command,
        attributes: Mapping[str, Any] | None = None,
    ) -> Outcome[Envelope]:
        return await self.run(lambda: self.send_command(group, command, attributes))

    # =========================================================================
    # system
    # =========================================================================

    async def heartbeat(self) -> Envelope:
        return await self.send_command(CommandGroup.SYSTEM, Command.HEART_BEAT)

    async def check_account(self) -> Envelope:
        return await self.send_command(CommandGroup.SYSTEM, Command.CHECK_ACCOUNT)

    async def sign_in(self, user_name: str, password: str) -> Envelope:
        attrs = {
            "un": _required("user_name", user_name),
            "pw": _required("password", password),
        }
        return await self.send_command(CommandGroup.SYSTEM, Command.SIGN_IN, attrs)

    async def sign_out(self) -> Envelope:
        return await self.send_command(CommandGroup.SYSTEM, Command.SIGN_OUT)

    async def reboot(self) -> Envelope:
        return await self.send_command(CommandGroup.SYSTEM, Command.REBOOT)

    # =========================================================================
    # player
    # =========================================================================

    async def get_players(self) -> Envelope:
        return await self.send_command(CommandGroup.PLAYER, Command.GET_PLAYERS)

    async def get_player_info(self, pid: str) -> Envelope:
        return await self._player(Command.GET_PLAYER_INFO, pid)

    async def get_play_state(self, pid: str) -> Envelope:
        return await self._player(Command.GET_PLAY_STATE, pid)

    async def set_play_state(self, pid: str, state: PlayState | str) -> Envelope:
        return await self._player(
            Command.SET_PLAY_STATE, pid, state=_enum(PlayState, "state", state)
        )

    async def get_now_playing_media(self, pid: str) -> Envelope:
        return await self._player(Command.GET_NOW_PLAYING_MEDIA, pid)

    async def get_play_mode(self, pid: str) -> Envelope:
        return await self._player(Command.GET_PLAY_MODE, pid)

    async def set_play_mode(
        self,
        pid: str,
        repeat: RepeatState | str | None = None,
        shuffle: ShuffleState | str | None = None,
    ) -> Envelope:
        if repeat is None and shuffle is None:
            raise ValidationError("repeat 与 shuffle 至少需要指定一个")
        extra: dict[str, Any] = {}
        if repeat is not None:
            extra["repeat"] = _enum(RepeatState, "repeat", repeat)
        if shuffle is not None:
            extra["shuffle"] = _enum(ShuffleState, "shuffle", shuffle)
        return await self._player(Command.SET_PLAY_MODE, pid, **extra)

    async def get_queue(
        self, pid: str, start: int | None = None, end: int | None = None
    ) -> Envelope:
        return await self._player(
            Command.GET_QUEUE, pid, **_range_attrs(start, end)
        )

    async def play_queue(self, pid: str, qid: str) -> Envelope:
        return await self._player(
            Command.PLAY_QUEUE, pid, qid=_required("qid", qid)
        )

    async def remove_from_queue(self, pid: str, qids: Iterable[str]) -> Envelope:
        qids = [_required("qid", q) for q in qids]
        if not qids:
            raise ValidationError("至少需要指定一个 qid")
        return await self._player(Command.REMOVE_FROM_QUEUE, pid, qid=",".join(qids))

    async def save_queue(self, pid: str, name: str) -> Envelope:
        return await self._player(
            Command.SAVE_QUEUE, pid, name=_required("name", name)
        )

    async def clear_queue(self, pid: str) -> Envelope:
        return await self._player(Command.CLEAR_QUEUE, pid)

    async def play_next(self, pid: str) -> Envelope:
        return await self._player(Command.PLAY_NEXT, pid)

    async def play_previous(self, pid: str) -> Envelope:
        return await self._player(Command.PLAY_PREVIOUS, pid)

    # =========================================================================
    # player / group 共用的音量与静音命令
    # =========================================================================

    async def get_volume(self, group: CommandGroup, target_id: str) -> Envelope:
        return await self._scoped(group, Command.GET_VOLUME, target_id)

    async def set_volume(
        self, group: CommandGroup, target_id: str, level: int
    ) -> Envelope:
        level = _bounded("level", level, Limits.VOLUME_MIN, Limits.VOLUME_MAX)
        return await self._scoped(group, Command.SET_VOLUME, target_id, level=level)

    async def volume_up(
        self,
        group: CommandGroup,
        target_id: str,
        step: int = Limits.DEFAULT_VOLUME_STEP,
    ) -> Envelope:
        step = _bounded("step", step, Limits.VOLUME_STEP_MIN, Limits.VOLUME_STEP_MAX)
        return await self._scoped(group, Command.VOLUME_UP, target_id, step=step)

    async def volume_down(
        self,
        group: CommandGroup,
        target_id: str,
        step: int = Limits.DEFAULT_VOLUME_STEP,
    ) -> Envelope:
        step = _bounded("step", step, Limits.VOLUME_STEP_MIN, Limits.VOLUME_STEP_MAX)
        return await self._scoped(group, Command.VOLUME_DOWN, target_id, step=step)

    async def get_mute(self, group: CommandGroup, target_id: str) -> Envelope:
        return await self._scoped(group, Command.GET_MUTE, target_id)

    async def set_mute(
        self, group: CommandGroup, target_id: str, state: MuteState | str
    ) -> Envelope:
        return await self._scoped(
            group, Command.SET_MUTE, target_id, state=_enum(MuteState, "state", state)
        )

    async def toggle_mute(self, group: CommandGroup, target_id: str) -> Envelope:
        return await self._scoped(group, Command.TOGGLE_MUTE, target_id)

    # =========================================================================
    # group
    # =========================================================================

    async def get_groups(self) -> Envelope:
        return await self.send_command(CommandGroup.GROUP, Command.GET_GROUPS)

    async def get_group_info(self, gid: str) -> Envelope:
        return await self.send_command(
            CommandGroup.GROUP, Command.GET_GROUP_INFO, {"gid": _required("gid", gid)}
        )

    async def set_group(self, leader_id: str, member_ids: Iterable[str]) -> Envelope:
        members = [_required("member_id", m) for m in member_ids]
        if not members:
            raise ValidationError("至少需要指定一个组成员")
        pids = ",".join([_required("leader_id", leader_id), *members])
        return await self.send_command(CommandGroup.GROUP, Command.SET_GROUP, {"pid": pids})

    async def delete_group(self, leader_id: str) -> Envelope:
        """只传入组长 pid 的 set_group 即解散该组。"""
        return await self.send_command(
            CommandGroup.GROUP,
            Command.SET_GROUP,
            {"pid": _required("leader_id", leader_id)},
        )

    # =========================================================================
    # browse
    # =========================================================================

    async def get_music_sources(self) -> Envelope:
        return await self.send_command(CommandGroup.BROWSE, Command.GET_MUSIC_SOURCES)

    async def get_music_source_info(self, sid: str) -> Envelope:
        return await self.send_command(
            CommandGroup.BROWSE,
            Command.GET_MUSIC_SOURCE_INFO,
            {"sid": _required("sid", sid)},
        )

    async def browse(
        self,
        sid: str,
        cid: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> Envelope:
        builder = AttributesBuilder().add("sid", _required("sid", sid))
        builder.add_if("cid", cid is not None, lambda: _required("cid", cid))
        builder.merge(_range_attrs(start, end))
        return await self.send_command(CommandGroup.BROWSE, Command.BROWSE, builder.build())

    async def get_search_criteria(self, sid: str) -> Envelope:
        return await self.send_command(
            CommandGroup.BROWSE,
            Command.GET_SEARCH_CRITERIA,
            {"sid": _required("sid", sid)},
        )

    async def search(
        self,
        sid: str,
        search: str,
        scid: int,
        start: int | None = None,
        end: int | None = None,
    ) -> Envelope:
        """在音乐源中搜索。scid 取自 get_search_criteria 的结果。"""
        attrs = {
            "sid": _required("sid", sid),
            "search": _required("search", search),
            "scid": _bounded("scid", scid, 0, 2**31 - 1),
            **_range_attrs(start, end),
        }
        return await self.send_command(CommandGroup.BROWSE, Command.SEARCH, attrs)

    async def play_stream(
        self, pid: str, sid: str, cid: str, mid: str, name: str
    ) -> Envelope:
        attrs = {
            "pid": _required("pid", pid),
            "sid": _required("sid", sid),
            "cid": _required("cid", cid),
            "mid": _required("mid", mid),
            "name": _required("name", name),
        }
        return await self.send_command(CommandGroup.BROWSE, Command.PLAY_STREAM, attrs)

    async def play_input(
        self,
        pid: str,
        input_name: str | None = None,
        mid: str | None = None,
        spid: str | None = None,
    ) -> Envelope:
        """切换到输入源，例如 input_name="inputs/aux_in_1"。

        spid 为提供该输入的源播放器，省略时使用 pid 自身的输入。
        """
        if input_name is None and mid is None:
            raise ValidationError("input 与 mid 至少需要指定一个")
        builder = AttributesBuilder().add("pid", _required("pid", pid))
        builder.add_if("spid", spid is not None, lambda: _required("spid", spid))
        builder.add_if("mid", mid is not None, lambda: _required("mid", mid))
        builder.add_if(
            "input", input_name is not None, lambda: _required("input", input_name)
        )
        return await self.send_command(
            CommandGroup.BROWSE, Command.PLAY_INPUT, builder.build()
        )

    async def add_to_queue(
        self,
        pid: str,
        sid: str,
        cid: str,
        aid: AddCriteria | int,
        mid: str | None = None,
    ) -> Envelope:
        """将容器 (或其中的单曲 mid) 加入播放队列。"""
        builder = AttributesBuilder()
        builder.add("pid", _required("pid", pid))
        builder.add("sid", _required("sid", sid))
        builder.add("cid", _required("cid", cid))
        builder.add_if("mid", mid is not None, lambda: _required("mid", mid))
        builder.add("aid", _enum(AddCriteria, "aid", aid).value)
        return await self.send_command(
            CommandGroup.BROWSE, Command.ADD_TO_QUEUE, builder.build()
        )

    async def rename_playlist(self, sid: str, cid: str, name: str) -> Envelope:
        attrs = {
            "sid": _required("sid", sid),
            "cid": _required("cid", cid),
            "name": _required("name", name),
        }
        return await self.send_command(
            CommandGroup.BROWSE, Command.RENAME_PLAYLIST, attrs
        )

    async def delete_playlist(self, sid: str, cid: str) -> Envelope:
        attrs = {"sid": _required("sid", sid), "cid": _required("cid", cid)}
        return await self.send_command(
            CommandGroup.BROWSE, Command.DELETE_PLAYLIST, attrs
        )

    async def retrieve_metadata(self, sid: str, cid: str) -> Envelope:
        attrs = {"sid": _required("sid", sid), "cid": _required("cid", cid)}
        return await self.send_command(
            CommandGroup.BROWSE, Command.RETRIEVE_METADATA, attrs
        )

    async def get_service_options(self) -> Envelope:
        return await self.send_command(
            CommandGroup.BROWSE, Command.GET_SERVICE_OPTIONS
        )

    async def set_service_option(
        self,
        option: int,
        attributes: Mapping[str, Any] | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> Envelope:
        """执行服务选项 (如收藏、点赞)。

        不同 option 需要的附加属性 (sid / pid / mid / name ...) 各不相同，
        由调用方通过 attributes 传入，原样附加在 option 之后。
        """
        builder = AttributesBuilder().add(
            "option", _bounded("option", option, 1, 2**31 - 1)
        )
        builder.merge(attributes or {})
        builder.merge(_range_attrs(start, end))
        return await self.send_command(
            CommandGroup.BROWSE, Command.SET_SERVICE_OPTION, builder.build()
        )

    # =========================================================================
    # 内部实现
    # =========================================================================

    async def _player(self, command: Command, pid: str, **extra: Any) -> Envelope:
        attrs = AttributesBuilder().add("pid", _required("pid", pid)).merge(extra)
        return await self.send_command(CommandGroup.PLAYER, command, attrs.build())

    async def _scoped(
        self, group: CommandGroup, command: Command, target_id: str, **extra: Any
    ) -> Envelope:
        """player 使用 pid，group 使用 gid。"""
        if group is CommandGroup.PLAYER:
            key = "pid"
        elif group is CommandGroup.GROUP:
            key = "gid"
        else:
            raise ValidationError(f"命令 {command.value} 只支持 player 或 group，收到 {group}")
        attrs = AttributesBuilder().add(key, _required(key, target_id)).merge(extra)
        return await self.send_command(group, command, attrs.build())


def _required(name: str, value: Any) -> str:
    """校验必填参数。空白只用于判空，返回值原样透传 (如密码中的空格)。"""
    if value is None or not str(value).strip():
        raise ValidationError(f"缺少参数 {name}")
    return str(value)


def _bounded(name: str, value: Any, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} 必须为整数，收到 {value!r}")
    if not low <= value <= high:
        raise ValidationError(f"{name} 应在 [{low}, {high}] 范围内，收到 {value}")
    return value


def _enum(enum_cls: type[E], name: str, value: Any) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise ValidationError(f"{name} 取值无效: {value!r} (可选: {allowed})") from None


def _range_attrs(start: int | None, end: int | None) -> dict[str, str]:
    """构建 range=<start>,<end> 属性；两者都未指定时不添加。"""
    if start is None and end is None:
        return {}
    if start is None or end is None:
        raise ValidationError("range 需要同时指定 start 与 end")
    for name, value in (("start", start), ("end", end)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"range {name} 必须为整数，收到 {value!r}")
    if start < 0:
        raise ValidationError(f"range 从 0 开始，收到 {start}")
    if end < start:
        raise ValidationError(f"range 结束位置不能小于起始位置: {start},{end}")
    return {"range": f"{start},{end}"}
