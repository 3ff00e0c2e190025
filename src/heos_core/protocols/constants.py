# src/heos_core/protocols/constants.py
"""
HEOS 协议层 - 常量定义

本模块定义了所有协议相关的固定值与命令名枚举。
命令组、命令名与取值均直接对应 HEOS CLI 协议文档中的字符串。
"""

from enum import Enum, IntEnum

# =========================================================================
# 1. 传输层常量
# =========================================================================

SCHEME = "heos"
DEFAULT_PORT = 1255
COMMAND_DELIMITER = "\r\n"
ENCODING = "utf-8"


# =========================================================================
# 2. 命令组与命令名
# =========================================================================


class CommandGroup(str, Enum):
    """命令组 (URL 中的第一段)"""

    SYSTEM = "system"
    PLAYER = "player"
    GROUP = "group"
    BROWSE = "browse"

    def __str__(self) -> str:
        return self.value


class Command(str, Enum):
    """命令名 (URL 中的第二段)"""

    HEART_BEAT = "heart_beat"
    CHECK_ACCOUNT = "check_account"
    SIGN_IN = "sign_in"
    SIGN_OUT = "sign_out"
    REBOOT = "reboot"
    GET_PLAYERS = "get_players"
    GET_PLAYER_INFO = "get_player_info"
    GET_PLAY_STATE = "get_play_state"
    SET_PLAY_STATE = "set_play_state"
    GET_NOW_PLAYING_MEDIA = "get_now_playing_media"
    GET_VOLUME = "get_volume"
    SET_VOLUME = "set_volume"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    GET_MUTE = "get_mute"
    SET_MUTE = "set_mute"
    TOGGLE_MUTE = "toggle_mute"
    GET_PLAY_MODE = "get_play_mode"
    SET_PLAY_MODE = "set_play_mode"
    GET_QUEUE = "get_queue"
    PLAY_QUEUE = "play_queue"
    REMOVE_FROM_QUEUE = "remove_from_queue"
    SAVE_QUEUE = "save_queue"
    CLEAR_QUEUE = "clear_queue"
    PLAY_NEXT = "play_next"
    PLAY_PREVIOUS = "play_previous"
    GET_GROUPS = "get_groups"
    GET_GROUP_INFO = "get_group_info"
    SET_GROUP = "set_group"
    GET_MUSIC_SOURCES = "get_music_sources"
    GET_MUSIC_SOURCE_INFO = "get_source_info"
    BROWSE = "browse"
    GET_SEARCH_CRITERIA = "get_search_criteria"
    SEARCH = "search"
    PLAY_STREAM = "play_stream"
    PLAY_INPUT = "play_input"
    ADD_TO_QUEUE = "add_to_queue"
    RENAME_PLAYLIST = "rename_playlist"
    DELETE_PLAYLIST = "delete_playlist"
    RETRIEVE_METADATA = "retrieve_metadata"
    GET_SERVICE_OPTIONS = "get_service_options"
    SET_SERVICE_OPTION = "set_service_option"

    def __str__(self) -> str:
        return self.value


# =========================================================================
# 3. 命令参数取值
# =========================================================================


class _Value(str, Enum):
    def __str__(self) -> str:
        return self.value


class PlayState(_Value):
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"


class MuteState(_Value):
    ON = "on"
    OFF = "off"


class RepeatState(_Value):
    ON_ALL = "on_all"
    ON_ONE = "on_one"
    OFF = "off"


class ShuffleState(_Value):
    ON = "on"
    OFF = "off"


class AddCriteria(IntEnum):
    """add_to_queue 的 aid 取值"""

    PLAY_NOW = 1
    PLAY_NEXT = 2
    ADD_TO_END = 3
    REPLACE_AND_PLAY = 4


# =========================================================================
# 4. 参数范围
# =========================================================================


class Limits:
    VOLUME_MIN = 0
    VOLUME_MAX = 100
    VOLUME_STEP_MIN = 1
    VOLUME_STEP_MAX = 10
    DEFAULT_VOLUME_STEP = 5
