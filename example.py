# example.py
"""
这是一个 HeosCore API 的最小示例。

它演示了如何将 heos-core 作为一个库导入到你自己的项目中：
连接设备 -> 后台心跳 -> 查询播放器 -> 调节音量 -> 关闭。

运行此示例：
1. 在根目录创建 config.toml ([heos] 节) 或 .env 文件 (HEOS_HOST=...)。
2. 安装： pip install -e .
3. 从项目根目录运行： python example.py
"""

import asyncio
import logging
import sys
from pathlib import Path

from heos_core import (
    CommandGroup,
    ConfigError,
    HeosCore,
    __version__,
    load_config_from_env,
    load_config_from_toml,
)

# 日志配置
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("HeosExample")

PROJECT_ROOT = Path(__file__).resolve().parent


def load_config():
    config_path = PROJECT_ROOT / "config.toml"
    if config_path.exists():
        logger.info(f"发现配置文件: {config_path}")
        return load_config_from_toml(config_path)

    env_path = PROJECT_ROOT / ".env"
    return load_config_from_env(env_path if env_path.exists() else None)


async def main() -> None:
    logger.info(f"启动 HEOS-Core v{__version__} 示例...")

    try:
        config = load_config()
    except ConfigError as e:
        logger.critical(f"配置加载失败: {e}")
        sys.exit(1)

    async with HeosCore(config) as core:
        outcome = await core.run(core.get_players)
        if not outcome.ok:
            logger.error(f"获取播放器失败 [{outcome.status}]: {outcome.reason}")
            return

        players = outcome.value.payload or []
        for player in players:
            logger.info(f"播放器: {player.get('name')} (pid={player.get('pid')})")

        if players:
            pid = str(players[0]["pid"])
            outcome = await core.run(
                lambda: core.volume_up(CommandGroup.PLAYER, pid, step=2)
            )
            logger.info(f"调高音量: {outcome.status} {outcome.reason}")

        # 保持在线一段时间，观察心跳日志
        await asyncio.sleep(65)

    logger.info("HEOS 客户端 (示例) 已停止。")


# 程序入口
if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("收到用户中断信号 (Ctrl+C)，退出。")
