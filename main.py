#!/usr/bin/env python3
"""
VerseMem 经文背诵播放器 - 在选定的经文范围内重复播放朗诵音频

主程序入口点，负责配置加载、日志设置、应用初始化和优雅的启动/关闭处理。
"""
import asyncio
import logging

from versemem.app import VerseMemApp
from versemem.utils.config_manager import ConfigManager
from versemem.utils.logger import setup_logger


def main() -> int:
    """
    VerseMem 主入口函数。

    处理应用的完整生命周期，包括：
    - 配置加载
    - 日志系统设置
    - 应用初始化
    - 控制台命令循环和退出清理

    Returns:
        int: 退出代码（0表示成功，1表示错误）
    """
    try:
        # Load configuration first to get logging settings
        config = ConfigManager()
    except FileNotFoundError as e:
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger("versemem").error(f"❌ 配置文件错误: {e}")
        logging.getLogger("versemem").error("请复制 config/config.yaml.example 为 config/config.yaml")
        return 1

    setup_logger(
        log_level=config.get_log_level(),
        log_file=config.get_log_file(),
        max_size=config.get_log_max_size(),
        backup_count=config.get_log_backup_count()
    )
    logger = logging.getLogger("versemem")

    logger.info("=" * 60)
    logger.info("🎵 VerseMem 经文背诵播放器启动中...")
    logger.info("=" * 60)
    logger.info("✅ 配置文件加载成功")
    logger.debug(f"日志配置完成 - 级别: {config.get_log_level()}, 文件: {config.get_log_file()}")

    try:
        app = VerseMemApp(config)
        _log_app_configuration(logger, config, app)

        logger.info("按 Ctrl+C 或输入 quit 退出")
        asyncio.run(app.run())

    except KeyboardInterrupt:
        logger.info("🛑 用户停止了播放器 (Ctrl+C)")
        logger.info("再见！")
        return 0
    except Exception as e:
        logger.error(f"❌ 运行播放器时发生意外错误: {e}", exc_info=True)
        logger.error("请检查上面的日志以获取更多详细信息")
        return 1

    return 0


def _log_app_configuration(logger: logging.Logger, config: ConfigManager, app: VerseMemApp) -> None:
    """
    记录应用配置摘要，用于调试。

    Args:
        logger: 日志记录器实例
        config: 配置管理器
        app: VerseMemApp 实例
    """
    repeat = config.get_default_repeat()
    logger.info("📋 配置摘要:")
    logger.info(f"   默认朗诵者: {config.get_default_reciter()}")
    logger.info(f"   可用朗诵者: {', '.join(sorted(app.provider.base_urls))}")
    logger.info(f"   默认重复次数: {'无限' if repeat == 0 else repeat}")
    logger.info(f"   默认范围大小: {config.get_default_range_size()}")
    logger.info(f"   重试延迟: {config.get_retry_delay()} 秒")
    logger.info(f"   播放器命令: {' '.join(config.get_player_command())}")
    logger.info(f"   临时文件目录: {config.get_audio_temp_dir()}")
    logger.info("=" * 60)


if __name__ == "__main__":
    exit(main())
