"""VerseMem 控制台应用 - 组装提供者、播放序列器和控制台命令"""
import asyncio
import logging
import sys
from typing import Callable, Optional

from versemem.commands.console_commands import ConsoleCommands
from versemem.core.errors import PlaybackError
from versemem.playback import PlaybackSequencer, PlaybackState, VerseRange
from versemem.provider import EveryAyahProvider
from versemem.utils.config_manager import ConfigManager


class VerseMemApp:
    """
    VerseMem 经文背诵播放器应用。

    - 从 EveryAyah 下载经文音频并通过外部播放器播放
    - 在选定范围内按重复次数自动重播和前进
    - 通过控制台命令控制播放
    """

    def __init__(
        self,
        config: ConfigManager,
        provider: Optional[EveryAyahProvider] = None,
        output: Callable[[str], None] = print
    ):
        """
        初始化应用

        Args:
            config: 配置管理器
            provider: 音频提供者，为None时创建 EveryAyah 提供者
            output: 输出消息的函数
        """
        self.logger = logging.getLogger("versemem.app")
        self.config = config
        self.output = output

        self.provider = provider or EveryAyahProvider(config)
        self.sequencer = PlaybackSequencer(self.provider, config)
        self.commands = ConsoleCommands(self.sequencer, reciters=sorted(self.provider.base_urls))

        self._register_sequencer_events()
        self._closed = False

        self.logger.info("🎵 VerseMem 初始化成功")

    def _register_sequencer_events(self) -> None:
        """将控制台输出注册到序列器事件"""
        event_mappings = {
            "range_completed": self._on_range_completed,
            "position_changed": self._on_position_changed,
            "playback_error": self._on_playback_error,
            "command_ignored": self._on_command_ignored,
        }
        for event_type, handler in event_mappings.items():
            self.sequencer.add_event_handler(event_type, handler)
            self.logger.debug(f"📝 注册事件处理器: {event_type}")

    def _on_range_completed(self, sequencer: PlaybackSequencer, verse_range: VerseRange) -> None:
        self.output(f"✅ 经文 {verse_range} 播放结束")

    def _on_position_changed(self, sequencer: PlaybackSequencer, position: int) -> None:
        if sequencer.is_playing or sequencer.state == PlaybackState.LOADING:
            self.output(f"📖 {sequencer.collection_id}:{position}")

    def _on_playback_error(self, sequencer: PlaybackSequencer, error: PlaybackError) -> None:
        self.output(f"❌ {error.user_message}")

    def _on_command_ignored(self, sequencer: PlaybackSequencer, command: str, error: PlaybackError) -> None:
        self.output(f"⚠️ {error.user_message}")

    def handle_line(self, line: str) -> bool:
        """
        处理一行用户输入

        Args:
            line: 用户输入

        Returns:
            是否继续运行
        """
        message = self.commands.execute(line)
        if message:
            self.output(message)
        return not self.commands.quit_requested

    async def run(self) -> None:
        """从标准输入读取命令，直到用户退出或输入结束"""
        loop = asyncio.get_running_loop()
        self.output("🎵 VerseMem 已就绪，输入 help 查看可用命令")

        try:
            while True:
                line = await loop.run_in_executor(None, sys.stdin.readline)
                if not line:
                    self.logger.debug("标准输入已结束")
                    break
                if not self.handle_line(line.strip()):
                    break
        finally:
            await self.close()

    async def close(self) -> None:
        """停止播放并清理资源"""
        if self._closed:
            return
        self._closed = True

        try:
            self.logger.info("🛑 正在关闭 VerseMem...")
            self.sequencer.close()
            self.provider.close()
            self.logger.info("✅ VerseMem 关闭成功")
        except Exception as e:
            self.logger.error(f"关闭过程中发生错误: {e}", exc_info=True)

    def get_stats(self) -> dict:
        """
        获取运行状态

        Returns:
            状态字典
        """
        return {
            "provider": self.provider.name,
            "reciters": sorted(self.provider.base_urls),
            "sequencer": self.sequencer.get_status(),
        }
