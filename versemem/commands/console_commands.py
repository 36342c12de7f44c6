"""VerseMem 控制台命令。"""
import logging
import shlex
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from versemem.catalog import get_verse_count
from versemem.playback import PlaybackSequencer, PlaybackState


@dataclass
class ConsoleCommand:
    """控制台命令定义"""
    name: str
    callback: Callable[[List[str]], str]
    description: str
    aliases: List[str] = field(default_factory=list)
    usage: Optional[str] = None


class ConsoleCommands:
    """
    控制台命令处理器。

    解析用户输入的文本命令并转交给播放序列器，每条命令返回一条给用户看的消息。
    """

    STATE_LABELS = {
        PlaybackState.IDLE: "空闲",
        PlaybackState.LOADING: "加载中",
        PlaybackState.PLAYING: "播放中",
        PlaybackState.PAUSED: "已暂停",
        PlaybackState.STOPPED: "已停止",
    }

    def __init__(self, sequencer: PlaybackSequencer, reciters: Optional[Sequence[str]] = None):
        """
        初始化控制台命令。

        Args:
            sequencer: 播放序列器
            reciters: 可选的朗诵者列表，为None时不校验朗诵者名称
        """
        self.logger = logging.getLogger("versemem.commands.console")
        self.sequencer = sequencer
        self.reciters = list(reciters) if reciters is not None else None
        self.quit_requested = False

        self._commands: Dict[str, ConsoleCommand] = {}
        self._aliases: Dict[str, str] = {}
        self.register_commands()

    def register_command(self, command: ConsoleCommand) -> None:
        """
        注册命令及其别名

        Args:
            command: 命令定义
        """
        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command.name

    def register_commands(self) -> None:
        """注册全部控制台命令"""
        self.register_command(ConsoleCommand(
            name="chapter",
            aliases=["c"],
            callback=self._handle_chapter_command,
            description="选择章节（默认选中前5节）",
            usage="chapter 2"
        ))
        self.register_command(ConsoleCommand(
            name="range",
            aliases=["r"],
            callback=self._handle_range_command,
            description="设置经文范围",
            usage="range 1 7"
        ))
        self.register_command(ConsoleCommand(
            name="repeat",
            callback=self._handle_repeat_command,
            description="设置每节重复次数（0表示无限）",
            usage="repeat 3"
        ))
        self.register_command(ConsoleCommand(
            name="reciter",
            callback=self._handle_reciter_command,
            description="设置朗诵者",
            usage="reciter Mishary Alafasy"
        ))
        self.register_command(ConsoleCommand(
            name="play",
            aliases=["p", "pause"],
            callback=self._handle_play_command,
            description="播放/暂停"
        ))
        self.register_command(ConsoleCommand(
            name="stop",
            aliases=["s"],
            callback=self._handle_stop_command,
            description="停止播放"
        ))
        self.register_command(ConsoleCommand(
            name="next",
            aliases=["n"],
            callback=self._handle_next_command,
            description="下一节"
        ))
        self.register_command(ConsoleCommand(
            name="prev",
            aliases=["b", "previous"],
            callback=self._handle_prev_command,
            description="上一节"
        ))
        self.register_command(ConsoleCommand(
            name="goto",
            aliases=["g"],
            callback=self._handle_goto_command,
            description="跳转到范围内的经文",
            usage="goto 4"
        ))
        self.register_command(ConsoleCommand(
            name="status",
            aliases=["now"],
            callback=self._handle_status_command,
            description="显示播放状态"
        ))
        self.register_command(ConsoleCommand(
            name="help",
            aliases=["h", "?"],
            callback=self._handle_help_command,
            description="显示帮助"
        ))
        self.register_command(ConsoleCommand(
            name="quit",
            aliases=["q", "exit"],
            callback=self._handle_quit_command,
            description="退出"
        ))
        self.logger.debug(f"已注册 {len(self._commands)} 个控制台命令")

    def execute(self, line: str) -> str:
        """
        执行一行命令

        Args:
            line: 用户输入

        Returns:
            给用户看的消息
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            return f"❌ 无法解析命令: {e}"

        if not parts:
            return ""

        name = parts[0].lower()
        name = self._aliases.get(name, name)
        command = self._commands.get(name)
        if not command:
            return f"❌ 未知命令: {parts[0]}，输入 help 查看可用命令"

        try:
            return command.callback(parts[1:])
        except Exception as e:
            self.logger.error(f"Error in {name} command: {e}", exc_info=True)
            return f"❌ 执行 {name} 命令时出错"

    def _handle_chapter_command(self, args: List[str]) -> str:
        chapter = self._parse_int(args, 0)
        if chapter is None:
            return "❌ 用法: chapter <章节号>"

        try:
            verse_count = get_verse_count(chapter)
        except ValueError as e:
            return f"❌ {e}"

        self.sequencer.select_collection(chapter, verse_count)
        return f"📚 已选择第 {chapter} 章（共 {verse_count} 节），范围: {self.sequencer.range}"

    def _handle_range_command(self, args: List[str]) -> str:
        start = self._parse_int(args, 0)
        end = self._parse_int(args, 1)
        if start is None or end is None:
            return "❌ 用法: range <起始经文> <结束经文>"
        if not self.sequencer.has_collection:
            return "❌ 请先选择章节"
        if start > end:
            return "❌ 起始经文不能大于结束经文"

        self.sequencer.set_range(start, end)
        return f"📖 经文范围: {self.sequencer.range}，当前经文: {self.sequencer.position}"

    def _handle_repeat_command(self, args: List[str]) -> str:
        repeat_count = self._parse_int(args, 0)
        if repeat_count is None or repeat_count < 0:
            return "❌ 用法: repeat <次数>（0表示无限）"

        self.sequencer.set_repeat_policy(repeat_count)
        label = "无限" if repeat_count == 0 else f"{repeat_count} 次"
        return f"🔁 重复次数: {label}"

    def _handle_reciter_command(self, args: List[str]) -> str:
        if not args:
            available = f"，可选: {', '.join(self.reciters)}" if self.reciters else ""
            return f"🎙️ 当前朗诵者: {self.sequencer.voice}{available}"

        reciter = " ".join(args)
        if self.reciters is not None and reciter not in self.reciters:
            return f"❌ 未知朗诵者: {reciter}，可选: {', '.join(self.reciters)}"

        self.sequencer.set_voice(reciter)
        return f"🎙️ 朗诵者: {reciter}（下一节生效）"

    def _handle_play_command(self, args: List[str]) -> str:
        if not self.sequencer.has_collection:
            return "❌ 请先选择章节"

        self.sequencer.play_pause()
        if self.sequencer.state == PlaybackState.PAUSED:
            return f"⏸️ 已暂停 - 经文 {self.sequencer.position}"
        return f"▶️ 开始播放 - 经文 {self.sequencer.position}"

    def _handle_stop_command(self, args: List[str]) -> str:
        self.sequencer.stop()
        return "⏹️ 播放已停止"

    def _handle_next_command(self, args: List[str]) -> str:
        return self._skip(self.sequencer.skip_next, "已经是范围内最后一节")

    def _handle_prev_command(self, args: List[str]) -> str:
        return self._skip(self.sequencer.skip_previous, "已经是范围内第一节")

    def _skip(self, action: Callable[[], None], boundary_message: str) -> str:
        if not self.sequencer.has_collection:
            return "❌ 请先选择章节"

        before = self.sequencer.position
        action()
        if self.sequencer.position == before:
            return f"ℹ️ {boundary_message}"
        return f"⏭️ 正在播放经文 {self.sequencer.position}"

    def _handle_goto_command(self, args: List[str]) -> str:
        verse = self._parse_int(args, 0)
        if verse is None:
            return "❌ 用法: goto <经文>"
        if not self.sequencer.has_collection:
            return "❌ 请先选择章节"

        self.sequencer.select_item(verse)
        return f"📖 当前经文: {self.sequencer.position}"

    def _handle_status_command(self, args: List[str]) -> str:
        status = self.sequencer.get_status()
        if status["collection_id"] is None:
            return "ℹ️ 尚未选择章节"

        repeat = "无限" if status["repeat_count"] == 0 else str(status["repeat_count"])
        lines = [
            f"状态: {self.STATE_LABELS[self.sequencer.state]}",
            f"章节: {status['collection_id']}（共 {status['item_count']} 节）",
            f"范围: {status['range'][0]}-{status['range'][1]}，当前经文: {status['position']}",
            f"重复: {repeat}（当前已播放 {status['repeat_progress']} 次）",
            f"朗诵者: {status['voice']}",
        ]
        if status["last_error"]:
            lines.append(f"最近错误: {status['last_error']}")
        return "\n".join(lines)

    def _handle_help_command(self, args: List[str]) -> str:
        lines = ["可用命令:"]
        for command in self._commands.values():
            names = "/".join([command.name] + command.aliases)
            usage = f"  例: {command.usage}" if command.usage else ""
            lines.append(f"  {names} - {command.description}{usage}")
        return "\n".join(lines)

    def _handle_quit_command(self, args: List[str]) -> str:
        self.quit_requested = True
        return "👋 再见！"

    @staticmethod
    def _parse_int(args: List[str], index: int) -> Optional[int]:
        if len(args) <= index:
            return None
        try:
            return int(args[index])
        except ValueError:
            return None
