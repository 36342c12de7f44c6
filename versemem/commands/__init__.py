"""
命令模块 - 控制台命令

解析用户输入的文本命令并转交给播放序列器。
"""

from .console_commands import ConsoleCommand, ConsoleCommands

__all__ = [
    "ConsoleCommand",
    "ConsoleCommands"
]
