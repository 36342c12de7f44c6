"""
播放错误定义 - 经文播放序列器的错误分类

提供统一的错误分类：
- 资源加载错误（音频不可用、网络失败）
- 资源播放错误（播放引擎拒绝播放）
- 无效的范围命令（未选择章节时编辑范围）

加载和播放错误会自动重试一次，只有重试也失败时才上报，且永远不会终止进程。
"""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """错误分类枚举"""
    LOAD_ERROR = "load"          # 音频资源加载失败
    PLAY_ERROR = "play"          # 播放引擎拒绝播放
    COMMAND_ERROR = "command"    # 无效的用户命令


class PlaybackError(Exception):
    """播放错误基类"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        user_message: Optional[str] = None,
        recoverable: bool = True,
        **context
    ):
        """
        初始化播放错误

        Args:
            message: 错误消息
            category: 错误分类
            user_message: 用户友好的错误消息
            recoverable: 是否可恢复
            **context: 额外的上下文信息（章节、经文、朗诵者等）
        """
        super().__init__(message)
        self.category = category
        self.user_message = user_message or message
        self.recoverable = recoverable
        self.context = context


class ResourceLoadError(PlaybackError):
    """音频资源加载错误"""

    def __init__(self, message: str, user_message: str = None, **context):
        super().__init__(
            message,
            ErrorCategory.LOAD_ERROR,
            user_message or "无法加载经文音频，请检查网络连接后重试",
            recoverable=True,
            **context
        )


class ResourcePlayError(PlaybackError):
    """音频资源播放错误"""

    def __init__(self, message: str, user_message: str = None, **context):
        super().__init__(
            message,
            ErrorCategory.PLAY_ERROR,
            user_message or "无法播放经文音频",
            recoverable=True,
            **context
        )


class InvalidRangeCommand(PlaybackError):
    """
    无效的范围命令

    序列器不会抛出该错误，只会把它传给 command_ignored 事件处理器，
    命令本身作为无操作处理。
    """

    def __init__(self, message: str, user_message: str = None, **context):
        super().__init__(
            message,
            ErrorCategory.COMMAND_ERROR,
            user_message,
            recoverable=True,
            **context
        )
