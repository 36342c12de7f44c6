"""
核心模块 - 接口定义和错误分类

序列器和音频提供者之间只通过这里定义的接口交互。
"""

from .interfaces import SoundRequest, ISoundHandle, ISoundListener, ISoundProvider
from .errors import (
    ErrorCategory,
    PlaybackError,
    ResourceLoadError,
    ResourcePlayError,
    InvalidRangeCommand
)

__all__ = [
    "SoundRequest",
    "ISoundHandle",
    "ISoundListener",
    "ISoundProvider",
    "ErrorCategory",
    "PlaybackError",
    "ResourceLoadError",
    "ResourcePlayError",
    "InvalidRangeCommand"
]
