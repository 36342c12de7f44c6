"""
音频提供者模块 - 根据 (章节, 经文, 朗诵者) 获取可播放的音频

该模块负责下载经文音频并创建音频句柄，句柄通过监听器异步报告加载和播放事件。
"""

from .base import BaseSoundProvider
from .sound_handle import ProcessSoundHandle
from .everyayah_provider import EveryAyahProvider, AUDIO_BASE_URLS, DEFAULT_RECITER, get_audio_url

__all__ = [
    "BaseSoundProvider",
    "ProcessSoundHandle",
    "EveryAyahProvider",
    "AUDIO_BASE_URLS",
    "DEFAULT_RECITER",
    "get_audio_url"
]
