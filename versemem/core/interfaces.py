"""
核心接口定义 - 定义序列器与音频提供者之间的抽象接口

提供依赖倒置的基础，序列器只依赖这些接口，不依赖具体的下载或播放实现。
遵循单一职责原则，每个接口只定义一个明确的职责。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Hashable


@dataclass(frozen=True)
class SoundRequest:
    """音频请求数据类 - (章节, 经文, 朗诵者) 三元组"""
    collection_id: int
    item_id: int
    voice: Hashable

    def describe(self) -> str:
        """
        获取用于日志的描述

        Returns:
            形如 "2:255 (Mishary Alafasy)" 的字符串
        """
        return f"{self.collection_id}:{self.item_id} ({self.voice})"


class ISoundHandle(ABC):
    """音频句柄接口 - 单个可播放的音频资源"""

    @property
    @abstractmethod
    def request(self) -> SoundRequest:
        """该句柄对应的音频请求"""
        pass

    @abstractmethod
    def play(self) -> None:
        """开始或恢复播放，失败通过 on_play_failed 报告"""
        pass

    @abstractmethod
    def pause(self) -> None:
        """暂停播放"""
        pass

    @abstractmethod
    def stop(self) -> None:
        """停止播放"""
        pass

    @abstractmethod
    def release(self) -> None:
        """释放资源，释放后不会再触发任何回调"""
        pass


class ISoundListener(ABC):
    """音频事件监听器接口 - 接收提供者的异步事件"""

    @abstractmethod
    def on_loaded(self, handle: ISoundHandle) -> None:
        """音频加载完成"""
        pass

    @abstractmethod
    def on_load_failed(self, handle: ISoundHandle, error: Exception) -> None:
        """音频加载失败"""
        pass

    @abstractmethod
    def on_playback_ended(self, handle: ISoundHandle) -> None:
        """音频播放自然结束"""
        pass

    @abstractmethod
    def on_play_failed(self, handle: ISoundHandle, error: Exception) -> None:
        """播放引擎拒绝播放"""
        pass


class ISoundProvider(ABC):
    """音频提供者接口 - 根据请求创建音频句柄"""

    @abstractmethod
    def acquire(self, request: SoundRequest, listener: ISoundListener) -> ISoundHandle:
        """
        获取音频句柄

        立即返回，之后异步地触发 on_loaded 或 on_load_failed 中的恰好一个。

        Args:
            request: 音频请求
            listener: 事件监听器

        Returns:
            音频句柄
        """
        pass

    def close(self) -> Any:
        """关闭提供者并释放共享资源（默认无操作）"""
        return None
