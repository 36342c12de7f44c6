"""
重试调度器 - 可取消的延迟重试任务

替代"发出即忘"的定时器：同一时间最多只有一个待执行的重试，
停止或切换范围时可以整体取消。
"""

import asyncio
import logging
from typing import Callable, Optional


class RetryScheduler:
    """
    重试调度器

    基于事件循环的 call_later 实现，持有唯一的待执行重试句柄。
    """

    def __init__(self, delay: float = 1.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        初始化重试调度器

        Args:
            delay: 重试延迟（秒）
            loop: 事件循环，为None时在调度时获取正在运行的事件循环
        """
        self.delay = delay
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._label: Optional[str] = None
        self.logger = logging.getLogger("versemem.playback.retry")

    @property
    def pending(self) -> bool:
        """是否有待执行的重试"""
        return self._handle is not None

    @property
    def pending_label(self) -> Optional[str]:
        """待执行重试的描述"""
        return self._label

    def schedule(self, callback: Callable[[], None], label: str = "retry") -> None:
        """
        调度一次重试，替换已有的待执行重试

        Args:
            callback: 重试回调
            label: 用于日志的描述
        """
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()

        def fire():
            self._handle = None
            self._label = None
            self.logger.debug(f"⏰ 执行重试: {label}")
            callback()

        self._handle = loop.call_later(self.delay, fire)
        self._label = label
        self.logger.debug(f"⏳ 已调度重试: {label} ({self.delay}s 后)")

    def cancel(self) -> bool:
        """
        取消待执行的重试

        Returns:
            如果确实取消了一个重试则返回True
        """
        if self._handle is None:
            return False

        self._handle.cancel()
        self.logger.debug(f"🚫 取消重试: {self._label}")
        self._handle = None
        self._label = None
        return True
