"""
播放状态模型 - 序列器的状态、范围和重复策略

这些类型只描述数据，所有修改都必须通过 PlaybackSequencer 的公开操作完成。
"""

from dataclasses import dataclass
from enum import Enum


class PlaybackState(Enum):
    """序列器播放状态"""
    IDLE = "idle"          # 没有活动的音频句柄
    LOADING = "loading"    # 正在获取当前经文的音频
    PLAYING = "playing"    # 正在播放
    PAUSED = "paused"      # 已暂停，保留当前位置
    STOPPED = "stopped"    # 已停止，音频句柄已释放


@dataclass(frozen=True)
class VerseRange:
    """
    经文范围数据类

    1起始的闭区间，要求 start <= end。
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"范围起点必须大于等于1: {self.start}")
        if self.start > self.end:
            raise ValueError(f"范围起点不能大于终点: {self.start}-{self.end}")

    @property
    def is_single(self) -> bool:
        """是否为单节经文模式"""
        return self.start == self.end

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __contains__(self, index: int) -> bool:
        return self.start <= index <= self.end

    def clamp(self, index: int) -> int:
        """
        把位置限制在范围内

        Args:
            index: 经文序号

        Returns:
            限制后的经文序号
        """
        return max(self.start, min(index, self.end))

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class RepeatPolicy:
    """
    重复策略

    repeat_count 的含义：
    - 0: 无限重复（单节模式下循环该节，范围模式下循环整个范围）
    - 1: 每节播放一次
    - N>1: 每节播放N次后前进
    """
    repeat_count: int = 0

    def __post_init__(self):
        if self.repeat_count < 0:
            raise ValueError(f"重复次数不能为负数: {self.repeat_count}")

    @property
    def is_unbounded(self) -> bool:
        """是否永不自动结束"""
        return self.repeat_count == 0

    def per_item_repeat(self, single_item: bool) -> int:
        """
        每节经文的播放次数（0表示无限）

        范围模式下 0 和 1 都是每节播放一次。

        Args:
            single_item: 当前是否为单节模式

        Returns:
            每节经文的播放次数
        """
        if single_item:
            return self.repeat_count
        return self.repeat_count if self.repeat_count > 1 else 1

    def loops_range(self, single_item: bool) -> bool:
        """
        范围播放完毕后是否回到起点

        Args:
            single_item: 当前是否为单节模式

        Returns:
            范围模式且重复次数为0时返回True
        """
        return not single_item and self.repeat_count == 0
