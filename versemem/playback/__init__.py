"""
播放模块 - 经文播放序列器

该模块负责在选定的经文范围内驱动播放，包括重复策略、自动前进和失败重试。
遵循单一职责原则，专注于播放顺序相关的业务逻辑。
"""

from .state import PlaybackState, VerseRange, RepeatPolicy
from .advance import AdvanceAction, AdvanceDecision, decide_advance
from .retry_scheduler import RetryScheduler
from .sequencer import PlaybackSequencer

__all__ = [
    "PlaybackState",
    "VerseRange",
    "RepeatPolicy",
    "AdvanceAction",
    "AdvanceDecision",
    "decide_advance",
    "RetryScheduler",
    "PlaybackSequencer"
]
