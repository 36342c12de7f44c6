"""
前进算法 - 一节经文播放结束后决定下一步

纯函数实现，不持有任何状态，由序列器在收到 playback-ended 事件时调用。
"""

from dataclasses import dataclass
from enum import Enum

from .state import RepeatPolicy, VerseRange


class AdvanceAction(Enum):
    """播放结束后的动作"""
    REPLAY = "replay"      # 重播当前经文
    ADVANCE = "advance"    # 前进到下一节
    WRAP = "wrap"          # 范围结束，回到起点
    STOP = "stop"          # 停止播放


@dataclass(frozen=True)
class AdvanceDecision:
    """前进决策结果"""
    action: AdvanceAction
    position: int
    repeat_progress: int


def decide_advance(
    verse_range: VerseRange,
    position: int,
    repeat_progress: int,
    policy: RepeatPolicy
) -> AdvanceDecision:
    """
    计算播放结束后的下一步

    单节模式：重复次数为0或尚未达到次数时重播，否则停止。
    范围模式：重复次数大于1且尚未达到次数时重播当前节；
    否则前进，到达终点时重复次数为0则回到起点，否则停止。

    Args:
        verse_range: 当前范围
        position: 当前位置
        repeat_progress: 当前经文已完成的播放次数
        policy: 重复策略

    Returns:
        前进决策
    """
    repeat = policy.repeat_count
    played = repeat_progress + 1

    if verse_range.is_single:
        if repeat == 0 or played < repeat:
            return AdvanceDecision(AdvanceAction.REPLAY, position, played)
        return AdvanceDecision(AdvanceAction.STOP, position, 0)

    if repeat > 1 and played < repeat:
        return AdvanceDecision(AdvanceAction.REPLAY, position, played)

    if position < verse_range.end:
        return AdvanceDecision(AdvanceAction.ADVANCE, position + 1, 0)

    if repeat == 0:
        return AdvanceDecision(AdvanceAction.WRAP, verse_range.start, 0)

    return AdvanceDecision(AdvanceAction.STOP, position, 0)
