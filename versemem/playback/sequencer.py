"""
播放序列器 - 经文播放的核心状态机

负责在用户选择的经文范围内驱动音频播放：
- 播放结束后根据重复策略自动重播、前进或循环
- 加载/播放失败时自动重试一次
- 范围或位置在播放过程中被修改时保持一致

所有用户命令和音频提供者的回调都通过同一个串行分发器执行，
任何两个状态转换都不会交错。
"""

import asyncio
import inspect
import logging
from collections import deque
from functools import partial
from typing import Any, Callable, Deque, Dict, Hashable, List, Optional, Tuple

from versemem.core.errors import (
    InvalidRangeCommand,
    PlaybackError,
    ResourceLoadError,
    ResourcePlayError
)
from versemem.core.interfaces import ISoundHandle, ISoundListener, ISoundProvider, SoundRequest
from .advance import AdvanceAction, decide_advance
from .retry_scheduler import RetryScheduler
from .state import PlaybackState, RepeatPolicy, VerseRange


class _GenerationListener(ISoundListener):
    """
    带代号的事件监听器

    每次获取音频都会创建一个新的监听器，回调时带上创建时的代号，
    序列器据此丢弃已释放句柄的过期回调。
    """

    def __init__(self, sequencer: "PlaybackSequencer", generation: int):
        self._sequencer = sequencer
        self.generation = generation

    def on_loaded(self, handle: ISoundHandle) -> None:
        self._sequencer._dispatch(self._sequencer._on_loaded, self.generation, handle)

    def on_load_failed(self, handle: ISoundHandle, error: Exception) -> None:
        self._sequencer._dispatch(self._sequencer._on_load_failed, self.generation, handle, error)

    def on_playback_ended(self, handle: ISoundHandle) -> None:
        self._sequencer._dispatch(self._sequencer._on_playback_ended, self.generation, handle)

    def on_play_failed(self, handle: ISoundHandle, error: Exception) -> None:
        self._sequencer._dispatch(self._sequencer._on_play_failed, self.generation, handle, error)


class PlaybackSequencer:
    """
    播放序列器实现

    独占当前范围、位置、重复进度和活动的音频句柄。
    外部组件只能读取这些状态，修改必须通过公开操作完成。
    """

    EVENT_TYPES = (
        "state_changed",      # 播放状态变化
        "position_changed",   # 当前经文变化
        "playback_error",     # 重试后仍然失败的错误
        "command_ignored",    # 被忽略的无效命令
        "range_completed",    # 范围按重复策略播放完毕
    )

    def __init__(
        self,
        provider: ISoundProvider,
        config=None,
        voice: Optional[Hashable] = None,
        retry_delay: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """
        初始化播放序列器

        Args:
            provider: 音频提供者
            config: 配置管理器
            voice: 初始朗诵者，为None时使用配置中的默认朗诵者
            retry_delay: 重试延迟（秒），为None时使用配置值
            loop: 事件循环，为None时使用正在运行的事件循环
        """
        self.provider = provider
        self.config = config
        self.logger = logging.getLogger("versemem.playback.sequencer")

        if retry_delay is None:
            retry_delay = config.get_retry_delay() if config else 1.0
        self.default_range_size = config.get_default_range_size() if config else 5
        self.retry_scheduler = RetryScheduler(retry_delay, loop)

        if voice is None and config:
            voice = config.get_default_reciter()
        self._voice = voice
        self._policy = RepeatPolicy(config.get_default_repeat() if config else 0)

        # 章节和范围
        self._collection_id: Optional[int] = None
        self._item_count = 0
        self._range: Optional[VerseRange] = None
        self._position = 0
        self._repeat_progress = 0

        # 活动的音频句柄
        self._state = PlaybackState.IDLE
        self._handle: Optional[ISoundHandle] = None
        self._request: Optional[SoundRequest] = None
        self._generation = 0
        self._live_generation: Optional[int] = None
        self._load_retried = False
        self._play_retried = False
        self._last_error: Optional[PlaybackError] = None

        # 串行分发
        self._pending: Deque[Tuple[Callable[..., None], tuple]] = deque()
        self._dispatching = False

        self._event_handlers: Dict[str, List[Callable]] = {event: [] for event in self.EVENT_TYPES}

        self.logger.info(f"🎵 播放序列器初始化完成 - 朗诵者: {self._voice}, 重试延迟: {retry_delay}s")

    # 只读状态

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def position(self) -> int:
        return self._position

    @property
    def range(self) -> Optional[VerseRange]:
        return self._range

    @property
    def repeat_count(self) -> int:
        return self._policy.repeat_count

    @property
    def repeat_policy(self) -> RepeatPolicy:
        return self._policy

    @property
    def repeat_progress(self) -> int:
        return self._repeat_progress

    @property
    def voice(self) -> Optional[Hashable]:
        return self._voice

    @property
    def collection_id(self) -> Optional[int]:
        return self._collection_id

    @property
    def item_count(self) -> int:
        return self._item_count

    @property
    def has_collection(self) -> bool:
        return self._collection_id is not None

    @property
    def is_playing(self) -> bool:
        return self._state == PlaybackState.PLAYING

    @property
    def generation(self) -> int:
        """最近一次获取音频时分配的代号"""
        return self._generation

    @property
    def last_error(self) -> Optional[PlaybackError]:
        """最近一次上报的错误"""
        return self._last_error

    def get_status(self) -> Dict[str, Any]:
        """
        获取序列器状态摘要

        Returns:
            状态信息字典
        """
        return {
            "state": self._state.value,
            "collection_id": self._collection_id,
            "item_count": self._item_count,
            "range": (self._range.start, self._range.end) if self._range else None,
            "position": self._position,
            "repeat_count": self._policy.repeat_count,
            "repeat_progress": self._repeat_progress,
            "voice": self._voice,
            "retry_pending": self.retry_scheduler.pending,
            "last_error": str(self._last_error) if self._last_error else None
        }

    # 事件处理器

    def add_event_handler(self, event_type: str, handler: Callable) -> None:
        """
        添加序列器事件处理器

        Args:
            event_type: 事件类型
            handler: 事件处理函数，可以是普通函数或协程函数
        """
        if event_type in self._event_handlers:
            self._event_handlers[event_type].append(handler)
            self.logger.debug(f"添加事件处理器: {event_type}")
        else:
            self.logger.warning(f"未知事件类型: {event_type}")

    def _trigger_event(self, event_type: str, **kwargs) -> None:
        """
        触发序列器事件

        Args:
            event_type: 事件类型
            **kwargs: 事件关键字参数
        """
        kwargs['sequencer'] = self
        for handler in list(self._event_handlers.get(event_type, [])):
            try:
                result = handler(**kwargs)
                if inspect.isawaitable(result):
                    asyncio.ensure_future(result)
            except Exception as e:
                self.logger.error(f"事件处理器 {getattr(handler, '__name__', handler)} 处理 {event_type} 时出错: {e}")

    # 公开操作

    def play_pause(self) -> None:
        """播放/暂停切换：播放中则暂停，否则从当前位置重新获取音频并播放"""
        self._dispatch(self._do_play_pause)

    def stop(self) -> None:
        """停止播放并释放音频"""
        self._dispatch(self._do_stop)

    def skip_previous(self) -> None:
        """跳到上一节并立即播放"""
        self._dispatch(self._do_skip, -1)

    def skip_next(self) -> None:
        """跳到下一节并立即播放"""
        self._dispatch(self._do_skip, 1)

    def set_range(self, start: int, end: int) -> None:
        """
        原子地替换经文范围

        先停止并释放当前音频，然后设置范围，位置回到起点。不会自动恢复播放。

        Args:
            start: 起始经文
            end: 结束经文
        """
        self._dispatch(self._do_set_range, start, end)

    def set_repeat_policy(self, repeat_count: int) -> None:
        """
        设置重复次数，不影响正在进行的播放和计数

        Args:
            repeat_count: 重复次数（0表示无限）

        Raises:
            ValueError: 重复次数为负数
        """
        policy = RepeatPolicy(repeat_count)
        self._dispatch(self._do_set_repeat_policy, policy)

    def select_collection(self, collection_id: int, item_count: int) -> None:
        """
        选择章节，重置范围、位置和重复进度

        Args:
            collection_id: 章节ID
            item_count: 章节内经文数量

        Raises:
            ValueError: 经文数量小于1
        """
        if item_count < 1:
            raise ValueError(f"章节 {collection_id} 的经文数量无效: {item_count}")
        self._dispatch(self._do_select_collection, collection_id, item_count)

    def select_item(self, index: int) -> None:
        """
        直接选择范围内的一节经文（超出范围时限制到边界）

        Args:
            index: 经文序号
        """
        self._dispatch(self._do_select_item, index)

    def set_voice(self, voice: Hashable) -> None:
        """
        设置朗诵者，下一次获取音频时生效

        Args:
            voice: 朗诵者
        """
        self._dispatch(self._do_set_voice, voice)

    def close(self) -> None:
        """释放所有资源并回到空闲状态"""
        self._dispatch(self._do_close)

    # 串行分发

    def _dispatch(self, action: Callable[..., None], *args) -> None:
        """
        串行执行状态转换

        转换执行期间到达的命令或回调会排队，在当前转换完成后依次执行。
        """
        self._pending.append((action, args))
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                next_action, next_args = self._pending.popleft()
                try:
                    next_action(*next_args)
                except Exception as e:
                    self.logger.error(f"❌ 处理 {next_action.__name__} 时出错: {e}", exc_info=True)
        finally:
            self._dispatching = False

    # 命令实现

    def _do_play_pause(self) -> None:
        if not self.has_collection:
            self._ignore_command("play_pause", "未选择章节，无法播放")
            return

        self.retry_scheduler.cancel()

        if self._state == PlaybackState.PLAYING:
            try:
                self._handle.pause()
            except Exception as e:
                self.logger.warning(f"⚠️ 暂停音频失败: {e}")
            self._set_state(PlaybackState.PAUSED)
            self.logger.info(f"⏸️ 暂停播放 - 经文 {self._position}")
        elif self._state == PlaybackState.LOADING:
            self._release_handle()
            self._set_state(PlaybackState.PAUSED)
            self.logger.info(f"⏸️ 取消加载并暂停 - 经文 {self._position}")
        else:
            # 总是播放当前位置的经文，避免使用过期的音频
            self._start_playback()

    def _do_stop(self) -> None:
        if self._state in (PlaybackState.STOPPED, PlaybackState.IDLE):
            return

        self.retry_scheduler.cancel()
        self._release_handle()
        self._repeat_progress = 0
        self._set_state(PlaybackState.STOPPED)
        self.logger.info(f"⏹️ 停止播放 - 经文 {self._position}")

    def _do_skip(self, step: int) -> None:
        if not self.has_collection:
            self._ignore_command("skip", "未选择章节，无法跳转")
            return

        target = self._position + step
        if target not in self._range:
            self.logger.debug(f"已在范围边界，忽略跳转: {self._position} -> {target}")
            return

        self.retry_scheduler.cancel()
        self._set_position(target)
        self._start_playback()

    def _do_set_range(self, start: int, end: int) -> None:
        if not self.has_collection:
            self._ignore_command("set_range", "未选择章节，无法设置范围", start=start, end=end)
            return
        if start > end:
            self._ignore_command("set_range", f"范围起点不能大于终点: {start}-{end}", start=start, end=end)
            return

        start = max(1, min(start, self._item_count))
        end = max(1, min(end, self._item_count))

        # 先完全释放旧音频，再修改范围
        self.retry_scheduler.cancel()
        self._release_handle()
        self._set_state(PlaybackState.STOPPED)

        self._range = VerseRange(start, end)
        self._set_position(start)
        self._repeat_progress = 0
        self.logger.info(f"📖 设置经文范围: {self._range}")

    def _do_set_repeat_policy(self, policy: RepeatPolicy) -> None:
        self._policy = policy
        label = "无限" if policy.is_unbounded else str(policy.repeat_count)
        self.logger.info(f"🔁 设置重复次数: {label}")

    def _do_select_collection(self, collection_id: int, item_count: int) -> None:
        self.retry_scheduler.cancel()
        self._release_handle()

        self._collection_id = collection_id
        self._item_count = item_count
        self._range = VerseRange(1, min(self.default_range_size, item_count))
        self._position = 0
        self._set_position(1)
        self._repeat_progress = 0
        self._set_state(PlaybackState.IDLE)
        self.logger.info(f"📚 选择章节 {collection_id} ({item_count} 节)，默认范围: {self._range}")

    def _do_select_item(self, index: int) -> None:
        if not self.has_collection:
            self._ignore_command("select_item", "未选择章节，无法选择经文", index=index)
            return

        if not self._set_position(index):
            return

        # 播放中切换位置时必须用新获取的音频重新开始
        if self._state in (PlaybackState.LOADING, PlaybackState.PLAYING):
            self.retry_scheduler.cancel()
            self._start_playback()

    def _do_set_voice(self, voice: Hashable) -> None:
        self._voice = voice
        self.logger.info(f"🎙️ 设置朗诵者: {voice}")

    def _do_close(self) -> None:
        self.retry_scheduler.cancel()
        self._release_handle()
        self._set_state(PlaybackState.IDLE)
        self.logger.debug("序列器已关闭")

    # 提供者回调

    def _on_loaded(self, generation: int, handle: ISoundHandle) -> None:
        if not self._is_live(generation, "loaded"):
            return
        if self._state != PlaybackState.LOADING:
            self.logger.debug(f"非加载状态收到 loaded 事件，忽略 - 状态: {self._state.value}")
            return

        self._load_retried = False
        self._play_retried = False
        self._set_state(PlaybackState.PLAYING)
        self.logger.info(f"▶️ 正在播放: {self._request.describe()}")
        self._issue_play(generation)

    def _on_load_failed(self, generation: int, handle: Optional[ISoundHandle], error: Exception) -> None:
        if not self._is_live(generation, "load_failed"):
            return
        if self._state != PlaybackState.LOADING:
            return

        if self._load_retried:
            self.logger.error(f"❌ 重试后仍无法加载音频 - {self._request.describe()}: {error}")
            self._release_handle()
            self._set_state(PlaybackState.IDLE)
            self._report_error(ResourceLoadError(
                f"加载音频失败: {error}",
                collection_id=self._collection_id,
                item_id=self._position,
                voice=self._voice
            ))
            return

        self._load_retried = True
        self.logger.warning(f"⚠️ 加载音频失败，将在 {self.retry_scheduler.delay}s 后重试 - {self._request.describe()}: {error}")
        self.retry_scheduler.schedule(
            partial(self._dispatch, self._retry_load, generation),
            label=f"load {self._request.describe()}"
        )

    def _on_playback_ended(self, generation: int, handle: ISoundHandle) -> None:
        if not self._is_live(generation, "playback_ended"):
            return
        if self._state != PlaybackState.PLAYING:
            self.logger.debug(f"非播放状态收到 playback_ended 事件，忽略 - 状态: {self._state.value}")
            return

        decision = decide_advance(self._range, self._position, self._repeat_progress, self._policy)
        self.logger.debug(
            f"经文 {self._position} 播放结束 - 范围: {self._range}, "
            f"进度: {self._repeat_progress}, 重复: {self._policy.repeat_count} -> {decision.action.value}"
        )

        if decision.action == AdvanceAction.REPLAY:
            self._repeat_progress = decision.repeat_progress
            self._start_playback()
        elif decision.action in (AdvanceAction.ADVANCE, AdvanceAction.WRAP):
            if decision.action == AdvanceAction.WRAP:
                self.logger.info(f"🔄 范围播放完毕，回到起点 {self._range.start}")
            self._set_position(decision.position)
            self._repeat_progress = 0
            self._start_playback()
        else:
            self.logger.info(f"✅ 范围 {self._range} 播放完成")
            self._do_stop()
            self._trigger_event("range_completed", verse_range=self._range)

    def _on_play_failed(self, generation: int, handle: ISoundHandle, error: Exception) -> None:
        if not self._is_live(generation, "play_failed"):
            return
        if self._state != PlaybackState.PLAYING:
            self.logger.debug(f"未处于播放状态，忽略播放失败: {error}")
            return

        if self._play_retried:
            self.logger.error(f"❌ 重试后仍无法播放音频 - {self._request.describe()}: {error}")
            self._release_handle()
            self._set_state(PlaybackState.IDLE)
            self._report_error(ResourcePlayError(
                f"播放音频失败: {error}",
                collection_id=self._collection_id,
                item_id=self._position,
                voice=self._voice
            ))
            return

        self._play_retried = True
        self.logger.warning(f"⚠️ 播放失败，将在 {self.retry_scheduler.delay}s 后重试 - {self._request.describe()}: {error}")
        self.retry_scheduler.schedule(
            partial(self._dispatch, self._retry_play, generation),
            label=f"play {self._request.describe()}"
        )

    def _retry_load(self, generation: int) -> None:
        if self._live_generation != generation or self._state != PlaybackState.LOADING:
            self.logger.debug("加载重试已过期，忽略")
            return

        self.logger.info(f"🔁 重新加载音频: {self._request.describe()}")
        self._acquire(self._request)

    def _retry_play(self, generation: int) -> None:
        if self._live_generation != generation or self._state != PlaybackState.PLAYING:
            self.logger.debug("播放重试已过期，忽略")
            return

        self.logger.info(f"🔁 重新播放音频: {self._request.describe()}")
        self._issue_play(generation)

    # 内部辅助

    def _start_playback(self) -> None:
        """为当前位置获取新的音频并进入加载状态"""
        self._load_retried = False
        self._play_retried = False
        self._set_state(PlaybackState.LOADING)
        self._acquire(SoundRequest(self._collection_id, self._position, self._voice))

    def _acquire(self, request: SoundRequest) -> None:
        """释放旧句柄后获取新句柄，分配新的代号"""
        self._release_handle()

        self._generation += 1
        generation = self._generation
        self._request = request
        self._live_generation = generation
        self.logger.debug(f"获取音频 #{generation}: {request.describe()}")

        try:
            self._handle = self.provider.acquire(request, _GenerationListener(self, generation))
        except Exception as e:
            self.logger.warning(f"⚠️ 获取音频句柄时出错: {e}")
            self._on_load_failed(generation, None, e)

    def _issue_play(self, generation: int) -> None:
        try:
            self._handle.play()
        except Exception as e:
            self._on_play_failed(generation, self._handle, e)

    def _release_handle(self) -> None:
        """停止并释放当前句柄，之后该句柄的回调都会被丢弃"""
        handle = self._handle
        self._handle = None
        self._live_generation = None
        if handle is None:
            return

        try:
            handle.stop()
        except Exception as e:
            self.logger.warning(f"⚠️ 停止音频时出错: {e}")
        try:
            handle.release()
        except Exception as e:
            self.logger.warning(f"⚠️ 释放音频时出错: {e}")

    def _is_live(self, generation: int, event: str) -> bool:
        if generation != self._live_generation:
            self.logger.debug(f"丢弃过期回调 {event} #{generation} (当前 #{self._live_generation})")
            return False
        return True

    def _set_state(self, new_state: PlaybackState) -> None:
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        self.logger.debug(f"状态变化: {old_state.value} -> {new_state.value}")
        self._trigger_event("state_changed", old_state=old_state, new_state=new_state)

    def _set_position(self, index: int) -> bool:
        """
        设置当前位置（限制在范围内），位置变化时重置重复进度

        Returns:
            位置是否发生变化
        """
        clamped = self._range.clamp(index)
        if clamped != index:
            self.logger.debug(f"位置 {index} 超出范围 {self._range}，调整为 {clamped}")
        if clamped == self._position:
            return False

        self._position = clamped
        self._repeat_progress = 0
        self._trigger_event("position_changed", position=clamped)
        return True

    def _report_error(self, error: PlaybackError) -> None:
        self._last_error = error
        self._trigger_event("playback_error", error=error)

    def _ignore_command(self, command: str, message: str, **context) -> None:
        self.logger.debug(f"忽略命令 {command}: {message}")
        self._trigger_event("command_ignored", command=command, error=InvalidRangeCommand(message, **context))
