"""
测试用音频提供者替身

FakeSoundProvider 记录所有对句柄的调用顺序，测试可以手动触发监听器事件。
"""

from typing import List, Optional, Tuple

from versemem.core.interfaces import ISoundHandle, ISoundListener, ISoundProvider, SoundRequest


class FakeSoundHandle(ISoundHandle):
    """记录调用的音频句柄替身"""

    def __init__(self, provider: "FakeSoundProvider", number: int, request: SoundRequest, listener: ISoundListener):
        self._provider = provider
        self.number = number
        self._request = request
        self.listener = listener
        self.released = False
        self.fail_play = False

    @property
    def request(self) -> SoundRequest:
        return self._request

    def play(self) -> None:
        self._provider.calls.append(("play", self.number))
        if self.fail_play:
            raise RuntimeError("play refused")

    def pause(self) -> None:
        self._provider.calls.append(("pause", self.number))

    def stop(self) -> None:
        self._provider.calls.append(("stop", self.number))

    def release(self) -> None:
        self.released = True
        self._provider.calls.append(("release", self.number))

    # 手动触发监听器事件

    def loaded(self) -> None:
        self.listener.on_loaded(self)

    def load_failed(self, error: Optional[Exception] = None) -> None:
        self.listener.on_load_failed(self, error or RuntimeError("load failed"))

    def ended(self) -> None:
        self.listener.on_playback_ended(self)

    def play_failed(self, error: Optional[Exception] = None) -> None:
        self.listener.on_play_failed(self, error or RuntimeError("play failed"))


class FakeSoundProvider(ISoundProvider):
    """按顺序记录 acquire/play/pause/stop/release 调用的提供者替身"""

    def __init__(self):
        self.handles: List[FakeSoundHandle] = []
        self.calls: List[Tuple[str, int]] = []
        self.fail_acquire = False
        self.closed = False

    def acquire(self, request: SoundRequest, listener: ISoundListener) -> ISoundHandle:
        number = len(self.handles) + 1
        self.calls.append(("acquire", number))
        if self.fail_acquire:
            raise RuntimeError("acquire refused")
        handle = FakeSoundHandle(self, number, request, listener)
        self.handles.append(handle)
        return handle

    def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> FakeSoundHandle:
        return self.handles[-1]

    @property
    def live_handles(self) -> List[FakeSoundHandle]:
        return [handle for handle in self.handles if not handle.released]

    def requested_items(self) -> List[int]:
        return [handle.request.item_id for handle in self.handles]
