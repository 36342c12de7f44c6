"""
失败恢复测试

验证加载和播放失败时的单次自动重试、重试仍失败时的错误上报，
以及停止、修改范围等命令对待执行重试的取消。
"""

import asyncio

import pytest

from versemem.core.errors import ResourceLoadError, ResourcePlayError
from versemem.playback import PlaybackSequencer, PlaybackState

RETRY_DELAY = 0.01


async def _wait_for_retry():
    await asyncio.sleep(RETRY_DELAY * 5)


@pytest.fixture()
def sequencer(fake_provider):
    """已选择章节的序列器"""
    instance = PlaybackSequencer(fake_provider, voice="Mishary Alafasy", retry_delay=RETRY_DELAY)
    instance.select_collection(2, 286)
    return instance


@pytest.fixture()
def errors(sequencer):
    """收集 playback_error 事件中的错误"""
    collected = []
    sequencer.add_event_handler("playback_error", lambda sequencer, error: collected.append(error))
    return collected


class TestLoadFailure:
    """加载失败的重试"""

    @pytest.mark.asyncio
    async def test_single_load_failure_recovers(self, sequencer, fake_provider, errors):
        """加载失败一次后重新获取同一节经文，成功后进入播放"""
        sequencer.play_pause()
        fake_provider.last.load_failed()

        assert sequencer.state == PlaybackState.LOADING
        assert sequencer.retry_scheduler.pending

        await _wait_for_retry()

        assert len(fake_provider.handles) == 2
        assert fake_provider.handles[0].released
        assert fake_provider.last.request == fake_provider.handles[0].request

        fake_provider.last.loaded()

        assert sequencer.state == PlaybackState.PLAYING
        assert errors == []

    @pytest.mark.asyncio
    async def test_second_load_failure_reported(self, sequencer, fake_provider, errors):
        """重试后仍加载失败：上报错误并回到空闲"""
        sequencer.play_pause()
        fake_provider.last.load_failed()
        await _wait_for_retry()
        fake_provider.last.load_failed()

        assert sequencer.state == PlaybackState.IDLE
        assert len(errors) == 1
        assert isinstance(errors[0], ResourceLoadError)
        assert errors[0].context["item_id"] == 1
        assert sequencer.last_error is errors[0]
        assert fake_provider.live_handles == []

        await _wait_for_retry()
        assert len(fake_provider.handles) == 2

    @pytest.mark.asyncio
    async def test_acquire_exception_treated_as_load_failure(self, sequencer, fake_provider, errors):
        """提供者 acquire 抛出异常时同样重试一次"""
        fake_provider.fail_acquire = True
        sequencer.play_pause()

        assert sequencer.state == PlaybackState.LOADING
        assert sequencer.retry_scheduler.pending

        fake_provider.fail_acquire = False
        await _wait_for_retry()
        fake_provider.last.loaded()

        assert sequencer.state == PlaybackState.PLAYING
        assert errors == []

    @pytest.mark.asyncio
    async def test_retry_counter_resets_for_next_item(self, sequencer, fake_provider, errors):
        """每节经文都有一次独立的重试机会"""
        sequencer.play_pause()
        fake_provider.last.load_failed()
        await _wait_for_retry()
        fake_provider.last.loaded()
        fake_provider.last.ended()

        assert sequencer.position == 2
        fake_provider.last.load_failed()
        assert sequencer.state == PlaybackState.LOADING
        assert sequencer.retry_scheduler.pending
        assert errors == []


class TestPlayFailure:
    """播放失败的重试"""

    @pytest.mark.asyncio
    async def test_single_play_failure_recovers(self, sequencer, fake_provider, errors):
        """播放失败一次后对同一句柄重新播放"""
        sequencer.play_pause()
        handle = fake_provider.last
        handle.loaded()
        handle.play_failed()

        assert sequencer.state == PlaybackState.PLAYING
        assert sequencer.retry_scheduler.pending

        await _wait_for_retry()

        assert fake_provider.calls.count(("play", 1)) == 2
        assert len(fake_provider.handles) == 1
        assert sequencer.state == PlaybackState.PLAYING
        assert errors == []

    @pytest.mark.asyncio
    async def test_play_exception_retried_then_reported(self, sequencer, fake_provider, errors):
        """play() 两次都抛出异常：释放音频，上报错误并回到空闲"""
        sequencer.play_pause()
        handle = fake_provider.last
        handle.fail_play = True
        handle.loaded()

        assert sequencer.retry_scheduler.pending
        await _wait_for_retry()

        assert sequencer.state == PlaybackState.IDLE
        assert handle.released
        assert len(errors) == 1
        assert isinstance(errors[0], ResourcePlayError)

    @pytest.mark.asyncio
    async def test_play_failure_ignored_when_paused(self, sequencer, fake_provider, errors):
        sequencer.play_pause()
        handle = fake_provider.last
        handle.loaded()
        sequencer.play_pause()

        handle.play_failed()

        assert sequencer.state == PlaybackState.PAUSED
        assert not sequencer.retry_scheduler.pending


class TestRetryCancellation:
    """命令取消待执行的重试"""

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_retry(self, sequencer, fake_provider):
        sequencer.play_pause()
        fake_provider.last.load_failed()
        assert sequencer.retry_scheduler.pending

        sequencer.stop()

        assert not sequencer.retry_scheduler.pending
        await _wait_for_retry()
        assert len(fake_provider.handles) == 1
        assert sequencer.state == PlaybackState.STOPPED

    @pytest.mark.asyncio
    async def test_set_range_cancels_pending_retry(self, sequencer, fake_provider):
        sequencer.play_pause()
        fake_provider.last.load_failed()

        sequencer.set_range(3, 4)

        await _wait_for_retry()
        assert len(fake_provider.handles) == 1
        assert sequencer.state == PlaybackState.STOPPED
        assert sequencer.position == 3

    @pytest.mark.asyncio
    async def test_skip_replaces_pending_retry(self, sequencer, fake_provider):
        """跳转取消旧的重试，只获取新位置的音频"""
        sequencer.play_pause()
        fake_provider.last.load_failed()

        sequencer.skip_next()

        await _wait_for_retry()
        assert fake_provider.requested_items() == [1, 2]
        assert sequencer.state == PlaybackState.LOADING

    @pytest.mark.asyncio
    async def test_select_collection_cancels_pending_retry(self, sequencer, fake_provider):
        sequencer.play_pause()
        fake_provider.last.load_failed()

        sequencer.select_collection(3, 200)

        await _wait_for_retry()
        assert len(fake_provider.handles) == 1
        assert sequencer.state == PlaybackState.IDLE


class TestAsyncEventHandlers:
    """协程事件处理器"""

    @pytest.mark.asyncio
    async def test_coroutine_handler_is_scheduled(self, sequencer, fake_provider):
        received = []

        async def on_position_changed(sequencer, position):
            received.append(position)

        sequencer.add_event_handler("position_changed", on_position_changed)
        sequencer.select_item(3)
        await asyncio.sleep(0)

        assert received == [3]
