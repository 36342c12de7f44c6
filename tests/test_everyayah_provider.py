"""
EveryAyah 提供者单元测试

验证音频地址、缓存路径与下载逻辑，不访问真实网络。
"""

import asyncio
import os
import shutil
import tempfile
from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest

from versemem.core.errors import ResourceLoadError
from versemem.core.interfaces import SoundRequest
from versemem.provider import AUDIO_BASE_URLS, DEFAULT_RECITER, EveryAyahProvider, ProcessSoundHandle, get_audio_url


@pytest.fixture()
def provider():
    """构建带有独立临时目录的 EveryAyahProvider 实例"""
    temp_dir = tempfile.mkdtemp()
    instance = EveryAyahProvider(temp_dir=temp_dir)
    try:
        yield instance
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


def test_audio_url_format():
    """章节和经文都补齐为三位数字"""
    assert get_audio_url(2, 255, "Mishary Alafasy") == "https://everyayah.com/data/Alafasy_64kbps/002255.mp3"
    assert get_audio_url(114, 6, "Abdullah Basfar") == "https://everyayah.com/data/Abdullah_Basfar_192kbps/114006.mp3"


def test_unknown_reciter_falls_back_to_default():
    assert get_audio_url(1, 1, "Unknown") == f"{AUDIO_BASE_URLS[DEFAULT_RECITER]}/001001.mp3"


def test_custom_base_url_trailing_slash():
    urls = {"Husary": "https://everyayah.com/data/Husary_64kbps/"}
    assert get_audio_url(1, 2, "Husary", urls) == "https://everyayah.com/data/Husary_64kbps/001002.mp3"


def test_configured_reciters_extend_table():
    config = Mock()
    config.get_audio_temp_dir.return_value = "./temp"
    config.get_reciter_urls.return_value = {"Husary": "https://everyayah.com/data/Husary_64kbps"}
    config.get_player_command.return_value = ["mpv"]
    config.get_download_timeout.return_value = 10

    instance = EveryAyahProvider(config)

    assert "Husary" in instance.base_urls
    assert "Mishary Alafasy" in instance.base_urls
    assert instance.player_command == ["mpv"]
    assert instance.get_audio_url(SoundRequest(1, 1, "Husary")).endswith("Husary_64kbps/001001.mp3")


def test_cache_path_per_reciter(provider: EveryAyahProvider):
    path_a = provider.get_cache_path(SoundRequest(2, 3, "Mishary Alafasy"))
    path_b = provider.get_cache_path(SoundRequest(2, 3, "Abdullah Basfar"))

    assert os.path.basename(path_a) == "Mishary_Alafasy_002003.mp3"
    assert path_a != path_b
    assert os.path.dirname(path_a) == provider.temp_dir


@pytest.mark.asyncio
async def test_download_reuses_cached_file(provider: EveryAyahProvider):
    request = SoundRequest(1, 1, "Mishary Alafasy")
    cache_path = provider.get_cache_path(request)
    with open(cache_path, "wb") as audio_file:
        audio_file.write(b"fake-audio-data")

    with patch("versemem.provider.everyayah_provider.aiohttp.ClientSession") as session_class:
        success, file_path, error = await provider.download_audio(request)

    assert success is True
    assert file_path == cache_path
    assert error is None
    session_class.assert_not_called()

    # 之前运行留下的缓存文件同样在关闭时清理
    provider.close()
    assert not os.path.exists(cache_path)


@pytest.mark.asyncio
async def test_download_network_error(provider: EveryAyahProvider):
    request = SoundRequest(1, 2, "Mishary Alafasy")

    with patch(
        "versemem.provider.everyayah_provider.aiohttp.ClientSession",
        side_effect=aiohttp.ClientConnectionError("connection refused")
    ):
        success, file_path, error = await provider.download_audio(request)

    assert success is False
    assert file_path is None
    assert "connection refused" in error
    assert not os.path.exists(provider.get_cache_path(request))


@pytest.mark.asyncio
async def test_download_unexpected_exception_wrapped(provider: EveryAyahProvider):
    """下载实现抛出的意外异常被转换为失败结果"""
    request = SoundRequest(1, 3, "Mishary Alafasy")
    with patch.object(provider, "_download_audio_impl", AsyncMock(side_effect=RuntimeError("disk full"))):
        success, file_path, error = await provider.download_audio(request)

    assert (success, file_path, error) == (False, None, "disk full")


@pytest.mark.asyncio
async def test_acquire_reports_loaded(provider: EveryAyahProvider):
    request = SoundRequest(1, 1, "Mishary Alafasy")
    listener = Mock()
    with patch.object(provider, "download_audio", AsyncMock(return_value=(True, "/tmp/001001.mp3", None))):
        handle = provider.acquire(request, listener)
        assert isinstance(handle, ProcessSoundHandle)
        await asyncio.sleep(0.01)

    listener.on_loaded.assert_called_once_with(handle)
    listener.on_load_failed.assert_not_called()
    assert handle.file_path == "/tmp/001001.mp3"


@pytest.mark.asyncio
async def test_acquire_reports_load_failure(provider: EveryAyahProvider):
    request = SoundRequest(1, 1, "Mishary Alafasy")
    listener = Mock()
    with patch.object(provider, "download_audio", AsyncMock(return_value=(False, None, "404"))):
        handle = provider.acquire(request, listener)
        await asyncio.sleep(0.01)

    listener.on_loaded.assert_not_called()
    listener.on_load_failed.assert_called_once()
    reported_handle, error = listener.on_load_failed.call_args[0]
    assert reported_handle is handle
    assert isinstance(error, ResourceLoadError)
    assert error.context["item_id"] == 1


@pytest.mark.asyncio
async def test_released_handle_reports_nothing(provider: EveryAyahProvider):
    listener = Mock()
    with patch.object(provider, "download_audio", AsyncMock(return_value=(True, "/tmp/x.mp3", None))):
        handle = provider.acquire(SoundRequest(1, 1, "Mishary Alafasy"), listener)
        handle.release()
        await asyncio.sleep(0.01)

    listener.on_loaded.assert_not_called()
    listener.on_load_failed.assert_not_called()


def test_close_removes_downloaded_files(provider: EveryAyahProvider):
    cache_path = provider.get_cache_path(SoundRequest(1, 1, "Mishary Alafasy"))
    with open(cache_path, "wb") as audio_file:
        audio_file.write(b"x")
    provider._cached_files["https://example.com/001001.mp3"] = cache_path

    provider.close()

    assert not os.path.exists(cache_path)
    assert provider._cached_files == {}


class _StalledStream:
    """先返回一块数据然后永远挂起的响应流"""

    def iter_chunked(self, size):
        return self._chunks()

    async def _chunks(self):
        yield b"x" * 1024
        await asyncio.Event().wait()


class _StalledResponse:
    status = 200

    def __init__(self):
        self.content = _StalledStream()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class _StalledSession:
    """替代 aiohttp.ClientSession，下载写入一部分后停滞"""

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def get(self, url):
        return _StalledResponse()


@pytest.mark.asyncio
async def test_release_during_download_removes_partial_file(provider: EveryAyahProvider):
    """下载中途释放句柄时不留下不完整的 .part 文件"""
    request = SoundRequest(1, 1, "Mishary Alafasy")
    partial_path = f"{provider.get_cache_path(request)}.part"
    listener = Mock()

    with patch("versemem.provider.everyayah_provider.aiohttp.ClientSession", _StalledSession):
        handle = provider.acquire(request, listener)
        await asyncio.sleep(0.05)
        assert os.path.exists(partial_path)

        handle.release()
        await asyncio.sleep(0.05)

    provider.close()

    assert os.listdir(provider.temp_dir) == []
    listener.on_loaded.assert_not_called()
    listener.on_load_failed.assert_not_called()
