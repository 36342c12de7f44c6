"""
EveryAyah 音频提供者 - 按章节、经文和朗诵者下载经文音频

音频地址格式为 {朗诵者目录}/{章节三位}{经文三位}.mp3。
下载好的文件按 (朗诵者, 章节, 经文) 缓存在临时目录中，重播时直接复用。
"""

import asyncio
import os
import re
from typing import Dict, List, Optional, Tuple

import aiohttp

from versemem.core.interfaces import ISoundHandle, ISoundListener, SoundRequest
from versemem.utils.config_manager import DEFAULT_PLAYER_COMMAND
from .base import BaseSoundProvider
from .sound_handle import ProcessSoundHandle


# 朗诵者及其音频目录
AUDIO_BASE_URLS: Dict[str, str] = {
    'Mishary Alafasy': 'https://everyayah.com/data/Alafasy_64kbps',
    'Abdullah Basfar': 'https://everyayah.com/data/Abdullah_Basfar_192kbps',
}

DEFAULT_RECITER = 'Mishary Alafasy'


def get_audio_url(chapter: int, verse: int, reciter: str = DEFAULT_RECITER,
                  base_urls: Optional[Dict[str, str]] = None) -> str:
    """
    获取经文音频地址

    Args:
        chapter: 章节号
        verse: 经文号
        reciter: 朗诵者，未知朗诵者使用默认朗诵者
        base_urls: 朗诵者目录表

    Returns:
        音频URL
    """
    base_urls = base_urls or AUDIO_BASE_URLS
    base_url = base_urls.get(reciter) or base_urls.get(DEFAULT_RECITER) or AUDIO_BASE_URLS[DEFAULT_RECITER]
    return f"{base_url.rstrip('/')}/{chapter:03d}{verse:03d}.mp3"


class EveryAyahProvider(BaseSoundProvider):
    """
    EveryAyah 音频提供者

    负责下载经文音频，并创建通过外部播放器播放的音频句柄。
    """

    def __init__(self, config=None, temp_dir: Optional[str] = None):
        """
        初始化 EveryAyah 提供者

        Args:
            config: 配置管理器
            temp_dir: 临时文件目录，为None时使用配置值
        """
        if temp_dir is None:
            temp_dir = config.get_audio_temp_dir() if config else "./temp"
        super().__init__("EveryAyah", temp_dir)

        self.base_urls: Dict[str, str] = dict(AUDIO_BASE_URLS)
        if config:
            self.base_urls.update(config.get_reciter_urls())
        self.player_command: List[str] = config.get_player_command() if config else list(DEFAULT_PLAYER_COMMAND)

        download_timeout = config.get_download_timeout() if config else 30
        self.session_timeout = aiohttp.ClientTimeout(total=download_timeout)
        self.headers = {
            'User-Agent': 'VerseMem/0.1 (+https://everyayah.com)'
        }

        self._cached_files: Dict[str, str] = {}

    def get_audio_url(self, request: SoundRequest) -> str:
        return get_audio_url(request.collection_id, request.item_id, str(request.voice), self.base_urls)

    def get_cache_path(self, request: SoundRequest) -> str:
        """
        获取音频的本地缓存路径

        Args:
            request: 音频请求

        Returns:
            缓存文件路径
        """
        voice_slug = re.sub(r'[^A-Za-z0-9]+', '_', str(request.voice)).strip('_') or "default"
        filename = f"{voice_slug}_{request.collection_id:03d}{request.item_id:03d}.mp3"
        return os.path.join(self.temp_dir, filename)

    def acquire(self, request: SoundRequest, listener: ISoundListener) -> ISoundHandle:
        handle = ProcessSoundHandle(self, request, listener, self.player_command)
        handle.start_loading()
        return handle

    async def _download_audio_impl(self, request: SoundRequest, url: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        下载音频文件到缓存目录

        Args:
            request: 音频请求
            url: 音频URL

        Returns:
            (成功标志, 本地文件路径, 错误消息)
        """
        file_path = self.get_cache_path(request)
        if os.path.exists(file_path):
            self.logger.debug(f"使用缓存的音频: {file_path}")
            self._cached_files[url] = file_path
            return True, file_path, None

        self._ensure_temp_dir()
        partial_path = f"{file_path}.part"

        try:
            async with aiohttp.ClientSession(timeout=self.session_timeout, headers=self.headers) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        return False, None, f"音频请求失败 - 状态码: {response.status} ({url})"

                    with open(partial_path, 'wb') as audio_file:
                        async for chunk in response.content.iter_chunked(64 * 1024):
                            audio_file.write(chunk)

            os.replace(partial_path, file_path)
            self._cached_files[url] = file_path
            return True, file_path, None

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return False, None, f"下载音频时网络错误: {e}"

        finally:
            # 下载被取消或失败时不保留不完整的文件
            if os.path.exists(partial_path):
                os.remove(partial_path)

    def close(self) -> None:
        """删除本提供者下载的缓存文件"""
        for file_path in list(self._cached_files.values()):
            try:
                if os.path.exists(file_path):
                    os.remove(file_path)
                    self.logger.debug(f"清理音频文件: {file_path}")
            except OSError as e:
                self.logger.warning(f"清理音频文件失败: {e}")
        self._cached_files.clear()
