"""
音频提供者基类 - 定义音频提供者的通用功能

提供音频提供者的基础实现，包含通用的错误处理和日志记录。
"""

import logging
import os
from abc import ABC
from typing import Optional, Tuple

from versemem.core.interfaces import ISoundProvider, SoundRequest


class BaseSoundProvider(ISoundProvider, ABC):
    """
    音频提供者基类

    提供音频提供者的通用功能，包括日志记录和下载错误处理。
    子类需要实现具体的音频下载逻辑和 acquire。
    """

    def __init__(self, name: str, temp_dir: str = "./temp"):
        """
        初始化音频提供者

        Args:
            name: 提供者名称
            temp_dir: 临时文件目录
        """
        self.name = name
        self.temp_dir = temp_dir
        self.logger = logging.getLogger(f"versemem.provider.{name.lower()}")

        self.logger.debug(f"{name} 音频提供者初始化完成")

    def _log_download_start(self, request: SoundRequest, url: str) -> None:
        """记录开始下载"""
        self.logger.debug(f"开始下载 {self.name} 音频 {request.describe()}: {url}")

    def _log_download_success(self, request: SoundRequest, file_path: str) -> None:
        """记录下载成功"""
        self.logger.info(f"{self.name} 音频下载成功: {request.describe()} -> {file_path}")

    def _log_download_error(self, request: SoundRequest, error: Exception) -> None:
        """记录下载错误"""
        self.logger.error(f"{self.name} 音频下载失败 - {request.describe()}: {error}")

    def _ensure_temp_dir(self) -> None:
        """确保临时目录存在"""
        os.makedirs(self.temp_dir, exist_ok=True)

    async def download_audio(self, request: SoundRequest) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        下载音频文件（带错误处理的包装方法）

        Args:
            request: 音频请求

        Returns:
            (成功标志, 本地文件路径, 错误消息)
        """
        url = self.get_audio_url(request)
        try:
            self._log_download_start(request, url)
            success, file_path, error = await self._download_audio_impl(request, url)

            if success and file_path:
                self._log_download_success(request, file_path)
                return True, file_path, None
            else:
                error_msg = error or f"{self.name} 音频下载失败"
                self.logger.warning(error_msg)
                return False, None, error_msg

        except Exception as e:
            self._log_download_error(request, e)
            return False, None, str(e)

    # 抽象方法，由子类实现
    def get_audio_url(self, request: SoundRequest) -> str:
        """子类实现的音频URL解析逻辑"""
        raise NotImplementedError

    async def _download_audio_impl(self, request: SoundRequest, url: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """子类实现的音频下载逻辑"""
        raise NotImplementedError
