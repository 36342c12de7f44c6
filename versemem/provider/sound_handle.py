"""
外部播放器音频句柄 - 通过子进程播放下载好的经文音频

加载阶段由提供者下载音频文件，播放阶段启动外部播放器（默认 ffplay）。
播放器正常退出视为播放结束，非零退出码或启动失败视为播放失败。
"""

import asyncio
import logging
import signal
from typing import List, Optional, TYPE_CHECKING

from versemem.core.errors import ResourceLoadError, ResourcePlayError
from versemem.core.interfaces import ISoundHandle, ISoundListener, SoundRequest

if TYPE_CHECKING:
    from .base import BaseSoundProvider


class ProcessSoundHandle(ISoundHandle):
    """
    子进程音频句柄

    释放之后不会再触发任何回调。
    """

    def __init__(
        self,
        provider: "BaseSoundProvider",
        request: SoundRequest,
        listener: ISoundListener,
        player_command: List[str]
    ):
        """
        初始化音频句柄

        Args:
            provider: 负责下载音频的提供者
            request: 音频请求
            listener: 事件监听器
            player_command: 播放器命令（文件路径会追加在最后）
        """
        self._provider = provider
        self._request = request
        self._listener = listener
        self.player_command = list(player_command)
        self.logger = logging.getLogger("versemem.provider.handle")

        self.file_path: Optional[str] = None
        self._load_task: Optional[asyncio.Task] = None
        self._player_task: Optional[asyncio.Task] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._paused = False
        self._stopped = False
        self._released = False

    @property
    def request(self) -> SoundRequest:
        return self._request

    @property
    def is_released(self) -> bool:
        return self._released

    def start_loading(self) -> None:
        """在事件循环中开始下载音频"""
        self._load_task = asyncio.ensure_future(self._load())

    async def _load(self) -> None:
        success, file_path, error = await self._provider.download_audio(self._request)
        if self._released:
            return

        if not success:
            self._listener.on_load_failed(self, ResourceLoadError(
                error or "音频下载失败",
                collection_id=self._request.collection_id,
                item_id=self._request.item_id,
                voice=self._request.voice
            ))
            return

        self.file_path = file_path
        self._listener.on_loaded(self)

    def play(self) -> None:
        if self._released:
            return
        if not self.file_path:
            raise ResourcePlayError(f"音频尚未加载: {self._request.describe()}")

        self._stopped = False
        if self._process is not None:
            if self._paused:
                self._send_signal(signal.SIGCONT)
                self._paused = False
                self.logger.debug(f"▶️ 恢复播放进程: {self._request.describe()}")
            return

        self._player_task = asyncio.ensure_future(self._run_player())

    async def _run_player(self) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.player_command,
                self.file_path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            self._process = None
            if not self._released:
                self._listener.on_play_failed(self, ResourcePlayError(f"无法启动播放器 {self.player_command[0]}: {e}"))
            return

        if self._stopped or self._released:
            self._terminate()

        self.logger.debug(f"播放进程已启动 (pid {self._process.pid}): {self._request.describe()}")
        return_code = await self._process.wait()
        self._process = None
        self._paused = False

        if self._stopped or self._released:
            return

        if return_code == 0:
            self._listener.on_playback_ended(self)
        else:
            self._listener.on_play_failed(self, ResourcePlayError(f"播放器退出码: {return_code}"))

    def pause(self) -> None:
        if self._process is None or self._paused:
            return
        self._send_signal(signal.SIGSTOP)
        self._paused = True
        self.logger.debug(f"⏸️ 暂停播放进程: {self._request.describe()}")

    def stop(self) -> None:
        self._stopped = True
        self._terminate()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._terminate()
        if self._load_task and not self._load_task.done():
            self._load_task.cancel()
        self.logger.debug(f"释放音频句柄: {self._request.describe()}")

    def _terminate(self) -> None:
        if self._process is None:
            return
        if self._paused:
            self._send_signal(signal.SIGCONT)
            self._paused = False
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass

    def _send_signal(self, sig: int) -> None:
        try:
            self._process.send_signal(sig)
        except ProcessLookupError:
            self.logger.debug(f"播放进程已退出，无法发送信号 {sig}")
