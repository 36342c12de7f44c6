"""
VerseMem 配置管理

从 YAML 文件读取配置，按点分路径访问嵌套键，并为日志、播放和音频提供带默认值的读取方法。
"""
import logging
import os
from typing import Any, Dict, List, Optional
import yaml

DEFAULT_PLAYER_COMMAND = ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"]


class ConfigManager:
    """
    配置管理器

    配置文件缺失时直接报错，缺失的键返回调用方给出的默认值。
    """

    def __init__(self, config_path: str = "config/config.yaml"):
        """
        加载配置文件

        Args:
            config_path: 配置文件路径

        Raises:
            FileNotFoundError: 配置文件不存在
            yaml.YAMLError: 配置文件不是有效的 YAML
        """
        self.logger = logging.getLogger("versemem.config")
        self.config_path = config_path
        self.config: Dict[str, Any] = self._read_config_file()

    def _read_config_file(self) -> Dict[str, Any]:
        if not os.path.isfile(self.config_path):
            hint = f"{self.config_path}.example"
            if os.path.isfile(hint):
                self.logger.error(f"❌ 找不到配置文件 {self.config_path}，请复制 {hint} 并按需修改")
            else:
                self.logger.error(f"❌ 找不到配置文件 {self.config_path}")
            raise FileNotFoundError(f"Configuration file {self.config_path} not found")

        with open(self.config_path, 'r', encoding='utf-8') as config_file:
            try:
                data = yaml.safe_load(config_file)
            except yaml.YAMLError as e:
                self.logger.error(f"❌ 配置文件解析失败: {e}")
                raise

        self.logger.debug(f"已加载配置: {self.config_path}")
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        按点分路径读取配置值，例如 "playback.retry_delay"

        Args:
            key: 配置键
            default: 键不存在时的默认值

        Returns:
            配置值或默认值
        """
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                self.logger.debug(f"配置项 {key} 未设置，使用默认值: {default}")
                return default
            node = node[part]
        return node

    # Logging Configuration Methods
    def get_log_level(self) -> str:
        """
        Get the logging level.

        Returns:
            The logging level
        """
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Optional[str]:
        """
        Get the log file path.

        Returns:
            The log file path or None if not set
        """
        return self.get('logging.file', None)

    def get_log_max_size(self) -> int:
        """
        Get the maximum log file size.

        Returns:
            The maximum log file size in bytes
        """
        return self.get('logging.max_size', 10485760)  # 10 MB

    def get_log_backup_count(self) -> int:
        """
        Get the number of backup log files to keep.

        Returns:
            The number of backup log files
        """
        return self.get('logging.backup_count', 5)

    # Playback Configuration Methods
    def get_retry_delay(self) -> float:
        """
        Get the delay before retrying a failed load or play.

        Returns:
            Retry delay in seconds
        """
        return float(self.get('playback.retry_delay', 1.0))

    def get_default_repeat(self) -> int:
        """
        Get the initial repeat count (0 repeats indefinitely).

        Returns:
            Default repeat count
        """
        return int(self.get('playback.default_repeat', 0))

    def get_default_range_size(self) -> int:
        """
        Get how many verses are selected when a chapter is opened.

        Returns:
            Default range size
        """
        return int(self.get('playback.default_range_size', 5))

    def get_default_reciter(self) -> str:
        """
        Get the reciter used until the user picks another one.

        Returns:
            Reciter name
        """
        return self.get('playback.default_reciter', 'Abdullah Basfar')

    # Audio Configuration Methods
    def get_audio_temp_dir(self) -> str:
        """
        Get the directory downloaded verse audio is cached in.

        Returns:
            The temporary directory path
        """
        return self.get('audio.temp_dir', './temp')

    def get_player_command(self) -> List[str]:
        """
        Get the external player command; the audio file path is appended to it.

        Returns:
            Player command as an argument list
        """
        command = self.get('audio.player_command', DEFAULT_PLAYER_COMMAND)
        if isinstance(command, str):
            return command.split()
        return list(command)

    def get_download_timeout(self) -> int:
        """
        Get the total timeout for a single audio download.

        Returns:
            Timeout in seconds
        """
        return self.get('audio.download_timeout', 30)

    def get_reciter_urls(self) -> Dict[str, str]:
        """
        Get additional reciter base URLs.

        Entries here extend or override the built-in reciter table.

        Returns:
            Mapping from reciter name to audio base URL
        """
        reciters = self.get('audio.reciters', {})
        return dict(reciters) if isinstance(reciters, dict) else {}
