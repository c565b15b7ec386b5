import json
import logging
from typing import Optional

from .config import (
    DEFAULT_DOWNLOAD_WORKERS,
    FORGE_MAVEN_URL,
    INDEX_URL,
    JVM_ARGS,
    MAX_DOWNLOAD_WORKERS,
    RAM_SIZE,
)
from .env import Env
from .utils import atomic_write_json


class Settings:
    def __init__(self, env: Env):
        self._settings_file = env.settings_file
        self.index_url = INDEX_URL
        self.forge_maven_url = FORGE_MAVEN_URL
        self.download_workers = DEFAULT_DOWNLOAD_WORKERS
        self.java_executable: Optional[str] = None
        self.max_use_ram = min(RAM_SIZE // 2, 4 * 1024)
        self.java_args: list[str] = list(JVM_ARGS)

    def load(self) -> "Settings":
        if not self._settings_file.exists():
            self.save()
            return self

        try:
            with open(self._settings_file, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logging.warning(f"Ignoring unreadable settings file {self._settings_file}: {e}")
            return self

        self.index_url = data.get("index_url", self.index_url)
        self.forge_maven_url = data.get("forge_maven_url", self.forge_maven_url)
        self.download_workers = int(data.get("download_workers", self.download_workers))
        self.java_executable = data.get("java_executable", self.java_executable)
        self.max_use_ram = int(data.get("max_use_ram", self.max_use_ram))
        self.java_args = data.get("java_args", self.java_args)
        return self

    def save(self) -> None:
        data = {
            "index_url": self.index_url,
            "forge_maven_url": self.forge_maven_url,
            "download_workers": self.download_workers,
            "java_executable": self.java_executable,
            "max_use_ram": self.max_use_ram,
            "java_args": self.java_args,
        }
        atomic_write_json(self._settings_file, data)

    @property
    def workers(self) -> int:
        """download_workers clamped to the supported range."""
        return max(1, min(self.download_workers, MAX_DOWNLOAD_WORKERS))

    @property
    def launcher_java_args(self) -> str:
        return " ".join([f"-Xmx{self.max_use_ram}M", *self.java_args])
