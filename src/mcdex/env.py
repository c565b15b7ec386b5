import datetime
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import minecraft_launcher_lib as mcl

from .config import (
    FORGE_LIBRARY_PATH,
    INDEX_FILENAME,
    LAUNCHER_PROFILES_FILENAME,
    PACK_ROOT_NAME,
    SETTINGS_FILENAME,
)
from .exceptions import MinecraftRootNotFound


@dataclass(frozen=True)
class Env:
    minecraft_directory: Path
    pack_root: Path
    index_path: Path

    @property
    def launcher_profiles(self) -> Path:
        return self.minecraft_directory / LAUNCHER_PROFILES_FILENAME

    @property
    def libraries(self) -> Path:
        return self.minecraft_directory / "libraries"

    @property
    def forge_libraries(self) -> Path:
        return self.libraries.joinpath(*FORGE_LIBRARY_PATH)

    @property
    def forge_cache(self) -> Path:
        return self.pack_root / "cache" / "forge"

    @property
    def settings_file(self) -> Path:
        return self.pack_root / SETTINGS_FILENAME

    def index_mtime(self) -> Optional[datetime.datetime]:
        """Modification time of the index snapshot, None if there is none."""
        try:
            stamp = self.index_path.stat().st_mtime
        except FileNotFoundError:
            return None
        return datetime.datetime.fromtimestamp(stamp, tz=datetime.timezone.utc)

    def describe(self) -> Dict[str, str]:
        mtime = self.index_mtime()
        return {
            "minecraft_directory": str(self.minecraft_directory),
            "pack_root": str(self.pack_root),
            "index_path": str(self.index_path),
            "index_updated": mtime.isoformat() if mtime else "never",
        }


def init_env(minecraft_directory: Optional[str | os.PathLike] = None) -> Env:
    """
    Resolve the Minecraft directory and create the mcdex pack root inside it.

    The Minecraft directory itself is never created; it has to be made by the
    launcher first.
    """
    if minecraft_directory is None:
        minecraft_directory = mcl.utils.get_minecraft_directory()
    root = Path(minecraft_directory).absolute()

    if not root.is_dir() or not os.access(root, os.R_OK | os.X_OK):
        raise MinecraftRootNotFound(str(root))

    pack_root = root / PACK_ROOT_NAME
    pack_root.mkdir(exist_ok=True)
    logging.debug(f"Minecraft directory: {root}")

    return Env(
        minecraft_directory=root,
        pack_root=pack_root,
        index_path=pack_root / INDEX_FILENAME,
    )
