"""
forge drives the official Forge installer jar to set up the Forge client
libraries in the Minecraft directory or a Forge server in a pack directory.

The installer is treated as a black box: its output is not parsed, only its
exit code and the files it is known to produce are checked.
"""

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import List, Optional

import minecraft_launcher_lib as mcl

from .config import FORGE_INSTALLER_PATH, SUBPROCESS_GRACE_PERIOD
from .download import Fetcher
from .env import Env
from .exceptions import ForgeInstallFailed
from .settings import Settings

if os.name == "nt":
    info = subprocess.STARTUPINFO()  # type: ignore
    info.dwFlags |= subprocess.STARTF_USESHOWWINDOW  # type: ignore
    info.wShowWindow = subprocess.SW_HIDE  # type: ignore
    SUBPROCESS_STARTUP_INFO: Optional[subprocess.STARTUPINFO] = info  # type: ignore
else:
    SUBPROCESS_STARTUP_INFO = None


def forge_long_version(minecraft_version: str, forge_version: str) -> str:
    """Maven version of a Forge build, e.g. ``1.12.2-14.23.5.2847``."""
    return f"{minecraft_version}-{forge_version}"


def server_artifacts(long_version: str) -> List[str]:
    """Files of which at least one exists after a successful server install."""
    return [
        f"forge-{long_version}-universal.jar",
        f"forge-{long_version}.jar",
        "run.bat" if os.name == "nt" else "run.sh",
    ]


def _stop_process(proc: subprocess.Popen) -> None:
    """Interrupt proc, and kill it if it has not exited after the grace period."""
    if proc.poll() is not None:
        return
    if os.name == "nt":
        proc.terminate()
    else:
        proc.send_signal(signal.SIGINT)
    try:
        proc.wait(timeout=SUBPROCESS_GRACE_PERIOD)
    except subprocess.TimeoutExpired:
        logging.warning(f"Forge installer did not exit, killing pid {proc.pid}")
        proc.kill()
        proc.wait()


class ForgeInstaller:
    def __init__(self, env: Env, settings: Settings, fetcher: Optional[Fetcher] = None):
        self._env = env
        self._settings = settings
        self._fetcher = fetcher or Fetcher()

    @property
    def java(self) -> str:
        return self._settings.java_executable or mcl.utils.get_java_executable()

    def installer_url(self, minecraft_version: str, forge_version: str) -> str:
        long_version = forge_long_version(minecraft_version, forge_version)
        path = FORGE_INSTALLER_PATH.format(version=long_version)
        return f"{self._settings.forge_maven_url.rstrip('/')}/{path}"

    def installer_path(self, minecraft_version: str, forge_version: str) -> Path:
        long_version = forge_long_version(minecraft_version, forge_version)
        return self._env.forge_cache / f"forge-{long_version}-installer.jar"

    def library_dir(self, minecraft_version: str, forge_version: str) -> Path:
        return self._env.forge_libraries / forge_long_version(minecraft_version, forge_version)

    def is_client_installed(self, minecraft_version: str, forge_version: str) -> bool:
        long_version = forge_long_version(minecraft_version, forge_version)
        lib_dir = self.library_dir(minecraft_version, forge_version)
        return any(
            (lib_dir / name).is_file()
            for name in (f"forge-{long_version}.jar", f"forge-{long_version}-universal.jar")
        )

    def is_server_installed(self, minecraft_version: str, forge_version: str, dest_dir: str | os.PathLike) -> bool:
        long_version = forge_long_version(minecraft_version, forge_version)
        return any((Path(dest_dir) / name).is_file() for name in server_artifacts(long_version))

    def download_installer(self, minecraft_version: str, forge_version: str) -> Path:
        """Download the installer into the cache unless it is already there."""
        path = self.installer_path(minecraft_version, forge_version)
        if path.is_file() and path.stat().st_size > 0:
            logging.debug(f"Using cached Forge installer {path}")
            return path
        url = self.installer_url(minecraft_version, forge_version)
        logging.info(f"Downloading Forge installer {url}")
        self._fetcher.fetch_to_file(url, path)
        return path

    def install_client(self, minecraft_version: str, forge_version: str) -> bool:
        """
        Install the Forge client libraries into the Minecraft directory.
        Returns False if they were already installed.
        """
        if self.is_client_installed(minecraft_version, forge_version):
            logging.info(f"Forge {forge_version} client already installed")
            return False

        installer = self.download_installer(minecraft_version, forge_version)
        logging.info(f"Installing Forge {forge_version} client")
        code = self._run_installer(
            [self.java, "-jar", str(installer), "--installClient", str(self._env.minecraft_directory)],
            cwd=installer.parent,
        )
        if code != 0:
            raise ForgeInstallFailed(code, forge_version)
        return True

    def install_server(self, minecraft_version: str, forge_version: str, dest_dir: str | os.PathLike) -> bool:
        """
        Install a Forge server into dest_dir.
        Returns False if a server was already installed there.
        """
        dest_dir = Path(dest_dir)
        if self.is_server_installed(minecraft_version, forge_version, dest_dir):
            logging.info(f"Forge {forge_version} server already installed in {dest_dir}")
            return False

        installer = self.download_installer(minecraft_version, forge_version)
        dest_dir.mkdir(parents=True, exist_ok=True)
        logging.info(f"Installing Forge {forge_version} server into {dest_dir}")
        code = self._run_installer(
            [self.java, "-jar", str(installer), "--installServer", str(dest_dir)],
            cwd=dest_dir,
        )
        if code != 0:
            raise ForgeInstallFailed(code, forge_version)
        if not self.is_server_installed(minecraft_version, forge_version, dest_dir):
            logging.error(f"Forge installer finished but no server jar found in {dest_dir}")
            raise ForgeInstallFailed(code, forge_version)
        return True

    def _run_installer(self, args: List[str], cwd: Path) -> int:
        logging.debug(f"Running {' '.join(args)}")
        proc = subprocess.Popen(args, cwd=cwd, startupinfo=SUBPROCESS_STARTUP_INFO)
        try:
            return proc.wait()
        except KeyboardInterrupt:
            logging.warning("Interrupted, stopping Forge installer")
            _stop_process(proc)
            raise
