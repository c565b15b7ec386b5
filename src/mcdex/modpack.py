import json
import logging
import os
import shutil
import zipfile
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Set, Tuple
from urllib.parse import urlparse

from minecraft_launcher_lib.types import CallbackDict

from .config import (
    CURSEFORGE_HOSTS,
    MANIFEST_FILENAME,
    MODS_FOLDER,
    PACK_ARCHIVE_FILENAME,
)
from .database import FileDescriptor, ModDatabase
from .download import Fetcher
from .env import Env
from .exceptions import (
    BadModURL,
    LauncherNotFound,
    ManifestInvalid,
    McdexError,
    ModFileNotFound,
    ModUnresolvable,
    NoCompatibleFile,
    PackExists,
    PackNotFound,
    UnsupportedPackSource,
    UsageError,
)
from .forge import ForgeInstaller
from .launcher import upsert_profile
from .manifest import Manifest
from .settings import Settings
from .utils import atomic_write_json, check_path_inside_directory, empty


def parse_mod_url(url: str) -> str:
    """
    Return the project slug of a CurseForge project URL. Both
    ``minecraft.curseforge.com/projects/<slug>`` and
    ``www.curseforge.com/minecraft/mc-mods/<slug>`` are understood.
    """
    if "://" not in url:
        url = "https://" + url
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    parts = [p for p in parsed.path.split("/") if p]

    if host not in CURSEFORGE_HOSTS:
        raise BadModURL(url)
    if host == "minecraft.curseforge.com" and len(parts) >= 2 and parts[0] == "projects":
        return parts[1]
    if len(parts) >= 3 and parts[0] == "minecraft" and parts[1] == "mc-mods":
        return parts[2]
    raise BadModURL(url)


class ModPack:
    """
    A pack directory and its manifest.

    Every mutating operation saves the manifest atomically, so the manifest
    on disk either reflects the operation or is left unchanged.
    """

    def __init__(
        self,
        env: Env,
        name: str,
        url: str = "",
        path: Optional[str | os.PathLike] = None,
        settings: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        database: Optional[ModDatabase] = None,
        forge: Optional[ForgeInstaller] = None,
        callback: Optional[CallbackDict] = None,
    ):
        self.env = env
        self.name = name
        self.url = url
        self.path = Path(path) if path is not None else env.pack_root / name
        self._settings = settings or Settings(env).load()
        self._fetcher = fetcher or Fetcher()
        self._db = database or ModDatabase(env, self._fetcher, self._settings.index_url)
        self._forge = forge or ForgeInstaller(env, self._settings, self._fetcher)
        self._callback: CallbackDict = callback or {}
        self._manifest: Optional[Manifest] = None

    @classmethod
    def create(
        cls,
        env: Env,
        name: str,
        minecraft_version: str,
        forge_version: str,
        author: str = "",
        **kwargs,
    ) -> "ModPack":
        """Create a new pack with an empty mod list and a launcher profile for it."""
        pack = cls(env, name, **kwargs)
        pack.create_manifest(minecraft_version, forge_version, author)
        pack.create_launcher_profile()
        return pack

    @classmethod
    def open(cls, env: Env, name: str, **kwargs) -> "ModPack":
        """Open an existing pack by name (under the pack root) or absolute path."""
        if os.path.isabs(name):
            path = Path(name)
            pack = cls(env, path.name, path=path, **kwargs)
        else:
            pack = cls(env, name, **kwargs)
        if not pack.manifest_path.is_file():
            raise PackNotFound(str(pack.path))
        pack.process_manifest()
        return pack

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILENAME

    @property
    def archive_path(self) -> Path:
        return self.path / PACK_ARCHIVE_FILENAME

    @property
    def mods_path(self) -> Path:
        return self.path / MODS_FOLDER

    @property
    def manifest(self) -> Manifest:
        if self._manifest is None:
            self._manifest = Manifest.load(self.manifest_path)
        return self._manifest

    def _status(self, message: str) -> None:
        self._callback.get("setStatus", empty)(message)

    def create_manifest(self, minecraft_version: str, forge_version: str, author: str = "") -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        if self.manifest_path.exists():
            raise PackExists(str(self.path))

        manifest = Manifest.new(self.name, minecraft_version, forge_version, author)
        manifest.save(self.manifest_path)
        self._manifest = manifest
        logging.info(f"Created pack {self.name} in {self.path}")

    def download(self) -> None:
        """Fetch the pack archive from url and unpack its manifest."""
        if not urlparse(self.url).path.lower().endswith(".zip"):
            raise UnsupportedPackSource(self.url)

        self.path.mkdir(parents=True, exist_ok=True)
        self._status(f"Downloading {self.url}")
        self._fetcher.fetch_to_file(self.url, self.archive_path)

        try:
            with zipfile.ZipFile(self.archive_path, "r") as zf:
                data = zf.read(MANIFEST_FILENAME)
        except zipfile.BadZipFile as e:
            raise ManifestInvalid(f"pack archive is not a zip file: {e}", self.url) from e
        except KeyError as e:
            raise ManifestInvalid(f"pack archive has no {MANIFEST_FILENAME}", self.url) from e

        # a manifest already in the pack directory is only replaced by one that parses
        try:
            manifest = Manifest.from_dict(json.loads(data))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestInvalid(f"not valid JSON: {e}", self.url) from e
        except ManifestInvalid as e:
            raise ManifestInvalid(e.reason, self.url) from e

        atomic_write_json(self.manifest_path, manifest.to_dict())
        self._manifest = manifest

    def process_manifest(self) -> None:
        """(Re)load the manifest from disk and check its required fields."""
        self._manifest = None
        try:
            self.manifest.validate()
        except ManifestInvalid as e:
            raise ManifestInvalid(e.reason, str(self.manifest_path)) from e
        logging.info(
            f"Pack {self.manifest.name} {self.manifest.version}: Minecraft "
            f"{self.manifest.minecraft_version}, Forge {self.manifest.forge_version}, "
            f"{len(self.manifest.files)} mods"
        )

    def create_launcher_profile(self) -> None:
        """Point a launcher profile at this pack, installing the Forge client first if needed."""
        manifest = self.manifest
        if not self.env.launcher_profiles.is_file():
            raise LauncherNotFound(str(self.env.launcher_profiles))

        minecraft_version = manifest.minecraft_version
        forge_version = manifest.forge_version
        if not self._forge.is_client_installed(minecraft_version, forge_version):
            self._status(f"Installing Forge {forge_version}")
            self._forge.install_client(minecraft_version, forge_version)

        upsert_profile(
            self.env.launcher_profiles,
            self.name,
            minecraft_version,
            forge_version,
            self.path,
            self._settings.launcher_java_args,
        )

    def _resolve_file(self, project_id: int, file_id: int, required: bool) -> Optional[FileDescriptor]:
        minecraft_version = self.manifest.minecraft_version
        try:
            return self._db.lookup_file(project_id, file_id)
        except ModFileNotFound:
            logging.debug(f"File {file_id} of mod {project_id} not indexed, looking for latest")
        try:
            return self._db.latest_file_for(project_id, minecraft_version)
        except NoCompatibleFile:
            if required:
                raise ModUnresolvable(project_id)
        logging.warning(f"Skipping optional mod {project_id}: no file for Minecraft {minecraft_version}")
        self._status(f"WARNING: skipping optional mod {project_id}")
        return None

    def _report(self, n: int, total: int, descriptor: FileDescriptor, downloaded: bool) -> None:
        if downloaded:
            self._status(f"fetching {descriptor.filename} ({n}/{total})")
        else:
            logging.debug(f"{descriptor.filename} already present")
        self._callback.get("setProgress", empty)(n)

    def install_mods(self) -> int:
        """
        Download every mod file of the manifest into the mods folder.
        Files already present are skipped. Returns the number of downloads.
        """
        files = list(self.manifest.files)
        total = len(files)
        self.mods_path.mkdir(parents=True, exist_ok=True)
        self._callback.get("setMax", empty)(total)

        workers = self._settings.workers
        # no pool for a single worker, transfers then run on this thread
        executor = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
        jobs: List[Tuple[int, FileDescriptor, Optional[Future]]] = []
        queued: Set[Path] = set()
        resolve_error: Optional[McdexError] = None
        fetched = 0

        try:
            # Index queries stay on this thread, only the transfers run in the pool
            for n, entry in enumerate(files, start=1):
                try:
                    descriptor = self._resolve_file(entry.project_id, entry.file_id, entry.required)
                except McdexError as e:
                    resolve_error = e
                    break
                if descriptor is None:
                    continue

                dest = self.mods_path / descriptor.filename
                check_path_inside_directory(self.mods_path, dest)
                if dest in queued or (dest.is_file() and dest.stat().st_size > 0):
                    future = None
                elif executor is None:
                    queued.add(dest)
                    self._fetcher.fetch_to_file(descriptor.url, dest)
                    fetched += 1
                    self._report(n, total, descriptor, True)
                    continue
                else:
                    queued.add(dest)
                    future = executor.submit(self._fetcher.fetch_to_file, descriptor.url, dest)

                if executor is None:
                    self._report(n, total, descriptor, False)
                else:
                    jobs.append((n, descriptor, future))

            for n, descriptor, future in jobs:
                if future is not None:
                    future.result()
                    fetched += 1
                self._report(n, total, descriptor, future is not None)
        except KeyboardInterrupt:
            # running transfers notice the cancel and remove their .part files
            self._fetcher.cancel()
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)
                executor = None
            raise
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        if resolve_error is not None:
            raise resolve_error

        logging.info(f"Installed mods for {self.name}: {fetched} downloaded, {total - fetched} skipped or present")
        return fetched

    def install_overrides(self) -> int:
        """Copy the archive's overrides folder into the pack directory. Returns the file count."""
        if not self.archive_path.is_file():
            raise PackNotFound(str(self.archive_path))

        prefix = self.manifest.overrides.strip("/") + "/"
        count = 0
        with zipfile.ZipFile(self.archive_path, "r") as zf:
            for info in zf.infolist():
                if info.is_dir() or not info.filename.startswith(prefix):
                    continue
                relative = info.filename[len(prefix):]
                if not relative:
                    continue

                full_path = self.path / relative
                check_path_inside_directory(self.path, full_path)
                full_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(full_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                count += 1

        logging.info(f"Copied {count} override files into {self.path}")
        return count

    def register_mod(self, url: str, file_id: str = "") -> FileDescriptor:
        """Add the CurseForge project at url to the manifest, at file_id or the latest compatible file."""
        slug = parse_mod_url(url)
        mod_id, mod_name = self._db.resolve_slug(slug)

        if file_id:
            try:
                descriptor = self._db.lookup_file(mod_id, int(file_id))
            except ValueError as e:
                raise UsageError(f"File id {file_id} is not a number") from e
        else:
            descriptor = self._db.latest_file_for(mod_id, self.manifest.minecraft_version)

        self.manifest.add_file(mod_id, descriptor.id, required=True)
        self.manifest.save(self.manifest_path)
        logging.info(f"Registered {mod_name} ({descriptor.filename}) with {self.name}")
        return descriptor

    def unregister_mod(self, ref: str) -> bool:
        """Remove a mod given by project id, slug or CurseForge URL. Returns False if it was not registered."""
        if ref.isdigit():
            project_id = int(ref)
        else:
            slug = parse_mod_url(ref) if "/" in ref else ref
            project_id, _ = self._db.resolve_slug(slug)

        if self.manifest.find_file(project_id) is None:
            logging.info(f"Mod {project_id} is not registered with {self.name}")
            return False
        self.manifest.remove_file(project_id)
        self.manifest.save(self.manifest_path)
        logging.info(f"Removed mod {project_id} from {self.name}")
        return True

    def install_server(self) -> None:
        """Install the Forge server into the pack directory, then its mods."""
        manifest = self.manifest
        self._status(f"Installing Forge {manifest.forge_version} server")
        self._forge.install_server(manifest.minecraft_version, manifest.forge_version, self.path)
        self.install_mods()

    def close(self) -> None:
        self._db.close()
