"""
exceptions contains all the exceptions raised by mcdex.

Every exception carries a ``msg`` suitable for showing to the user plus the
values that caused it.
"""

from typing import Optional


class McdexError(Exception):
    "Base class of all mcdex errors"

    def __init__(self, msg: str) -> None:
        self.msg: str = msg
        "A message to display to the user"
        Exception.__init__(self, msg)


class UsageError(McdexError):
    "The command line arguments have the wrong count or shape"


class MinecraftRootNotFound(McdexError):
    "The Minecraft directory does not exist or is not readable"

    def __init__(self, path: str) -> None:
        self.path: str = path
        "The directory that was looked up"
        McdexError.__init__(self, f"Minecraft directory {path} not found or not readable")


class LauncherNotFound(McdexError):
    "The launcher profile file is missing"

    def __init__(self, path: str) -> None:
        self.path: str = path
        McdexError.__init__(self, f"Launcher profile file {path} not found; has the Minecraft launcher been run?")


class LauncherCorrupt(McdexError):
    "The launcher profile file could not be parsed"

    def __init__(self, path: str, reason: str) -> None:
        self.path: str = path
        self.reason: str = reason
        McdexError.__init__(self, f"Launcher profile file {path} is corrupt: {reason}")


class LauncherLocked(McdexError):
    "Another process holds the launcher profile lock"

    def __init__(self, lock_path: str) -> None:
        self.lock_path: str = lock_path
        McdexError.__init__(self, f"Timed out waiting for lock {lock_path}")


class HttpError(McdexError):
    "The server answered with a non-2xx status"

    def __init__(self, status: int, url: str) -> None:
        self.status: int = status
        "The HTTP status code"
        self.url: str = url
        "The requested URL"
        McdexError.__init__(self, f"HTTP {status} while fetching {url}")


class NetworkError(McdexError):
    "The request failed below the HTTP layer"

    def __init__(self, cause: Exception, url: str = "") -> None:
        self.cause: Exception = cause
        self.url: str = url
        McdexError.__init__(self, f"Network error while fetching {url}: {cause}")


class DownloadCancelled(McdexError):
    "The transfer was stopped because the fetcher was cancelled"

    def __init__(self, url: str) -> None:
        self.url: str = url
        McdexError.__init__(self, f"Download of {url} cancelled")


class IndexNotFound(McdexError):
    "There is no local mod index yet"

    def __init__(self, path: str) -> None:
        self.path: str = path
        McdexError.__init__(self, f"Mod index {path} not found; run 'mcdex update' first")


class IndexCorrupt(McdexError):
    "The downloaded index is not a usable SQLite database"

    def __init__(self, path: str, reason: str) -> None:
        self.path: str = path
        self.reason: str = reason
        McdexError.__init__(self, f"Mod index {path} is corrupt: {reason}")


class ModNotFound(McdexError):
    "No mod in the index has the given slug or id"

    def __init__(self, slug: str) -> None:
        self.slug: str = slug
        McdexError.__init__(self, f"Mod {slug} not found in the index")


class ModFileNotFound(McdexError):
    "The index has no file with the given id for the mod"

    def __init__(self, mod_id: int, file_id: int) -> None:
        self.mod_id: int = mod_id
        self.file_id: int = file_id
        McdexError.__init__(self, f"File {file_id} of mod {mod_id} not found in the index")


class NoCompatibleFile(McdexError):
    "The mod has no file for the requested Minecraft version"

    def __init__(self, mod_id: int, mc_version: str) -> None:
        self.mod_id: int = mod_id
        self.mc_version: str = mc_version
        McdexError.__init__(self, f"Mod {mod_id} has no file compatible with Minecraft {mc_version}")


class ManifestInvalid(McdexError):
    "manifest.json could not be read or is missing required fields"

    def __init__(self, reason: str, path: Optional[str] = None) -> None:
        self.reason: str = reason
        self.path: Optional[str] = path
        where = f" ({path})" if path else ""
        McdexError.__init__(self, f"Invalid manifest{where}: {reason}")


class PackExists(McdexError):
    "A pack with a manifest already exists at the target directory"

    def __init__(self, path: str) -> None:
        self.path: str = path
        McdexError.__init__(self, f"Pack already exists at {path}")


class PackNotFound(McdexError):
    "The pack directory or its manifest does not exist"

    def __init__(self, path: str) -> None:
        self.path: str = path
        McdexError.__init__(self, f"No pack found at {path}")


class UnsupportedPackSource(McdexError):
    "Packs can only be installed from .zip URLs"

    def __init__(self, url: str) -> None:
        self.url: str = url
        McdexError.__init__(self, f"Unsupported pack source {url}; expected a .zip URL")


class FileOutsidePackDirectory(McdexError):
    "A file would be written outside of the directory it belongs to"

    def __init__(self, path: str, directory: str) -> None:
        self.path: str = path
        "The offending path"
        self.directory: str = directory
        "The directory it has to stay in"
        McdexError.__init__(self, f"{path} is outside of {directory}")


class BadModURL(McdexError):
    "The URL is not a CurseForge project URL"

    def __init__(self, url: str) -> None:
        self.url: str = url
        McdexError.__init__(self, f"{url} is not a CurseForge project URL")


class ModUnresolvable(McdexError):
    "A required mod of the manifest has no downloadable file"

    def __init__(self, project_id: int) -> None:
        self.project_id: int = project_id
        McdexError.__init__(self, f"Unable to resolve a file for required mod {project_id}")


class ForgeInstallFailed(McdexError):
    "The Forge installer exited with an error or produced nothing"

    def __init__(self, exit_code: int, version: str = "") -> None:
        self.exit_code: int = exit_code
        "The exit code of the installer"
        self.version: str = version
        McdexError.__init__(self, f"Forge {version} installer failed with exit code {exit_code}")
