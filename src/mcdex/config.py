import platform

import psutil

from ._version import version

APP_NAME = "mcdex"
APP_VERSION = version

SYSTEM_OS = platform.system()
USER_AGENT = f"{APP_NAME}/{APP_VERSION} ({SYSTEM_OS})"

# In megabytes
RAM_SIZE = psutil.virtual_memory().total // 1024 // 1024

PACK_ROOT_NAME = "mcdex"
INDEX_FILENAME = "mcdex.sqlite"
SETTINGS_FILENAME = "settings.json"
MANIFEST_FILENAME = "manifest.json"
PACK_ARCHIVE_FILENAME = "pack.zip"
MODS_FOLDER = "mods"
DEFAULT_OVERRIDES_FOLDER = "overrides"
LAUNCHER_PROFILES_FILENAME = "launcher_profiles.json"

INDEX_URL = "https://files.mcdex.net/data/mcdex.sqlite"
INDEX_CONTENT_TYPE = "application/octet-stream"

FORGE_MAVEN_URL = "https://files.minecraftforge.net/maven"
FORGE_INSTALLER_PATH = "net/minecraftforge/forge/{version}/forge-{version}-installer.jar"
FORGE_LIBRARY_PATH = ("net", "minecraftforge", "forge")

CURSEFORGE_HOSTS = ("minecraft.curseforge.com", "www.curseforge.com", "curseforge.com")

HTTP_TIMEOUT = 60
MAX_REDIRECTS = 10

DEFAULT_DOWNLOAD_WORKERS = 1
MAX_DOWNLOAD_WORKERS = 8

LOCK_TIMEOUT = 10.0
SUBPROCESS_GRACE_PERIOD = 5.0

JVM_ARGS = [
    "-XX:+UnlockExperimentalVMOptions",
    "-XX:+UseG1GC",
    "-XX:G1NewSizePercent=20",
    "-XX:G1ReservePercent=20",
    "-XX:MaxGCPauseMillis=50",
    "-XX:G1HeapRegionSize=32M",
]
