import datetime
import json
import logging
import os
from pathlib import Path

from .exceptions import LauncherCorrupt, LauncherNotFound
from .utils import atomic_write_json, file_lock


def forge_version_id(minecraft_version: str, forge_version: str) -> str:
    """Version id the Forge installer registers with the launcher."""
    return f"{minecraft_version}-forge{forge_version}"


def _timestamp() -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def upsert_profile(
    launcher_profile_file: str | os.PathLike,
    profile_name: str,
    minecraft_version: str,
    forge_version: str,
    game_dir: str | os.PathLike,
    java_args: str = "",
) -> dict:
    """
    Insert or replace the profile named profile_name in launcher_profiles.json.
    Everything else in the file is kept as is. Returns the written profile.
    """
    path = Path(launcher_profile_file)
    if not path.is_file():
        raise LauncherNotFound(str(path))

    with file_lock(path.with_name(path.name + ".lock")):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LauncherCorrupt(str(path), str(e)) from e
        if not isinstance(data, dict):
            raise LauncherCorrupt(str(path), "top level is not an object")

        profiles = data.setdefault("profiles", {})
        if not isinstance(profiles, dict):
            raise LauncherCorrupt(str(path), "'profiles' is not an object")

        now = _timestamp()
        previous = profiles.get(profile_name) or {}
        profile = dict(previous)
        profile.update(
            {
                "name": profile_name,
                "type": "custom",
                "created": previous.get("created", now),
                "lastUsed": now,
                "lastVersionId": forge_version_id(minecraft_version, forge_version),
                "gameDir": str(game_dir),
                "javaArgs": java_args,
            }
        )
        profiles[profile_name] = profile
        atomic_write_json(path, data)

    logging.info(f"Launcher profile {profile_name} -> {profile['lastVersionId']}")
    return profile
