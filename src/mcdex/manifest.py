"""
manifest reads and writes pack manifests in the CurseForge/Twitch modpack
format, so packs exported by other tools can be consumed unchanged:

.. code:: json

    {
        "minecraft": {
            "version": "1.12.2",
            "modLoaders": [{"id": "forge-14.23.5.2847", "primary": true}]
        },
        "manifestType": "minecraftModpack",
        "manifestVersion": 1,
        "name": "demoPack",
        "version": "1.0.0",
        "author": "",
        "files": [{"projectID": 238222, "fileID": 2803400, "required": true}],
        "overrides": "overrides"
    }
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import DEFAULT_OVERRIDES_FOLDER
from .exceptions import ManifestInvalid
from .utils import atomic_write_json

MANIFEST_TYPE = "minecraftModpack"
MANIFEST_VERSION = 1
FORGE_PREFIX = "forge-"


@dataclass
class ModLoader:
    id: str
    primary: bool = False

    @classmethod
    def from_dict(cls, data: Dict) -> "ModLoader":
        return cls(id=str(data["id"]), primary=bool(data.get("primary", False)))

    def to_dict(self) -> Dict:
        return {"id": self.id, "primary": self.primary}


@dataclass
class ManifestFile:
    project_id: int
    file_id: int
    required: bool = True

    @classmethod
    def from_dict(cls, data: Dict) -> "ManifestFile":
        return cls(
            project_id=int(data["projectID"]),
            file_id=int(data["fileID"]),
            required=bool(data.get("required", True)),
        )

    def to_dict(self) -> Dict:
        return {
            "projectID": self.project_id,
            "fileID": self.file_id,
            "required": self.required,
        }


@dataclass
class Manifest:
    name: str
    minecraft_version: str
    mod_loaders: List[ModLoader] = field(default_factory=list)
    version: str = "1.0.0"
    author: str = ""
    files: List[ManifestFile] = field(default_factory=list)
    overrides: str = DEFAULT_OVERRIDES_FOLDER
    # unknown keys of third-party manifests, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, name: str, minecraft_version: str, forge_version: str, author: str = "") -> "Manifest":
        return cls(
            name=name,
            minecraft_version=minecraft_version,
            mod_loaders=[ModLoader(id=FORGE_PREFIX + forge_version, primary=True)],
            author=author,
        )

    @classmethod
    def from_dict(cls, data: Dict) -> "Manifest":
        if not isinstance(data, dict):
            raise ManifestInvalid("top level is not an object")
        try:
            minecraft = data.get("minecraft", {})
            known = {
                "minecraft", "manifestType", "manifestVersion", "name",
                "version", "author", "files", "overrides",
            }
            return cls(
                name=str(data.get("name", "")),
                minecraft_version=str(minecraft.get("version", "")),
                mod_loaders=[ModLoader.from_dict(x) for x in minecraft.get("modLoaders", [])],
                version=str(data.get("version", "")),
                author=str(data.get("author", "")),
                files=[ManifestFile.from_dict(x) for x in data.get("files", [])],
                overrides=str(data.get("overrides") or DEFAULT_OVERRIDES_FOLDER),
                extra={k: v for k, v in data.items() if k not in known},
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ManifestInvalid(f"malformed entry: {e!r}") from e

    def to_dict(self) -> Dict:
        data = {
            "minecraft": {
                "version": self.minecraft_version,
                "modLoaders": [x.to_dict() for x in self.mod_loaders],
            },
            "manifestType": MANIFEST_TYPE,
            "manifestVersion": MANIFEST_VERSION,
            "name": self.name,
            "version": self.version,
            "author": self.author,
            "files": [x.to_dict() for x in self.files],
            "overrides": self.overrides,
        }
        data.update(self.extra)
        return data

    @classmethod
    def load(cls, path: str | os.PathLike) -> "Manifest":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ManifestInvalid("file not found", str(path)) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestInvalid(f"not valid JSON: {e}", str(path)) from e
        try:
            return cls.from_dict(data)
        except ManifestInvalid as e:
            raise ManifestInvalid(e.reason, str(path)) from e

    def save(self, path: str | os.PathLike) -> None:
        atomic_write_json(path, self.to_dict())

    def validate(self) -> None:
        if not self.name:
            raise ManifestInvalid("missing name")
        if not self.minecraft_version:
            raise ManifestInvalid("missing minecraft.version")
        if self.primary_loader is None:
            raise ManifestInvalid("missing primary mod loader")
        if not self.primary_loader.id.startswith(FORGE_PREFIX):
            raise ManifestInvalid(f"unsupported mod loader {self.primary_loader.id}")
        seen = set()
        for entry in self.files:
            if entry.project_id in seen:
                raise ManifestInvalid(f"duplicate projectID {entry.project_id}")
            seen.add(entry.project_id)

    @property
    def primary_loader(self) -> Optional[ModLoader]:
        for loader in self.mod_loaders:
            if loader.primary:
                return loader
        # single-loader manifests often omit the flag
        if len(self.mod_loaders) == 1:
            return self.mod_loaders[0]
        return None

    @property
    def forge_version(self) -> str:
        """Forge version of the primary loader, e.g. ``14.23.5.2847``."""
        loader = self.primary_loader
        if loader is None or not loader.id.startswith(FORGE_PREFIX):
            raise ManifestInvalid("no primary forge loader")
        version = loader.id[len(FORGE_PREFIX):]
        if version.startswith(self.minecraft_version + "-"):
            version = version[len(self.minecraft_version) + 1:]
        return version

    def find_file(self, project_id: int) -> Optional[ManifestFile]:
        for entry in self.files:
            if entry.project_id == project_id:
                return entry
        return None

    def add_file(self, project_id: int, file_id: int, required: bool = True) -> None:
        """Add a mod file, replacing an existing entry for the project in place."""
        entry = ManifestFile(project_id=project_id, file_id=file_id, required=required)
        for i, existing in enumerate(self.files):
            if existing.project_id == project_id:
                self.files[i] = entry
                return
        self.files.append(entry)

    def remove_file(self, project_id: int) -> None:
        self.files = [x for x in self.files if x.project_id != project_id]
