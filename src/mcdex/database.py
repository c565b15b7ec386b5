"""
database contains the local mod index: a SQLite snapshot of the curated
CurseForge catalogue with two tables::

    mods(id, slug, name, description, ...)
    files(id, modId, mcVersion, url, filename, date)

The snapshot is only ever replaced as a whole by :meth:`ModDatabase.download`,
so it is opened read-only everywhere else.
"""

import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .config import INDEX_CONTENT_TYPE
from .download import Fetcher
from .env import Env
from .exceptions import (
    IndexCorrupt,
    IndexNotFound,
    ModFileNotFound,
    ModNotFound,
    NoCompatibleFile,
)

REQUIRED_TABLES = {"mods", "files"}

FILE_COLUMNS = "id, modId, mcVersion, url, filename, date"


@dataclass(frozen=True)
class FileDescriptor:
    id: int
    mod_id: int
    mc_version: str
    url: str
    filename: str
    date: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "FileDescriptor":
        return cls(
            id=int(row["id"]),
            mod_id=int(row["modId"]),
            mc_version=row["mcVersion"],
            url=row["url"],
            filename=row["filename"],
            date=str(row["date"]),
        )


@dataclass(frozen=True)
class ModInfo:
    id: int
    slug: str
    name: str
    description: str


def _validate_snapshot(path: Path) -> None:
    """Raise IndexCorrupt unless path is a SQLite database holding the index tables."""
    try:
        conn = sqlite3.connect(path)
        try:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        finally:
            conn.close()
    except sqlite3.DatabaseError as e:
        raise IndexCorrupt(str(path), str(e)) from e

    missing = REQUIRED_TABLES - {name for (name,) in rows}
    if missing:
        raise IndexCorrupt(str(path), f"missing tables {', '.join(sorted(missing))}")


class ModDatabase:
    def __init__(self, env: Env, fetcher: Optional[Fetcher] = None, index_url: str = ""):
        self._path = env.index_path
        self._fetcher = fetcher
        self._index_url = index_url
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def path(self) -> Path:
        return self._path

    def download(self) -> None:
        """Fetch the latest snapshot and swap it in place of the current one."""
        if self._fetcher is None:
            self._fetcher = Fetcher()
        self.close()

        staging = self._path.with_name(self._path.name + ".download")
        logging.info(f"Downloading mod index from {self._index_url}")
        try:
            headers = self._fetcher.fetch_to_file(self._index_url, staging)
            content_type = headers.get("content-type", "")
            if content_type and not content_type.startswith(INDEX_CONTENT_TYPE):
                logging.warning(f"Unexpected index content type {content_type}")
            _validate_snapshot(staging)
            os.replace(staging, self._path)
        finally:
            staging.unlink(missing_ok=True)
        logging.info(f"Mod index updated: {self._path}")

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            if not self._path.is_file():
                raise IndexNotFound(str(self._path))
            uri = self._path.absolute().as_uri() + "?mode=ro"
            try:
                self._conn = sqlite3.connect(uri, uri=True)
            except sqlite3.DatabaseError as e:
                raise IndexCorrupt(str(self._path), str(e)) from e
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            return self._connect().execute(sql, params).fetchall()
        except sqlite3.DatabaseError as e:
            raise IndexCorrupt(str(self._path), str(e)) from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "ModDatabase":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def resolve_slug(self, slug: str) -> Tuple[int, str]:
        rows = self._query("SELECT id, name FROM mods WHERE slug = ?", (slug,))
        if not rows:
            raise ModNotFound(slug)
        return int(rows[0]["id"]), rows[0]["name"]

    def get_mod(self, mod_id: int) -> ModInfo:
        rows = self._query(
            "SELECT id, slug, name, description FROM mods WHERE id = ?", (mod_id,)
        )
        if not rows:
            raise ModNotFound(str(mod_id))
        row = rows[0]
        return ModInfo(int(row["id"]), row["slug"], row["name"], row["description"] or "")

    def latest_file_for(self, mod_id: int, mc_version: str) -> FileDescriptor:
        """Newest file of the mod for mc_version; ties on date go to the greater id."""
        rows = self._query(
            f"SELECT {FILE_COLUMNS} FROM files WHERE modId = ? AND mcVersion = ? "
            "ORDER BY date DESC, id DESC LIMIT 1",
            (mod_id, mc_version),
        )
        if not rows:
            raise NoCompatibleFile(mod_id, mc_version)
        return FileDescriptor.from_row(rows[0])

    def lookup_file(self, mod_id: int, file_id: int) -> FileDescriptor:
        rows = self._query(
            f"SELECT {FILE_COLUMNS} FROM files WHERE modId = ? AND id = ?",
            (mod_id, file_id),
        )
        if not rows:
            raise ModFileNotFound(mod_id, file_id)
        return FileDescriptor.from_row(rows[0])

    def search_mods(self, term: str, mc_version: Optional[str] = None) -> List[ModInfo]:
        pattern = f"%{term}%"
        sql = "SELECT id, slug, name, description FROM mods WHERE (slug LIKE ? OR name LIKE ?)"
        params: tuple = (pattern, pattern)
        if mc_version:
            sql += " AND EXISTS (SELECT 1 FROM files WHERE files.modId = mods.id AND files.mcVersion = ?)"
            params += (mc_version,)
        sql += " ORDER BY name COLLATE NOCASE"
        return [
            ModInfo(int(row["id"]), row["slug"], row["name"], row["description"] or "")
            for row in self._query(sql, params)
        ]
