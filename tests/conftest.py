import json
import sqlite3
from pathlib import Path

import httpx
import pytest

from mcdex.config import FORGE_MAVEN_URL
from mcdex.download import Fetcher
from mcdex.env import init_env
from mcdex.forge import ForgeInstaller, forge_long_version
from mcdex.settings import Settings

MC_VERSION = "1.12.2"
FORGE_VERSION = "14.23.5.2847"
FORGE_LONG_VERSION = forge_long_version(MC_VERSION, FORGE_VERSION)
FORGE_INSTALLER_URL = (
    f"{FORGE_MAVEN_URL}/net/minecraftforge/forge/{FORGE_LONG_VERSION}/forge-{FORGE_LONG_VERSION}-installer.jar"
)

JEI_ID = 238222
JOURNEYMAP_ID = 32274
MOUSE_TWEAKS_ID = 60089

MODS = [
    (JEI_ID, "jei", "Just Enough Items", "View items and recipes"),
    (JOURNEYMAP_ID, "journeymap", "JourneyMap", "Real-time mapping"),
    (MOUSE_TWEAKS_ID, "mouse-tweaks", "Mouse Tweaks", "Inventory handling"),
]

FILES = [
    (2803400, JEI_ID, "1.12.2", "jei_1.12.2-4.15.0.293.jar", "2019-10-01T00:00:00"),
    (2800000, JEI_ID, "1.12.2", "jei_1.12.2-4.14.4.267.jar", "2019-09-01T00:00:00"),
    (2700000, JEI_ID, "1.11.2", "jei_1.11.2-4.5.0.294.jar", "2019-12-01T00:00:00"),
    (2916002, JOURNEYMAP_ID, "1.12.2", "journeymap-1.12.2-5.7.1.jar", "2020-01-01T00:00:00"),
    (2900001, MOUSE_TWEAKS_ID, "1.12.2", "MouseTweaks-2.10-a.jar", "2020-02-02T00:00:00"),
    (2900005, MOUSE_TWEAKS_ID, "1.12.2", "MouseTweaks-2.10-b.jar", "2020-02-02T00:00:00"),
]


def file_url(file_id: int, filename: str) -> str:
    return f"https://edge.example.net/files/{file_id}/{filename}"


def make_index(path: Path, mods=MODS, files=FILES) -> Path:
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE mods (id INTEGER PRIMARY KEY, slug TEXT, name TEXT, description TEXT);
        CREATE TABLE files (
            id INTEGER PRIMARY KEY, modId INTEGER, mcVersion TEXT,
            url TEXT, filename TEXT, date TEXT
        );
        CREATE INDEX files_mod_version ON files (modId, mcVersion, date DESC);
        """
    )
    conn.executemany("INSERT INTO mods VALUES (?, ?, ?, ?)", mods)
    conn.executemany(
        "INSERT INTO files VALUES (?, ?, ?, ?, ?, ?)",
        [(fid, mid, mcv, file_url(fid, name), name, date) for fid, mid, mcv, name, date in files],
    )
    conn.commit()
    conn.close()
    return path


class HttpStub:
    """Canned responses keyed by URL, for httpx.MockTransport."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, content=b"", status=200, headers=None):
        self.routes[url] = (status, content, headers or {})

    def redirect(self, url, location, status=302):
        self.add(url, status=status, headers={"Location": location})

    def count(self, url) -> int:
        return self.requests.count(url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.routes:
            return httpx.Response(404, text="not found")
        status, content, headers = self.routes[url]
        if isinstance(content, BaseException):
            raise content
        if isinstance(content, httpx.SyncByteStream):
            return httpx.Response(status, stream=content, headers=headers)
        return httpx.Response(status, content=content, headers=headers)


@pytest.fixture
def minecraft_dir(tmp_path):
    root = tmp_path / ".minecraft"
    root.mkdir()
    profiles = {
        "profiles": {"Latest": {"name": "Latest", "type": "latest-release", "lastVersionId": "1.12.2"}},
        "clientToken": "0b6c3d0e",
        "settings": {"enableSnapshots": False},
    }
    (root / "launcher_profiles.json").write_text(json.dumps(profiles))
    return root


@pytest.fixture
def env(minecraft_dir):
    return init_env(minecraft_dir)


@pytest.fixture
def settings(env):
    return Settings(env).load()


@pytest.fixture
def index(env):
    return make_index(env.index_path)


@pytest.fixture
def http():
    stub = HttpStub()
    for fid, _, _, name, _ in FILES:
        stub.add(file_url(fid, name), content=f"jar {fid}".encode())
    stub.add(FORGE_INSTALLER_URL, content=b"forge installer")
    return stub


@pytest.fixture
def fetcher(http):
    client = httpx.Client(transport=httpx.MockTransport(http.handler), follow_redirects=True, max_redirects=10)
    with Fetcher(client) as f:
        yield f


@pytest.fixture
def forge_runs(monkeypatch, env):
    """Replace the Java call with a stub that produces what the real installer would."""
    runs = []

    def fake_run(self, args, cwd):
        runs.append(args)
        if "--installClient" in args:
            lib_dir = env.forge_libraries / FORGE_LONG_VERSION
            lib_dir.mkdir(parents=True, exist_ok=True)
            (lib_dir / f"forge-{FORGE_LONG_VERSION}.jar").write_bytes(b"forge")
        else:
            dest = Path(args[args.index("--installServer") + 1])
            (dest / f"forge-{FORGE_LONG_VERSION}.jar").write_bytes(b"forge server")
        return 0

    monkeypatch.setattr(ForgeInstaller, "_run_installer", fake_run)
    return runs


@pytest.fixture
def messages():
    return []


@pytest.fixture
def pack_kwargs(settings, fetcher, messages):
    return {"settings": settings, "fetcher": fetcher, "callback": {"setStatus": messages.append}}
