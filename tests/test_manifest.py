import json

import pytest

from mcdex.exceptions import ManifestInvalid
from mcdex.manifest import Manifest


@pytest.fixture
def manifest():
    return Manifest.new("demoPack", "1.12.2", "14.23.5.2847", author="steve")


def test_new_manifest_document(manifest):
    data = manifest.to_dict()

    assert data == {
        "minecraft": {
            "version": "1.12.2",
            "modLoaders": [{"id": "forge-14.23.5.2847", "primary": True}],
        },
        "manifestType": "minecraftModpack",
        "manifestVersion": 1,
        "name": "demoPack",
        "version": "1.0.0",
        "author": "steve",
        "files": [],
        "overrides": "overrides",
    }
    assert manifest.forge_version == "14.23.5.2847"


def test_save_and_load(tmp_path, manifest):
    path = tmp_path / "manifest.json"
    manifest.add_file(238222, 2803400)
    manifest.add_file(32274, 2916002, required=False)

    manifest.save(path)
    loaded = Manifest.load(path)

    assert loaded == manifest
    assert json.loads(path.read_text())["files"][1] == {"projectID": 32274, "fileID": 2916002, "required": False}
    assert list(tmp_path.iterdir()) == [path]


def test_add_file_is_idempotent(manifest):
    manifest.add_file(238222, 2803400)
    once = manifest.to_dict()
    manifest.add_file(238222, 2803400)

    assert manifest.to_dict() == once


def test_add_file_replaces_in_place(manifest):
    manifest.add_file(1, 10)
    manifest.add_file(2, 20)
    manifest.add_file(3, 30)

    manifest.add_file(2, 21, required=False)

    assert [(f.project_id, f.file_id, f.required) for f in manifest.files] == [
        (1, 10, True),
        (2, 21, False),
        (3, 30, True),
    ]


def test_remove_file(manifest):
    manifest.add_file(1, 10)
    manifest.add_file(2, 20)

    manifest.remove_file(1)
    manifest.remove_file(99)

    assert [f.project_id for f in manifest.files] == [2]


def test_load_third_party_manifest(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text(
        json.dumps(
            {
                "minecraft": {"version": "1.12.2", "modLoaders": [{"id": "forge-14.23.5.2838", "primary": True}]},
                "manifestType": "minecraftModpack",
                "manifestVersion": 1,
                "name": "Some Pack",
                "version": "2.1",
                "author": "someone",
                "projectID": 123456,
                "files": [{"projectID": 238222, "fileID": 2803400, "required": True}],
                "overrides": "overrides",
            }
        )
    )

    manifest = Manifest.load(path)
    manifest.validate()
    manifest.save(path)

    assert manifest.forge_version == "14.23.5.2838"
    assert json.loads(path.read_text())["projectID"] == 123456


def test_forge_version_with_minecraft_prefix():
    manifest = Manifest.new("p", "1.12.2", "1.12.2-14.23.5.2847")

    assert manifest.forge_version == "14.23.5.2847"


def test_load_invalid_json(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text("{ not json")

    with pytest.raises(ManifestInvalid) as exc:
        Manifest.load(path)
    assert exc.value.path == str(path)


def test_load_malformed_files(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps({"name": "x", "minecraft": {"version": "1.12.2"}, "files": [{"fileID": 1}]}))

    with pytest.raises(ManifestInvalid):
        Manifest.load(path)


@pytest.mark.parametrize(
    "data, reason",
    [
        ({"minecraft": {"version": "1.12.2", "modLoaders": [{"id": "forge-1", "primary": True}]}}, "missing name"),
        ({"name": "x", "minecraft": {"modLoaders": [{"id": "forge-1", "primary": True}]}}, "missing minecraft.version"),
        ({"name": "x", "minecraft": {"version": "1.12.2", "modLoaders": []}}, "missing primary mod loader"),
        (
            {"name": "x", "minecraft": {"version": "1.16.5", "modLoaders": [{"id": "fabric-0.11", "primary": True}]}},
            "unsupported mod loader fabric-0.11",
        ),
    ],
)
def test_validate(data, reason):
    with pytest.raises(ManifestInvalid) as exc:
        Manifest.from_dict(data).validate()
    assert exc.value.reason == reason


def test_validate_duplicate_projects(manifest):
    manifest.files = manifest.files + Manifest.from_dict(
        {"files": [{"projectID": 5, "fileID": 1}, {"projectID": 5, "fileID": 2}]}
    ).files

    with pytest.raises(ManifestInvalid):
        manifest.validate()
