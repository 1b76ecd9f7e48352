"""Tests for resolving manifests and lockfiles into directories."""

import json
import pathlib

import pytest

from srctree.core import compose
from srctree.dirs import GitSource
from srctree.lockfile import Lockfile
from srctree.manifest import Manifest, ManifestSource
from srctree.resolver import ManifestLockfileMismatch, resolve, resolve_projects

MANIFEST = [
    {
        "path": "vendor/x",
        "branch_settings": {
            "main": {"groups": ["core"], "copyfiles": {}, "linkfiles": {}}
        },
    }
]
LOCKFILE = {
    "vendor/x": {
        "url": "https://example/x.git",
        "rev": "abc123",
        "hash": "sha256-xyz",
        "fetchLFS": False,
        "fetchSubmodules": False,
    }
}


def write_source(
    root: pathlib.Path, manifest: list, lockfile: dict, branch: str, stem: str = "repo"
) -> ManifestSource:
    root.mkdir(parents=True, exist_ok=True)
    (root / f"{stem}.json").write_text(json.dumps(manifest))
    (root / f"{stem}.lock").write_text(json.dumps(lockfile))
    return ManifestSource(
        manifest=root / f"{stem}.json", lockfile=root / f"{stem}.lock", branch=branch
    )


class TestResolveProjects:
    def test_project_on_branch(self) -> None:
        (c,) = resolve_projects(
            Manifest.model_validate(MANIFEST), Lockfile.model_validate(LOCKFILE), "main"
        )
        assert c.name == "vendor/x"
        assert c.draft.groups == ["core"]
        assert isinstance(c.draft.src, GitSource)
        assert c.draft.src.fetch.rev == "abc123"
        assert c.draft.src.fetch.url == "https://example/x.git"

    def test_other_branch_excluded(self) -> None:
        contributions = resolve_projects(
            Manifest.model_validate(MANIFEST), Lockfile.model_validate(LOCKFILE), "other"
        )
        assert contributions == []

    def test_missing_lockfile_entry_is_fatal(self) -> None:
        with pytest.raises(ManifestLockfileMismatch, match="vendor/x"):
            resolve_projects(Manifest.model_validate(MANIFEST), Lockfile(), "main")

    def test_null_lockfile_entry_is_fatal(self) -> None:
        with pytest.raises(ManifestLockfileMismatch):
            resolve_projects(
                Manifest.model_validate(MANIFEST),
                Lockfile.model_validate({"vendor/x": None}),
                "main",
            )

    def test_unlocked_project_on_other_branch_is_fine(self) -> None:
        manifest = Manifest.model_validate(
            [*MANIFEST, {"path": "old", "branch_settings": {"legacy": {}}}]
        )
        contributions = resolve_projects(manifest, Lockfile.model_validate(LOCKFILE), "main")
        assert [c.name for c in contributions] == ["vendor/x"]

    def test_draft_sets_only_manifest_fields(self) -> None:
        (c,) = resolve_projects(
            Manifest.model_validate(MANIFEST), Lockfile.model_validate(LOCKFILE), "main"
        )
        assert set(c.draft.explicit_fields()) == {"src", "groups", "copyfiles", "linkfiles"}


class TestResolve:
    def test_resolve_fixtures(self, fixtures: pathlib.Path) -> None:
        source = ManifestSource(
            manifest=fixtures / "repo-metadata.json",
            lockfile=fixtures / "repo.lock",
            branch="main",
        )
        names = [c.name for c in resolve(source)]
        assert names == [
            "build/make",
            "frameworks/base",
            "frameworks/base/packages/Shell",
            "prebuilts/clang/host/darwin-x86",
        ]

    def test_resolve_fixtures_legacy_branch_mismatch(self, fixtures: pathlib.Path) -> None:
        source = ManifestSource(
            manifest=fixtures / "repo-metadata.json",
            lockfile=fixtures / "repo.lock",
            branch="legacy",
        )
        # device/old is locked to null
        with pytest.raises(ManifestLockfileMismatch, match="device/old"):
            resolve(source)


class TestCompose:
    def test_scenario_main(self, tmp_path: pathlib.Path) -> None:
        source = write_source(tmp_path, MANIFEST, LOCKFILE, "main")
        composition = compose([source], exclude_groups=["darwin"])
        d = composition["vendor/x"]
        assert d.enable is True
        assert isinstance(d.src, GitSource)
        assert d.src.fetch.hash == "sha256-xyz"
        assert [e.relpath for e in composition.enabled] == ["vendor/x"]

    def test_scenario_other_branch(self, tmp_path: pathlib.Path) -> None:
        source = write_source(tmp_path, MANIFEST, LOCKFILE, "other")
        composition = compose([source], exclude_groups=["darwin"])
        assert "vendor/x" not in composition
        assert len(composition) == 0

    def test_later_source_overrides(self, tmp_path: pathlib.Path) -> None:
        first = write_source(tmp_path, MANIFEST, LOCKFILE, "main", stem="a")
        second_manifest = [
            {"path": "vendor/x", "branch_settings": {"main": {"groups": ["darwin"]}}}
        ]
        second_lock = {"vendor/x": {**LOCKFILE["vendor/x"], "rev": "def456"}}
        second = write_source(tmp_path, second_manifest, second_lock, "main", stem="b")

        composition = compose([first, second], exclude_groups=["darwin"])
        d = composition["vendor/x"]
        assert d.groups == ("darwin",)
        assert d.enable is False
        assert isinstance(d.src, GitSource)
        assert d.src.fetch.rev == "def456"

        reversed_order = compose([second, first], exclude_groups=["darwin"])
        assert reversed_order["vendor/x"].enable is True

    def test_mismatch_in_any_source_aborts(self, tmp_path: pathlib.Path) -> None:
        good = write_source(tmp_path, MANIFEST, LOCKFILE, "main", stem="a")
        bad = write_source(tmp_path, MANIFEST, {}, "main", stem="b")
        with pytest.raises(ManifestLockfileMismatch):
            compose([good, bad])

    def test_composition_keeps_group_settings(self, tmp_path: pathlib.Path) -> None:
        source = write_source(tmp_path, MANIFEST, LOCKFILE, "main")
        composition = compose([source], include_groups=["core"], exclude_groups=["x"])
        assert composition.include_groups == ("core",)
        assert composition.exclude_groups == ("x",)
        assert compose([source]).exclude_groups == ("darwin", "mips")
