"""Tests for directory models, relpaths and group filtering."""

import pathlib

import pydantic
import pytest

from srctree.dirs import (
    Directory,
    DirectoryDraft,
    EmptySource,
    GitSource,
    InvalidRelpathError,
    PathSource,
    digest16,
    is_enabled,
    normalize_relpath,
    split_relpath,
)
from srctree.lockfile import FetchgitArgs


class TestRelpath:
    @pytest.mark.parametrize(
        ("relpath", "segments"),
        [
            ("vendor/x", ("vendor", "x")),
            ("vendor//x/", ("vendor", "x")),
            ("./vendor/./x", ("vendor", "x")),
            ("a", ("a",)),
        ],
    )
    def test_split(self, relpath: str, segments: tuple[str, ...]) -> None:
        assert split_relpath(relpath) == segments

    @pytest.mark.parametrize("relpath", ["", "/", ".", "/abs/path", "a/../b", ".."])
    def test_invalid(self, relpath: str) -> None:
        with pytest.raises(InvalidRelpathError):
            split_relpath(relpath)

    def test_normalize(self) -> None:
        assert normalize_relpath("vendor//x/") == "vendor/x"


class TestGroupFilter:
    def test_enabled_by_default(self) -> None:
        assert is_enabled(["core"], [], ["darwin"])

    def test_excluded_group(self) -> None:
        assert not is_enabled(["core", "darwin"], [], ["darwin"])

    def test_include_wins_over_exclude(self) -> None:
        assert is_enabled(["darwin"], ["darwin"], ["darwin"])

    def test_include_is_allowlist(self) -> None:
        assert not is_enabled(["core"], ["pdk"], [])

    def test_empty_groups_enabled_without_include(self) -> None:
        assert is_enabled([], [], ["darwin", "mips"])

    def test_empty_groups_excluded_with_include(self) -> None:
        assert not is_enabled([], ["pdk"], [])


class TestSources:
    def test_git_source_uses_locked_path(self, tmp_path: pathlib.Path) -> None:
        fetch = FetchgitArgs(url="https://e/x.git", rev="r", hash="h", path="/nix/store/abc-x")
        assert GitSource(fetch=fetch).store_path(tmp_path) == pathlib.Path("/nix/store/abc-x")

    def test_git_source_addressed_by_hash(self, tmp_path: pathlib.Path) -> None:
        fetch = FetchgitArgs(url="https://e/x.git", rev="r", hash="sha256-abc")
        path = GitSource(fetch=fetch).store_path(tmp_path)
        assert path == tmp_path / f"{digest16('sha256-abc')}-x"

    def test_path_source(self, tmp_path: pathlib.Path) -> None:
        assert PathSource(path=tmp_path / "src").store_path(pathlib.Path("/store")) == tmp_path / "src"

    def test_empty_source(self, tmp_path: pathlib.Path) -> None:
        assert EmptySource().store_path(tmp_path) == tmp_path / "empty"

    def test_discriminated_union(self) -> None:
        d = Directory.model_validate(
            {"name": "a", "relpath": "a", "src": {"kind": "path", "path": "/tmp/a"}}
        )
        assert isinstance(d.src, PathSource)

    def test_digest16_is_stable(self) -> None:
        assert digest16("a", "b") == digest16("a", "b")
        assert digest16("a", "b") != digest16("ab")
        assert len(digest16("x")) == 16


class TestDirectoryDraft:
    def test_explicit_fields_only(self) -> None:
        draft = DirectoryDraft(patches=[pathlib.Path("p.patch")])
        assert draft.explicit_fields() == {"patches": [pathlib.Path("p.patch")]}

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            DirectoryDraft.model_validate({"patchez": []})


class TestDirectory:
    def test_from_fields_defaults(self) -> None:
        d = Directory.from_fields("vendor/x", {})
        assert d.relpath == "vendor/x"
        assert d.enable is True
        assert isinstance(d.src, EmptySource)
        assert not d.is_patched

    def test_from_fields_computes_enable(self) -> None:
        d = Directory.from_fields("p", {"groups": ["darwin"]}, exclude_groups=["darwin"])
        assert d.enable is False

    def test_explicit_enable_wins(self) -> None:
        d = Directory.from_fields(
            "p", {"groups": ["darwin"], "enable": True}, exclude_groups=["darwin"]
        )
        assert d.enable is True

    def test_relpath_normalized(self) -> None:
        d = Directory.from_fields("x", {"relpath": "vendor//x/"})
        assert d.relpath == "vendor/x"
        assert d.segments == ("vendor", "x")
        assert d.depth == 2

    def test_invalid_relpath(self) -> None:
        with pytest.raises(InvalidRelpathError):
            Directory.from_fields("x", {"relpath": "../x"})

    @pytest.mark.parametrize(
        "fields",
        [
            {"patches": [pathlib.Path("a.patch")]},
            {"gitPatches": [pathlib.Path("a.patch")]},
            {"postPatch": "touch x"},
            {"mountpoints": ("sub",)},
        ],
    )
    def test_is_patched(self, fields: dict) -> None:
        assert Directory.from_fields("x", fields).is_patched

    def test_frozen(self) -> None:
        d = Directory.from_fields("x", {})
        with pytest.raises(pydantic.ValidationError):
            d.enable = False  # type: ignore[misc]
