"""Directory models: one node of the composed source tree."""

import collections.abc
import hashlib
import os
import pathlib
import typing

import pydantic

from srctree.errors import SrcTreeError
from srctree.lockfile import FetchgitArgs

# Groups excluded unless the configuration says otherwise.
DEFAULT_EXCLUDE_GROUPS = ("darwin", "mips")


class InvalidRelpathError(SrcTreeError):
    """Raised when a relpath is empty or would escape the composed tree."""


def split_relpath(relpath: str) -> tuple[str, ...]:
    """Split a slash-delimited relpath into segments, dropping empty and '.' ones."""
    segments = tuple(s for s in relpath.split("/") if s not in ("", "."))
    if relpath.startswith("/") or not segments or ".." in segments:
        raise InvalidRelpathError(f"Invalid relpath: {relpath!r}")
    return segments


def normalize_relpath(relpath: str) -> str:
    return "/".join(split_relpath(relpath))


def digest16(*parts: str) -> str:
    """Short, stable digest used to address store entries."""
    h = hashlib.sha256()
    for part in parts:
        h.update(part.encode("utf-8"))
        h.update(b"\0")
    return h.hexdigest()[:16]


def file_digest(path: pathlib.Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def tree_digest(root: pathlib.Path) -> str:
    """Digest of a directory tree: names, file bytes, exec bits and link targets.

    Symlinks are recorded, never followed. Timestamps and ownership are ignored.
    """
    if not root.is_dir():
        raise FileNotFoundError(f"source directory does not exist: {root}")
    h = hashlib.sha256()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        base = pathlib.Path(dirpath)
        for name in sorted(dirnames + filenames):
            path = base / name
            rel = path.relative_to(root).as_posix()
            if path.is_symlink():
                entry = f"L {rel} {os.readlink(path)}"
            elif path.is_dir():
                entry = f"D {rel}"
            else:
                mode = "x" if path.stat().st_mode & 0o111 else "-"
                entry = f"F {rel} {mode} {file_digest(path)}"
            h.update(entry.encode("utf-8", "surrogateescape"))
            h.update(b"\0")
    return h.hexdigest()


def is_enabled(
    groups: collections.abc.Iterable[str],
    include_groups: collections.abc.Collection[str],
    exclude_groups: collections.abc.Collection[str],
) -> bool:
    """Decide enablement from group tags.

    A non-empty include list is an allowlist: only directories sharing a group
    with it are enabled, so a directory without groups is excluded. Otherwise
    everything not tagged with an excluded group is enabled.
    """
    tags = set(groups)
    if include_groups:
        return not tags.isdisjoint(include_groups)
    return tags.isdisjoint(exclude_groups)


class GitSource(pydantic.BaseModel):
    """Content pinned by a lockfile entry, fetched by the external fetcher."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)

    kind: typing.Literal["git"] = "git"
    fetch: FetchgitArgs

    def store_path(self, store_dir: pathlib.Path) -> pathlib.Path:
        if self.fetch.path:
            return pathlib.Path(self.fetch.path)
        return store_dir / f"{digest16(self.fetch.hash)}-{self.fetch.basename}"

    def fingerprint(self) -> str:
        return self.fetch.hash


class PathSource(pydantic.BaseModel):
    """Content already present on disk."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)

    kind: typing.Literal["path"] = "path"
    path: pathlib.Path

    def store_path(self, store_dir: pathlib.Path) -> pathlib.Path:
        return self.path

    def fingerprint(self) -> str:
        """Digest of the tree as it is on disk now."""
        return tree_digest(self.path)


class EmptySource(pydantic.BaseModel):
    """An empty directory, used when nothing provides content."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)

    kind: typing.Literal["empty"] = "empty"

    def store_path(self, store_dir: pathlib.Path) -> pathlib.Path:
        return store_dir / "empty"

    def fingerprint(self) -> str:
        return "empty"


Source = typing.Annotated[
    GitSource | PathSource | EmptySource, pydantic.Field(discriminator="kind")
]


class DirectoryDraft(pydantic.BaseModel):
    """Partial directory settings contributed by one origin.

    Only fields set explicitly (``model_fields_set``) take part in overriding;
    defaults here never clobber an earlier contribution.
    """

    model_config = pydantic.ConfigDict(extra="forbid")

    relpath: str | None = None
    enable: bool | None = None
    src: Source | None = None
    patches: list[pathlib.Path] = pydantic.Field(default_factory=list)
    gitPatches: list[pathlib.Path] = pydantic.Field(default_factory=list)
    postPatch: str = ""
    copyfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    linkfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    groups: list[str] = pydantic.Field(default_factory=list)

    def explicit_fields(self) -> dict[str, typing.Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class Directory(pydantic.BaseModel):
    """Final, merged settings of one directory."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)

    name: str
    relpath: str
    enable: bool = True
    src: Source = pydantic.Field(default_factory=EmptySource)
    patches: tuple[pathlib.Path, ...] = ()
    gitPatches: tuple[pathlib.Path, ...] = ()
    postPatch: str = ""
    copyfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    linkfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    groups: tuple[str, ...] = ()

    # Child segments other enabled directories are mounted over.
    mountpoints: tuple[str, ...] = ()

    @pydantic.field_validator("relpath")
    @classmethod
    def _check_relpath(cls, value: str) -> str:
        return normalize_relpath(value)

    @classmethod
    def from_fields(
        cls,
        name: str,
        fields: collections.abc.Mapping[str, typing.Any],
        *,
        include_groups: collections.abc.Collection[str] = (),
        exclude_groups: collections.abc.Collection[str] = DEFAULT_EXCLUDE_GROUPS,
    ) -> "Directory":
        """Finalize merged draft fields, computing enable unless set explicitly."""
        values = {k: v for k, v in fields.items() if v is not None}
        values.setdefault("relpath", name)
        if "enable" not in values:
            values["enable"] = is_enabled(
                values.get("groups", ()), include_groups, exclude_groups
            )
        return cls(name=name, **values)

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.relpath.split("/"))

    @property
    def depth(self) -> int:
        return len(self.segments)

    @property
    def is_patched(self) -> bool:
        """Whether materialization mutates content and so needs a private copy."""
        return bool(self.patches or self.gitPatches or self.postPatch or self.mountpoints)
