"""srctree - compose multi-repository source trees into unpack scripts."""

import os
import pathlib

from srctree.builder import CompositionBuilder, Contribution, DuplicateRelpathError
from srctree.core import Composition, compose, compose_contributions
from srctree.dirs import (
    Directory,
    DirectoryDraft,
    EmptySource,
    GitSource,
    InvalidRelpathError,
    PathSource,
    is_enabled,
)
from srctree.errors import SrcTreeError
from srctree.lockfile import FetchgitArgs, Lockfile
from srctree.manifest import Manifest, ManifestSource, Project
from srctree.resolver import ManifestLockfileMismatch
from srctree.scripts import ScriptGenerator
from srctree.tree import DirsTree
from srctree.workspace import Workspace, WorkspaceNotFoundError


def open(start: str | os.PathLike[str] | pathlib.Path | None = None) -> Workspace:
    """Open the workspace containing start (default: current directory)."""
    if start is None:
        return Workspace.find()
    return Workspace.find(pathlib.Path(start).expanduser())


__all__ = [
    "Composition",
    "CompositionBuilder",
    "Contribution",
    "Directory",
    "DirectoryDraft",
    "DirsTree",
    "DuplicateRelpathError",
    "EmptySource",
    "FetchgitArgs",
    "GitSource",
    "InvalidRelpathError",
    "Lockfile",
    "Manifest",
    "ManifestLockfileMismatch",
    "ManifestSource",
    "PathSource",
    "Project",
    "ScriptGenerator",
    "SrcTreeError",
    "Workspace",
    "WorkspaceNotFoundError",
    "compose",
    "compose_contributions",
    "is_enabled",
    "open",
]
