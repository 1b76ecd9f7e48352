"""Repository lockfile (repo.lock).

Pinned fetch coordinates per project path, as written by the updater. This is
the only place composition learns where a project's content comes from; the
actual fetch happens outside srctree.
"""

import collections.abc
import pathlib

import pydantic


class FetchgitArgs(pydantic.BaseModel):
    """Fetch descriptor for one pinned repository snapshot."""

    model_config = pydantic.ConfigDict(extra="ignore", frozen=True)

    url: str
    rev: str
    hash: str
    fetchLFS: bool = False
    fetchSubmodules: bool = False

    # Recorded by the updater but not needed to locate a snapshot.
    date: str | None = None
    path: str | None = None
    deepClone: bool = False
    leaveDotGit: bool = False

    @property
    def basename(self) -> str:
        name = self.url.rstrip("/").rpartition("/")[2]
        return name.removesuffix(".git") or "source"


class Lockfile(pydantic.RootModel[dict[str, FetchgitArgs | None]]):
    """Compiled lockfile: project path -> fetch descriptor.

    A ``null`` entry marks a repository the updater could not find on the
    locked branch.
    """

    root: dict[str, FetchgitArgs | None] = pydantic.Field(default_factory=dict)

    @classmethod
    def load(cls, path: pathlib.Path) -> "Lockfile":
        return cls.model_validate_json(path.read_bytes())

    def get(self, project_path: str) -> FetchgitArgs | None:
        """Return the descriptor for a project, or None if absent or null."""
        return self.root.get(project_path)

    def __contains__(self, project_path: object) -> bool:
        return isinstance(project_path, str) and self.get(project_path) is not None

    def paths(self) -> collections.abc.KeysView[str]:
        return self.root.keys()
