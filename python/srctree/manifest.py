"""Repository manifest models (repo-metadata.json)."""

import collections.abc
import pathlib

import pydantic


class Repository(pydantic.BaseModel):
    url: str


class BranchSettings(pydantic.BaseModel):
    """Per-branch settings of a project."""

    model_config = pydantic.ConfigDict(extra="ignore")

    groups: list[str] = pydantic.Field(default_factory=list)
    copyfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    linkfiles: dict[str, str] = pydantic.Field(default_factory=dict)

    # Informational: the lockfile already pins the exact revision.
    repo: Repository | None = None
    git_ref: str | None = None


class Project(pydantic.BaseModel):
    """A single repository entry in the manifest."""

    model_config = pydantic.ConfigDict(extra="ignore")

    path: str
    nonfree: bool = False
    branch_settings: dict[str, BranchSettings] = pydantic.Field(default_factory=dict)


class Manifest(pydantic.RootModel[list[Project]]):
    """Ordered list of projects, as produced by the updater."""

    root: list[Project] = pydantic.Field(default_factory=list)

    @classmethod
    def load(cls, path: pathlib.Path) -> "Manifest":
        return cls.model_validate_json(path.read_bytes())

    @property
    def projects(self) -> list[Project]:
        return self.root

    def for_branch(
        self, branch: str
    ) -> collections.abc.Iterator[tuple[Project, BranchSettings]]:
        """Yield projects that have settings for branch, in manifest order."""
        for project in self.root:
            settings = project.branch_settings.get(branch)
            if settings is not None:
                yield project, settings


class ManifestSource(pydantic.BaseModel):
    """A (manifest, lockfile, branch) triple selecting one branch per project."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)

    manifest: pathlib.Path
    lockfile: pathlib.Path
    branch: str

    def relative_to(self, root: pathlib.Path) -> "ManifestSource":
        """Resolve relative manifest/lockfile paths against root."""
        return ManifestSource(
            manifest=(root / self.manifest.expanduser()).resolve(),
            lockfile=(root / self.lockfile.expanduser()).resolve(),
            branch=self.branch,
        )
