"""srctree workspace management - configuration parsing and script output."""

import collections.abc
import hashlib
import logging
import pathlib
import typing

import platformdirs
import pydantic
import yaml

from srctree.builder import Contribution
from srctree.core import Composition, compose
from srctree.dirs import DEFAULT_EXCLUDE_GROUPS, DirectoryDraft, PathSource
from srctree.errors import SrcTreeError
from srctree.manifest import ManifestSource
from srctree.scripts import DEFAULT_DEBUG_PATHS, Mode, ScriptGenerator

logger = logging.getLogger(__name__)

CONFIG_NAME = "srctree.yaml"
STAMP_NAME = "srctree.stamp"
# Default store when srctree.yaml sets no storeDir. It follows the user's
# cache directory (XDG_CACHE_HOME or HOME), so generated scripts differ between
# users; set storeDir for scripts that are identical everywhere.
STORE_DIR = pathlib.Path(platformdirs.user_cache_dir("srctree")) / "store"


class WorkspaceNotFoundError(SrcTreeError):
    """Raised when no workspace (srctree.yaml) is found."""


class DirConfig(pydantic.BaseModel):
    """Explicit settings for one directory in srctree.yaml."""

    model_config = pydantic.ConfigDict(extra="forbid")

    relpath: str | None = None
    enable: bool | None = None
    src: pathlib.Path | None = None
    patches: list[pathlib.Path] = pydantic.Field(default_factory=list)
    gitPatches: list[pathlib.Path] = pydantic.Field(default_factory=list)
    postPatch: str = ""
    copyfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    linkfiles: dict[str, str] = pydantic.Field(default_factory=dict)
    groups: list[str] = pydantic.Field(default_factory=list)

    def to_draft(self, root: pathlib.Path) -> DirectoryDraft:
        """Draft with the keys written in the file, paths resolved against root."""
        fields: dict[str, typing.Any] = {
            name: getattr(self, name) for name in self.model_fields_set
        }
        if self.src is not None:
            fields["src"] = PathSource(path=_resolve(root, self.src))
        for key in ("patches", "gitPatches"):
            if key in fields:
                fields[key] = [_resolve(root, p) for p in fields[key]]
        return DirectoryDraft(**fields)


class WorkspaceConfig(pydantic.BaseModel):
    """srctree workspace configuration (srctree.yaml)."""

    model_config = pydantic.ConfigDict(extra="forbid")

    apiVersion: typing.Literal["srctree/v1"] = "srctree/v1"
    manifests: list[ManifestSource] = pydantic.Field(default_factory=list)
    includeGroups: list[str] = pydantic.Field(default_factory=list)
    excludeGroups: list[str] = pydantic.Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_GROUPS)
    )
    mode: Mode = "bind"
    debugPaths: list[str] = pydantic.Field(
        default_factory=lambda: list(DEFAULT_DEBUG_PATHS)
    )
    storeDir: pathlib.Path | None = None
    outputDir: pathlib.Path = pathlib.Path("build")
    dirs: dict[str, DirConfig] = pydantic.Field(default_factory=dict)


def find_workspace(start: pathlib.Path | None = None) -> pathlib.Path:
    """Find workspace root by searching upward for srctree.yaml."""
    current = (start or pathlib.Path.cwd()).resolve()

    while current != current.parent:
        if (current / CONFIG_NAME).is_file():
            return current
        current = current.parent

    # Check root
    if (current / CONFIG_NAME).is_file():
        return current

    raise WorkspaceNotFoundError(f"No {CONFIG_NAME} found in {start or 'cwd'} or parents")


def load_config(workspace: pathlib.Path) -> WorkspaceConfig:
    """Load and parse srctree.yaml from workspace."""
    config_path = workspace / CONFIG_NAME
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    return WorkspaceConfig.model_validate(data or {})


def _resolve(root: pathlib.Path, path: pathlib.Path) -> pathlib.Path:
    return (root / path.expanduser()).resolve()


class Workspace:
    root: pathlib.Path
    config: WorkspaceConfig

    def __init__(self, root: pathlib.Path, config: WorkspaceConfig) -> None:
        self.root = root
        self.config = config

    @classmethod
    def find(cls, start: pathlib.Path | None = None) -> typing.Self:
        root = find_workspace(start)
        return cls(root, load_config(root))

    @property
    def store_dir(self) -> pathlib.Path:
        if self.config.storeDir is None:
            return STORE_DIR
        return _resolve(self.root, self.config.storeDir)

    @property
    def output_dir(self) -> pathlib.Path:
        return _resolve(self.root, self.config.outputDir)

    @property
    def sources(self) -> list[ManifestSource]:
        return [m.relative_to(self.root) for m in self.config.manifests]

    @property
    def overrides(self) -> list[Contribution]:
        return [
            Contribution(CONFIG_NAME, name, entry.to_draft(self.root))
            for name, entry in self.config.dirs.items()
        ]

    def compose(self) -> Composition:
        return compose(
            self.sources,
            self.overrides,
            include_groups=self.config.includeGroups,
            exclude_groups=self.config.excludeGroups,
        )

    def generator(self, composition: Composition | None = None) -> ScriptGenerator:
        return ScriptGenerator(
            composition or self.compose(),
            self.store_dir,
            mode=self.config.mode,
            debug_paths=self.config.debugPaths,
        )

    def digest(self, artifacts: collections.abc.Mapping[str, str] | None = None) -> str:
        """Deterministic hash of configuration, inputs and the artifacts they produce.

        The artifacts embed the store directory and the content digests of
        patch files and local sources, so editing any of those in place makes
        an existing stamp stale.
        """
        if artifacts is None:
            artifacts = self.generator().render()
        h = hashlib.sha256(self.config.model_dump_json().encode())
        for source in self.sources:
            h.update(source.manifest.read_bytes())
            h.update(source.lockfile.read_bytes())
        for name in sorted(artifacts):
            h.update(f"\0{name}\0{artifacts[name]}".encode())
        return h.hexdigest()[:16]

    def is_up_to_date(self, output_dir: pathlib.Path | None = None) -> bool:
        """Check if generated artifacts match the current inputs."""
        stamp = (output_dir or self.output_dir) / STAMP_NAME
        if not stamp.is_file():
            return False
        return stamp.read_text(encoding="utf-8").strip() == self.digest()

    def generate(self, output_dir: pathlib.Path | None = None) -> dict[str, pathlib.Path]:
        """Compose and write all artifacts; returns written paths by name."""
        output_dir = output_dir or self.output_dir
        artifacts = self.generator().render()

        output_dir.mkdir(parents=True, exist_ok=True)
        written: dict[str, pathlib.Path] = {}
        for name, text in artifacts.items():
            path = output_dir / name
            path.write_text(text, encoding="utf-8")
            if name.endswith(".sh"):
                path.chmod(0o755)
            logger.info("wrote %s", path)
            written[name] = path

        stamp = output_dir / STAMP_NAME
        stamp.write_text(self.digest(artifacts) + "\n", encoding="utf-8")
        written[STAMP_NAME] = stamp
        return written
