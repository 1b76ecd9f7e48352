"""srctree core: one evaluation from manifest sources to the final directory set."""

import collections.abc
import functools

from srctree.builder import CompositionBuilder, Contribution
from srctree.dirs import DEFAULT_EXCLUDE_GROUPS, Directory
from srctree.manifest import ManifestSource
from srctree.mounts import resolve_mountpoints
from srctree.resolver import resolve
from srctree.tree import DirsTree


class Composition:
    """Result of composing a source tree."""

    def __init__(
        self,
        dirs: collections.abc.Iterable[Directory],
        tree: DirsTree,
        *,
        include_groups: collections.abc.Iterable[str] = (),
        exclude_groups: collections.abc.Iterable[str] = DEFAULT_EXCLUDE_GROUPS,
    ) -> None:
        self._dirs = {d.name: d for d in dirs}
        self._tree = tree
        # Group filter settings the directories were enabled with.
        self.include_groups = tuple(include_groups)
        self.exclude_groups = tuple(exclude_groups)

    @property
    def dirs(self) -> list[Directory]:
        """All directories, enabled or not, sorted by name."""
        return list(self._dirs.values())

    @property
    def tree(self) -> DirsTree:
        return self._tree

    @functools.cached_property
    def enabled(self) -> list[Directory]:
        """Enabled directories, shallower relpaths first."""
        return sorted(
            (d for d in self._dirs.values() if d.enable),
            key=lambda d: (d.depth, d.relpath),
        )

    def __getitem__(self, name: str) -> Directory:
        return self._dirs[name]

    def __contains__(self, name: object) -> bool:
        return name in self._dirs

    def __len__(self) -> int:
        return len(self._dirs)


def compose_contributions(
    contributions: collections.abc.Iterable[Contribution],
    *,
    include_groups: collections.abc.Iterable[str] = (),
    exclude_groups: collections.abc.Iterable[str] = DEFAULT_EXCLUDE_GROUPS,
) -> Composition:
    """Merge ordered contributions, filter by group and attach mountpoints."""
    builder = CompositionBuilder(include_groups, exclude_groups)
    builder.extend(contributions)
    dirs = builder.build()

    tree = DirsTree.build(d.relpath for d in dirs if d.enable)
    return Composition(
        resolve_mountpoints(dirs, tree),
        tree,
        include_groups=builder.include_groups,
        exclude_groups=builder.exclude_groups,
    )


def compose(
    sources: collections.abc.Iterable[ManifestSource],
    overrides: collections.abc.Iterable[Contribution] = (),
    *,
    include_groups: collections.abc.Iterable[str] = (),
    exclude_groups: collections.abc.Iterable[str] = DEFAULT_EXCLUDE_GROUPS,
) -> Composition:
    """Compose manifest sources, in order, followed by explicit overrides.

    Every manifest source is resolved before anything is merged, so a
    manifest/lockfile mismatch anywhere fails the whole evaluation.
    """
    contributions: list[Contribution] = []
    for source in sources:
        contributions.extend(resolve(source))
    contributions.extend(overrides)
    return compose_contributions(
        contributions, include_groups=include_groups, exclude_groups=exclude_groups
    )
