"""Directory set builder for srctree."""

import collections.abc
import logging
import typing

from srctree.dirs import DEFAULT_EXCLUDE_GROUPS, Directory, DirectoryDraft
from srctree.errors import SrcTreeError

logger = logging.getLogger(__name__)


class DuplicateRelpathError(SrcTreeError):
    """Raised when two enabled directories would occupy the same relpath."""


class Contribution(typing.NamedTuple):
    """Directory settings contributed by one origin (manifest or override)."""

    origin: str
    name: str
    draft: DirectoryDraft


class CompositionBuilder:
    """Builds the final directory set from ordered contributions.

    Later contributions override earlier ones field by field. Overriding is
    shallow: a later ``patches`` list replaces an earlier one, it is not
    appended to.
    """

    def __init__(
        self,
        include_groups: collections.abc.Iterable[str] = (),
        exclude_groups: collections.abc.Iterable[str] = DEFAULT_EXCLUDE_GROUPS,
    ) -> None:
        self.include_groups = tuple(include_groups)
        self.exclude_groups = tuple(exclude_groups)
        self.fields: dict[str, dict[str, typing.Any]] = {}
        self.origins: dict[str, str] = {}

    def add(self, contribution: Contribution) -> None:
        """Apply one contribution on top of what is already known."""
        origin, name, draft = contribution
        explicit = draft.explicit_fields()

        if name in self.fields:
            logger.debug(
                "%s: %s overrides %s from %s",
                name,
                origin,
                ", ".join(sorted(explicit)) or "nothing",
                self.origins[name],
            )
        self.fields.setdefault(name, {}).update(explicit)
        self.origins[name] = origin

    def extend(self, contributions: collections.abc.Iterable[Contribution]) -> None:
        for contribution in contributions:
            self.add(contribution)

    def build(self) -> list[Directory]:
        """Return the final directories, sorted by name."""
        dirs = [
            Directory.from_fields(
                name,
                self.fields[name],
                include_groups=self.include_groups,
                exclude_groups=self.exclude_groups,
            )
            for name in sorted(self.fields)
        ]

        # Relpath must be unique among enabled directories.
        owners: dict[str, str] = {}
        for d in dirs:
            if not d.enable:
                continue
            if d.relpath in owners:
                raise DuplicateRelpathError(
                    f"Directories {owners[d.relpath]!r} and {d.name!r} "
                    f"both map to {d.relpath!r}"
                )
            owners[d.relpath] = d.name
        return dirs
