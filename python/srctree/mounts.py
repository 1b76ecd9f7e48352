"""Mountpoints for directories nested inside other directories."""

import collections.abc

from srctree.dirs import Directory
from srctree.tree import DirsTree


def mountpoints(directory: Directory, tree: DirsTree) -> tuple[str, ...]:
    """Child segments of directory that other enabled directories sit under."""
    return tuple(tree.children(directory.segments))


def resolve_mountpoints(
    dirs: collections.abc.Iterable[Directory], tree: DirsTree
) -> list[Directory]:
    """Attach placeholder mountpoints to every enabled directory that needs them.

    The placeholders are created inside the directory's own (private) copy
    after its patches run, so a nested directory can be mounted over them
    even when the parent's content lacks that subpath.
    """
    resolved: list[Directory] = []
    for d in dirs:
        points = mountpoints(d, tree) if d.enable else ()
        if points:
            d = d.model_copy(update={"mountpoints": points})
        resolved.append(d)
    return resolved
