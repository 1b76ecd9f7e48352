"""Path-segment trie over the relpaths of enabled directories."""

import collections.abc
import functools
import typing

from rich.tree import Tree

from srctree.dirs import Directory, split_relpath


class DirsTree:
    """Trie keyed by path segment, used for containment queries.

    Built once from the final enabled set; there is no public way to add to
    an existing tree. Rebuild instead.
    """

    __slots__ = ("_children", "_terminal")

    def __init__(self) -> None:
        self._children: dict[str, DirsTree] = {}
        self._terminal = False

    @classmethod
    def chain(cls, segments: collections.abc.Sequence[str]) -> typing.Self:
        """Singleton branch for one relpath."""
        node = cls()
        node._terminal = True
        for segment in reversed(segments):
            parent = cls()
            parent._children[segment] = node
            node = parent
        return node

    @classmethod
    def build(cls, relpaths: collections.abc.Iterable[str]) -> typing.Self:
        chains = (cls.chain(split_relpath(p)) for p in relpaths)
        return functools.reduce(cls._absorb, chains, cls())

    def _absorb(self, other: "DirsTree") -> typing.Self:
        # Only called while building: folds other into self child-wise.
        self._terminal = self._terminal or other._terminal
        for name, child in other._children.items():
            if name in self._children:
                self._children[name]._absorb(child)
            else:
                self._children[name] = child
        return self

    def _node(self, segments: collections.abc.Iterable[str]) -> "DirsTree | None":
        node: DirsTree | None = self
        for segment in segments:
            node = node._children.get(segment)
            if node is None:
                return None
        return node

    def children(self, prefix: collections.abc.Iterable[str] = ()) -> list[str]:
        """Direct child segment names below prefix, sorted."""
        node = self._node(prefix)
        if node is None:
            return []
        return sorted(node._children)

    def paths(self) -> collections.abc.Iterator[str]:
        """Yield every inserted relpath exactly once, depth-first and sorted."""
        stack: list[tuple[tuple[str, ...], DirsTree]] = [((), self)]
        while stack:
            prefix, node = stack.pop()
            if node._terminal and prefix:
                yield "/".join(prefix)
            for name in sorted(node._children, reverse=True):
                stack.append(((*prefix, name), node._children[name]))

    def __contains__(self, relpath: object) -> bool:
        if not isinstance(relpath, str):
            return False
        node = self._node(split_relpath(relpath))
        return node is not None and node._terminal

    def __len__(self) -> int:
        return sum(1 for _ in self.paths())

    def __repr__(self) -> str:
        return f"DirsTree({list(self.paths())!r})"


def render_tree(dirs: collections.abc.Iterable[Directory], *, label: str = ".") -> Tree:
    """Render enabled directories as a rich tree, marking patched ones."""
    root = Tree(f"[bold blue]{label}[/]")
    nodes: dict[str, Tree] = {"": root}

    def _ensure_parent(path: str) -> Tree:
        if path in nodes:
            return nodes[path]
        parent, _, name = path.rpartition("/")
        node = _ensure_parent(parent).add(f"[dim]{name}/[/]")
        nodes[path] = node
        return node

    for d in sorted(dirs, key=lambda d: d.relpath):
        if not d.enable:
            continue
        parent, _, name = d.relpath.rpartition("/")
        label_text = f"[bold cyan]{name}/[/] [dim]({d.src.kind})[/]"
        if d.patches or d.gitPatches or d.postPatch:
            label_text += " [yellow]patched[/]"
        if d.mountpoints:
            label_text += f" [magenta]mountpoints: {', '.join(d.mountpoints)}[/]"
        if d.relpath in nodes:
            # Created earlier as an intermediate segment of a deeper path.
            nodes[d.relpath].label = label_text
        else:
            nodes[d.relpath] = _ensure_parent(parent).add(label_text)
    return root
