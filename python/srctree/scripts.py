"""Script generation: turns a composition into shell scripts.

All scripts are plain bash, run from the root of the tree being assembled,
and stop at the first failing command. Output depends on the composition,
the generator settings (the store directory among them) and the contents of
patch files and local sources. The generator itself reads no environment;
see ``srctree.workspace.STORE_DIR`` for the one default that does.
"""

import collections.abc
import json
import pathlib
import posixpath
import shlex
import typing

import pathspec

from srctree.core import Composition
from srctree.dirs import Directory, EmptySource, GitSource
from srctree.patches import COPY_ARGS, content_path, patch_steps, prepare_steps, q

HEADER = """\
#!/usr/bin/env bash
# Generated by srctree. Do not edit.
set -euo pipefail
"""

DEFAULT_DEBUG_PATHS = ("/robotnix/",)

Mode = typing.Literal["bind", "copy"]


class ScriptGenerator:
    """Emits unpack/prepare/debug scripts for a composition."""

    def __init__(
        self,
        composition: Composition,
        store_dir: pathlib.Path,
        *,
        mode: Mode = "bind",
        debug_paths: collections.abc.Iterable[str] = DEFAULT_DEBUG_PATHS,
    ) -> None:
        self.composition = composition
        self.store_dir = store_dir
        self.mode = mode
        self.debug_spec = pathspec.PathSpec.from_lines("gitwildmatch", debug_paths)

    def content(self, directory: Directory) -> pathlib.Path:
        return content_path(directory, self.store_dir)

    def is_debug(self, directory: Directory) -> bool:
        return self.debug_spec.match_file(f"{directory.relpath}/")

    # unpack.sh

    def unpack_steps(self, directory: Directory) -> list[str]:
        """Materialize one directory at its relpath, then its copy/link files."""
        if not directory.enable:
            return []
        relpath = q(directory.relpath)
        content = self.content(directory)
        steps = [f"# {directory.name}", f"mkdir -p {relpath}"]
        if self.mode == "bind":
            steps.append(f"if ! mountpoint -q {relpath}; then")
            steps.append(f"  mount --bind {q(content)} {relpath}")
            if not directory.is_patched:
                # Shared store snapshot: never writable through the tree.
                steps.append(f"  mount -o remount,bind,ro {relpath}")
            steps.append("fi")
        else:
            steps.append(f"{shlex.join(COPY_ARGS)} -f {q(f'{content}/.')} {relpath}/")
            steps.append(f"chmod -R u+w {relpath}")

        for dest, src in sorted(directory.copyfiles.items()):
            steps.extend(_ensure_parent(dest))
            steps.append(
                f"cp --reflink=auto -f {q(posixpath.join(directory.relpath, src))} {q(dest)}"
            )
        for dest, src in sorted(directory.linkfiles.items()):
            steps.extend(_ensure_parent(dest))
            steps.append(
                f"ln -sfn --relative {q(posixpath.join(directory.relpath, src))} {q(dest)}"
            )
        return steps

    def unpack(self) -> str:
        lines = [HEADER]
        for d in self.composition.enabled:
            lines.extend(self.unpack_steps(d))
            lines.append("")
        return "\n".join(lines)

    # prepare.sh

    def prepare(self) -> str:
        """Build the empty source and every private patched copy in the store."""
        lines = [HEADER, f"mkdir -p {q(self.store_dir)}"]
        enabled = self.composition.enabled
        if any(isinstance(d.src, EmptySource) for d in enabled):
            lines.append(f"mkdir -p {q(EmptySource().store_path(self.store_dir))}")
        lines.append("")
        for d in enabled:
            steps = prepare_steps(d, self.store_dir)
            if not steps:
                continue
            lines.append(f"echo {q(f'Preparing {d.relpath}')}")
            lines.extend(steps)
            lines.append("")
        return "\n".join(lines)

    # debug-unpack.sh / debug-patch.sh

    def debug_unpack(self) -> str:
        """Writable copies of the debug-selected directories."""
        lines = [HEADER]
        for d in self.composition.enabled:
            if not self.is_debug(d):
                continue
            relpath = q(d.relpath)
            content = self.content(d)
            lines.append(f"rm -rf {relpath}")
            lines.append(f"mkdir -p {relpath}")
            lines.append(f"echo {q(f'{content} -> {d.relpath}')}")
            lines.append(f"{shlex.join(COPY_ARGS)} {q(f'{content}/.')} {relpath}/")
            lines.append(f"chmod -R u+w {relpath}")
            lines.append("")
        return "\n".join(lines)

    def debug_patch(self) -> str:
        """Patch an externally checked-out tree in place.

        Debug-selected directories are skipped: debug-unpack.sh already
        delivers them patched.
        """
        lines = [HEADER]
        for d in self.composition.enabled:
            if self.is_debug(d) or not (d.patches or d.gitPatches or d.postPatch):
                continue
            lines.append(f"# {d.name}")
            lines.extend(patch_steps(d, d.relpath))
            lines.append("")
        return "\n".join(lines)

    # fetch-plan.json

    def fetch_plan(self) -> list[dict[str, typing.Any]]:
        """Fetch descriptors of every enabled git source, for the external fetcher."""
        plan = []
        for d in sorted(self.composition.enabled, key=lambda d: d.relpath):
            if not isinstance(d.src, GitSource):
                continue
            entry = d.src.fetch.model_dump(mode="json", exclude_none=True)
            entry.update(
                name=d.name,
                relpath=d.relpath,
                storePath=str(d.src.store_path(self.store_dir)),
            )
            plan.append(entry)
        return plan

    def fetch_plan_json(self) -> str:
        return json.dumps(self.fetch_plan(), indent=2, sort_keys=True) + "\n"

    def render(self) -> dict[str, str]:
        """All generated artifacts by file name."""
        return {
            "unpack.sh": self.unpack(),
            "prepare.sh": self.prepare(),
            "debug-unpack.sh": self.debug_unpack(),
            "debug-patch.sh": self.debug_patch(),
            "fetch-plan.json": self.fetch_plan_json(),
        }


def _ensure_parent(dest: str) -> list[str]:
    parent = posixpath.dirname(dest)
    return [f"mkdir -p {q(parent)}"] if parent else []
