"""Patch engine: ordered patch steps and private copies of patched sources.

Per directory the pipeline is fixed:

1. ``patches`` with GNU patch (``-p1``, no backups or reject files, no fuzz);
2. ``gitPatches`` with ``git apply``, which matches hunks by content;
3. ``postPatch`` in a subshell inside the target, followed by the placeholder
   mountpoints of nested directories.

Every step runs under ``set -e`` in the generated script, so the first failure
aborts the whole assembly. ``postPatch`` is emitted verbatim, never
re-indented: heredoc terminators and multi-line strings must stay as written.
"""

import pathlib
import shlex

from srctree.dirs import Directory, digest16, file_digest

PATCH_ARGS = ("patch", "-p1", "--no-backup-if-mismatch", "--reject-file=-", "--fuzz=0")
GIT_APPLY_ARGS = ("git", "apply", "--recount", "--unsafe-paths")
COPY_ARGS = (
    "cp",
    "--reflink=auto",
    "--no-preserve=ownership",
    "--no-dereference",
    "--preserve=links",
    "-r",
)


def q(path: str | pathlib.Path) -> str:
    return shlex.quote(str(path))


def _snippet(directory: Directory) -> list[str]:
    if not directory.postPatch.strip():
        return []
    return directory.postPatch.rstrip("\n").split("\n")


def post_patch(directory: Directory) -> str:
    """postPatch snippet including mkdir steps for nested mountpoints."""
    lines = _snippet(directory)
    lines.extend(f"mkdir -p {q(point)}" for point in directory.mountpoints)
    return "\n".join(lines)


def patch_steps(
    directory: Directory, target: str | pathlib.Path, *, indent: str = ""
) -> list[str]:
    """Shell lines applying directory's patches in place at target.

    Generated lines are prefixed with indent; postPatch lines are not.
    """
    steps: list[str] = []
    for patch in directory.patches:
        steps.append(f"{indent}echo {q(f'Applying {patch}')}")
        steps.append(f"{indent}{shlex.join(PATCH_ARGS)} -d {q(target)} < {q(patch)}")
    for patch in directory.gitPatches:
        steps.append(f"{indent}echo {q(f'Applying {patch}')}")
        steps.append(
            f"{indent}{shlex.join(GIT_APPLY_ARGS)} --directory={q(target)} {q(patch)}"
        )

    snippet = _snippet(directory)
    if snippet or directory.mountpoints:
        steps.append(f"{indent}echo {q(f'Running postPatch for {directory.relpath}')}")
        steps.append(f"{indent}(")
        steps.append(f"{indent}  cd {q(target)}")
        steps.extend(snippet)
        steps.extend(f"{indent}  mkdir -p {q(point)}" for point in directory.mountpoints)
        steps.append(f"{indent})")
    return steps


def content_path(directory: Directory, store_dir: pathlib.Path) -> pathlib.Path:
    """Where the directory's materialized content lives.

    Unpatched directories alias their source read-only; patched ones get a
    private copy addressed by the source content, the patch file contents and
    the final postPatch. Patch files and local sources are read here, so
    editing either one in place yields a new address.
    """
    src = directory.src.store_path(store_dir)
    if not directory.is_patched:
        return src
    digest = digest16(
        str(src),
        directory.src.fingerprint(),
        *(file_digest(p) for p in directory.patches),
        "--git--",
        *(file_digest(p) for p in directory.gitPatches),
        post_patch(directory),
    )
    name = directory.relpath.replace("/", "=")
    return store_dir / f"{digest}-{name}-patched"


def prepare_steps(directory: Directory, store_dir: pathlib.Path) -> list[str]:
    """Shell lines building the private patched copy of directory.

    The copy is assembled next to its final location and renamed into place,
    so an existing copy is always complete and re-running skips it.
    """
    if not directory.is_patched:
        return []
    src = directory.src.store_path(store_dir)
    out = content_path(directory, store_dir)
    tmp = out.with_name(f"{out.name}.tmp")

    return [
        f"if [ ! -d {q(out)} ]; then",
        f"  rm -rf {q(tmp)}",
        f"  mkdir -p {q(tmp)}",
        f"  {shlex.join(COPY_ARGS)} {q(f'{src}/.')} {q(tmp)}/",
        f"  chmod -R u+w {q(tmp)}",
        *patch_steps(directory, tmp, indent="  "),
        f"  mv {q(tmp)} {q(out)}",
        "fi",
    ]
