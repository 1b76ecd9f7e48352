"""Manifest resolution: manifest + lockfile + branch -> directory drafts."""

import logging

from srctree.builder import Contribution
from srctree.dirs import DirectoryDraft, GitSource
from srctree.errors import SrcTreeError
from srctree.lockfile import Lockfile
from srctree.manifest import Manifest, ManifestSource

logger = logging.getLogger(__name__)


class ManifestLockfileMismatch(SrcTreeError):
    """Raised when a manifest project has no usable lockfile entry."""


def resolve_projects(
    manifest: Manifest,
    lockfile: Lockfile,
    branch: str,
    *,
    origin: str = "<manifest>",
) -> list[Contribution]:
    """Build one draft per project that has settings for branch.

    Projects without settings for the branch are skipped silently. A retained
    project that is missing from the lockfile (or locked to null) means the
    manifest and lockfile are out of sync, which is fatal.
    """
    contributions: list[Contribution] = []
    for project, settings in manifest.for_branch(branch):
        fetch = lockfile.get(project.path)
        if fetch is None:
            raise ManifestLockfileMismatch(
                f"{origin}: project {project.path!r} (branch {branch!r}) "
                "has no lockfile entry"
            )

        draft = DirectoryDraft(
            src=GitSource(fetch=fetch),
            groups=list(settings.groups),
            copyfiles=dict(settings.copyfiles),
            linkfiles=dict(settings.linkfiles),
        )
        contributions.append(Contribution(origin, project.path, draft))
    return contributions


def resolve(source: ManifestSource) -> list[Contribution]:
    """Load a manifest source from disk and resolve it."""
    manifest = Manifest.load(source.manifest)
    lockfile = Lockfile.load(source.lockfile)
    contributions = resolve_projects(
        manifest,
        lockfile,
        source.branch,
        origin=f"{source.manifest.name}@{source.branch}",
    )
    logger.info(
        "%s: %d of %d projects on branch %s",
        source.manifest,
        len(contributions),
        len(manifest.projects),
        source.branch,
    )
    return contributions
