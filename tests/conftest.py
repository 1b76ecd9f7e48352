import pathlib
import shutil

import pytest

FIXTURES = pathlib.Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures() -> pathlib.Path:
    return FIXTURES


@pytest.fixture
def workspace_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Copy of the fixture workspace (srctree.yaml, manifest, lockfile, patches)."""
    root = tmp_path / "workspace"
    shutil.copytree(FIXTURES, root)
    (root / "robotnix" / "updater").mkdir(parents=True)
    return root
