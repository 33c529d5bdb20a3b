import os
import shutil
from pathlib import Path

import pytest

from openapi_extractor.controlplane import ASSETS_ENV_VAR


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


def _binaries_available() -> bool:
    assets = os.environ.get(ASSETS_ENV_VAR, "")
    for name in ("etcd", "kube-apiserver"):
        if assets and (Path(assets) / name).is_file():
            continue
        if shutil.which(name) is None:
            return False
    return True


@pytest.fixture
def control_plane_binaries() -> None:
    """Skip unless etcd and kube-apiserver can be found."""
    if not _binaries_available():
        pytest.skip(f"etcd and kube-apiserver not found; set {ASSETS_ENV_VAR}")
