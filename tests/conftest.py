import pytest

from packsync.models import Instance
from packsync.services import ManifestStore


@pytest.fixture
def instance(tmp_path):
    root = tmp_path / "instance"
    root.mkdir()
    return Instance(root)


@pytest.fixture
def store():
    return ManifestStore()
