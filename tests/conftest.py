import io
import zipfile

import pytest

from shared.kv_store import MemoryKeyValueStore
from catalog_tool.ingest import IngestionEngine
from catalog_tool.local_provider import LocalStorageProvider


def make_zip(files, directories=()):
    """Build a ZIP archive in memory. files: {path: bytes}, kept in insertion order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for directory in directories:
            zf.writestr(directory.rstrip("/") + "/", b"")
        for path, data in files.items():
            zf.writestr(path, data)
    return buf.getvalue()


@pytest.fixture
def storage(tmp_path):
    provider = LocalStorageProvider()
    assert provider.authenticate({"base_path": str(tmp_path / "blobs")})
    assert provider.ensure_bucket("cds")
    return provider


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def engine(storage, kv_store):
    return IngestionEngine(storage, kv_store)
