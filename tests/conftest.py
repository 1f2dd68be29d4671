"""
Shared fixtures: every test gets its own SQLite store and catalog under tmp_path,
so no test touches data/ or another test's records.
"""

from pathlib import Path

import pytest

from product_assistant.core import catalog_db, document_store


@pytest.fixture(autouse=True)
def isolated_stores(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(document_store, "_DB_PATH", tmp_path / "store.db")
    monkeypatch.setattr(catalog_db, "_DB_PATH", tmp_path / "catalog.db")
    return tmp_path
