"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from animatch.core.models import Anime
from animatch.core.recognition import RecognitionEngine
from animatch.infrastructure.catalog_store import CatalogStore
from tests.helpers.catalog import StaticCatalog, attack_on_titan, frieren


@pytest.fixture
def memory_store() -> Generator[CatalogStore, None, None]:
    """An empty in-memory catalog store."""
    store = CatalogStore.open_memory()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def frieren_store(memory_store: CatalogStore) -> CatalogStore:
    """In-memory store holding only Sousou no Frieren."""
    memory_store.insert_anime(frieren())
    return memory_store


@pytest.fixture
def catalog_anime() -> list[Anime]:
    return [frieren(1), attack_on_titan(2)]


@pytest.fixture
def static_catalog(catalog_anime: list[Anime]) -> StaticCatalog:
    return StaticCatalog(catalog_anime)


@pytest.fixture
def engine(static_catalog: StaticCatalog) -> RecognitionEngine:
    return RecognitionEngine(static_catalog)


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and the working directory at a scratch dir."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("ANIMATCH_CATALOG_DB", raising=False)
    monkeypatch.delenv("ANIMATCH_LOG_LEVEL", raising=False)
    monkeypatch.chdir(tmp_path)
    return home
