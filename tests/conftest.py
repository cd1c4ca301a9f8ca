"""Pytest fixtures for django-website-storage tests."""

import pytest

from website_storage.asset_url import AssetUrlTranslator
from website_storage.connectors.fs import FsStorage
from website_storage.utils import get_connectors


@pytest.fixture(autouse=True)
def isolated_data_path(settings, tmp_path):
    """Keep every connector built from settings inside the test's tmp_path."""
    settings.WEBSITE_STORAGE = {
        **settings.WEBSITE_STORAGE,
        "DATA_PATH": str(tmp_path / "settings-data"),
    }
    get_connectors.cache_clear()
    yield
    get_connectors.cache_clear()


@pytest.fixture
def translator():
    """Translator with the default routes, served from the root."""
    return AssetUrlTranslator()


@pytest.fixture
def fs_storage(tmp_path):
    """Filesystem connector on a fresh root, bootstrapped with the default website."""
    return FsStorage(path=tmp_path / "data")


@pytest.fixture
def sample_website():
    """Website data with two pages, assets and a background image."""
    return {
        "pagesFolder": "pages",
        "pages": [
            {
                "id": "home",
                "name": "Home",
                "frames": [{"component": {"type": "wrapper", "components": []}}],
            },
            {
                "id": "about",
                "name": "About us",
                "frames": [{"component": {"type": "wrapper", "components": []}}],
            },
        ],
        "assets": [
            {"type": "image", "src": "/assets/logo.png", "name": "logo.png"},
            {"type": "image", "name": "no-source"},
        ],
        "styles": [
            {
                "selectors": ["#hero"],
                "style": {
                    "background-image": "url('/assets/hero.webp')",
                    "color": "red",
                },
            },
            {"selectors": ["body"], "style": {"margin": "0"}},
        ],
        "settings": {"title": "My site", "lang": "en"},
        "fonts": [],
        "symbols": [],
        "publication": {},
    }
