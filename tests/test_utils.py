"""Tests for the connector registry."""

import pytest

from website_storage.connectors.django_storage import DjangoStorageConnector
from website_storage.connectors.fs import FsStorage
from website_storage.exceptions import NotFound
from website_storage.utils import (
    get_connector,
    get_connectors,
    get_default_connector,
    import_class,
)


class TestImportClass:
    def test_imports_class_from_dotted_path(self):
        assert import_class("website_storage.connectors.fs.FsStorage") is FsStorage

    def test_missing_module(self):
        with pytest.raises(ImportError):
            import_class("website_storage.nope.Missing")


class TestGetConnectors:
    def test_instantiates_configured_connectors(self):
        """Connectors from settings are instantiated once, keyed by id.

        Purpose: Verify get_connectors() builds every configured connector
            and caches the result.
        Category: Normal case
        Target: get_connectors()
        Technique: Equivalence partitioning
        Test data: tests.settings CONNECTORS (fs and django storage)
        """
        connectors = get_connectors()

        assert list(connectors) == ["fs-storage", "django-storage"]
        assert isinstance(connectors["fs-storage"], FsStorage)
        assert isinstance(connectors["django-storage"], DjangoStorageConnector)
        assert get_connectors() is connectors

    def test_duplicate_ids_keep_the_first(self, settings, caplog):
        settings.WEBSITE_STORAGE = {
            **settings.WEBSITE_STORAGE,
            "CONNECTORS": [
                "website_storage.connectors.fs.FsStorage",
                "website_storage.connectors.fs.FsStorage",
            ],
        }

        connectors = get_connectors()

        assert list(connectors) == ["fs-storage"]
        assert "used twice" in caplog.text


class TestGetConnector:
    def test_by_id(self):
        assert isinstance(get_connector("django-storage"), DjangoStorageConnector)

    def test_default_is_first(self):
        assert get_connector() is get_default_connector()
        assert isinstance(get_connector(), FsStorage)

    def test_unknown_id(self):
        with pytest.raises(NotFound, match="gitlab"):
            get_connector("gitlab")

    def test_no_connector_configured(self, settings):
        settings.WEBSITE_STORAGE = {"CONNECTORS": []}

        with pytest.raises(NotFound, match="No connector"):
            get_default_connector()
