from __future__ import annotations

import json
import logging
import posixpath
import uuid
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from django.core.files.base import ContentFile, File
from django.core.files.storage import Storage, default_storage

from ..conf import get_setting
from ..exceptions import InvalidArgument, IOFailure, NotFound, required_param
from ..serialization import (
    PAGE_FILE_EXTENSION,
    get_pages_folder,
    merge,
    split,
    stringify,
)
from ..types import (
    ConnectorFile,
    ConnectorFileContent,
    ConnectorSession,
    ConnectorUser,
    StatusCallback,
    WebsiteData,
    WebsiteId,
    WebsiteMeta,
    empty_website,
)
from .base import StorageConnector, check_content, to_connector_data, write_files

logger = logging.getLogger(__name__)


class DjangoStorageConnector(StorageConnector):
    """Store websites with a Django file storage.

    Works with any Django storage backend (S3 via django-storages,
    local filesystem, GCS, Azure, etc.). Files are saved under
    ``<prefix>/<website id>/`` with the same layout as FsStorage.
    """

    connector_id = "django-storage"
    display_name = "Django storage"
    disable_logout = True
    color = "#ffffff"
    background = "#0c4b33"

    def __init__(self, storage: Storage | None = None, prefix: str | None = None) -> None:
        self.storage = storage or default_storage
        self.prefix = (prefix or get_setting("DJANGO_STORAGE_PREFIX")).strip("/")
        self.assets_folder = get_setting("ASSETS_FOLDER").strip("/")

    # ********************
    # Keys
    # ********************
    def _key(self, website_id: WebsiteId, *parts: str) -> str:
        website_id = required_param(website_id, "website id")
        if "/" in website_id or website_id in (".", ".."):
            raise NotFound(f"Website {website_id} not found")
        return "/".join([self.prefix, website_id, *(p.strip("/") for p in parts if p)])

    def _asset_key(self, website_id: WebsiteId, path: str) -> str:
        """Key of an asset, refusing paths outside of the assets folder."""
        relative = posixpath.normpath(path.lstrip("/"))
        if relative in (".", "..") or relative.startswith("../"):
            raise InvalidArgument(f"Path traversal detected: {path!r}")
        return self._key(website_id, self.assets_folder, relative)

    def _save(self, key: str, content: ConnectorFileContent) -> None:
        content = check_content(content)
        if isinstance(content, str):
            content = ContentFile(content.encode("utf-8"))
        elif isinstance(content, bytes):
            content = ContentFile(content)
        elif hasattr(content, "read"):
            content = File(content)
        else:
            content = ContentFile(b"".join(content))
        if self.storage.exists(key):
            self.storage.delete(key)
        self.storage.save(key, content)

    def _read(self, key: str) -> bytes:
        with self.storage.open(key, "rb") as f:
            return f.read()

    def _walk(self, key: str) -> Iterator[tuple[list[str], list[str]]]:
        """Yield (dirs, files) keys below ``key``, parents first."""
        try:
            dirs, files = self.storage.listdir(key)
        except FileNotFoundError:
            return
        dir_keys = [f"{key}/{name}" for name in dirs]
        yield dir_keys, [f"{key}/{name}" for name in files]
        for dir_key in dir_keys:
            yield from self._walk(dir_key)

    def _storage_time(self, method: str, key: str) -> datetime | None:
        try:
            return getattr(self.storage, method)(key)
        except NotImplementedError:
            return None

    # ********************
    # Login
    # ********************
    def get_user(self, session: ConnectorSession) -> ConnectorUser:
        return ConnectorUser(
            name=session.get("username") or "anonymous",
            picture=None,
            storage=to_connector_data(session, self),
        )

    # ********************
    # Metadata
    # ********************
    def set_website_meta(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        data: dict[str, Any],
    ) -> None:
        content = {
            "name": data.get("name"),
            "imageUrl": data.get("imageUrl"),
            "connectorUserSettings": data.get("connectorUserSettings") or {},
        }
        key = self._key(website_id, get_setting("WEBSITE_META_DATA_FILE"))
        try:
            self._save(key, stringify(content))
        except OSError as err:
            raise IOFailure(f"Could not write meta of website {website_id}") from err

    def get_website_meta(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteMeta:
        key = self._key(website_id, get_setting("WEBSITE_META_DATA_FILE"))
        if not self.storage.exists(key):
            raise NotFound(f"Website {website_id} not found")
        try:
            meta = json.loads(self._read(key))
        except OSError as err:
            raise IOFailure(f"Could not read meta of website {website_id}") from err
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            raise IOFailure(f"Invalid meta file in website {website_id}: {err}") from err
        return WebsiteMeta(
            website_id=website_id,
            name=meta.get("name"),
            image_url=meta.get("imageUrl"),
            connector_user_settings=meta.get("connectorUserSettings") or {},
            created_at=self._storage_time("get_created_time", key),
            updated_at=self._storage_time("get_modified_time", key),
        )

    # ********************
    # Websites
    # ********************
    def create_website(
        self, session: ConnectorSession, meta: dict[str, Any]
    ) -> WebsiteId:
        website_id = str(uuid.uuid4())
        self.set_website_meta(session, website_id, meta)
        self.update_website(session, website_id, empty_website())
        logger.info("Created website %s", website_id)
        return website_id

    def read_website(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteData:
        key = self._key(website_id, get_setting("WEBSITE_DATA_FILE"))
        if not self.storage.exists(key):
            raise NotFound(f"Website {website_id} not found")
        try:
            return merge(
                self._read(key),
                lambda page_path: self._read(self._key(website_id, page_path)),
            )
        except FileNotFoundError as err:
            raise NotFound(f"Page file missing in website {website_id}") from err
        except OSError as err:
            raise IOFailure(f"Could not read website {website_id}") from err
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            raise IOFailure(f"Invalid JSON file in website {website_id}: {err}") from err

    def update_website(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        data: WebsiteData,
    ) -> None:
        previous_folder = self._saved_pages_folder(website_id)
        files = split(data)
        pages_folder = get_pages_folder(data)
        pages_key = self._key(website_id, pages_folder)
        new_page_keys = set()
        try:
            for file in files:
                key = self._key(website_id, file.path)
                self._save(key, file.content)
                if key.rpartition("/")[0] == pages_key:
                    new_page_keys.add(key)
        except OSError as err:
            raise IOFailure(f"Could not write website {website_id}") from err

        self._delete_stale_pages(pages_key, new_page_keys)
        if previous_folder is not None and previous_folder != pages_folder:
            self._delete_stale_pages(self._key(website_id, previous_folder), set())

    def _saved_pages_folder(self, website_id: WebsiteId) -> str | None:
        """Pages folder of the main file currently saved, None if there is none."""
        key = self._key(website_id, get_setting("WEBSITE_DATA_FILE"))
        if not self.storage.exists(key):
            return None
        try:
            saved = json.loads(self._read(key))
        except OSError as err:
            raise IOFailure(f"Could not read {key}") from err
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Main file %s is not valid JSON, it will be replaced", key)
            return None
        return get_pages_folder(saved)

    def _delete_stale_pages(self, pages_key: str, keep: set[str]) -> None:
        try:
            _, existing = self.storage.listdir(pages_key)
        except FileNotFoundError:
            return
        try:
            for name in existing:
                key = f"{pages_key}/{name}"
                if name.endswith(PAGE_FILE_EXTENSION) and key not in keep:
                    logger.info("Removing page file %s", key)
                    self.storage.delete(key)
        except OSError as err:
            raise IOFailure(f"Could not remove stale pages in {pages_key}") from err

    def delete_website(self, session: ConnectorSession, website_id: WebsiteId) -> None:
        root_key = self._key(website_id)
        levels = list(self._walk(root_key))
        if not any(files for _, files in levels):
            raise NotFound(f"Website {website_id} not found")
        try:
            for _, files in levels:
                for key in files:
                    self.storage.delete(key)
            for dirs, _ in reversed(levels):
                for key in dirs:
                    self.storage.delete(key)
            self.storage.delete(root_key)
        except OSError as err:
            raise IOFailure(f"Could not delete website {website_id}") from err
        logger.info("Deleted website %s", website_id)

    def duplicate_website(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteId:
        meta = self.get_website_meta(session, website_id)
        new_website_id = str(uuid.uuid4())
        source_key = self._key(website_id)
        target_key = self._key(new_website_id)
        try:
            for _, files in self._walk(source_key):
                for key in files:
                    self._save(target_key + key[len(source_key) :], self._read(key))
        except OSError as err:
            raise IOFailure(f"Could not duplicate website {website_id}") from err
        self.set_website_meta(
            session,
            new_website_id,
            {**meta.to_file_content(), "name": f"{meta.name} copy"},
        )
        logger.info("Duplicated website %s to %s", website_id, new_website_id)
        return new_website_id

    def list_websites(self, session: ConnectorSession) -> list[WebsiteMeta]:
        try:
            website_ids, _ = self.storage.listdir(self.prefix)
        except FileNotFoundError:
            return []
        websites = []
        for website_id in sorted(website_ids):
            try:
                websites.append(self.get_website_meta(session, website_id))
            except NotFound:
                logger.warning("Skipping folder without website meta: %s", website_id)
        return websites

    # ********************
    # Assets
    # ********************
    def get_asset(
        self, session: ConnectorSession, website_id: WebsiteId, path: str
    ) -> ConnectorFile:
        return ConnectorFile(path=path, content=self.read_asset(session, website_id, path))

    def read_asset(
        self, session: ConnectorSession, website_id: WebsiteId, path: str
    ) -> bytes:
        key = self._asset_key(website_id, path)
        if not self.storage.exists(key):
            raise NotFound(f"Asset {path} not found in website {website_id}")
        try:
            return self._read(key)
        except OSError as err:
            raise IOFailure(f"Could not read asset {path}") from err

    def write_assets(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        files: list[ConnectorFile],
        status_callback: StatusCallback | None = None,
    ) -> None:
        for file in files:
            self._asset_key(website_id, file.path)

        def write_file(file: ConnectorFile) -> None:
            self._save(self._asset_key(website_id, file.path), file.content)

        write_files(files, write_file, status_callback)

    def delete_assets(
        self, session: ConnectorSession, website_id: WebsiteId, paths: list[str]
    ) -> None:
        for path in paths:
            key = self._asset_key(website_id, path)
            if not self.storage.exists(key):
                raise NotFound(f"Asset {path} not found in website {website_id}")
            self.storage.delete(key)
