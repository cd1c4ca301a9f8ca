from __future__ import annotations

import getpass
import json
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from django.conf import settings

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

USER_ICON = (
    "data:image/svg+xml,%3Csvg xmlns='http://www.w3.org/2000/svg' height='1em' "
    "viewBox='0 0 448 512'%3E%3Cpath d='M304 128a80 80 0 1 0 -160 0 80 80 0 1 0 "
    "160 0zM96 128a128 128 0 1 1 256 0A128 128 0 1 1 96 128zM49.3 464H398.7c-8.9"
    "-63.3-63.3-112-129-112H178.3c-65.7 0-120.1 48.7-129 112zM0 482.3C0 383.8 "
    "79.8 304 178.3 304h91.4C368.2 304 448 383.8 448 482.3c0 16.4-13.3 29.7-29.7 "
    "29.7H29.7C13.3 512 0 498.7 0 482.3z'/%3E%3C/svg%3E"
)
FILE_ICON = "/assets/laptop.png"

COPY_CHUNK_SIZE = 64 * 1024


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class FsStorage(StorageConnector):
    """Store websites in a local folder, one sub-folder per website.

    Layout of a website folder::

        <website id>/meta.json
        <website id>/website.json
        <website id>/<pages folder>/<page>.json
        <website id>/assets/...

    When the root folder does not exist, it is created with a default website.
    """

    connector_id = "fs-storage"
    display_name = "File system storage"
    icon = FILE_ICON
    disable_logout = True
    color = "#ffffff"
    background = "#006400"

    def __init__(self, path: str | Path | None = None, assets_folder: str | None = None) -> None:
        self.root = Path(path or get_setting("DATA_PATH") or self._default_root())
        self.assets_folder = (assets_folder or get_setting("ASSETS_FOLDER")).strip("/")
        self._init_fs()

    @staticmethod
    def _default_root() -> Path:
        return Path(getattr(settings, "BASE_DIR", ".")) / "data"

    def _init_fs(self) -> None:
        if self.root.exists():
            return
        website_id = get_setting("DEFAULT_WEBSITE_ID")
        self._assets_path(website_id).mkdir(parents=True, exist_ok=True)
        self.set_website_meta(
            {},
            website_id,
            {"name": get_setting("DEFAULT_WEBSITE_NAME"), "connectorUserSettings": {}},
        )
        self.update_website({}, website_id, empty_website())
        logger.info("Created website %s in %s", website_id, self.root)

    # ********************
    # Paths
    # ********************
    def _website_path(self, website_id: WebsiteId) -> Path:
        website_id = required_param(website_id, "website id")
        return self._resolve(self.root, website_id)

    def _assets_path(self, website_id: WebsiteId) -> Path:
        return self._website_path(website_id) / self.assets_folder

    @staticmethod
    def _resolve(base: Path, path: str) -> Path:
        """Join ``path`` to ``base``, refusing anything outside of ``base``."""
        full_path = (base / path.lstrip("/")).resolve()
        base_resolved = base.resolve()
        if full_path == base_resolved or not full_path.is_relative_to(base_resolved):
            raise InvalidArgument(f"Path traversal detected: {path!r}")
        return full_path

    # ********************
    # Login
    # ********************
    def get_user(self, session: ConnectorSession) -> ConnectorUser:
        return ConnectorUser(
            name=getpass.getuser(),
            picture=USER_ICON,
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
        path = self._website_path(website_id) / get_setting("WEBSITE_META_DATA_FILE")
        content = {
            "name": data.get("name"),
            "imageUrl": data.get("imageUrl"),
            "connectorUserSettings": data.get("connectorUserSettings") or {},
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(stringify(content), encoding="utf-8")
        except OSError as err:
            raise IOFailure(f"Could not write meta of website {website_id}") from err

    def get_website_meta(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteMeta:
        website_path = self._website_path(website_id)
        meta_path = website_path / get_setting("WEBSITE_META_DATA_FILE")
        try:
            stat = website_path.stat()
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except FileNotFoundError as err:
            raise NotFound(f"Website {website_id} not found") from err
        except OSError as err:
            raise IOFailure(f"Could not read meta of website {website_id}") from err
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            raise IOFailure(f"Invalid meta file in website {website_id}: {err}") from err
        return WebsiteMeta(
            website_id=website_id,
            name=meta.get("name"),
            image_url=meta.get("imageUrl"),
            connector_user_settings=meta.get("connectorUserSettings") or {},
            created_at=_timestamp(getattr(stat, "st_birthtime", stat.st_ctime)),
            updated_at=_timestamp(stat.st_mtime),
        )

    # ********************
    # Websites
    # ********************
    def create_website(
        self, session: ConnectorSession, meta: dict[str, Any]
    ) -> WebsiteId:
        website_id = str(uuid.uuid4())
        self._assets_path(website_id).mkdir(parents=True, exist_ok=True)
        self.set_website_meta(session, website_id, meta)
        self.update_website(session, website_id, empty_website())
        logger.info("Created website %s", website_id)
        return website_id

    def read_website(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteData:
        website_path = self._website_path(website_id)

        def load_page(page_path: str) -> str:
            return self._resolve(website_path, page_path).read_text(encoding="utf-8")

        try:
            content = (website_path / get_setting("WEBSITE_DATA_FILE")).read_text(
                encoding="utf-8"
            )
            return merge(content, load_page)
        except FileNotFoundError as err:
            raise NotFound(f"Missing file in website {website_id}: {err.filename}") from err
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
        website_path = self._website_path(website_id)
        previous_folder = self._saved_pages_folder(website_path)
        files = split(data)
        pages_folder = get_pages_folder(data)
        pages_path = self._resolve(website_path, pages_folder)
        new_page_files = {
            Path(file.path).name
            for file in files
            if Path(file.path).parent == Path(pages_folder)
        }

        try:
            website_path.mkdir(parents=True, exist_ok=True)
            if new_page_files:
                pages_path.mkdir(parents=True, exist_ok=True)
            for file in files:
                self._write_file(self._resolve(website_path, file.path), file.content)
        except OSError as err:
            raise IOFailure(f"Could not write website {website_id}") from err

        self._delete_stale_pages(pages_path, new_page_files)
        if previous_folder is not None and previous_folder != pages_folder:
            self._delete_stale_pages(self._resolve(website_path, previous_folder), set())

    def _saved_pages_folder(self, website_path: Path) -> str | None:
        """Pages folder of the main file currently saved, None if there is none."""
        main_path = website_path / get_setting("WEBSITE_DATA_FILE")
        try:
            saved = json.loads(main_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except OSError as err:
            raise IOFailure(f"Could not read {main_path}") from err
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Main file %s is not valid JSON, it will be replaced", main_path)
            return None
        return get_pages_folder(saved)

    def _delete_stale_pages(self, pages_path: Path, keep: set[str]) -> None:
        try:
            existing = list(pages_path.iterdir())
        except FileNotFoundError:
            # nothing written yet
            return
        try:
            for page_file in existing:
                if page_file.suffix == PAGE_FILE_EXTENSION and page_file.name not in keep:
                    logger.info("Removing page file %s", page_file)
                    page_file.unlink()
        except OSError as err:
            raise IOFailure(f"Could not remove stale pages in {pages_path}") from err

    def delete_website(self, session: ConnectorSession, website_id: WebsiteId) -> None:
        website_path = self._website_path(website_id)
        try:
            shutil.rmtree(website_path)
        except FileNotFoundError as err:
            raise NotFound(f"Website {website_id} not found") from err
        except OSError as err:
            raise IOFailure(f"Could not delete website {website_id}") from err
        logger.info("Deleted website %s", website_id)

    def duplicate_website(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteId:
        meta = self.get_website_meta(session, website_id)
        new_website_id = str(uuid.uuid4())
        try:
            shutil.copytree(
                self._website_path(website_id), self._website_path(new_website_id)
            )
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
        websites = []
        for entry in sorted(self.root.iterdir()):
            if not entry.is_dir():
                continue
            try:
                websites.append(self.get_website_meta(session, entry.name))
            except NotFound:
                logger.warning("Skipping folder without website meta: %s", entry)
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
        full_path = self._resolve(self._assets_path(website_id), path)
        try:
            return full_path.read_bytes()
        except FileNotFoundError as err:
            raise NotFound(f"Asset {path} not found in website {website_id}") from err
        except OSError as err:
            raise IOFailure(f"Could not read asset {path}") from err

    def write_assets(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        files: list[ConnectorFile],
        status_callback: StatusCallback | None = None,
    ) -> None:
        self.write(session, website_id, files, self.assets_folder, status_callback)

    def write(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        files: list[ConnectorFile],
        folder: str,
        status_callback: StatusCallback | None = None,
    ) -> None:
        """Write files under ``folder`` of the website, see write_files()."""
        base_path = self._website_path(website_id) / folder.strip("/")
        for file in files:
            self._resolve(base_path, file.path)

        def write_file(file: ConnectorFile) -> None:
            full_path = self._resolve(base_path, file.path)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            self._write_file(full_path, file.content)

        write_files(files, write_file, status_callback)

    @staticmethod
    def _write_file(full_path: Path, content: ConnectorFileContent) -> None:
        """Write in-memory content directly and copy streams to completion."""
        content = check_content(content)
        if isinstance(content, str):
            full_path.write_text(content, encoding="utf-8")
        elif isinstance(content, bytes):
            full_path.write_bytes(content)
        elif hasattr(content, "read"):
            with full_path.open("wb") as destination:
                shutil.copyfileobj(content, destination, COPY_CHUNK_SIZE)
        else:
            with full_path.open("wb") as destination:
                for chunk in content:
                    destination.write(chunk)

    def delete_assets(
        self, session: ConnectorSession, website_id: WebsiteId, paths: list[str]
    ) -> None:
        assets_path = self._assets_path(website_id)
        for path in paths:
            try:
                self._resolve(assets_path, path).unlink()
            except FileNotFoundError as err:
                raise NotFound(f"Asset {path} not found in website {website_id}") from err
            except OSError as err:
                raise IOFailure(f"Could not delete asset {path}") from err
