"""Split website data into several files and merge them back.

The main file holds everything but the pages' content, each page is replaced
by a reference to its own file in the pages folder::

    website.json          {"pagesFolder": "pages",
                           "pages": [{"id": "home", "$file": "pages/home.json"}], ...}
    pages/home.json       {"id": "home", "frames": [...], ...}

Main files written before pages were split keep their pages inline, those are
returned unchanged by merge().
"""

from __future__ import annotations

import json
import logging
from typing import Any

from django.utils.text import slugify

from .conf import get_setting
from .types import ConnectorFile, PageLoader, WebsiteData

logger = logging.getLogger(__name__)

PAGE_FILE_KEY = "$file"
PAGES_FOLDER_KEY = "pagesFolder"
PAGE_FILE_EXTENSION = ".json"
PAGE_REFERENCE_KEYS = ("id", "name")


def stringify(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def get_pages_folder(data: WebsiteData) -> str:
    """Folder receiving page files, relative to the website root."""
    folder: str = data.get(PAGES_FOLDER_KEY) or get_setting("DEFAULT_PAGES_FOLDER")
    return folder.strip("/")


def get_page_file_names(pages: list[dict[str, Any]]) -> list[str]:
    """Deterministic, unique file name for each page, from its id or name."""
    names: list[str] = []
    used: set[str] = set()
    for index, page in enumerate(pages, start=1):
        base = slugify(str(page.get("id") or page.get("name") or "")) or f"page-{index}"
        name = base
        suffix = 2
        while name in used:
            name = f"{base}-{suffix}"
            suffix += 1
        used.add(name)
        names.append(f"{name}{PAGE_FILE_EXTENSION}")
    return names


def split(data: WebsiteData) -> list[ConnectorFile]:
    """Convert website data to the main file followed by one file per page.

    The main file records the pages folder it was written with, so the
    files of a previous folder can be found after the setting changes.
    """
    main = dict(data)
    page_files: list[ConnectorFile] = []
    if "pages" in data:
        folder = get_pages_folder(data)
        pages = data["pages"]
        references = []
        for page, file_name in zip(pages, get_page_file_names(pages)):
            path = f"{folder}/{file_name}"
            reference = {key: page[key] for key in PAGE_REFERENCE_KEYS if key in page}
            reference[PAGE_FILE_KEY] = path
            references.append(reference)
            page_files.append(ConnectorFile(path=path, content=stringify(page)))
        main["pages"] = references
        main[PAGES_FOLDER_KEY] = folder

    main_file = ConnectorFile(
        path=get_setting("WEBSITE_DATA_FILE"), content=stringify(main)
    )
    return [main_file, *page_files]


def merge(main_content: str | bytes, page_loader: PageLoader) -> WebsiteData:
    """Rebuild website data from the main file content.

    Args:
        main_content: Content of the main file.
        page_loader: Called with the path of each page file, relative to the
            website root, returns the file content.
    """
    data: WebsiteData = json.loads(main_content)
    pages = data.get("pages")
    if pages:
        data["pages"] = [_load_page(page, page_loader) for page in pages]
    return data


def _load_page(page: Any, page_loader: PageLoader) -> Any:
    if not isinstance(page, dict) or PAGE_FILE_KEY not in page:
        return page
    path = page[PAGE_FILE_KEY]
    logger.debug("Loading page file %s", path)
    content = page_loader(path)
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    return json.loads(content)
