"""Entities shared by the codecs and the connectors."""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import IO, Any, NamedTuple, Union

from django.db import models

from .conf import get_setting

WebsiteId = str
ConnectorId = str
WebsiteData = dict[str, Any]
ConnectorSession = dict[str, Any]

ConnectorFileContent = Union[bytes, str, IO[bytes], Iterable[bytes]]


class JobStatus(models.TextChoices):
    IN_PROGRESS = "in-progress", "In progress"
    SUCCESS = "success", "Success"
    ERROR = "error", "Error"


class ConnectorType(models.TextChoices):
    STORAGE = "STORAGE", "Storage"
    HOSTING = "HOSTING", "Hosting"


class ConnectorFile(NamedTuple):
    """Content destined for a path relative to a website root or its assets."""

    path: str
    content: ConnectorFileContent


@dataclass
class FileStatus:
    """Progress of one file inside a multi-file job."""

    file: ConnectorFile
    message: str = "Waiting"
    status: JobStatus = JobStatus.IN_PROGRESS


class JobData(NamedTuple):
    """What a status callback receives."""

    message: str
    status: JobStatus
    files: list[FileStatus]


StatusCallback = Callable[[JobData], None]
PageLoader = Callable[[str], Union[str, bytes]]


@dataclass
class WebsiteMeta:
    website_id: WebsiteId
    name: str
    image_url: str | None = None
    connector_user_settings: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_file_content(self) -> dict[str, Any]:
        """Fields persisted in the meta file, timestamps are derived on read."""
        return {
            "name": self.name,
            "imageUrl": self.image_url,
            "connectorUserSettings": self.connector_user_settings,
        }


@dataclass
class ConnectorData:
    """Public description of a connector, as shown to the editor."""

    connector_id: ConnectorId
    connector_type: ConnectorType
    display_name: str
    icon: str
    disable_logout: bool
    is_logged_in: bool
    oauth_url: str | None
    color: str
    background: str


@dataclass
class ConnectorUser:
    name: str
    picture: str | None
    storage: ConnectorData
    email: str | None = None


EMPTY_WEBSITE: WebsiteData = {
    "pages": [],
    "assets": [],
    "styles": [],
    "settings": {},
    "fonts": [],
    "symbols": [],
    "publication": {},
}


def empty_website() -> WebsiteData:
    """Return a fresh copy of the document new websites start with.

    It declares the configured pages folder, as saved websites do.
    """
    return {
        **copy.deepcopy(EMPTY_WEBSITE),
        "pagesFolder": get_setting("DEFAULT_PAGES_FOLDER"),
    }
