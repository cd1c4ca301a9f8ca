from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ..exceptions import InvalidArgument, IOFailure
from ..types import (
    ConnectorData,
    ConnectorFile,
    ConnectorFileContent,
    ConnectorSession,
    ConnectorType,
    ConnectorUser,
    FileStatus,
    JobData,
    JobStatus,
    StatusCallback,
    WebsiteData,
    WebsiteId,
    WebsiteMeta,
)

logger = logging.getLogger(__name__)


class StorageConnector(ABC):
    """Abstract base class for website storage backends.

    A connector persists websites (metadata, website data and assets) for
    one backend. Every method receives the session of the current user, an
    opaque mapping the connector may use to keep its own state (tokens...).
    Connectors which need no authentication keep the default implementations
    of the login related methods.
    """

    connector_id: str
    display_name: str
    icon: str = ""
    disable_logout: bool = False
    connector_type: ConnectorType = ConnectorType.STORAGE
    color: str = "#ffffff"
    background: str = "#000000"

    # ********************
    # Login
    # ********************
    def get_options(self, form_data: dict[str, Any]) -> dict[str, Any]:
        """Connector options from the settings form data."""
        return {}

    def get_oauth_url(self, session: ConnectorSession) -> str | None:
        return None

    def get_login_form(
        self, session: ConnectorSession, redirect_to: str
    ) -> str | None:
        return None

    def get_settings_form(
        self, session: ConnectorSession, redirect_to: str
    ) -> str | None:
        return None

    def is_logged_in(self, session: ConnectorSession) -> bool:
        return True

    def set_token(self, session: ConnectorSession, query: dict[str, Any]) -> None:
        pass

    def logout(self, session: ConnectorSession) -> None:
        pass

    @abstractmethod
    def get_user(self, session: ConnectorSession) -> ConnectorUser:
        """Return the user currently logged in with this connector."""
        ...

    # ********************
    # Metadata
    # ********************
    @abstractmethod
    def get_website_meta(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteMeta:
        """Read the metadata of a website.

        Raises:
            NotFound: The website does not exist.
        """
        ...

    @abstractmethod
    def set_website_meta(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        data: dict[str, Any],
    ) -> None:
        """Write the metadata file of a website.

        Args:
            data: Meta file content, ``name``, ``imageUrl`` and
                ``connectorUserSettings``.
        """
        ...

    # ********************
    # Websites
    # ********************
    @abstractmethod
    def create_website(
        self, session: ConnectorSession, meta: dict[str, Any]
    ) -> WebsiteId:
        """Create an empty website and return its new id."""
        ...

    @abstractmethod
    def read_website(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteData:
        ...

    @abstractmethod
    def update_website(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        data: WebsiteData,
    ) -> None:
        """Save website data, removing the files of pages which are gone."""
        ...

    @abstractmethod
    def delete_website(self, session: ConnectorSession, website_id: WebsiteId) -> None:
        """Remove everything stored for the website."""
        ...

    @abstractmethod
    def duplicate_website(
        self, session: ConnectorSession, website_id: WebsiteId
    ) -> WebsiteId:
        """Copy the website under a new id, the copy's name ends with " copy"."""
        ...

    @abstractmethod
    def list_websites(self, session: ConnectorSession) -> list[WebsiteMeta]:
        ...

    # ********************
    # Assets
    # ********************
    @abstractmethod
    def get_asset(
        self, session: ConnectorSession, website_id: WebsiteId, path: str
    ) -> ConnectorFile:
        ...

    @abstractmethod
    def write_assets(
        self,
        session: ConnectorSession,
        website_id: WebsiteId,
        files: list[ConnectorFile],
        status_callback: StatusCallback | None = None,
    ) -> None:
        """Write files to the website's assets folder.

        Every file is attempted. The callback is called as each file
        progresses, then once with the final status. If any file failed,
        the first error is raised after all files were attempted.
        """
        ...

    @abstractmethod
    def delete_assets(
        self, session: ConnectorSession, website_id: WebsiteId, paths: list[str]
    ) -> None:
        ...

    @abstractmethod
    def read_asset(
        self, session: ConnectorSession, website_id: WebsiteId, path: str
    ) -> bytes:
        ...


# ********************
# Job utils
# ********************
def init_status(files: list[ConnectorFile]) -> list[FileStatus]:
    return [FileStatus(file=file) for file in files]


def update_status(
    files_statuses: list[FileStatus],
    status: JobStatus,
    status_callback: StatusCallback | None,
) -> None:
    """Report the progress of every file to the callback, if any."""
    if status_callback is None:
        return
    lines = "\n".join(
        f"- {file_status.file.path}: {file_status.message}"
        for file_status in files_statuses
    )
    status_callback(
        JobData(
            message=f"Writing files:\n{lines}",
            status=status,
            files=[
                FileStatus(fs.file, fs.message, fs.status) for fs in files_statuses
            ],
        )
    )


def write_files(
    files: list[ConnectorFile],
    write_file: Callable[[ConnectorFile], None],
    status_callback: StatusCallback | None = None,
) -> None:
    """Write files one by one in order, carrying on after a failure.

    Contents are checked before anything is written, an unsupported one
    raises InvalidArgument. Any error raised by ``write_file`` marks that
    file as failed and the next file is attempted. Once every file was
    attempted, the first error is raised as IOFailure and the final status
    is ERROR, otherwise it is SUCCESS.
    """
    for file in files:
        check_content(file.content)
    files_statuses = init_status(files)
    error: Exception | None = None
    for file_status in files_statuses:
        file_status.message = "Writing"
        update_status(files_statuses, JobStatus.IN_PROGRESS, status_callback)
        try:
            write_file(file_status.file)
        except Exception as err:
            logger.warning("Could not write %s: %s", file_status.file.path, err)
            file_status.message = f"Error ({err})"
            file_status.status = JobStatus.ERROR
            update_status(files_statuses, JobStatus.IN_PROGRESS, status_callback)
            if error is None:
                error = err
            continue
        file_status.message = "Success"
        file_status.status = JobStatus.SUCCESS
        update_status(files_statuses, JobStatus.IN_PROGRESS, status_callback)

    update_status(
        files_statuses,
        JobStatus.ERROR if error else JobStatus.SUCCESS,
        status_callback,
    )
    if error is not None:
        raise IOFailure(f"Could not write all files: {error}") from error


def to_connector_data(
    session: ConnectorSession, connector: StorageConnector
) -> ConnectorData:
    """Public description of a connector for the given session."""
    return ConnectorData(
        connector_id=connector.connector_id,
        connector_type=connector.connector_type,
        display_name=connector.display_name,
        icon=connector.icon,
        disable_logout=connector.disable_logout,
        is_logged_in=connector.is_logged_in(session),
        oauth_url=connector.get_oauth_url(session),
        color=connector.color,
        background=connector.background,
    )


def check_content(content: ConnectorFileContent) -> ConnectorFileContent:
    """Return ``content`` if connectors know how to write it."""
    if isinstance(content, (bytes, str)) or hasattr(content, "read"):
        return content
    if hasattr(content, "__iter__") and not isinstance(content, dict):
        return content
    raise InvalidArgument(f"Invalid file content: {type(content).__name__}")
