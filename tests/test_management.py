"""Tests for the websites management command."""

from __future__ import annotations

from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from website_storage.exceptions import NotFound
from website_storage.utils import get_connector


def _run(*args):
    out = StringIO()
    call_command("websites", *args, stdout=out)
    return out.getvalue()


class TestWebsitesCommand:
    def test_list_default_website(self):
        """list shows the websites of the default connector.

        Purpose: Verify the command lists the bootstrapped default website.
        Category: Normal case
        Target: Command.handle(action="list")
        Technique: Equivalence partitioning
        Test data: Fresh filesystem connector
        """
        stdout = _run("list")

        assert "1 website(s) in File system storage" in stdout
        assert "default - Default website" in stdout

    def test_create_then_show(self):
        stdout = _run("create", "--name", "Portfolio")
        new_id = stdout.strip().rsplit(" ", 1)[-1]

        shown = _run("show", "--website-id", new_id)

        assert "Name: Portfolio" in shown
        assert "Pages: 0, assets: 0, styles: 0" in shown

    def test_duplicate_and_delete(self):
        stdout = _run("duplicate", "--website-id", "default")
        new_id = stdout.strip().rsplit(" ", 1)[-1]

        connector = get_connector()
        assert connector.get_website_meta({}, new_id).name == "Default website copy"

        _run("delete", "--website-id", new_id)

        with pytest.raises(NotFound):
            connector.get_website_meta({}, new_id)

    def test_other_connector(self):
        _run("create", "--connector", "django-storage", "--name", "In memory")

        stdout = _run("list", "--connector", "django-storage")

        assert "In memory" in stdout

    @pytest.mark.parametrize("action", ["show", "delete", "duplicate"])
    def test_website_id_required(self, action):
        with pytest.raises(CommandError, match="--website-id"):
            _run(action)

    def test_storage_error_becomes_command_error(self):
        """Connector errors are reported as command errors.

        Purpose: Verify a NotFound from the connector is logged and raised
            as CommandError with its message.
        Category: Error case
        Target: Command.handle(action="show")
        Technique: Error guessing
        Test data: Unknown website id
        """
        with (
            mock.patch(
                "website_storage.management.commands.websites.logger"
            ) as mock_logger,
            pytest.raises(CommandError, match="unknown"),
        ):
            _run("show", "--website-id", "unknown")

        mock_logger.exception.assert_called_once()
