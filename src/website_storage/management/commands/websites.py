"""Management command to inspect and maintain stored websites."""

from __future__ import annotations

import logging

from django.core.management.base import BaseCommand, CommandError, CommandParser

from website_storage.exceptions import StorageError
from website_storage.utils import get_connector

logger = logging.getLogger(__name__)

ACTIONS = ("list", "show", "create", "delete", "duplicate")


class Command(BaseCommand):
    help = "List, create, duplicate or delete the websites of a storage connector."

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("action", choices=ACTIONS)
        parser.add_argument(
            "--connector",
            dest="connector_id",
            help="Connector id. If omitted, uses the first configured connector.",
        )
        parser.add_argument(
            "--website-id",
            help="Website to show, delete or duplicate.",
        )
        parser.add_argument(
            "--name",
            default="New website",
            help="Name of the website to create.",
        )

    def handle(self, **options: object) -> None:
        action = options["action"]
        website_id = options.get("website_id")
        if action in ("show", "delete", "duplicate") and not website_id:
            raise CommandError(f"--website-id is required to {action} a website")

        try:
            connector = get_connector(options.get("connector_id"))  # type: ignore[arg-type]
            getattr(self, f"_{action}")(connector, website_id, options)
        except StorageError as err:
            logger.exception("Failed to %s website %s", action, website_id or "")
            raise CommandError(str(err)) from err

    def _list(self, connector, website_id, options) -> None:
        websites = connector.list_websites({})
        self.stdout.write(f"{len(websites)} website(s) in {connector.display_name}:")
        for meta in websites:
            self.stdout.write(f"  {meta.website_id} - {meta.name}")

    def _show(self, connector, website_id, options) -> None:
        meta = connector.get_website_meta({}, website_id)
        data = connector.read_website({}, website_id)
        self.stdout.write(f"Name: {meta.name}")
        self.stdout.write(f"Updated: {meta.updated_at}")
        self.stdout.write(
            f"Pages: {len(data.get('pages', []))}, "
            f"assets: {len(data.get('assets', []))}, "
            f"styles: {len(data.get('styles', []))}"
        )

    def _create(self, connector, website_id, options) -> None:
        new_id = connector.create_website(
            {}, {"name": options["name"], "connectorUserSettings": {}}
        )
        self.stdout.write(self.style.SUCCESS(f"Created: {new_id}"))

    def _delete(self, connector, website_id, options) -> None:
        connector.delete_website({}, website_id)
        self.stdout.write(self.style.SUCCESS(f"Deleted: {website_id}"))

    def _duplicate(self, connector, website_id, options) -> None:
        new_id = connector.duplicate_website({}, website_id)
        self.stdout.write(self.style.SUCCESS(f"Duplicated {website_id} to {new_id}"))
