"""Translate asset URLs between their stored and displayed forms.

Assets are referenced in website data by their stored path, e.g.
``/assets/image.webp``. While a website is edited, the client loads them
through the API instead, e.g.
``/api/website/assets/image.webp?websiteId=47868975&connectorId=fs-storage``.

Website data is converted to the displayed form after it is loaded and back
to the stored form before it is saved or published. Both directions are total:
values which are not recognized are logged and returned unchanged.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from .conf import get_setting
from .exceptions import required_param
from .types import ConnectorId, WebsiteData, WebsiteId

logger = logging.getLogger(__name__)

WEBSITE_ID_PARAM = "websiteId"
CONNECTOR_ID_PARAM = "connectorId"
RESERVED_PARAMS = frozenset({WEBSITE_ID_PARAM, CONNECTOR_ID_PARAM})

BACKGROUND_IMAGE = "background-image"

# url(<ws><quote><value><quote><ws>), the quote is optional
CSS_URL_RE = re.compile(r"url\((\s*)(['\"]?)([^'\"]+?)\2(\s*)\)")


class Direction(enum.Enum):
    TO_DISPLAYED = "to-displayed"
    TO_STORED = "to-stored"


def _has_prefix(path: str, prefix: str) -> bool:
    if not path.startswith(prefix):
        return False
    rest = path[len(prefix) :]
    return not rest or rest[0] in "/?#"


def _query_items(query: str) -> list[str]:
    """Split a query string into raw ``key=value`` items, without decoding."""
    return [item for item in query.split("&") if item]


def _without_reserved(query: str) -> list[str]:
    return [
        item
        for item in _query_items(query)
        if unquote(item.split("=", 1)[0]) not in RESERVED_PARAMS
    ]


class AssetUrlTranslator:
    """Convert asset references for one deployment of the editor.

    Args:
        base_url: Path the editor is served from, e.g. ``""`` or ``"/editor"``.
        api_path, website_path, asset_read_path: Route of the asset read API,
            joined as ``<base_url><api_path><website_path><asset_read_path>``.
        assets_folder: Marker every stored asset path starts with.
        inline_markers: Prefixes of values which are inline content.
    """

    def __init__(
        self,
        base_url: str = "",
        api_path: str = "/api",
        website_path: str = "/website",
        asset_read_path: str = "/assets",
        assets_folder: str = "/assets",
        inline_markers: Iterable[str] = ("<svg", "data:image"),
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = f"{self.base_url}{api_path}{website_path}{asset_read_path}"
        self.assets_prefix = "/" + assets_folder.strip("/")
        self.inline_markers = tuple(inline_markers)

    @classmethod
    def from_settings(cls) -> AssetUrlTranslator:
        return cls(
            base_url=get_setting("BASE_URL"),
            api_path=get_setting("API_PATH"),
            website_path=get_setting("API_WEBSITE_PATH"),
            asset_read_path=get_setting("API_WEBSITE_ASSET_READ"),
            assets_folder=get_setting("ASSETS_FOLDER"),
            inline_markers=get_setting("INLINE_MARKERS"),
        )

    # ********************
    # Single references
    # ********************
    def is_inline(self, path: str) -> bool:
        return path.startswith(self.inline_markers)

    def is_stored(self, path: str) -> bool:
        return _has_prefix(path, self.assets_prefix)

    def is_displayed(self, path: str) -> bool:
        return _has_prefix(path, self.api_prefix)

    def stored_to_displayed(
        self,
        path: str,
        website_id: WebsiteId,
        connector_id: ConnectorId | None,
    ) -> str:
        """Convert ``/assets/a.webp`` to ``/api/website/assets/a.webp?websiteId=..``.

        The result is relative to the serving root, the path part is decoded.
        """
        if not self.is_stored(path):
            return self._pass_through(path, "stored_to_displayed", "stored")

        parts = urlsplit(path)
        pathname = unquote(self.api_prefix + parts.path[len(self.assets_prefix) :])
        params = _without_reserved(parts.query)
        params.append(f"{WEBSITE_ID_PARAM}={quote(website_id, safe='')}")
        params.append(f"{CONNECTOR_ID_PARAM}={quote(connector_id or '', safe='')}")
        displayed = f"{pathname}?{'&'.join(params)}"
        if parts.fragment:
            displayed += f"#{parts.fragment}"
        return displayed

    def displayed_to_stored(self, path: str) -> str:
        """Convert ``/api/website/assets/a.webp?websiteId=..`` to ``/assets/a.webp``."""
        if not self.is_displayed(path):
            return self._pass_through(path, "displayed_to_stored", "displayed")

        parts = urlsplit(path)
        # query items are kept encoded, as stored_to_displayed() left them
        stored = unquote(self.assets_prefix + parts.path[len(self.api_prefix) :])
        params = _without_reserved(parts.query)
        if params:
            stored += "?" + "&".join(params)
        if parts.fragment:
            stored += f"#{parts.fragment}"
        return stored

    def _pass_through(self, path: str, operation: str, expected: str) -> str:
        if not self.is_inline(path):
            logger.warning("%s: path is not a %s path: %r", operation, expected, path)
        return path

    def translate(
        self,
        path: str,
        direction: Direction,
        website_id: WebsiteId | None = None,
        connector_id: ConnectorId | None = None,
    ) -> str:
        if direction is Direction.TO_STORED:
            return self.displayed_to_stored(path)
        return self.stored_to_displayed(
            path, required_param(website_id, "website id"), connector_id
        )

    # ********************
    # Website data
    # ********************
    def rewrite_asset_references(
        self,
        assets: list[dict[str, Any]],
        website_id: WebsiteId | None,
        connector_id: ConnectorId | None,
        direction: Direction,
    ) -> list[dict[str, Any]]:
        """Translate the ``src`` of every asset, assets without one are kept."""
        return [
            {
                **asset,
                "src": self.translate(asset["src"], direction, website_id, connector_id),
            }
            if asset.get("src")
            else asset
            for asset in assets
        ]

    def rewrite_style_urls(
        self,
        styles: list[dict[str, Any]],
        direction: Direction,
        website_id: WebsiteId | None = None,
        connector_id: ConnectorId | None = None,
    ) -> list[dict[str, Any]]:
        """Translate ``url(...)`` tokens found in ``background-image`` values.

        Anything else in the value (gradients, commas, spacing, quotes) is
        kept as is, e.g. in
        ``linear-gradient(#fff 0%, #000 100%), url('/assets/a.webp')``
        only ``/assets/a.webp`` changes.
        """
        if direction is Direction.TO_DISPLAYED:
            required_param(website_id, "website id")

        def replace(match: re.Match[str]) -> str:
            before, quote_char, value, after = match.groups()
            new_value = self.translate(value, direction, website_id, connector_id)
            return f"url({before}{quote_char}{new_value}{quote_char}{after})"

        rewritten = []
        for style in styles:
            declarations = style.get("style") or {}
            background = declarations.get(BACKGROUND_IMAGE)
            if not background:
                rewritten.append(style)
                continue
            rewritten.append(
                {
                    **style,
                    "style": {
                        **declarations,
                        BACKGROUND_IMAGE: CSS_URL_RE.sub(replace, background),
                    },
                }
            )
        return rewritten

    def add_temp_data_to_assets(
        self,
        assets: list[dict[str, Any]],
        website_id: WebsiteId,
        connector_id: ConnectorId | None,
    ) -> list[dict[str, Any]]:
        return self.rewrite_asset_references(
            assets, website_id, connector_id, Direction.TO_DISPLAYED
        )

    def remove_temp_data_from_assets(
        self, assets: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return self.rewrite_asset_references(assets, None, None, Direction.TO_STORED)

    def add_temp_data_to_styles(
        self,
        styles: list[dict[str, Any]],
        website_id: WebsiteId,
        connector_id: ConnectorId | None,
    ) -> list[dict[str, Any]]:
        return self.rewrite_style_urls(
            styles, Direction.TO_DISPLAYED, website_id, connector_id
        )

    def remove_temp_data_from_styles(
        self, styles: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return self.rewrite_style_urls(styles, Direction.TO_STORED)

    def to_displayed(
        self,
        data: WebsiteData,
        website_id: WebsiteId,
        connector_id: ConnectorId | None,
    ) -> WebsiteData:
        """Prepare loaded website data for the editor."""
        result = dict(data)
        if "assets" in data:
            result["assets"] = self.add_temp_data_to_assets(
                data["assets"], website_id, connector_id
            )
        if "styles" in data:
            result["styles"] = self.add_temp_data_to_styles(
                data["styles"], website_id, connector_id
            )
        return result

    def to_stored(self, data: WebsiteData) -> WebsiteData:
        """Prepare website data coming from the editor for storage."""
        result = dict(data)
        if "assets" in data:
            result["assets"] = self.remove_temp_data_from_assets(data["assets"])
        if "styles" in data:
            result["styles"] = self.remove_temp_data_from_styles(data["styles"])
        return result
