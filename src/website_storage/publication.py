"""Convert asset URLs back to their stored form while publishing a website."""

from __future__ import annotations

from django.db import models

from .asset_url import AssetUrlTranslator


class ClientSideFileType(models.TextChoices):
    HTML = "html", "HTML"
    ASSET = "asset", "Asset"
    CSS = "css", "CSS"
    OTHER = "other", "Other"


class AssetsPublicationTransformer:
    """Publication transformer for assets.

    Published files reference assets by their stored path, so the displayed
    URLs used in the editor are converted back. Returning None means the file
    type is not handled by this transformer.
    """

    def __init__(self, translator: AssetUrlTranslator | None = None) -> None:
        self.translator = translator or AssetUrlTranslator.from_settings()

    def transform_path(self, path: str, file_type: ClientSideFileType) -> str | None:
        if file_type == ClientSideFileType.ASSET:
            return self.translator.displayed_to_stored(path)
        return None

    def transform_permalink(
        self, path: str, file_type: ClientSideFileType
    ) -> str | None:
        if file_type == ClientSideFileType.ASSET:
            return self.translator.displayed_to_stored(path)
        return None
