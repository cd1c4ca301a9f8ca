"""Configuration and settings for django-website-storage."""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    # Connectors, the first one is the default
    "CONNECTORS": [
        "website_storage.connectors.fs.FsStorage",
    ],
    # Filesystem connector root, None means "<BASE_DIR>/data"
    "DATA_PATH": None,
    # Django storage connector key prefix
    "DJANGO_STORAGE_PREFIX": "websites",
    # Website layout
    "DEFAULT_WEBSITE_ID": "default",
    "DEFAULT_WEBSITE_NAME": "Default website",
    "WEBSITE_DATA_FILE": "website.json",
    "WEBSITE_META_DATA_FILE": "meta.json",
    "DEFAULT_PAGES_FOLDER": "pages",
    "ASSETS_FOLDER": "/assets",
    # Displayed asset URLs
    "BASE_URL": "",
    "API_PATH": "/api",
    "API_WEBSITE_PATH": "/website",
    "API_WEBSITE_ASSET_READ": "/assets",
    # Values starting with these are inline content, never rewritten
    "INLINE_MARKERS": ("<svg", "data:image"),
}


_UNSET = object()


def get_setting(key: str, default: Any = _UNSET) -> Any:
    """Get a setting from WEBSITE_STORAGE dict or return default."""
    user_settings: dict[str, Any] = getattr(settings, "WEBSITE_STORAGE", {})
    fallback = DEFAULTS.get(key) if default is _UNSET else default
    return user_settings.get(key, fallback)
