"""Tests for website_storage.conf module.

## Decision table: DT-GET-SETTING

| ID  | User setting | default arg | DEFAULTS key | Expected return        |
|-----|-------------|-------------|-------------|------------------------|
| DT1 | present     | _UNSET      | present     | user setting value     |
| DT2 | present     | explicit    | present     | user setting value     |
| DT3 | absent      | _UNSET      | present     | DEFAULTS value         |
| DT4 | absent      | explicit    | present     | explicit default value |
| DT5 | absent      | None        | present     | None (not DEFAULTS)    |
| DT6 | absent      | _UNSET      | absent      | None                   |
"""

from unittest import mock

import pytest

from website_storage.conf import DEFAULTS, get_setting


class TestGetSettingDecisionTable:
    """Decision table coverage for get_setting() priority logic."""

    @pytest.mark.parametrize(
        "user_settings,key,kwargs,expected",
        [
            pytest.param(
                {"BASE_URL": "/silex"},
                "BASE_URL",
                {},
                "/silex",
                id="DT1-user-setting-wins-over-defaults",
            ),
            pytest.param(
                {"BASE_URL": "/silex"},
                "BASE_URL",
                {"default": "/fallback"},
                "/silex",
                id="DT2-user-setting-wins-over-explicit-default",
            ),
            pytest.param(
                {},
                "API_PATH",
                {},
                DEFAULTS["API_PATH"],
                id="DT3-no-user-setting-returns-defaults-value",
            ),
            pytest.param(
                {},
                "API_PATH",
                {"default": "/v2"},
                "/v2",
                id="DT4-explicit-default-overrides-defaults",
            ),
            pytest.param(
                {},
                "API_PATH",
                {"default": None},
                None,
                id="DT5-explicit-none-default-returns-none",
            ),
            pytest.param(
                {},
                "NONEXISTENT_KEY",
                {},
                None,
                id="DT6-unknown-key-returns-none",
            ),
        ],
    )
    def test_get_setting(self, user_settings, key, kwargs, expected):
        """DT-GET-SETTING: verify priority of user settings > default arg > DEFAULTS.

        Purpose: Verify get_setting() returns the correct value based on the
            priority chain: user_settings > explicit default > DEFAULTS > None.
        Category: Normal case
        Target: get_setting(key, default)
        Technique: Decision table (DT-GET-SETTING)
        Test data: All 6 combinations from decision table
        """
        with mock.patch("website_storage.conf.settings") as mock_settings:
            mock_settings.WEBSITE_STORAGE = user_settings

            result = get_setting(key, **kwargs)

        assert result == expected


class TestGetSettingEdgeCases:
    def test_get_setting_without_website_storage_attr(self):
        """Settings object without WEBSITE_STORAGE returns DEFAULTS value.

        Purpose: Verify graceful handling when WEBSITE_STORAGE is not
            defined in Django settings.
        Category: Edge case
        Target: get_setting(key)
        Technique: Error guessing (missing attribute)
        Test data: Mock settings without WEBSITE_STORAGE attribute
        """
        mock_settings = mock.Mock(spec=[])

        with mock.patch("website_storage.conf.settings", mock_settings):
            result = get_setting("WEBSITE_DATA_FILE")

        assert result == DEFAULTS["WEBSITE_DATA_FILE"]

    def test_get_setting_user_value_is_falsy_but_present(self):
        with mock.patch("website_storage.conf.settings") as mock_settings:
            mock_settings.WEBSITE_STORAGE = {"BASE_URL": ""}

            result = get_setting("BASE_URL")

        assert result == ""


class TestDefaultValues:
    def test_disk_layout_defaults(self):
        assert DEFAULTS["WEBSITE_DATA_FILE"] == "website.json"
        assert DEFAULTS["WEBSITE_META_DATA_FILE"] == "meta.json"
        assert DEFAULTS["ASSETS_FOLDER"] == "/assets"
        assert DEFAULTS["DEFAULT_WEBSITE_ID"] == "default"

    def test_default_connector_is_filesystem(self):
        assert DEFAULTS["CONNECTORS"][0] == "website_storage.connectors.fs.FsStorage"

    def test_api_route_defaults(self):
        route = (
            DEFAULTS["API_PATH"]
            + DEFAULTS["API_WEBSITE_PATH"]
            + DEFAULTS["API_WEBSITE_ASSET_READ"]
        )

        assert route == "/api/website/assets"
