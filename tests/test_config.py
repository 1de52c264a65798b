"""Tests for preference defaults, fallbacks and persistence."""

import json
from datetime import datetime

from activity_timer.config import TimerSettings, load_settings, save_settings
from activity_timer.models import ActivityType


class TestDefaults:
    def test_defaults(self):
        settings = TimerSettings()
        assert settings.default_activity_type is ActivityType.DEVELOP
        assert settings.default_duration_minutes == 60
        assert settings.rounding_minutes == 5
        assert settings.default_start_time == "09:00"
        assert settings.csv_delimiter == ","

    def test_custom_values(self):
        settings = TimerSettings.from_mapping(
            {
                "default_activity_type": "SUPPORT",
                "csv_delimiter": ";",
                "default_duration_minutes": 45,
                "rounding_minutes": "10",
            }
        )
        assert settings.default_activity_type is ActivityType.SUPPORT
        assert settings.csv_delimiter == ";"
        assert settings.default_duration_minutes == 45
        assert settings.rounding_minutes == 10

    def test_invalid_values_fall_back(self):
        settings = TimerSettings.from_mapping(
            {
                "default_activity_type": "NAPPING",
                "default_duration_minutes": 0,
                "rounding_minutes": -3,
                "csv_delimiter": "",
            }
        )
        assert settings.default_activity_type is ActivityType.DEVELOP
        assert settings.default_duration_minutes == 60
        assert settings.rounding_minutes == 0
        assert settings.csv_delimiter == ","


class TestDefaultStartDate:
    def test_anchors_on_reference_day(self):
        settings = TimerSettings(default_start_time="08:30")
        assert settings.default_start_date(datetime(2024, 3, 4, 16, 12, 5)) == datetime(
            2024, 3, 4, 8, 30
        )

    def test_unparsable_time_returns_reference(self):
        reference = datetime(2024, 3, 4, 16, 12)
        assert TimerSettings(default_start_time="soon").default_start_date(reference) == reference
        assert TimerSettings(default_start_time="aa:bb").default_start_date(reference) == reference


class TestPersistence:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "settings.json") == TimerSettings()

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        settings = TimerSettings(
            default_activity_type=ActivityType.MEETING,
            default_duration_minutes=30,
            rounding_minutes=0,
            default_start_time="10:00",
            csv_delimiter="\t",
        )
        save_settings(settings, path)

        assert json.loads(path.read_text())["default_activity_type"] == "MEETING"
        assert load_settings(path) == settings

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert load_settings(path) == TimerSettings()


class TestValidation:
    def test_multi_character_delimiter_falls_back(self):
        assert TimerSettings.from_mapping({"csv_delimiter": ";;"}).csv_delimiter == ","

    def test_non_text_delimiter_falls_back(self):
        assert TimerSettings.from_mapping({"csv_delimiter": 7}).csv_delimiter == ","

    def test_tab_delimiter_kept(self):
        assert TimerSettings.from_mapping({"csv_delimiter": "\t"}).csv_delimiter == "\t"

    def test_bad_start_time_falls_back(self):
        assert TimerSettings.from_mapping({"default_start_time": "noon"}).default_start_time == "09:00"
        assert TimerSettings.from_mapping({"default_start_time": "25:00"}).default_start_time == "09:00"

    def test_stored_bad_delimiter_ignored_on_load(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"csv_delimiter": ";;", "rounding_minutes": 10}))
        settings = load_settings(path)
        assert settings.csv_delimiter == ","
        assert settings.rounding_minutes == 10
