"""
Tests for YAML configuration loading.
"""

from datetime import date, time
from pathlib import Path

import pytest
import yaml

from slotkeeper.config import AppConfig, LocationConfig
from slotkeeper.domain.conflict_checker import BufferScope
from slotkeeper.domain.event_type import InPerson, Phone, VideoConference, VideoProviderKind
from slotkeeper.domain.exceptions import EventTypeNotFound

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config.example.yaml"


def _minimal(**overrides) -> dict:
    data = {
        "timezone": "Europe/Berlin",
        "schedules": [
            {"id": "office", "weekly": {"Monday": [{"start": "09:00", "end": "17:00"}]}},
        ],
        "event_types": [
            {"id": "intro", "name": "Intro", "host_id": "anna", "schedule_id": "office"},
        ],
    }
    data.update(overrides)
    return data


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadFromYaml:
    """Tests for AppConfig.load_from_yaml."""

    def test_example_config_is_valid(self):
        config = AppConfig.load_from_yaml(EXAMPLE_CONFIG)

        assert config.buffer_scope is BufferScope.HOST
        assert config.slot_step_minutes == 15
        assert [e.id for e in config.event_types] == ["intro-call", "consultation"]
        assert config.bookings_file == EXAMPLE_CONFIG.parent / "bookings.json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("schedules: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(path)

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(_write(tmp_path, ["a", "b"]))

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "UTC"
        assert config.event_types == []

    def test_relative_bookings_file(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, _minimal(bookings_file="data/bookings.json")))

        assert config.bookings_file == tmp_path / "data" / "bookings.json"


class TestValidation:
    """Invalid configurations are rejected at load time."""

    def test_overlapping_intervals(self, tmp_path):
        data = _minimal(schedules=[{
            "id": "office",
            "weekly": {"monday": [{"start": "09:00", "end": "12:00"}, {"start": "11:00", "end": "14:00"}]},
        }])

        with pytest.raises(ValueError, match="Overlapping"):
            AppConfig.load_from_yaml(_write(tmp_path, data))

    def test_reversed_interval(self):
        with pytest.raises(ValueError):
            AppConfig(**_minimal(schedules=[
                {"id": "office", "weekly": {"monday": [{"start": "17:00", "end": "09:00"}]}},
            ]))

    def test_interval_may_end_at_midnight(self, tmp_path):
        """Quoted "24:00" closes the interval at the end of the day."""
        data = _minimal(schedules=[
            {"id": "office", "weekly": {"friday": [{"start": "18:00", "end": "24:00"}]}},
        ])

        schedule = AppConfig.load_from_yaml(_write(tmp_path, data)).build_catalog().get_schedule("office")
        interval = schedule.rule_for(4).intervals[0]

        assert interval.ends_at_midnight
        assert str(interval) == "18:00-24:00"

    def test_midnight_start_is_not_an_end(self):
        with pytest.raises(ValueError):
            AppConfig(**_minimal(schedules=[
                {"id": "office", "weekly": {"monday": [{"start": "24:00", "end": "09:00"}]}},
            ]))

    def test_unknown_weekday(self):
        with pytest.raises(ValueError, match="Unknown weekday"):
            AppConfig(**_minimal(schedules=[{"id": "office", "weekly": {"funday": []}}]))

    def test_unknown_schedule_reference(self):
        data = _minimal()
        data["event_types"][0]["schedule_id"] = "missing"

        with pytest.raises(ValueError, match="unknown schedule 'missing'"):
            AppConfig(**data)

    def test_duplicate_event_type_ids(self):
        data = _minimal()
        data["event_types"].append(dict(data["event_types"][0]))

        with pytest.raises(ValueError, match="Duplicate event type"):
            AppConfig(**data)

    def test_unknown_timezone(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            AppConfig(**_minimal(timezone="Atlantis/Capital"))

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            AppConfig(**_minimal(log_level="LOUD"))

    def test_log_level_is_normalized(self):
        assert AppConfig(**_minimal(log_level="debug")).log_level == "DEBUG"

    def test_invalid_limits(self):
        data = _minimal()
        data["event_types"][0]["limits"] = {"max_per_day": 0}

        with pytest.raises(ValueError):
            AppConfig(**data)

    def test_choice_question_needs_options(self):
        data = _minimal()
        data["event_types"][0]["questions"] = [{"id": "size", "question": "Size?", "type": "single_choice"}]

        with pytest.raises(ValueError, match="without options"):
            AppConfig(**data)

    def test_in_person_needs_address(self):
        with pytest.raises(ValueError):
            LocationConfig(type="in_person")


class TestBuildDomain:
    """Tests for turning configuration into domain objects."""

    def test_build_catalog(self):
        config = AppConfig(**_minimal(schedules=[{
            "id": "office",
            "weekly": {"monday": [{"start": "09:00", "end": "17:00"}]},
            "overrides": [{"date": "2024-12-24", "unavailable": True}],
        }]))

        catalog = config.build_catalog()
        schedule = catalog.get_schedule("office")
        event_type = catalog.get_event_type("intro")

        assert schedule.timezone == "Europe/Berlin"
        assert schedule.rule_for(0).intervals[0].start == time(9, 0)
        assert schedule.override_for(date(2024, 12, 24)).unavailable
        assert event_type.duration_minutes == 30
        assert isinstance(event_type.location, VideoConference)
        with pytest.raises(EventTypeNotFound):
            catalog.get_event_type("missing")

    def test_example_event_types(self):
        catalog = AppConfig.load_from_yaml(EXAMPLE_CONFIG).build_catalog()

        consultation = catalog.get_event_type("consultation")
        intro = catalog.get_event_type("intro-call")

        assert consultation.location == InPerson(address="Hauptstraße 1, Berlin")
        assert consultation.confirmation.requires_confirmation
        assert consultation.confirmation.reminder_hours_before == (24, 1)
        assert consultation.limits.max_per_week == 5
        assert intro.location.provider.kind is VideoProviderKind.ZOOM
        assert intro.questions[0].required

    def test_build_lifecycle_uses_settings(self):
        config = AppConfig(**_minimal(buffer_scope="event_type", slot_step_minutes=10))

        lifecycle = config.build_lifecycle()

        assert lifecycle.checker.buffer_scope is BufferScope.EVENT_TYPE
        assert lifecycle.calculator.step_minutes == 10

    def test_location_round_trip(self):
        for location in (InPerson(address="Main St 1"), Phone(), VideoConference()):
            assert LocationConfig.from_domain(location).to_domain() == location

    def test_inactive_event_type(self):
        data = _minimal()
        data["event_types"][0]["active"] = False

        assert not AppConfig(**data).build_catalog().get_event_type("intro").is_active
