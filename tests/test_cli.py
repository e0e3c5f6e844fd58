"""Tests for the command-line entry point and the console demo scenarios."""

from datetime import timedelta

import pytest

import main
from clinic_booking.config import AppConfig, ClinicConfig, NotificationConfig, StorageConfig
from clinic_booking.scheduling.slot_clock import SlotClock
from console_demo import ConsoleSession
from tests.conftest import FIXED_NOW


def _app_config(**storage) -> AppConfig:
    """Explicit configuration so CLI runs never depend on .env or the environment."""
    return AppConfig(
        clinic=ClinicConfig(name="Test Clinic", timezone="UTC", opening_hour=9,
                            closing_hour=20, slot_minutes=30, min_phone_length=11),
        storage=StorageConfig(**{"backend": "memory", "bookings_key": "clinic_bookings",
                                 "strict_persistence": False, **storage}),
        notifications=NotificationConfig(transport="log", destination="201010557102",
                                         delay_sec=0),
    )


def _future_date() -> str:
    return (SlotClock(tz="UTC").minimum_bookable_date() + timedelta(days=7)).isoformat()


@pytest.fixture
def app_config() -> AppConfig:
    return _app_config()


class TestMainCommands:
    def test_slots_lists_grid(self, capsys, app_config):
        assert main.main(["slots", "--date", _future_date()], app_config) == 0
        out = capsys.readouterr().out
        assert "09:00" in out
        assert "20:00" in out
        assert "(booked)" not in out

    def test_slots_invalid_date(self, capsys, app_config):
        assert main.main(["slots", "--date", "tomorrow"], app_config) == 1
        assert "Invalid date" in capsys.readouterr().out

    def test_list_empty(self, capsys, app_config):
        assert main.main(["list"], app_config) == 0
        assert "No bookings." in capsys.readouterr().out

    def test_book_admitted(self, capsys, app_config):
        code = main.main([
            "book", "--name", "Ali", "--phone", "01012345678",
            "--date", _future_date(), "--time", "09:00",
        ], app_config)
        assert code == 0
        assert "Booking number" in capsys.readouterr().out

    def test_book_rejected(self, capsys, app_config):
        code = main.main([
            "book", "--name", "Ali", "--phone", "123",
            "--date", _future_date(), "--time", "09:00",
        ], app_config)
        assert code == 1
        assert "phone number is not valid" in capsys.readouterr().out

    def test_command_required(self, app_config):
        with pytest.raises(SystemExit):
            main.main([], app_config)


class TestMainUsesGivenConfig:
    def test_clinic_hours_shape_the_grid(self, capsys):
        base = _app_config()
        config = AppConfig(
            clinic=ClinicConfig(name="Short Day", timezone="UTC", opening_hour=10,
                                closing_hour=12, slot_minutes=60, min_phone_length=11),
            storage=base.storage,
            notifications=base.notifications,
        )
        assert main.main(["slots", "--date", _future_date()], config) == 0
        out = capsys.readouterr().out
        assert "10:00" in out and "12:00" in out
        assert "09:00" not in out
        assert "10:30" not in out

    def test_phone_length_from_config(self, capsys):
        base = _app_config()
        config = AppConfig(
            clinic=ClinicConfig(name="Test Clinic", timezone="UTC", opening_hour=9,
                                closing_hour=20, slot_minutes=30, min_phone_length=3),
            storage=base.storage,
            notifications=base.notifications,
        )
        code = main.main([
            "book", "--name", "Ali", "--phone", "123",
            "--date", _future_date(), "--time", "09:00",
        ], config)
        assert code == 0

    def test_file_backend_keeps_bookings_between_runs(self, capsys, tmp_path):
        config = _app_config(backend="file", storage_dir=str(tmp_path))
        day = _future_date()
        assert main.main([
            "book", "--name", "Ali", "--phone", "01012345678", "--date", day, "--time", "09:00",
        ], config) == 0
        capsys.readouterr()

        assert main.main(["list"], config) == 0
        assert "Ali" in capsys.readouterr().out
        assert main.main(["slots", "--date", day], config) == 0
        assert "09:00  (booked)" in capsys.readouterr().out

    def test_memory_backend_starts_empty_each_run(self, capsys, app_config):
        main.main([
            "book", "--name", "Ali", "--phone", "01012345678",
            "--date", _future_date(), "--time", "09:00",
        ], app_config)
        capsys.readouterr()
        assert main.main(["list"], app_config) == 0
        assert "No bookings." in capsys.readouterr().out


class TestConsoleScenarios:
    @pytest.mark.asyncio
    async def test_booking_scenario(self, capsys):
        session = ConsoleSession(SlotClock(tz="UTC", now=lambda: FIXED_NOW))
        await session.run_scenario("booking")
        out = capsys.readouterr().out
        assert out.count("[Booked]") == 1
        assert "Reason: slot_taken" in out
        assert "Reason: invalid_phone" in out
        assert "Reason: past_date" in out
        assert "Reason: invalid_slot" in out
        assert "Reason: incomplete_request" in out
        assert session.dispatcher.sent_count == 1

    @pytest.mark.asyncio
    async def test_rush_scenario_admits_one_per_slot(self, capsys):
        session = ConsoleSession(SlotClock(tz="UTC", now=lambda: FIXED_NOW))
        await session.run_scenario("rush")
        assert capsys.readouterr().out.count("[Booked]") == 2
        assert sorted(b.time for b in session.engine.list_bookings()) == ["12:00", "12:30"]

    @pytest.mark.asyncio
    async def test_unknown_scenario(self, capsys):
        await ConsoleSession().run_scenario("nope")
        assert "Unknown scenario" in capsys.readouterr().out
