"""Tests for the data models."""

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from travel_orchestrator.data.models import (
    JobRecord,
    JobStatus,
    TripPreferences,
    budget_multiplier,
    validate_preferences,
)
from travel_orchestrator.utils.error_handling import ValidationError


def raw_preferences(**overrides):
    data = {
        "destination": "Lisbon",
        "startDate": "2025-09-10",
        "endDate": "2025-09-14",
        "budget": "budget",
        "travelers": "1",
        "interests": "architecture",
    }
    data.update(overrides)
    return data


def test_camel_and_snake_case_names_are_accepted():
    camel = validate_preferences(raw_preferences())
    snake = validate_preferences(
        {
            "destination": "Lisbon",
            "start_date": "2025-09-10",
            "end_date": "2025-09-14",
            "budget": "budget",
            "travelers": "1",
            "interests": "architecture",
        }
    )

    assert camel == snake
    assert camel.start_date == date(2025, 9, 10)
    assert camel.days == 4


def test_to_wire_uses_camel_case():
    wire = validate_preferences(raw_preferences(comingFrom="Porto")).to_wire()

    assert wire["startDate"] == "2025-09-10"
    assert wire["comingFrom"] == "Porto"
    assert "start_date" not in wire


def test_blank_origin_is_dropped():
    preferences = validate_preferences(raw_preferences(comingFrom="  "))

    assert preferences.coming_from is None
    assert "comingFrom" not in preferences.to_wire()


def test_numbers_are_coerced_to_strings():
    assert validate_preferences(raw_preferences(travelers=3)).travelers == "3"


def test_missing_fields_are_listed():
    data = raw_preferences(budget="   ")
    del data["startDate"]

    with pytest.raises(ValidationError) as exc_info:
        validate_preferences(data)

    assert exc_info.value.missing_fields == ["budget", "start_date"]


def test_non_dict_preferences_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_preferences(None)

    assert "destination" in exc_info.value.missing_fields


def test_end_date_before_start_is_rejected():
    with pytest.raises(ValidationError):
        validate_preferences(raw_preferences(endDate="2025-09-01"))


def test_malformed_date_names_the_field():
    with pytest.raises(ValidationError) as exc_info:
        validate_preferences(raw_preferences(startDate="next tuesday"))

    assert exc_info.value.missing_fields == ["startDate"]


def test_preferences_are_frozen():
    preferences = validate_preferences(raw_preferences())

    with pytest.raises(PydanticValidationError):
        preferences.destination = "Madrid"


def test_validate_passes_models_through():
    preferences = TripPreferences.model_validate(raw_preferences())

    assert validate_preferences(preferences) is preferences


def test_same_day_trip_is_one_day():
    assert validate_preferences(raw_preferences(endDate="2025-09-10")).days == 1


@pytest.mark.parametrize(
    ("budget", "expected"),
    [("budget", 0.7), ("Luxury", 1.5), ("moderate", 1.0), ("whatever", 1.0)],
)
def test_budget_multiplier(budget, expected):
    assert budget_multiplier(budget) == expected


def test_job_record_defaults():
    record = JobRecord(id="travel_1_abc")

    assert record.status is JobStatus.WAITING
    assert record.progress == 0
    assert record.attempts == 0
    assert not record.status.is_terminal


def test_completed_job_needs_result():
    with pytest.raises(PydanticValidationError):
        JobRecord(id="j", status=JobStatus.COMPLETED, progress=100)


def test_result_only_on_completed_jobs():
    with pytest.raises(PydanticValidationError):
        JobRecord(id="j", status=JobStatus.ACTIVE, result={"success": True})


def test_error_only_on_failed_jobs():
    with pytest.raises(PydanticValidationError):
        JobRecord(id="j", status=JobStatus.ACTIVE, error="boom")

    failed = JobRecord(id="j", status=JobStatus.FAILED, error="boom")
    assert failed.status.is_terminal


def test_progress_is_bounded():
    with pytest.raises(PydanticValidationError):
        JobRecord(id="j", progress=101)
