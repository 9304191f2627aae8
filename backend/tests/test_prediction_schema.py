"""Tests for the inbound stop selection and outbound prediction models."""

import pytest
from pydantic import ValidationError

from app.schemas.prediction import Prediction, StopSelection


def test_stop_selection_from_client_event():
    selection = StopSelection.model_validate({"stopName": "Wakwella Junction", "lat": "6.0535", "lng": 80.241})
    assert selection.stop_name == "Wakwella Junction"
    assert selection.lat == 6.0535
    assert selection.lng == 80.241


@pytest.mark.parametrize("payload", [
    {"stopName": "Matara", "lat": "nan", "lng": 80.5},
    {"stopName": "Matara", "lat": 5.9, "lng": "Infinity"},
    {"stopName": "Matara", "lat": float("-inf"), "lng": 80.5},
    {"stopName": "", "lat": 5.9, "lng": 80.5},
    {"stopName": "Matara", "lat": 5.9},
    {"lat": 5.9, "lng": 80.5},
])
def test_stop_selection_rejects_bad_events(payload):
    with pytest.raises(ValidationError):
        StopSelection.model_validate(payload)


def test_prediction_dumps_client_field_names():
    prediction = Prediction(
        route="12", from_="Matara", to="Galle", scheduled="08:10",
        actual="08:12", status="On Time", distance_km="4.20", speed="28.0",
    )
    dumped = prediction.model_dump(by_alias=True)
    assert set(dumped) == {"route", "from", "to", "scheduled", "actual", "status", "distanceKm", "speed"}
