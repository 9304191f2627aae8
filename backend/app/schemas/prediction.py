from pydantic import BaseModel, ConfigDict, Field


class StopSelection(BaseModel):
    """Inbound event: the passenger picked (or changed) a stop."""

    stop_name: str = Field(alias="stopName", min_length=1)
    lat: float = Field(allow_inf_nan=False)
    lng: float = Field(allow_inf_nan=False)

    model_config = ConfigDict(populate_by_name=True)


class Prediction(BaseModel):
    route: str
    from_: str = Field("", alias="from")
    to: str = ""
    scheduled: str
    actual: str
    status: str
    distance_km: str = Field(alias="distanceKm")
    speed: str

    model_config = ConfigDict(populate_by_name=True)


class ScheduleEntryInfo(BaseModel):
    bus_number: str
    expected_time: str


class ScheduleInfo(BaseModel):
    halt_key: str
    display_name: str
    buses: list[ScheduleEntryInfo] = []


class SessionInfo(BaseModel):
    id: str
    stop_name: str | None = None
    state: str
    low_speed_since: str | None = None
    last_actual_time: str | None = None
    last_status: str | None = None
    last_delay_minutes: int | None = None
    distance_source: str | None = None
