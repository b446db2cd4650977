"""Sensor feed record schemas."""

from pydantic import BaseModel, ConfigDict, Field


class RawAlertEvent(BaseModel):
    """Raw alert record pushed by the sensor feed.

    Only ``id`` and ``type`` are required; unknown fields sent by the
    feed (sensor readings, device metadata) are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=64)
    cause: str | None = None
    segment: str | None = None
    acknowledged: bool | None = None


class RawAlertBatch(BaseModel):
    """A batch of feed records, e.g. a replay of the feed's history."""

    events: list[RawAlertEvent] = Field(max_length=500)


class IngestResponse(BaseModel):
    """Result of pushing one feed record."""

    id: str
    accepted: bool
    reason: str


class IngestBatchResponse(BaseModel):
    """Result of pushing a batch of feed records."""

    received: int
    accepted: int
    accepted_ids: list[str]
