"""Pydantic schemas for per-client request logs kept in the shared store.

A request log is a JSON array of buckets, oldest first:

    [{"requestTimestamp": 1718000000000, "requestCount": 3}, ...]
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class LogBucket(BaseModel):
    """Requests from one client coalesced under a single opening timestamp."""

    model_config = ConfigDict(populate_by_name=True)

    bucket_timestamp: int = Field(
        ...,
        alias="requestTimestamp",
        description="Epoch milliseconds when the bucket was opened.",
    )
    request_count: int = Field(
        ...,
        alias="requestCount",
        ge=1,
        description="Number of requests merged into this bucket.",
    )


_request_log_adapter: TypeAdapter[List[LogBucket]] = TypeAdapter(List[LogBucket])


class CorruptRequestLogError(ValueError):
    """Raised when a stored request log cannot be decoded."""


def load_request_log(raw: str) -> list[LogBucket]:
    """Decode a stored request log.

    Args:
        raw: JSON string read from the store.

    Returns:
        Buckets in stored order.

    Raises:
        CorruptRequestLogError: If the value is not a non-empty JSON array of
            buckets with non-decreasing timestamps.
    """
    try:
        buckets = _request_log_adapter.validate_json(raw)
    except ValidationError as exc:
        raise CorruptRequestLogError(str(exc)) from exc

    if not buckets:
        raise CorruptRequestLogError("request log is empty")

    for previous, current in zip(buckets, buckets[1:]):
        if current.bucket_timestamp < previous.bucket_timestamp:
            raise CorruptRequestLogError("request log is not in chronological order")

    return buckets


def dump_request_log(buckets: list[LogBucket]) -> str:
    """Encode buckets into the JSON string stored per client."""
    return _request_log_adapter.dump_json(buckets, by_alias=True).decode()
