"""Immutable query descriptions for list and sum actions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, field_serializer


class QuerySpec(BaseModel):
    """Filter, parameters, grouping and paging of one query.

    ``filter_params`` are interpolated into ``filter`` by the API
    (``$1``, ``$2``...). An empty or missing ``cursor`` starts at the
    beginning of the result set.

    Usage:
        query = QuerySpec(filter="tags.type = $1", filter_params=["checking"], page_size=50)
    """

    filter: Optional[str] = None
    filter_params: tuple[Any, ...] = ()
    page_size: Optional[int] = None
    cursor: Optional[str] = None
    group_by: tuple[str, ...] = ()
    sum_by: tuple[str, ...] = ()
    ids: tuple[str, ...] = ()
    timestamp: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    model_config = {"frozen": True}

    @field_serializer("timestamp", "start_time", "end_time")
    def _to_epoch_millis(self, value: Optional[datetime]) -> Optional[int]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)

    def with_cursor(self, cursor: Optional[str]) -> "QuerySpec":
        """Return a copy of this query resuming at ``cursor``."""
        return self.model_copy(update={"cursor": cursor})

    def to_body(self) -> dict[str, Any]:
        """JSON request body for this query."""
        return self.model_dump(mode="json", exclude_none=True)
