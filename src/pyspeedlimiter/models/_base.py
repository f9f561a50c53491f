"""Base model for records exchanged with the telemetry store.

Every wire model inherits from :class:`CamelModel` which provides
``alias_generator=to_camel`` so snake_case fields serialize to the
camelCase keys the store expects (``obstacleDistance``), while still
accepting either spelling on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Frozen model with camelCase wire aliases."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize using wire (camelCase) keys."""
        return self.model_dump(by_alias=True, mode="json")
