from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CacheBaseModel(BaseModel):
    """Base class for cache domain records."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )
