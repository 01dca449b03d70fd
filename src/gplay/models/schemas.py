# gplay/models/schemas.py
import math
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

RawValue = Optional[Union[float, str]]


class RawRecord(BaseModel):
    """
    Raw form values for one app. Every field is free-form (string, number or missing);
    coercion happens in the feature builder, never here.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: RawValue = None
    content_rating: RawValue = Field(default=None, alias="contentRating")
    genre: RawValue = None
    reviews: RawValue = None
    rating: RawValue = None
    size: RawValue = None
    price: RawValue = None
    type: RawValue = None


class SmokeCase(BaseModel):
    """
    One smoke case:
    {
        "name": "...",
        "inputs": { "category": "GAME", "reviews": "1200", ... },
        "expected_log_output": 9.21 | null,
        "expected_installs": 10000 | null,
        "expected_bucket": 10000 | null
    }
    """

    name: str
    inputs: RawRecord
    expected_log_output: Optional[float] = None
    expected_installs: Optional[float] = None
    expected_bucket: Optional[float] = None

    @field_validator("expected_log_output", "expected_installs", "expected_bucket")
    @classmethod
    def _finite_or_none(cls, v):
        if v is None or not math.isfinite(v):
            return None
        return v
