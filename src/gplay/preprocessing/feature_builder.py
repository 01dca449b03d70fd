# gplay/preprocessing/feature_builder.py
"""
Builds the model input row from raw form values.

Order of operations:
  1. zeros
  2. direct numeric fields (non-finite -> NaN, i.e. "needs imputation")
  3. paid indicator
  4. days_since_update is always imputed
  5. one-hot groups with "<prefix>other" fallback
  6. median imputation of numeric columns
  7. quantile -> uniform -> normal transform of numeric columns
  8. any remaining non-finite value -> 0

Malformed input never raises; it degrades to medians or zeros.

Usage:
  from gplay.preprocessing.feature_builder import build_feature_vector
  x = build_feature_vector({"category": "GAME", "reviews": "1200", ...}, meta)
"""

import math
import re
from typing import Any, Mapping, Optional, Union

import numpy as np

from gplay.models.feature_schema import (
    CATEGORY_PREFIX,
    CONTENT_RATING_PREFIX,
    DAYS_SINCE_UPDATE_COL,
    GENRE_PREFIX,
    OTHER_LEVEL,
    PAID_LEVEL,
    PRICE_COL,
    RATING_COL,
    REVIEWS_COL,
    SIZE_COL,
    TYPE_PAID_COL,
)
from gplay.models.metadata import FeatureMetadata
from gplay.models.schemas import RawRecord
from gplay.preprocessing.quantile_normal import quantile_normal

_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


def to_number(value: Any) -> float:
    """Lenient numeric coercion; anything unparseable becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip()
    if not s:
        return math.nan
    # ASCII numeric prefix only, e.g. "19 MB" -> 19.0, "1_000" -> 1.0
    m = _NUMERIC_PREFIX.match(s)
    return float(m.group(0)) if m else math.nan


def normalize_level(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _put(x: np.ndarray, meta: FeatureMetadata, name: str, val: float) -> None:
    i = meta.column_index(name)
    if i is not None:
        x[i] = val if math.isfinite(val) else math.nan


def one_hot(x: np.ndarray, meta: FeatureMetadata, prefix: str, level: str) -> Optional[int]:
    """
    Set prefix+level, else prefix+"other". Returns the column index that was set,
    or None when the group has neither column.
    """
    idx = meta.column_index(f"{prefix}{level}")
    if idx is None:
        idx = meta.column_index(f"{prefix}{OTHER_LEVEL}")
    if idx is not None:
        x[idx] = 1.0
    return idx


def build_feature_vector(record: Union[RawRecord, Mapping[str, Any]], meta: FeatureMetadata) -> np.ndarray:
    if not isinstance(record, RawRecord):
        record = RawRecord.model_validate(dict(record))

    x = np.zeros(meta.feature_dim, dtype=np.float32)

    _put(x, meta, PRICE_COL, to_number(record.price))
    _put(x, meta, SIZE_COL, to_number(record.size))
    _put(x, meta, REVIEWS_COL, to_number(record.reviews))
    _put(x, meta, RATING_COL, to_number(record.rating))
    _put(x, meta, TYPE_PAID_COL, 1.0 if normalize_level(record.type) == PAID_LEVEL else 0.0)
    _put(x, meta, DAYS_SINCE_UPDATE_COL, math.nan)

    one_hot(x, meta, CATEGORY_PREFIX, normalize_level(record.category))
    one_hot(x, meta, CONTENT_RATING_PREFIX, normalize_level(record.content_rating))
    one_hot(x, meta, GENRE_PREFIX, normalize_level(record.genre))

    # medians are aligned with num_col_idx, not with the column order
    for k, j in enumerate(meta.num_col_idx):
        if not math.isfinite(x[j]):
            med = meta.train_numeric_medians[k]
            x[j] = math.nan if med is None else med

    for k, j in enumerate(meta.num_col_idx):
        x[j] = quantile_normal(float(x[j]), meta.quantile_column(k))

    x[~np.isfinite(x)] = 0.0
    return x
