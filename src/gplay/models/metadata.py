# gplay/models/metadata.py
"""
Metadata bundle written next to the trained model.

JSON layout:
{
  "feature_cols_order": ["Price_num", "Size_MB", ...],
  "num_col_idx": [0, 1, ...],
  "train_numeric_medians": [0.0, 14.0, ...],
  "quantiles": [[...n_numeric...], ...n_quantiles rows...],
  "n_quantiles": 1000,
  "bins": [0, 1, 5, 10, ...]
}

Numbers in the bundle are nullable: the exporter writes NaN/Infinity literals for
columns it could not summarise. Every non-finite number is stored as None and
treated as missing downstream.

Usage:
  from gplay.models.metadata import load_metadata
  meta = load_metadata("artifacts/meta_quantile.json")
"""

import json
import logging
import math
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import httpx
import numpy as np
from pydantic import BaseModel, ConfigDict, PrivateAttr, field_validator, model_validator

logger = logging.getLogger(__name__)

NullableFloat = Optional[float]


def _nullable(v):
    if v is None:
        return None
    try:
        v = float(v)
    except (TypeError, ValueError):
        return v  # left for pydantic to reject
    return v if math.isfinite(v) else None


class FeatureMetadata(BaseModel):
    """Read-only preprocessing parameters for one trained model."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    feature_cols_order: Tuple[str, ...]
    num_col_idx: Tuple[int, ...]
    train_numeric_medians: Tuple[NullableFloat, ...]
    quantiles: Tuple[Tuple[NullableFloat, ...], ...]
    n_quantiles: int
    bins: Tuple[float, ...]

    _index: Dict[str, int] = PrivateAttr(default_factory=dict)
    _table: np.ndarray = PrivateAttr(default=None)

    @field_validator("train_numeric_medians", mode="before")
    @classmethod
    def _medians_nullable(cls, v):
        if not isinstance(v, (list, tuple)):
            return v
        return [_nullable(x) for x in v]

    @field_validator("quantiles", mode="before")
    @classmethod
    def _quantiles_nullable(cls, v):
        if not isinstance(v, (list, tuple)) or not all(isinstance(row, (list, tuple)) for row in v):
            return v
        return [[_nullable(x) for x in row] for row in v]

    @model_validator(mode="after")
    def _check_shapes(self):
        n_cols = len(self.feature_cols_order)
        n_num = len(self.num_col_idx)
        if len(self.train_numeric_medians) != n_num:
            raise ValueError(
                f"train_numeric_medians has {len(self.train_numeric_medians)} entries, "
                f"expected {n_num} (one per num_col_idx)"
            )
        for j in self.num_col_idx:
            if j < 0 or j >= n_cols:
                raise ValueError(f"num_col_idx entry {j} out of range for {n_cols} feature columns")
        if self.n_quantiles < 2:
            raise ValueError("n_quantiles must be >= 2")
        if len(self.quantiles) < self.n_quantiles:
            raise ValueError(f"quantiles has {len(self.quantiles)} rows, expected at least {self.n_quantiles}")
        for i, row in enumerate(self.quantiles[: self.n_quantiles]):
            if len(row) != n_num:
                raise ValueError(f"quantiles row {i} has {len(row)} entries, expected {n_num}")
        if not self.bins:
            raise ValueError("bins must not be empty")
        return self

    def model_post_init(self, __context) -> None:
        # first occurrence wins, like a linear scan over the column list
        index: Dict[str, int] = {}
        for i, name in enumerate(self.feature_cols_order):
            index.setdefault(name, i)
        self._index = index

        # runs before _check_shapes, so rows may still be ragged
        n_num = len(self.num_col_idx)
        table = np.full((max(self.n_quantiles, 0), n_num), np.nan, dtype=np.float64)
        for i, row in enumerate(self.quantiles[: table.shape[0]]):
            for k, val in enumerate(row[:n_num]):
                if val is not None:
                    table[i, k] = val
        table.setflags(write=False)
        self._table = table

    @property
    def feature_dim(self) -> int:
        return len(self.feature_cols_order)

    def column_index(self, name: str) -> Optional[int]:
        return self._index.get(name)

    def quantile_column(self, k: int) -> np.ndarray:
        """Breakpoints of the k-th numeric column (missing entries are NaN)."""
        return self._table[:, k]


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def load_metadata(source: Union[str, Path], client: Optional[httpx.Client] = None) -> FeatureMetadata:
    """
    Load the bundle from a local path or an http(s) URL.
    Python's json parser already accepts NaN/Infinity literals; they become None in the model.
    """
    source = str(source)
    if _is_url(source):
        own_client = client is None
        client = client or httpx.Client(timeout=httpx.Timeout(connect=2.0, read=10.0, write=2.0, pool=2.0))
        try:
            r = client.get(source)
            r.raise_for_status()
            raw = json.loads(r.text)
        finally:
            if own_client:
                client.close()
    else:
        p = Path(source)
        if not p.exists():
            raise FileNotFoundError(f"Metadata file not found: {source}")
        with p.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)

    meta = FeatureMetadata.model_validate(raw)
    logger.info(
        "Loaded metadata from %s: %d feature columns, %d numeric, %d quantiles, %d bins",
        source, meta.feature_dim, len(meta.num_col_idx), meta.n_quantiles, len(meta.bins),
    )
    return meta

