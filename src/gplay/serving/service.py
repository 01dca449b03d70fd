# gplay/serving/service.py
"""
One prediction = build row -> model -> expm1 -> nearest bucket -> display message.

The service holds the read-only metadata, the loaded predictor and a single
"last displayed" message slot. Requests share nothing else; whichever request
finishes last owns the slot.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import numpy as np

from gplay.models.metadata import FeatureMetadata
from gplay.models.schemas import RawRecord
from gplay.preprocessing.feature_builder import build_feature_vector
from gplay.serving.buckets import format_count, nearest_bucket

logger = logging.getLogger(__name__)


class PredictionError(RuntimeError):
    """Model call failed; str(exc) is the message shown to the user."""


@dataclass(frozen=True)
class PredictionResult:
    log_prediction: float
    installs: float
    bucket: float
    message: str


def invert_log1p(ylog: float) -> float:
    """expm1 that overflows to inf instead of raising."""
    with np.errstate(over="ignore"):
        return float(np.expm1(ylog))


def format_message(installs: float, bucket: float) -> str:
    return f"Predicted installs: {format_count(installs)}  (nearest bucket: {format_count(bucket)}+)"


class PredictionService:
    def __init__(self, meta: FeatureMetadata, predictor):
        """
        meta: loaded FeatureMetadata
        predictor: anything with predict(np.ndarray) -> float (gplay.serving.predictor.Predictor)
        """
        self.meta = meta
        self.predictor = predictor
        self.last_message: Optional[str] = None

    def predict(self, record: Union[RawRecord, Mapping[str, Any]]) -> PredictionResult:
        try:
            x = build_feature_vector(record, self.meta)
            ylog = float(self.predictor.predict(x))
            installs = invert_log1p(ylog)
            bucket = nearest_bucket(installs, self.meta.bins)
        except Exception as exc:
            self.last_message = f"Error: {exc}"
            logger.exception("prediction failed")
            raise PredictionError(self.last_message) from exc

        result = PredictionResult(
            log_prediction=ylog,
            installs=installs,
            bucket=bucket,
            message=format_message(installs, bucket),
        )
        self.last_message = result.message
        logger.debug("ylog=%.6f installs=%.1f bucket=%s", ylog, installs, bucket)
        return result
