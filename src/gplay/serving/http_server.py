# gplay/serving/http_server.py
"""
FastAPI server for installs predictions.

Endpoints:
  POST /predict   body: raw form values {"category": "GAME", "contentRating": "Everyone", ...}
  POST /features  same body, returns the model input row by column name (no model needed)
  GET  /display   last displayed message
  GET  /health

Metadata and model are loaded once at startup from environment variables:
  GPLAY_META_PATH   path or http(s) URL of meta_quantile.json
  GPLAY_MODEL_PATH  model file
  GPLAY_MODEL_TYPE  onnx | torchscript (default onnx)
  GPLAY_DEVICE      torch device for torchscript (default cpu)
  GPLAY_LOGLEVEL    default INFO

Example run:
  GPLAY_META_PATH=artifacts/meta_quantile.json GPLAY_MODEL_PATH=artifacts/model.onnx \
    uvicorn gplay.serving.http_server:app --host 0.0.0.0 --port 8000
"""

import logging
import math
import os
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from gplay.models.metadata import FeatureMetadata, load_metadata
from gplay.models.schemas import RawRecord
from gplay.preprocessing.feature_builder import build_feature_vector
from gplay.serving.predictor import Predictor
from gplay.serving.service import PredictionError, PredictionService

logging.basicConfig(
    level=os.getenv("GPLAY_LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

META_PATH = os.environ.get("GPLAY_META_PATH")
MODEL_PATH = os.environ.get("GPLAY_MODEL_PATH")
MODEL_TYPE = os.environ.get("GPLAY_MODEL_TYPE", "onnx")
DEVICE = os.environ.get("GPLAY_DEVICE", "cpu")

app = FastAPI(title="Play Store Installs Predictor")

_meta: Optional[FeatureMetadata] = None
_service: Optional[PredictionService] = None

if META_PATH:
    try:
        _meta = load_metadata(META_PATH)
    except Exception:
        log.exception("Failed to load metadata from %s", META_PATH)
if _meta is not None and MODEL_PATH:
    try:
        _service = PredictionService(_meta, Predictor(MODEL_TYPE, MODEL_PATH, device=DEVICE))
        log.info("Loaded model + quantiles.")
    except Exception:
        log.exception("Failed to load %s model from %s", MODEL_TYPE, MODEL_PATH)


class PredictResponse(BaseModel):
    # null for non-finite values, e.g. when the model output overflows expm1
    log_prediction: Optional[float] = None
    installs: Optional[float] = None
    bucket: Optional[float] = None
    message: str


def _finite_or_none(v: float) -> Optional[float]:
    return v if math.isfinite(v) else None


class FeaturesResponse(BaseModel):
    features: Dict[str, float]


class DisplayResponse(BaseModel):
    message: Optional[str] = None


@app.post("/predict", response_model=PredictResponse)
def predict(record: RawRecord):
    if _service is None:
        raise HTTPException(
            status_code=500,
            detail="Error: no model loaded. Set GPLAY_META_PATH and GPLAY_MODEL_PATH.",
        )
    try:
        res = _service.predict(record)
    except PredictionError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {
        "log_prediction": _finite_or_none(res.log_prediction),
        "installs": _finite_or_none(res.installs),
        "bucket": _finite_or_none(res.bucket),
        "message": res.message,
    }


@app.post("/features", response_model=FeaturesResponse)
def features(record: RawRecord):
    meta = _service.meta if _service is not None else _meta
    if meta is None:
        raise HTTPException(status_code=500, detail="Error: no metadata loaded. Set GPLAY_META_PATH.")
    x = build_feature_vector(record, meta)
    return {"features": {name: float(v) for name, v in zip(meta.feature_cols_order, x)}}


@app.get("/display", response_model=DisplayResponse)
def display():
    return {"message": _service.last_message if _service is not None else None}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "metadata_loaded": _meta is not None or _service is not None,
        "predictor_loaded": _service is not None,
    }
