import math

import numpy as np
import pytest

from gplay.serving.service import PredictionError, PredictionService, format_message, invert_log1p


class FixedPredictor:
    def __init__(self, ylog: float):
        self.ylog = ylog
        self.seen = []

    def predict(self, x):
        self.seen.append(x)
        return self.ylog


class FailingPredictor:
    def predict(self, x):
        raise RuntimeError("session closed")


def test_predict_inverts_log1p_and_buckets(meta, full_record):
    predictor = FixedPredictor(math.log1p(4000))
    svc = PredictionService(meta, predictor)

    res = svc.predict(full_record)

    assert res.installs == pytest.approx(4000)
    assert res.bucket == 1000
    assert res.message == "Predicted installs: 4,000  (nearest bucket: 1,000+)"
    assert svc.last_message == res.message

    x = predictor.seen[0]
    assert x.shape == (meta.feature_dim,)
    assert np.all(np.isfinite(x))


def test_failure_is_reported_and_service_stays_usable(meta, full_record):
    svc = PredictionService(meta, FailingPredictor())
    with pytest.raises(PredictionError) as exc_info:
        svc.predict(full_record)
    assert str(exc_info.value) == "Error: session closed"
    assert svc.last_message == "Error: session closed"

    svc.predictor = FixedPredictor(math.log1p(150000))
    res = svc.predict(full_record)
    assert res.bucket == 100000
    assert svc.last_message.startswith("Predicted installs: 150,000")


def test_last_finished_request_owns_the_display(meta):
    svc = PredictionService(meta, FixedPredictor(math.log1p(50)))
    svc.predict({})
    svc.predictor = FixedPredictor(math.log1p(2000000))
    svc.predict({})
    assert svc.last_message == "Predicted installs: 2,000,000  (nearest bucket: 1,000,000+)"


def test_format_message():
    assert format_message(12345.4, 10000) == "Predicted installs: 12,345  (nearest bucket: 10,000+)"


def test_overflowing_model_output_is_reported_not_raised(meta, full_record):
    svc = PredictionService(meta, FixedPredictor(800.0))
    res = svc.predict(full_record)
    assert math.isinf(res.installs)
    assert res.bucket == 100
    assert res.message == "Predicted installs: inf  (nearest bucket: 100+)"
    assert svc.last_message == res.message


def test_invert_log1p():
    assert invert_log1p(math.log1p(4000)) == pytest.approx(4000)
    assert invert_log1p(800.0) == math.inf
