# gplay/serving/predictor.py
"""
Loads the installs regressor (ONNX or TorchScript) and scores one feature row.

Usage:
  from gplay.serving.predictor import Predictor
  p = Predictor(model_type="onnx", model_path="artifacts/gplay_loginstalls_quantile.onnx")
  ylog = p.predict(x)  # x: np.ndarray (feature_dim,) -> log1p(installs)
"""

import logging
from typing import Sequence, Union

import numpy as np
import torch

try:
    import onnxruntime as ort
    _ONNXRT_AVAILABLE = True
except ImportError:
    _ONNXRT_AVAILABLE = False

logger = logging.getLogger(__name__)

MODEL_TYPES = ("onnx", "torchscript")


class Predictor:
    def __init__(self, model_type: str, model_path: str, device: str = "cpu"):
        """
        model_type: "onnx" or "torchscript"
        model_path: path to file
        """
        self.model_type = model_type.lower()
        self.model_path = model_path
        self.device = device
        self._load()

    def _load(self):
        if self.model_type == "torchscript":
            self.model = torch.jit.load(self.model_path, map_location=self.device)
            self.model.eval()
        elif self.model_type == "onnx":
            if not _ONNXRT_AVAILABLE:
                raise RuntimeError("onnxruntime is not available. Install onnxruntime to serve ONNX models.")
            self.ort_session = ort.InferenceSession(self.model_path, providers=["CPUExecutionProvider"])
        else:
            raise ValueError(f"model_type must be one of {MODEL_TYPES}, got {self.model_type!r}")
        logger.info("Loaded %s model from %s", self.model_type, self.model_path)

    def predict(self, vector: Union[np.ndarray, Sequence[float]]) -> float:
        """
        vector: (feature_dim,) or (1, feature_dim)
        returns the first output element as float (log-scale prediction)
        """
        arr = np.asarray(vector, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr[np.newaxis, :]  # (1, feature_dim)
        if arr.ndim != 2 or arr.shape[0] != 1:
            raise ValueError(f"expected a single feature row, got shape {arr.shape}")

        if self.model_type == "torchscript":
            with torch.no_grad():
                inp = torch.from_numpy(arr).to(self.device)
                out = self.model(inp)
                if isinstance(out, (tuple, list)):
                    out = out[0]
                if isinstance(out, torch.Tensor):
                    out = out.cpu().numpy()
                return float(np.asarray(out).reshape(-1)[0])

        input_name = self.ort_session.get_inputs()[0].name
        out = self.ort_session.run(None, {input_name: arr})
        return float(np.asarray(out[0]).reshape(-1)[0])
