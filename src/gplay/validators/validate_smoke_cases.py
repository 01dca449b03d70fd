#!/usr/bin/env python3
"""
validate_smoke_cases.py

Runs smoke cases through the serve-time preprocessing (and optionally the model)
and checks them against recorded expectations.

Input: a JSON array or JSONL file of cases:
{
  "name": "free_game",
  "inputs": { "category": "GAME", "contentRating": "Everyone", "reviews": "1200", ... },
  "expected_log_output": 9.21,     # nullable
  "expected_installs": 10000,      # nullable
  "expected_bucket": 10000         # nullable
}
NaN/Infinity literals are accepted and treated as "no expectation".

Checks per case:
- feature row length == number of feature columns
- every feature is finite
- with --model: |log output - expected| <= tolerance, installs within relative tolerance,
  bucket equal

Usage:
  python -m gplay.validators.validate_smoke_cases \
      --meta artifacts/meta_quantile.json \
      --cases artifacts/smoke_cases.jsonl \
      --model artifacts/gplay_loginstalls_quantile.onnx \
      --summary artifacts/smoke_summary.json
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from pydantic import ValidationError

from gplay.models.metadata import FeatureMetadata, load_metadata
from gplay.models.schemas import SmokeCase
from gplay.preprocessing.feature_builder import build_feature_vector
from gplay.serving.buckets import nearest_bucket
from gplay.serving.predictor import MODEL_TYPES, Predictor
from gplay.serving.service import invert_log1p


# ---------------------------------------------------------
# Load cases (JSON array or JSONL)
# ---------------------------------------------------------
def load_cases(path: str) -> Tuple[List[SmokeCase], List[Dict[str, Any]]]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Smoke cases file not found: {path}")
    text = p.read_text(encoding="utf-8")

    stripped = text.lstrip()
    if stripped.startswith("["):
        raw_items = json.loads(stripped)
    else:
        raw_items = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                raw_items.append(json.loads(line))
            except json.JSONDecodeError as e:
                raw_items.append({"_raw_line": line, "_error": f"json_decode_error: {e}"})

    cases: List[SmokeCase] = []
    rejected: List[Dict[str, Any]] = []
    for i, obj in enumerate(raw_items):
        if isinstance(obj, dict) and "_error" in obj:
            rejected.append({"index": i, "error": obj["_error"], "raw": obj["_raw_line"]})
            continue
        try:
            cases.append(SmokeCase.model_validate(obj))
        except ValidationError as e:
            rejected.append({"index": i, "error": f"invalid_case: {e.errors()[0]['msg']}"})
    return cases, rejected


# ---------------------------------------------------------
# Check a single case
# ---------------------------------------------------------
def check_case(
    case: SmokeCase,
    meta: FeatureMetadata,
    predictor: Optional[Predictor] = None,
    tolerance: float = 1e-3,
) -> Dict[str, Any]:
    errors: List[str] = []
    x = build_feature_vector(case.inputs, meta)

    if x.shape != (meta.feature_dim,):
        errors.append(f"length {x.shape[0]} != {meta.feature_dim}")
    if not np.all(np.isfinite(x)):
        errors.append("non_finite_features")

    out: Dict[str, Any] = {"name": case.name}
    if predictor is not None:
        ylog = predictor.predict(x)
        installs = invert_log1p(ylog)
        bucket = nearest_bucket(installs, meta.bins)
        out.update({"log_output": ylog, "installs": installs, "bucket": bucket})

        if case.expected_log_output is not None and abs(ylog - case.expected_log_output) > tolerance:
            errors.append(f"log_output {ylog:.6f} != expected {case.expected_log_output:.6f}")
        if case.expected_installs is not None:
            scale = max(1.0, abs(case.expected_installs))
            if abs(installs - case.expected_installs) > tolerance * scale:
                errors.append(f"installs {installs:.1f} != expected {case.expected_installs:.1f}")
        if case.expected_bucket is not None and bucket != case.expected_bucket:
            errors.append(f"bucket {bucket} != expected {case.expected_bucket}")

    out["ok"] = not errors
    out["errors"] = errors
    return out


def process_cases(
    meta_source: str,
    cases_path: str,
    model_path: Optional[str] = None,
    model_type: str = "onnx",
    device: str = "cpu",
    tolerance: float = 1e-3,
) -> Dict[str, Any]:
    meta = load_metadata(meta_source)
    predictor = Predictor(model_type, model_path, device=device) if model_path else None
    cases, rejected = load_cases(cases_path)

    results = [check_case(c, meta, predictor, tolerance) for c in cases]
    passed = sum(1 for r in results if r["ok"])

    return {
        "total": len(cases) + len(rejected),
        "passed": passed,
        "failed": len(results) - passed + len(rejected),
        "model_checked": predictor is not None,
        "results": results,
        "rejected": rejected,
    }


# ---------------------------------------------------------
# Main
# ---------------------------------------------------------
def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Validate serve-time preprocessing against smoke cases.")
    parser.add_argument("--meta", "-m", required=True, help="Metadata bundle (path or http(s) URL).")
    parser.add_argument("--cases", "-c", required=True, help="Smoke cases, JSON array or JSONL.")
    parser.add_argument("--model", default=None, help="Optional model file; enables output checks.")
    parser.add_argument("--model-type", default="onnx", choices=list(MODEL_TYPES))
    parser.add_argument("--device", default="cpu")
    parser.add_argument("--tolerance", type=float, default=1e-3)
    parser.add_argument("--summary", default=None, help="Optional summary JSON output path.")
    args = parser.parse_args(argv)

    summary = process_cases(
        meta_source=args.meta,
        cases_path=args.cases,
        model_path=args.model,
        model_type=args.model_type,
        device=args.device,
        tolerance=args.tolerance,
    )

    if args.summary:
        Path(args.summary).parent.mkdir(parents=True, exist_ok=True)
        with open(args.summary, "w", encoding="utf-8") as sf:
            json.dump(summary, sf, indent=2, ensure_ascii=False)
        print(f"Summary written to: {args.summary}")

    print(f"Smoke cases: {summary['total']}, Passed: {summary['passed']}, Failed: {summary['failed']}")
    for r in summary["results"]:
        if not r["ok"]:
            print(f"  FAIL {r['name']}: {'; '.join(r['errors'])}")
    for r in summary["rejected"]:
        print(f"  REJECTED #{r['index']}: {r['error']}")
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
