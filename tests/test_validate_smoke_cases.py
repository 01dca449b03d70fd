import json
import math

import pytest
import torch
import torch.nn as nn

from gplay.validators.validate_smoke_cases import check_case, load_cases, main
from gplay.models.schemas import SmokeCase


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def write_jsonl(path, records):
    with path.open("w", encoding="utf-8") as f:
        for r in records:
            f.write((r if isinstance(r, str) else json.dumps(r)) + "\n")


def save_constant_model(path, dim: int, ylog: float):
    """TorchScript model whose output ignores the input: log1p(installs) = ylog."""
    model = nn.Linear(dim, 1)
    with torch.no_grad():
        model.weight.zero_()
        model.bias.fill_(ylog)
    torch.jit.trace(model.eval(), torch.zeros(1, dim)).save(str(path))


CASES = [
    {"name": "free_game", "inputs": {"category": "GAME", "reviews": "25000", "type": "Free"},
     "expected_bucket": 1000},
    {"name": "blank_form", "inputs": {}},
]


# -------------------------------------------------------------------
# Tests
# -------------------------------------------------------------------

@pytest.mark.fast
def test_preprocessing_only(tmp_path, meta_path):
    cases = tmp_path / "cases.jsonl"
    write_jsonl(cases, CASES)
    summary_path = tmp_path / "out" / "summary.json"

    rc = main(["--meta", str(meta_path), "--cases", str(cases), "--summary", str(summary_path)])

    assert rc == 0
    summary = json.loads(summary_path.read_text())
    assert summary["total"] == 2
    assert summary["passed"] == 2
    assert summary["model_checked"] is False


def test_model_outputs_checked(tmp_path, meta_path, meta):
    model_path = tmp_path / "model.pt"
    save_constant_model(model_path, meta.feature_dim, math.log1p(1000))
    cases = tmp_path / "cases.json"
    bad = {"name": "wrong_bucket", "inputs": {"price": "2.99"}, "expected_bucket": 10000}
    cases.write_text(json.dumps(CASES + [bad]), encoding="utf-8")
    summary_path = tmp_path / "summary.json"

    rc = main([
        "--meta", str(meta_path), "--cases", str(cases),
        "--model", str(model_path), "--model-type", "torchscript",
        "--summary", str(summary_path),
    ])

    assert rc == 1
    summary = json.loads(summary_path.read_text())
    assert summary["passed"] == 2
    assert summary["failed"] == 1
    failed = [r for r in summary["results"] if not r["ok"]]
    assert failed[0]["name"] == "wrong_bucket"
    assert failed[0]["bucket"] == 1000


def test_load_cases_nullable_expectations_and_bad_lines(tmp_path):
    cases = tmp_path / "cases.jsonl"
    write_jsonl(cases, [
        '{"name": "nan_expect", "inputs": {"rating": "4.5"}, "expected_log_output": NaN}',
        "not json at all",
        {"inputs": {}},
    ])
    loaded, rejected = load_cases(str(cases))
    assert len(loaded) == 1
    assert loaded[0].expected_log_output is None
    assert [r["index"] for r in rejected] == [1, 2]


def test_check_case_expected_installs_tolerance(meta):
    class Fixed:
        def predict(self, x):
            return math.log1p(10000)

    ok = SmokeCase(name="a", inputs={}, expected_installs=10005, expected_log_output=math.log1p(10000))
    assert check_case(ok, meta, Fixed(), tolerance=1e-3)["ok"] is True

    off = SmokeCase(name="b", inputs={}, expected_installs=12000)
    res = check_case(off, meta, Fixed(), tolerance=1e-3)
    assert res["ok"] is False
    assert res["errors"][0].startswith("installs")


def test_check_case_overflowing_output_fails_cleanly(meta):
    class Huge:
        def predict(self, x):
            return 800.0

    case = SmokeCase(name="huge", inputs={}, expected_installs=10000, expected_bucket=100)
    res = check_case(case, meta, Huge())
    assert math.isinf(res["installs"])
    assert res["bucket"] == 100
    assert res["ok"] is False
    assert res["errors"] == ["installs inf != expected 10000.0"]


def test_missing_cases_file(tmp_path, meta_path):
    with pytest.raises(FileNotFoundError):
        main(["--meta", str(meta_path), "--cases", str(tmp_path / "none.jsonl")])
