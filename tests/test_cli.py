"""CLI smoke tests driven through typer's test runner."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from voicesync.cli import app
from voicesync.utils.config import DEFAULT_CONFIG_YAML

from conftest import SAMPLE_EXPLANATION, SAMPLE_JS, SAMPLE_TIMINGS

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path):
    (tmp_path / "sample.js").write_text(SAMPLE_JS)
    (tmp_path / "timings.json").write_text(json.dumps(SAMPLE_TIMINGS))
    return tmp_path


def _build(workdir, *extra: str):
    return runner.invoke(app, [
        "build", str(workdir / "sample.js"),
        "--explanation", SAMPLE_EXPLANATION,
        "--timings", str(workdir / "timings.json"),
        "--output", str(workdir / "track.json"),
        *extra,
    ])


class TestTokenize:
    def test_json_output(self, workdir):
        result = runner.invoke(app, ["tokenize", str(workdir / "sample.js"), "--json"])
        assert result.exit_code == 0
        tokens = json.loads(result.stdout)
        assert tokens[0]["text"] == "function"
        assert (tokens[1]["id"], tokens[1]["text"], tokens[1]["kind"]) == (1, "calculateTotal", "identifier")

    def test_table_output(self, workdir):
        result = runner.invoke(app, ["tokenize", str(workdir / "sample.js")])
        assert result.exit_code == 0
        assert "calculateTotal" in result.stdout

    def test_missing_file(self, workdir):
        result = runner.invoke(app, ["tokenize", str(workdir / "missing.js")])
        assert result.exit_code == 1


class TestBuild:
    def test_writes_track(self, workdir):
        result = _build(workdir, "--silent")
        assert result.exit_code == 0
        data = json.loads((workdir / "track.json").read_text())
        assert data["total_duration_ms"] == 1700
        assert [s["token_ids"] for s in data["segments"]] == [[1, 7], [0, 1]]
        assert all(s["tier"] == "high" for s in data["segments"])

    def test_report_printed(self, workdir):
        result = _build(workdir)
        assert result.exit_code == 0
        assert "Highlight track" in result.stdout

    def test_requires_explanation(self, workdir):
        result = runner.invoke(app, ["build", str(workdir / "sample.js")])
        assert result.exit_code == 1

    def test_estimates_timings(self, workdir):
        result = runner.invoke(app, [
            "build", str(workdir / "sample.js"),
            "--explanation", "the calculateTotal function",
            "--word-ms", "250",
            "--output", str(workdir / "est.json"),
            "--silent",
        ])
        assert result.exit_code == 0
        data = json.loads((workdir / "est.json").read_text())
        assert data["total_duration_ms"] == 750

    def test_bad_timings_file(self, workdir):
        (workdir / "bad.json").write_text("not json")
        result = runner.invoke(app, [
            "build", str(workdir / "sample.js"),
            "--explanation", SAMPLE_EXPLANATION,
            "--timings", str(workdir / "bad.json"),
        ])
        assert result.exit_code == 1

    def test_invalid_config(self, workdir):
        (workdir / "cfg.yaml").write_text("tiers:\n  high: 0.2\n  medium: 0.9\n")
        result = _build(workdir, "--config", str(workdir / "cfg.yaml"))
        assert result.exit_code == 1


class TestLogDir:
    def test_build_writes_session_tagged_log(self, workdir):
        log_dir = workdir / "logs"
        result = _build(workdir, "--silent", "--log-dir", str(log_dir))
        assert result.exit_code == 0
        lines = (log_dir / "voicesync.log").read_text().splitlines()
        assert any("Track written" in line for line in lines)
        assert all("[session=" in line for line in lines)


class TestReplay:
    def test_replays_built_track(self, workdir):
        assert _build(workdir, "--silent").exit_code == 0
        result = runner.invoke(app, [
            "replay", str(workdir / "track.json"), "--code", str(workdir / "sample.js"),
        ])
        assert result.exit_code == 0
        assert "calculateTotal" in result.stdout
        assert "2 highlight" in result.stdout

    def test_with_simulated_drift(self, workdir):
        assert _build(workdir, "--silent").exit_code == 0
        result = runner.invoke(app, [
            "replay", str(workdir / "track.json"), "--drift-ms-per-sec", "20",
        ])
        assert result.exit_code == 0
        assert "Sync quality" in result.stdout

    def test_slow_drift_is_not_flagged(self, workdir):
        assert _build(workdir, "--silent").exit_code == 0
        result = runner.invoke(app, [
            "replay", str(workdir / "track.json"), "--drift-ms-per-sec", "1",
        ])
        assert result.exit_code == 0
        assert "Sync quality: excellent" in result.stdout
        assert "drift" not in result.output.lower()

    def test_rejects_non_positive_step(self, workdir):
        assert _build(workdir, "--silent").exit_code == 0
        result = runner.invoke(app, ["replay", str(workdir / "track.json"), "--step-ms", "0"])
        assert result.exit_code == 1


class TestPlan:
    def test_valid_plan(self, workdir):
        (workdir / "plan.json").write_text(json.dumps({"frames": [
            {"timeMs": 0, "durationMs": 500, "tokenIds": ["token_1"], "confidence": 0.9},
            {"timeMs": 500, "durationMs": 500, "tokenIds": [7]},
        ]}))
        result = runner.invoke(app, [
            "plan", str(workdir / "sample.js"), str(workdir / "plan.json"),
            "--duration-ms", "2000", "--output", str(workdir / "out.json"),
        ])
        assert result.exit_code == 0
        data = json.loads((workdir / "out.json").read_text())
        assert data["total_duration_ms"] == 2000
        assert [s["token_ids"] for s in data["segments"]] == [[1], [7]]

    def test_invalid_plan(self, workdir):
        (workdir / "plan.json").write_text('{"frames": [{"timeMs": -5}]}')
        result = runner.invoke(app, ["plan", str(workdir / "sample.js"), str(workdir / "plan.json")])
        assert result.exit_code == 1


class TestInitConfig:
    def test_creates_file(self, tmp_path):
        target = tmp_path / "voicesync.yaml"
        result = runner.invoke(app, ["init-config", str(target)])
        assert result.exit_code == 0
        assert target.read_text() == DEFAULT_CONFIG_YAML

    def test_force_overwrites(self, tmp_path):
        target = tmp_path / "voicesync.yaml"
        target.write_text("old")
        result = runner.invoke(app, ["init-config", str(target), "--force"])
        assert result.exit_code == 0
        assert target.read_text() == DEFAULT_CONFIG_YAML

    def test_declined_overwrite_keeps_file(self, tmp_path):
        target = tmp_path / "voicesync.yaml"
        target.write_text("old")
        result = runner.invoke(app, ["init-config", str(target)], input="n\n")
        assert result.exit_code == 0
        assert target.read_text() == "old"
