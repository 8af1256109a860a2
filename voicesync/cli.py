"""Main CLI application with typer subcommands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.prompt import Confirm
from rich.table import Table

from voicesync.code.base import Token
from voicesync.code.tokenizer import tokenize as tokenize_code
from voicesync.playback.calibrator import DriftCalibrator
from voicesync.playback.events import ClearEvent, HighlightEvent, PlaybackEvent
from voicesync.playback.synchronizer import PlaybackSynchronizer
from voicesync.timeline.base import HighlightTrack, WordTiming
from voicesync.timeline.builder import build_track_with_diagnostics
from voicesync.timeline.plan import PlanValidationError, parse_plan, track_from_plan
from voicesync.timeline.stats import render_report, track_statistics
from voicesync.timeline.word_timing import estimate_word_timings
from voicesync.utils.config import AppConfig, load_config, merge_cli_overrides, DEFAULT_CONFIG_YAML
from voicesync.utils.logging import (
    setup_logging, Verbosity, console, info, success, warn, error, set_session_id,
)

load_dotenv()

app = typer.Typer(
    name="voicesync",
    help="Synchronize a spoken code explanation with token highlighting.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


# ── Helper functions ──────────────────────────────────────────────────────────

def _verbosity(silent: bool, verbose: bool) -> Verbosity:
    return Verbosity.SILENT if silent else (Verbosity.VERBOSE if verbose else Verbosity.NORMAL)


def _load_cfg(config: Optional[Path], overrides: dict[str, Any] | None = None) -> AppConfig:
    try:
        cfg = load_config(config)
        if overrides:
            cfg = merge_cli_overrides(cfg, overrides)
    except ValidationError as e:
        error(f"Invalid configuration: {e}")
        raise typer.Exit(1)
    return cfg


def _read_text(path: Path, what: str) -> str:
    if not path.is_file():
        error(f"{what} not found: {path}")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _read_json(path: Path, what: str) -> Any:
    text = _read_text(path, what)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        error(f"{what} is not valid JSON: {e}")
        raise typer.Exit(1)


def _load_timings(path: Path) -> list[WordTiming]:
    data = _read_json(path, "Timings file")
    if isinstance(data, dict):
        data = data.get("word_timings", data.get("wordTimings", []))
    try:
        return [WordTiming.from_dict(d) for d in data]
    except (KeyError, TypeError, ValueError) as e:
        error(f"Malformed word timing entry: {e}")
        raise typer.Exit(1)


def _language_for(path: Path, language: str) -> str:
    if language:
        return language
    return path.suffix.lstrip(".").lower()


def _token_table(tokens: list[Token]) -> Table:
    table = Table(title=f"{len(tokens)} tokens")
    table.add_column("id", justify="right", style="dim")
    table.add_column("kind", style="cyan")
    table.add_column("text", style="bold")
    table.add_column("line:col", justify="right")
    table.add_column("weight", justify="right")
    for t in tokens:
        text = t.text if len(t.text) <= 40 else t.text[:37] + "..."
        table.add_row(str(t.id), t.kind.value, text.replace("\n", "⏎"),
                      f"{t.line}:{t.start_column}", f"{t.weight:.1f}")
    return table


def _describe(event: PlaybackEvent, tokens_by_id: dict[int, Token]) -> str:
    if isinstance(event, ClearEvent):
        return f"[dim]{event.time_ms:>8.0f}ms  clear[/dim]"
    names = ", ".join(tokens_by_id[t].text if t in tokens_by_id else f"#{t}" for t in event.token_ids)
    color = {"high": "green", "medium": "yellow", "low": "red"}[event.tier.value]
    return (f"{event.time_ms:>8.0f}ms  [{color}]{event.tier.value:<6}[/{color}] "
            f"{event.confidence:.2f}  {names}")


# ── TOKENIZE ──────────────────────────────────────────────────────────────────

@app.command()
def tokenize(
    code_file: Annotated[Path, typer.Argument(help="Source file to tokenize")],
    language: Annotated[str, typer.Option("--language", "-l", help="Language id (default: file extension)")] = "",
    as_json: Annotated[bool, typer.Option("--json", help="Print tokens as JSON")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
):
    """Split a source file into typed tokens."""
    setup_logging(Verbosity.VERBOSE if verbose else Verbosity.NORMAL)
    code = _read_text(code_file, "Code file")
    tokens = tokenize_code(code, _language_for(code_file, language))

    if as_json:
        typer.echo(json.dumps([t.to_dict() for t in tokens], indent=2))
    else:
        console.print(_token_table(tokens))


# ── BUILD ─────────────────────────────────────────────────────────────────────

@app.command()
def build(
    code_file: Annotated[Path, typer.Argument(help="Source file being explained")],
    explanation: Annotated[Optional[str], typer.Option("--explanation", "-e", help="Explanation text")] = None,
    explanation_file: Annotated[Optional[Path], typer.Option("--explanation-file", help="File with the explanation text")] = None,
    timings: Annotated[Optional[Path], typer.Option("--timings", "-t", help="Word timings JSON")] = None,
    language: Annotated[str, typer.Option("--language", "-l")] = "",
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write the track JSON here")] = None,
    word_ms: Annotated[Optional[int], typer.Option(help="Per-word duration when estimating timings")] = None,
    silent: Annotated[bool, typer.Option("--silent")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
    config: Annotated[Optional[Path], typer.Option("--config")] = None,
    log_dir: Annotated[Optional[Path], typer.Option("--log-dir", help="Also write a rotating voicesync.log here")] = None,
):
    """Build a highlight track from code, explanation and word timings."""
    setup_logging(_verbosity(silent, verbose), log_dir=log_dir)
    set_session_id()
    cfg = _load_cfg(config, {"timeline.estimated_word_ms": word_ms})

    if explanation is None and explanation_file is None:
        error("Provide --explanation or --explanation-file")
        raise typer.Exit(1)
    text = explanation if explanation is not None else _read_text(explanation_file, "Explanation file")

    code = _read_text(code_file, "Code file")
    tokens = tokenize_code(code, _language_for(code_file, language))

    if timings is not None:
        word_timings = _load_timings(timings)
    else:
        warn(f"No timings given; estimating {cfg.timeline.estimated_word_ms}ms per word")
        word_timings = estimate_word_timings(text, cfg.timeline.estimated_word_ms)

    track, diagnostics = build_track_with_diagnostics(text, word_timings, tokens, cfg)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(track.to_dict(), indent=2), encoding="utf-8")
        success(f"Track written: {output}")

    if not silent:
        console.print(render_report(track_statistics(track), diagnostics))


# ── REPLAY ────────────────────────────────────────────────────────────────────

@app.command()
def replay(
    track_file: Annotated[Path, typer.Argument(help="Track JSON written by 'build'")],
    code_file: Annotated[Optional[Path], typer.Option("--code", help="Source file, to show token text")] = None,
    language: Annotated[str, typer.Option("--language", "-l")] = "",
    step_ms: Annotated[int, typer.Option(help="Simulated time-update interval")] = 100,
    drift_ms_per_sec: Annotated[float, typer.Option(help="Simulated audio clock drift")] = 0.0,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
    config: Annotated[Optional[Path], typer.Option("--config")] = None,
    log_dir: Annotated[Optional[Path], typer.Option("--log-dir", help="Also write a rotating voicesync.log here")] = None,
):
    """Drive a playback synchronizer over a track and print emitted events."""
    setup_logging(Verbosity.VERBOSE if verbose else Verbosity.NORMAL, log_dir=log_dir)
    set_session_id()
    cfg = _load_cfg(config)

    if step_ms <= 0:
        error("--step-ms must be positive")
        raise typer.Exit(1)

    data = _read_json(track_file, "Track file")
    try:
        track = HighlightTrack.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        error(f"Malformed track file: {e}")
        raise typer.Exit(1)

    tokens_by_id: dict[int, Token] = {}
    if code_file is not None:
        code = _read_text(code_file, "Code file")
        tokens_by_id = {t.id: t for t in tokenize_code(code, _language_for(code_file, language))}

    calibrator = DriftCalibrator(cfg.calibration) if drift_ms_per_sec else None
    sync = PlaybackSynchronizer(cfg.playback, calibrator)
    events: list[PlaybackEvent] = []
    sync.subscribe(events.append)
    sync.subscribe(lambda e: console.print(_describe(e, tokens_by_id)))

    sync.load(track)
    sync.play()
    expected = 0
    while expected <= track.total_duration_ms + step_ms:
        if drift_ms_per_sec:
            reported = expected + drift_ms_per_sec * expected / 1000.0
            sync.update_time(reported, expected_ms=expected, at_ms=expected)
        else:
            sync.update_time(expected)
        expected += step_ms

    # stop() resets the calibrator, so read its quality first
    quality = calibrator.sync_quality() if calibrator is not None else None
    sync.stop()

    highlights = sum(1 for e in events if isinstance(e, HighlightEvent))
    info(f"{highlights} highlight and {len(events) - highlights} clear event(s)")
    if quality is not None:
        info(f"Sync quality: {quality.quality} ({quality.score})")
        for issue in quality.issues:
            warn(issue)


# ── PLAN ──────────────────────────────────────────────────────────────────────

@app.command()
def plan(
    code_file: Annotated[Path, typer.Argument(help="Source file the plan refers to")],
    plan_file: Annotated[Path, typer.Argument(help="Highlight plan JSON")],
    language: Annotated[str, typer.Option("--language", "-l")] = "",
    duration_ms: Annotated[Optional[int], typer.Option(help="Audio duration in ms")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
    config: Annotated[Optional[Path], typer.Option("--config")] = None,
    log_dir: Annotated[Optional[Path], typer.Option("--log-dir", help="Also write a rotating voicesync.log here")] = None,
):
    """Validate an externally generated highlight plan and turn it into a track."""
    setup_logging(Verbosity.VERBOSE if verbose else Verbosity.NORMAL, log_dir=log_dir)
    set_session_id()
    cfg = _load_cfg(config)

    code = _read_text(code_file, "Code file")
    tokens = tokenize_code(code, _language_for(code_file, language))
    try:
        parsed = parse_plan(_read_text(plan_file, "Plan file"))
    except PlanValidationError as e:
        error(str(e))
        raise typer.Exit(1)

    track = track_from_plan(parsed, tokens, duration_ms, cfg)
    if output is not None:
        output.write_text(json.dumps(track.to_dict(), indent=2), encoding="utf-8")
        success(f"Track written: {output}")
    console.print(render_report(track_statistics(track)))


# ── INIT CONFIG ───────────────────────────────────────────────────────────────

@app.command("init-config")
def init_config(
    path: Annotated[Path, typer.Argument(help="Where to write the config")] = Path("voicesync.yaml"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite without asking")] = False,
):
    """Generate a default voicesync.yaml."""
    setup_logging(Verbosity.NORMAL)
    if path.exists() and not force:
        if not Confirm.ask(f"{path} exists. Overwrite?", default=False):
            raise typer.Exit(0)
    path.write_text(DEFAULT_CONFIG_YAML)
    success(f"Created {path}")


# ── ENTRY POINT ───────────────────────────────────────────────────────────────

def app_entry():
    app()


if __name__ == "__main__":
    app_entry()
