"""headnav CLI.

Usage:
    headnav run        — Listen for head pose and drive window focus
    headnav record     — Record the incoming pose stream to a file
    headnav replay     — Run a recording through the classifier offline
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer

from headnav.config import ACTUATOR_KINDS, ConfigError, load_config, resolve_port

app = typer.Typer(
    name="headnav",
    help="Hands-free tiled window navigation from head gestures.",
    add_completion=False,
)

logger = logging.getLogger("headnav.cli")


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _load(config_path: Optional[str]):
    try:
        return load_config(config_path)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _port(value: Optional[str]) -> int:
    try:
        return resolve_port(value)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def run(
    port: Optional[str] = typer.Option(None, envvar="PORT", help="UDP port to listen on"),
    host: Optional[str] = typer.Option(None, help="Bind address"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    actuator: Optional[str] = typer.Option(None, help=f"One of: {', '.join(ACTUATOR_KINDS)}"),
    log_level: str = typer.Option("info", help="Log level"),
    metrics_out: Optional[Path] = typer.Option(None, help="Write Prometheus metrics here on exit"),
):
    """Listen for pose datagrams and issue focus commands."""
    from headnav.pipeline import HeadGesturePipeline, PipelineStopped

    _setup_logging(log_level)
    app_config = _load(config)
    app_config.port = _port(port if port is not None else app_config.port)
    if host:
        app_config.host = host
    if actuator:
        try:
            app_config.dispatcher = replace(app_config.dispatcher, actuator=actuator)
        except ConfigError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    pipeline = HeadGesturePipeline(app_config)
    exit_code = 0
    try:
        pipeline.run()
    except KeyboardInterrupt:
        pass
    except PipelineStopped as e:
        logger.error("%s", e)
        exit_code = 1
    except OSError as e:
        typer.echo(f"Error: cannot listen on {app_config.host}:{app_config.port}: {e}", err=True)
        exit_code = 1
    finally:
        pipeline.stop()
        logger.info("Stats: %s", pipeline.metrics.summary())
        if metrics_out:
            pipeline.metrics.write(metrics_out)

    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def record(
    output: str = typer.Option("recording.json", "-o", help="Output file (.json or .npz)"),
    port: Optional[str] = typer.Option(None, envvar="PORT", help="UDP port to listen on"),
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    compact: bool = typer.Option(False, help="Save in compact .npz format"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Record the incoming pose stream."""
    from headnav.receiver import PoseReceiver
    from headnav.recorder import PoseRecorder

    _setup_logging(log_level)
    samples: queue.Queue = queue.Queue(maxsize=1024)
    receiver = PoseReceiver(samples)
    try:
        receiver.bind(host, _port(port))
    except OSError as e:
        typer.echo(f"Error: cannot listen: {e}", err=True)
        raise typer.Exit(1)

    stop = threading.Event()
    thread = threading.Thread(target=receiver.serve, args=(stop,), daemon=True)
    thread.start()

    recorder = PoseRecorder()
    recorder.start()
    typer.echo("Recording... press Ctrl+C to stop")
    start = time.monotonic()
    try:
        while duration <= 0 or time.monotonic() - start < duration:
            try:
                recorder.add(samples.get(timeout=0.1))
            except queue.Empty:
                continue
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
        thread.join(1.0)
        receiver.close()
        recorder.stop()

    path = Path(output)
    path = recorder.save_compact(path) if compact else recorder.save(path)
    typer.echo(f"Recorded {recorder.sample_count} samples ({recorder.duration:.1f}s) to {path}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier (with --realtime)"),
):
    """Classify a recording and print the signals it produces."""
    from headnav.pipeline import replay_signals
    from headnav.recorder import PosePlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    app_config = _load(config)
    player = PosePlayer.load(path)
    typer.echo(f"Replaying {path.name} ({player.sample_count} samples, {player.duration:.1f}s)")

    origin = time.monotonic() if realtime else 0.0
    samples = player.play_realtime(speed=speed) if realtime else player.play()
    results = replay_signals(samples, app_config.classifier, app_config.dispatcher)
    for r in results:
        if r.issued:
            typer.echo(f"  [{r.instant - origin:8.3f}s] {r.signal.value}")

    issued = sum(1 for r in results if r.issued)
    typer.echo(f"{len(results)} signals, {issued} would be issued.")


def main():
    app()


if __name__ == "__main__":
    main()
