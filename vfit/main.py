import typer
import yaml
from pathlib import Path
from typing import Optional, List
from pydantic import ValidationError
from rich.prompt import Confirm
from vfit.config.loader import load_config, apply_overrides
from vfit.domain.errors import InvalidDirectoryError, MissingDependencyError
from vfit.infrastructure.logging import setup_logging
from vfit.infrastructure.event_bus import EventBus
from vfit.infrastructure.file_scanner import FileScanner
from vfit.infrastructure.ffprobe import FFprobeAdapter
from vfit.infrastructure.ffmpeg import FFmpegAdapter, detect_backends, make_backends
from vfit.infrastructure.housekeeping import HousekeepingService
from vfit.infrastructure.system import check_dependencies, list_ffmpeg_encoders
from vfit.pipeline.orchestrator import Orchestrator, validate_directories
from vfit.ui.reporter import ConsoleReporter

app = typer.Typer(help="vfit - compress videos to fit a size budget, keeping originals in a backup tree")

EXIT_FATAL = 1
EXIT_FILE_FAILURES = 2
EXIT_INTERRUPTED = 130


def _fatal(message: str):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=EXIT_FATAL)


@app.command()
def compress(
    source_dir: Optional[Path] = typer.Argument(None, help="Directory with videos to compress (files are REPLACED here)"),
    backup_dir: Optional[Path] = typer.Argument(None, help="Directory the originals are MOVED to, mirroring the source tree"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config (default: conf/vfit.yaml if present)"),
    max_size_mb: Optional[float] = typer.Option(None, "--max-size-mb", help="Hard size limit per file in MB [default: 10]"),
    safety_factor: Optional[float] = typer.Option(None, "--safety-factor", help="Fraction of the limit to aim for [default: 0.95]"),
    min_video_kbps: Optional[int] = typer.Option(None, "--min-video-kbps", help="Minimum video bitrate in kbps [default: 200]"),
    audio_kbps: Optional[int] = typer.Option(None, "--audio-kbps", help="Audio bitrate in kbps [default: 128]"),
    encoders: Optional[List[str]] = typer.Option(None, "--encoder", "-e", help="Encoder backend to try, in order (nvenc, vaapi, cpu); repeatable"),
    strict: Optional[bool] = typer.Option(None, "--strict/--no-strict", help="Fail files that cannot fit the budget instead of encoding at the minimum bitrate"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging")
):
    """Compress every video under SOURCE_DIR to fit the size budget, moving originals to BACKUP_DIR."""
    try:
        config = load_config(config_path)
        config = apply_overrides(config, {
            "max_size_mb": max_size_mb,
            "safety_factor": safety_factor,
            "min_video_bitrate_bps": min_video_kbps * 1000 if min_video_kbps is not None else None,
            "audio_bitrate_bps": audio_kbps * 1000 if audio_kbps is not None else None,
            "encoders": encoders or None,
            "strict": strict,
            "debug": True if debug else None,
        })
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        _fatal(f"Invalid configuration: {e}")
    general = config.general

    try:
        check_dependencies()
    except MissingDependencyError as e:
        _fatal(str(e))

    if source_dir is None:
        source_dir = typer.prompt("Enter the SOURCE directory (videos will be REPLACED here)", type=Path)
    if backup_dir is None:
        backup_dir = typer.prompt("Enter the BACKUP directory (originals will be MOVED here)", type=Path)

    try:
        source, backup = validate_directories(source_dir, backup_dir)
    except InvalidDirectoryError as e:
        _fatal(str(e))

    if general.encoders:
        backends = make_backends(general.encoders, general.vaapi_device)
    else:
        backends = detect_backends(list_ffmpeg_encoders(), general.vaapi_device)

    bus = EventBus()
    reporter = ConsoleReporter(bus)
    reporter.print_configuration(general, source, backup, backends)

    if not yes and not Confirm.ask("Proceed?", default=False, console=reporter.console):
        typer.echo("Aborted by user.")
        raise typer.Exit(code=0)

    logger = setup_logging(backup, debug=general.debug)
    logger.info(f"vfit started: source={source}, backup={backup}")
    logger.info(
        f"Config: max_size_mb={general.max_size_mb}, safety_factor={general.safety_factor}, "
        f"min_video_bps={general.min_video_bitrate_bps}, audio_bps={general.audio_bitrate_bps}, "
        f"backends={[b.name for b in backends]}, strict={general.strict}"
    )

    try:
        HousekeepingService().cleanup_temp_files(source)

        orchestrator = Orchestrator(
            config=config,
            event_bus=bus,
            file_scanner=FileScanner(extensions=general.extensions),
            ffprobe_adapter=FFprobeAdapter(),
            ffmpeg_adapter=FFmpegAdapter(event_bus=bus),
            backends=backends
        )
        report = orchestrator.run(source, backup)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        typer.echo("\nInterrupted by user")
        raise typer.Exit(code=EXIT_INTERRUPTED)

    except Exception as e:
        logger.exception("Fatal error")
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=EXIT_FATAL)

    reporter.print_summary(report)
    if report.failures:
        raise typer.Exit(code=EXIT_FILE_FAILURES)


if __name__ == "__main__":
    app()
