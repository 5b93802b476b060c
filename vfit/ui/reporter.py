from pathlib import Path
from typing import Optional, Sequence
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.markup import escape
from vfit.config.models import GeneralConfig
from vfit.domain.events import (
    DiscoveryStarted, DiscoveryFinished, FileStarted, FileSkipped, FilePlanned,
    FileCompressed, FileFailed, SizeBudgetExceeded, EncodeAttemptStarted, EncodeAttemptFailed
)
from vfit.domain.models import MEGABYTE, RunReport, WarningKind
from vfit.infrastructure.event_bus import EventBus


def format_mb(size: int) -> str:
    """Bytes to MB rounded to 2 decimals."""
    return f"{size / MEGABYTE:.2f} MB"


class ConsoleReporter:
    """Subscribes to EventBus and prints per-file progress with rich."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None):
        self.bus = bus
        self.console = console or Console()
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(DiscoveryStarted, self.on_discovery_started)
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(FileStarted, self.on_file_started)
        self.bus.subscribe(FileSkipped, self.on_file_skipped)
        self.bus.subscribe(FilePlanned, self.on_file_planned)
        self.bus.subscribe(EncodeAttemptStarted, self.on_encode_attempt)
        self.bus.subscribe(EncodeAttemptFailed, self.on_encode_attempt_failed)
        self.bus.subscribe(SizeBudgetExceeded, self.on_size_exceeded)
        self.bus.subscribe(FileCompressed, self.on_file_compressed)
        self.bus.subscribe(FileFailed, self.on_file_failed)

    def on_discovery_started(self, event: DiscoveryStarted):
        self.console.print("[cyan]Scanning for video files...[/cyan]")

    def on_discovery_finished(self, event: DiscoveryFinished):
        if event.files_found == 0:
            self.console.print("[yellow]No video files found.[/yellow]")
        else:
            self.console.print(f"Found [bold]{event.files_found}[/bold] video file(s).")

    def on_file_started(self, event: FileStarted):
        vf = event.video_file
        self.console.print()
        self.console.print(f"[bold][{event.index}/{event.total}][/bold] Processing: {escape(str(vf.relative_path))}")
        self.console.print(f"  Original size: {format_mb(vf.size_bytes)}")

    def on_file_skipped(self, event: FileSkipped):
        if event.existing_backup_kept:
            self.console.print(
                f"  [yellow]Already within budget. A different backup already exists, kept:[/yellow] "
                f"{escape(str(event.backup_path))}"
            )
            return
        self.console.print(f"  [green]Already within budget.[/green] Backup created at: {escape(str(event.backup_path))}")

    def on_file_planned(self, event: FilePlanned):
        plan = event.plan
        self.console.print(f"  Duration: {event.duration_seconds:.2f} seconds")
        if plan.floor_limited:
            self.console.print("  [yellow]WARNING: Video is long relative to target size. Using minimum video bitrate.[/yellow]")
        self.console.print(f"  Target video bitrate: {plan.video_kbps} kbps")
        self.console.print(f"  Audio bitrate       : {plan.audio_kbps} kbps")

    def on_encode_attempt(self, event: EncodeAttemptStarted):
        self.console.print(f"  Encoding with [cyan]{event.backend}[/cyan]...")

    def on_encode_attempt_failed(self, event: EncodeAttemptFailed):
        line = f"  [yellow]{event.backend} encode failed: {escape(event.error_message)}[/yellow]"
        if event.next_backend:
            line += f" Falling back to {event.next_backend}..."
        self.console.print(line)

    def on_size_exceeded(self, event: SizeBudgetExceeded):
        self.console.print(
            f"  [yellow]WARNING: Compressed file is still > {format_mb(event.max_bytes)} "
            f"({format_mb(event.output_size_bytes)}). Keeping it anyway.[/yellow]"
        )

    def on_file_compressed(self, event: FileCompressed):
        outcome = event.outcome
        self.console.print(f"  Compressed size: {format_mb(outcome.output_size_bytes or 0)}")
        self.console.print(
            f"  [green]Done.[/green] Saved ~{format_mb(outcome.saved_bytes or 0)}. "
            f"Original moved to: {escape(str(outcome.backup_path))}"
        )

    def on_file_failed(self, event: FileFailed):
        self.console.print(f"  [red]ERROR ({event.reason.value}): {escape(event.error_message)}[/red]")

    def print_configuration(self, config: GeneralConfig, source: Path, backup: Path, backends: Sequence):
        table = Table(show_header=False, border_style="dim")
        budget = config.size_budget
        table.add_row("Source", escape(str(source)))
        table.add_row("Backup", escape(str(backup)))
        table.add_row("Max size", f"{format_mb(budget.max_bytes)} (target {format_mb(budget.target_bytes)})")
        table.add_row("Min video bitrate", f"{config.min_video_bitrate_bps // 1000} kbps")
        table.add_row("Audio bitrate", f"{config.audio_bitrate_bps // 1000} kbps")
        table.add_row("Encoders", " → ".join(f"{b.name} ({b.codec})" for b in backends))
        table.add_row("Extensions", ", ".join(config.extensions))
        table.add_row("Strict mode", str(config.strict))
        self.console.print(Panel(table, title="CONFIGURATION", border_style="cyan"))

    def print_summary(self, report: RunReport):
        summary_lines = [
            f"Compressed: {len(report.compressed)}",
            f"Skipped (already small): {len(report.skipped)}",
            f"Failed: {len(report.failures)}",
            f"Total saved: ~{format_mb(report.saved_bytes)}",
        ]

        oversized = [o for o in report.outcomes if WarningKind.SIZE_EXCEEDED in o.warnings]
        if oversized:
            summary_lines.extend(["", f"[yellow]Still over budget ({len(oversized)}):[/yellow]"])
            summary_lines.extend(f"  [yellow]→ {escape(str(o.video_file.path))}[/yellow]" for o in oversized)

        if report.failures:
            summary_lines.extend(["", "[red]The following files failed to process:[/red]"])
            for outcome in report.failures:
                summary_lines.append(f"  [red]- {escape(str(outcome.video_file.path))}[/red]")
                summary_lines.append(f"    [dim]{outcome.reason.value}: {escape(outcome.error_message or '')}[/dim]")
        else:
            summary_lines.extend(["", "[green]All files processed successfully.[/green]"])

        self.console.print()
        self.console.print(Panel("\n".join(summary_lines), title="COMPRESSION SUMMARY", border_style="cyan"))
