"""Main CLI module for Dwell."""

from __future__ import annotations

import sys
import time
from pathlib import Path

import click

from ..core.time import parse_utc_iso8601
from ..rollups.summary import format_duration
from .cli_common import (
    CONTEXT_SETTINGS,
    CLIContext,
    ClickConfirmation,
    ExitCode,
    handle_cli_error,
    pass_cli_context,
)
from .dwell_backup import cli as backup_cli
from .dwell_exchange import export_command, import_command

EPILOG = """
Examples:
  dwell record example.com 60         # Credit one minute to example.com now
  dwell stats                         # Totals per site
  dwell show example.com              # Last 24 hours / 7 days / 4 weeks
  dwell export --format csv -o out/   # Write website-time-tracker-<date>.csv
  dwell import export.json            # Merge an export into the store
  dwell backup create                 # Snapshot the store
  dwell track example.com             # Count active seconds until Ctrl-C
""".strip()


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Dwell - time-on-site aggregation",
    epilog=EPILOG,
)
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path), help="Store directory")
@click.option("--config", "config_file", type=click.Path(path_type=Path), help="YAML config file")
@click.option("--env-file", type=click.Path(path_type=Path), help=".env file")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(
    click_ctx: click.Context,
    data_dir: Path | None,
    config_file: Path | None,
    env_file: Path | None,
    json_output: bool,
    verbose: bool,
) -> None:
    """Root CLI command."""
    click_ctx.obj = CLIContext(
        data_dir=data_dir,
        config_file=config_file,
        env_file=env_file,
        json_output=json_output,
        verbose=verbose,
    )


@cli.command("stats")
@pass_cli_context
def stats_command(ctx: CLIContext) -> int:
    """Total time per site, largest first."""
    try:
        summary = ctx.service.summary()

        lines = [f"📊 {summary.total_sites} sites, {format_duration(summary.total_time)} total"]
        for site in summary.sites:
            lines.append(f"  {site.domain:<40} {format_duration(site.total_time):>12}")

        ctx.output(summary.to_dict(), lines)
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@cli.command("show")
@click.argument("domain")
@pass_cli_context
def show_command(ctx: CLIContext, domain: str) -> int:
    """Recent hour, day and week buckets for DOMAIN."""
    try:
        record = ctx.service.record(domain)
        windows = {resolution: ctx.service.recent(domain, resolution) for resolution in ("hour", "day", "week")}

        lines = [f"🌐 {domain}: {format_duration(record.total_time)} total"]
        for title, resolution in (("Last 24 hours", "hour"), ("Last 7 days", "day"), ("Last 4 weeks", "week")):
            lines.append(f"{title}:")
            lines.extend(f"  {key}  {format_duration(seconds)}" for key, seconds in windows[resolution].items())

        ctx.output(
            {
                "domain": domain,
                "totalTime": record.total_time,
                "hours": windows["hour"],
                "days": windows["day"],
                "weeks": windows["week"],
            },
            lines,
        )
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@cli.command("record")
@click.argument("domain")
@click.argument("seconds", type=int)
@click.option("--at", "at", type=str, help="ISO-8601 instant to credit (default: now)")
@pass_cli_context
def record_command(ctx: CLIContext, domain: str, seconds: int, at: str | None) -> int:
    """Credit SECONDS of active time to DOMAIN."""
    try:
        timestamp = parse_utc_iso8601(at) if at else ctx.service.clock.now()
        ctx.service.apply(domain, timestamp, seconds)
        ctx.output(
            {"status": "success", "domain": domain, "seconds": seconds, "at": timestamp.isoformat()},
            f"✅ Recorded {format_duration(seconds)} for {domain}",
        )
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@cli.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Clear without asking")
@pass_cli_context
def clear_command(ctx: CLIContext, yes: bool) -> int:
    """Remove all tracking data (backups are kept)."""
    try:
        if not ctx.service.clear_all(ClickConfirmation(assume_yes=yes)):
            ctx.output({"status": "cancelled"}, "Clear cancelled")
            return ExitCode.CANCELLED

        ctx.output({"status": "success"}, "🗑️  All tracking data cleared")
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@cli.command("track")
@click.argument("domain")
@click.option("--ticks", type=click.IntRange(min=1), help="Run this many ticks, then stop (default: until Ctrl-C)")
@pass_cli_context
def track_command(ctx: CLIContext, domain: str, ticks: int | None) -> int:
    """Credit active time to DOMAIN once per tick.

    The terminal counts as always visible, so time is credited until the
    idle threshold passes without input; pressing Enter counts as input.
    """
    try:
        settings = ctx.settings
        tracker = ctx.service.tracker(
            domain,
            tick_seconds=settings.tick_seconds,
            idle_threshold_ms=settings.idle_threshold_ms,
        )

        if ticks is not None:
            credited = 0
            for _ in range(ticks):
                outcome = tracker.tick()
                credited += settings.tick_seconds if outcome.persisted else 0
            ctx.output(
                {"status": "success", "domain": domain, "ticks": ticks, "credited": credited},
                f"✅ Credited {format_duration(credited)} to {domain}",
            )
            return ExitCode.SUCCESS

        click.echo(f"⏱️  Tracking {domain} (Ctrl-C to stop)", err=True)
        with tracker:
            try:
                while True:
                    if sys.stdin.isatty():
                        sys.stdin.readline()
                        tracker.record_input("key_press")
                    else:
                        time.sleep(settings.tick_seconds)
            except KeyboardInterrupt:
                pass

        click.echo(f"Session: {format_duration(tracker.session_seconds())}", err=True)
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


cli.add_command(export_command, "export")
cli.add_command(import_command, "import")
cli.add_command(backup_cli, "backup")


def main(args: list[str] | None = None) -> int:
    if args is None:
        args = sys.argv[1:]

    try:
        rv = cli.main(args=list(args), standalone_mode=False)
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else 0
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return ExitCode.CANCELLED
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    return int(rv or 0)


if __name__ == "__main__":
    sys.exit(main())
