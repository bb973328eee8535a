"""CLI commands for store backups."""

from __future__ import annotations

import click

from .cli_common import CONTEXT_SETTINGS, CLIContext, ExitCode, handle_cli_error, pass_cli_context


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Manage store backups",
)
def cli() -> None:
    """Backup commands."""


@cli.command("create")
@pass_cli_context
def create_command(ctx: CLIContext) -> int:
    """Snapshot the store into a new backup (keeps the newest N)."""
    try:
        backup_id = ctx.service.create_backup()
        ctx.output({"status": "success", "backupId": backup_id}, f"💾 Backup created: {backup_id}")
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@cli.command("list")
@pass_cli_context
def list_command(ctx: CLIContext) -> int:
    """List backups, newest first."""
    try:
        backups = ctx.service.list_backups()

        lines = [f"💾 Backups ({len(backups)}):"] if backups else ["💾 No backups found"]
        for info in backups:
            lines.append(f"  📦 {info.backup_id}  {info.created_at:%Y-%m-%d %H:%M:%S} UTC")

        ctx.output(
            [{"backupId": info.backup_id, "createdAt": info.created_at.isoformat()} for info in backups],
            lines,
        )
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@cli.command("restore")
@click.argument("backup_id")
@click.option("--yes", "-y", is_flag=True, help="Replace the store without asking")
@pass_cli_context
def restore_command(ctx: CLIContext, backup_id: str, yes: bool) -> int:
    """Replace the whole store with a backup."""
    try:
        if not yes and not click.confirm(f"Replace all tracking data with {backup_id}?", default=False):
            ctx.output({"status": "cancelled"}, "Restore cancelled")
            return ExitCode.CANCELLED

        ctx.service.restore_backup(backup_id)
        ctx.output({"status": "success", "backupId": backup_id}, f"✅ Restored from {backup_id}")
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)
