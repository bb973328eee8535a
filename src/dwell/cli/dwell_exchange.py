"""CLI commands for export and import."""

from __future__ import annotations

from pathlib import Path

import click

from .cli_common import CLIContext, ExitCode, FileExporter, handle_cli_error, pass_cli_context


@click.command("export")
@click.option(
    "--format",
    "export_format",
    type=click.Choice(["json", "csv"]),
    default="json",
    show_default=True,
    help="Export format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="File or directory to write (default: stdout)",
)
@pass_cli_context
def export_command(ctx: CLIContext, export_format: str, output: Path | None) -> int:
    """Export the store as JSON or CSV."""
    try:
        exporter = FileExporter(output) if output is not None else None
        if export_format == "csv":
            content = ctx.service.export_csv(exporter)
        else:
            content = ctx.service.export_json(exporter)

        if exporter is None:
            click.echo(content)
        else:
            click.echo(f"✅ Exported to {exporter.written}", err=True)
        return ExitCode.SUCCESS
    except Exception as exc:
        return handle_cli_error(ctx, exc)


@click.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_cli_context
def import_command(ctx: CLIContext, source: Path) -> int:
    """Merge an exported JSON file into the store."""
    try:
        result = ctx.service.import_json(source.read_bytes())
        ctx.output(result.to_dict(), f"{'✅' if result else '❌'} {result.message}")
        return ExitCode.SUCCESS if result else ExitCode.VALIDATION_ERROR
    except Exception as exc:
        return handle_cli_error(ctx, exc)
