"""
Main CLI Application
Operator commands for checking and exercising the ImageMagick bridge
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from magick_bridge import __version__
from magick_bridge.config import settings
from magick_bridge.core.exceptions import MagickBridgeError
from magick_bridge.core.items import FileItem
from magick_bridge.core.preferences import JsonPreferenceStore
from magick_bridge.services.bridge_service import MagickBridgeService, build_service
from magick_bridge.utils.logging import setup_logging

app = typer.Typer(
    name="magick-bridge",
    help="Detect ImageMagick 7 and convert exotic image formats to PNG",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


def _ready_service() -> MagickBridgeService:
    """Initialise a service or exit with the failure message."""
    service = build_service(settings)
    service.init()
    if not service.is_ready:
        console.print(f"[red]✗ {escape(service.init_error or '')}[/red]")
        raise typer.Exit(1)
    return service


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"magick-bridge {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log at DEBUG level")
    ] = False,
    json_logs: Annotated[
        bool, typer.Option("--json-logs", help="Render logs as JSON")
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            callback=_version_callback,
            is_eager=True,
            help="Show version",
        ),
    ] = None,
) -> None:
    """
    ImageMagick bridge CLI

    [bold green]Quick Start:[/bold green]

      [cyan]magick-bridge detect[/cyan]
      [cyan]magick-bridge convert photo.arw -o photo.png[/cyan]
    """
    setup_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        json_logs=json_logs or settings.json_logs,
        log_file=settings.log_file,
    )


@app.command()
def detect() -> None:
    """
    Locate ImageMagick 7 and report what was found

    Examples:
      magick-bridge detect
    """
    service = _ready_service()

    table = Table(show_header=False, box=None)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Executable", str(service.executable))
    table.add_row("Version", service.version or "")
    table.add_row("Readable formats", str(len(service.get_supported_extensions())))
    console.print(table)


@app.command()
def formats(
    contains: Annotated[
        Optional[str],
        typer.Option("--contains", "-c", help="Only show extensions containing TEXT"),
    ] = None,
) -> None:
    """
    List the file extensions ImageMagick can read

    Examples:
      magick-bridge formats
      magick-bridge formats --contains raw
    """
    service = _ready_service()

    extensions = sorted(service.get_supported_extensions())
    if contains:
        needle = contains.lower()
        extensions = [ext for ext in extensions if needle in ext]

    table = Table(title="Readable Formats", show_header=True)
    table.add_column("Extension", style="cyan")
    for ext in extensions:
        table.add_row(ext)
    console.print(table)
    console.print(f"[dim]{len(extensions)} format(s)[/dim]")


@app.command()
def convert(
    input_path: Annotated[
        Path,
        typer.Argument(
            help="Image file to convert",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output PNG path (default: next to input)"),
    ] = None,
) -> None:
    """
    Convert one file to PNG through ImageMagick

    Examples:
      magick-bridge convert scan.psd
      magick-bridge convert photo.arw -o photo.png
    """
    service = _ready_service()

    if output is None:
        output = input_path.with_name(f"{input_path.stem}-magick.png")

    try:
        image = service.convert_to_standard_raster(FileItem(input_path))
    except MagickBridgeError as e:
        console.print(f"[red]✗ {escape(e.message)}[/red] [dim]({e.error_code})[/dim]")
        raise typer.Exit(1)

    with image:
        image.save(output, format="PNG")
        width, height = image.size
    console.print(f"[green]✓[/green] {escape(str(output))} ({width}x{height})")


@app.command()
def use(
    path: Annotated[Path, typer.Argument(help="Path to the magick executable")],
) -> None:
    """
    Verify and remember a hand-picked magick executable

    Examples:
      magick-bridge use /opt/imagemagick/bin/magick
    """
    service = build_service(settings)
    try:
        service.init_with_user_selected_path(path)
    except MagickBridgeError as e:
        console.print(f"[red]✗ {escape(e.message)}[/red]")
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] Using {service.executable} (ImageMagick {service.version})"
    )


@app.command()
def forget() -> None:
    """
    Clear the remembered magick executable

    Examples:
      magick-bridge forget
    """
    JsonPreferenceStore(settings.preferences_file).clear_path()
    console.print("[green]✓[/green] Saved ImageMagick path cleared")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
