#!/usr/bin/env python3
"""
CLI module for Duotone Pie - Command-Line Interface

Provides command-line interface for rendering images, or whole folders of
images, as two-color duotones or halftone screen prints.
Uses Rich for beautiful terminal output.
"""

import sys
import json
import logging
import argparse
from pathlib import Path
from typing import Optional

# Rich imports for beautiful terminal output
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.panel import Panel
from rich.markup import escape

# Local imports
from duotone_lib import (
    DuotoneError,
    DuotoneRenderer,
    PALETTES,
    RenderMode,
    RenderSettings,
    RasterStyle,
)
from duotone_config import ConfigManager, ConfigValidationError
from duotone_utils import (
    list_image_files,
    load_image_buffer,
    rgb_to_hex,
    save_image_buffer,
    validate_image_file,
)


# Initialize Rich console
console = Console()

logger = logging.getLogger('duotone_pie')

OUTPUT_SUFFIX = "_duotone.png"


def setup_logging(verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None):
    """
    Setup logging with Rich handler for beautiful terminal output.

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Suppress all but ERROR messages
        log_file: Optional path to log file
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handlers = []

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True
    )
    handlers.append(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True
    )

    logger.setLevel(level)
    return logger


def detect_mode(input_path: Path) -> str:
    """
    Auto-detect processing mode based on input path.

    Args:
        input_path: Input file or directory path

    Returns:
        Mode string: "image" or "folder"
    """
    if input_path.is_dir():
        return "folder"
    if validate_image_file(input_path):
        return "image"
    raise ConfigValidationError(f"Cannot determine mode for file extension: {input_path.suffix.lower()}")


def describe_settings(settings: RenderSettings):
    """Log a one-screen summary of what is about to be rendered."""
    colors = settings.colors()
    logger.info(f"Render mode: [yellow]{settings.mode.value}[/]")
    logger.info(f"Colors: shadow [cyan]{rgb_to_hex(colors.shadow)}[/], "
                f"highlight [cyan]{rgb_to_hex(colors.highlight)}[/]"
                + (" [dim](reversed)[/]" if settings.reversed else ""))
    if settings.mode is RenderMode.RASTER:
        raster = settings.raster
        logger.info(f"Raster: [yellow]{raster.style.value}[/] "
                    f"(cell_size={raster.cell_size}, brightness={raster.brightness}, "
                    f"contrast={raster.contrast})")


# ==================== Image Processing ====================

def process_single_image(input_path: Path, output_path: Path, renderer: DuotoneRenderer) -> bool:
    """
    Render a single image and save the result.

    Args:
        input_path: Image to read
        output_path: Where to write the rendered image
        renderer: Configured renderer

    Returns:
        True if successful, False otherwise
    """
    try:
        logger.info(f"Loading image: [cyan]{input_path.name}[/]")
        buffer = load_image_buffer(input_path)
        logger.info(f"Image size: [cyan]{buffer.width}x{buffer.height}[/]")

        result = renderer.render(buffer)
        if (result.width, result.height) != buffer.size:
            logger.info(f"Scaled down to [cyan]{result.width}x{result.height}[/]")

        saved = save_image_buffer(result.buffer, output_path)
        logger.info(f"[green]✓[/] Saved to: [cyan]{saved}[/]")
        return True

    except DuotoneError as e:
        logger.error(f"Cannot render {input_path.name}: {escape(str(e))}")
        return False
    except OSError as e:
        logger.error(f"Cannot read or write image {input_path.name}: {escape(str(e))}")
        return False
    except Exception as e:
        logger.error(f"Failed to process image: {escape(str(e))}", exc_info=True)
        return False


def process_folder(input_dir: Path, output_dir: Path, renderer: DuotoneRenderer) -> bool:
    """
    Render every image in a folder into ``output_dir``.

    Returns:
        True if every image was rendered, False otherwise
    """
    files = list_image_files(input_dir)
    if not files:
        logger.error(f"No supported images found in: {input_dir}")
        return False

    logger.info(f"Found [cyan]{len(files)}[/] images")
    failures = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console
    ) as progress:
        task = progress.add_task("Rendering images...", total=len(files))
        for path in files:
            progress.update(task, description=f"Rendering {path.name}")
            output_path = output_dir / f"{path.stem}{OUTPUT_SUFFIX}"
            if not process_single_image(path, output_path, renderer):
                failures.append(path.name)
            progress.advance(task)

    if failures:
        logger.error(f"{len(failures)} of {len(files)} images failed: {', '.join(failures)}")
        return False
    return True


def show_banner():
    """Display application banner."""
    banner = """
[bold magenta]╔═══════════════════════════════════════╗[/]
[bold magenta]║[/]      [bold white]Duotone Pie CLI[/] [dim]- v1.0[/]       [bold magenta]║[/]
[bold magenta]║[/]  Duotone & Halftone Image Renderer   [bold magenta]║[/]
[bold magenta]╚═══════════════════════════════════════╝[/]
"""
    console.print(banner)


def show_help():
    """Display detailed help information."""
    help_text = """
[bold cyan]Duotone Pie CLI - Usage[/]

[bold]Basic Usage:[/]
  duotone-pie <config.json>          Process with JSON config
  duotone-pie --help                 Show this help
  duotone-pie --example-config       Generate example config

[bold]Options:[/]
  --verbose, -v     Enable verbose output
  --quiet, -q       Suppress all but error messages
  --log-file FILE   Write log to file

[bold]Config File Format:[/]
  JSON file specifying input, output, and rendering parameters.
  Input may be a single image or a folder of images.
  Use --example-config to generate a template.
"""
    console.print(help_text)

    console.print("  [bold]Render Modes:[/]")
    for mode in RenderMode:
        console.print(f"    • [cyan]{mode.value}[/]")

    console.print("\n  [bold]Palettes:[/]")
    for kind, colors in PALETTES.items():
        console.print(f"    • [cyan]{kind.value}[/] "
                      f"({rgb_to_hex(colors.shadow)} → {rgb_to_hex(colors.highlight)})")

    console.print("\n  [bold]Raster Styles:[/]")
    for style in RasterStyle:
        console.print(f"    • [cyan]{style.value}[/]")
    console.print()


def generate_example_config():
    """Generate and print an example configuration file."""
    example = {
        "_comment": "Duotone Pie CLI Configuration",
        "input": "path/to/input.jpg",
        "output": "path/to/output.png",
        "_comment_mode": "Options: continuous, raster",
        "mode": "continuous",
        "palette": {
            "kind": "optimized",
            "reversed": False,
            "_comment_custom": "Set both to hex colors to override the named palette",
            "shadow": None,
            "highlight": None
        },
        "raster": {
            "style": "rotated_joined",
            "cell_size": 8,
            "brightness": 1.3,
            "contrast": 1.0
        },
        "max_dimension": 3000,
        "workers": None
    }

    example_json = json.dumps(example, indent=4)

    console.print("\n[bold cyan]Example Configuration:[/]\n")
    console.print(Panel(example_json, title="config.json", border_style="cyan"))
    console.print("\n[dim]Save this to a .json file and modify as needed.[/]\n")


def run(config: ConfigManager) -> bool:
    """
    Execute a validated job.

    Returns:
        True if successful, False otherwise
    """
    input_path = Path(config.get("input"))
    output_path = Path(config.get("output"))

    mode = detect_mode(input_path)
    logger.info(f"Auto-detected mode: [cyan]{mode}[/]")
    logger.info(f"Input:  [cyan]{input_path}[/]")
    logger.info(f"Output: [cyan]{output_path}[/]")

    settings = config.build_settings()
    settings.validate()
    describe_settings(settings)
    renderer = DuotoneRenderer(settings, num_workers=config.get("workers"))

    logger.info("")

    if mode == "folder":
        return process_folder(input_path, output_path, renderer)
    return process_single_image(input_path, output_path, renderer)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Duotone Pie CLI - Duotone & Halftone Image Renderer",
        add_help=False  # We'll handle help ourselves
    )

    parser.add_argument('config', nargs='?', help='Path to JSON configuration file')
    parser.add_argument('--help', '-h', action='store_true', help='Show help')
    parser.add_argument('--example-config', action='store_true', help='Generate example config')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--quiet', '-q', action='store_true', help='Quiet mode (errors only)')
    parser.add_argument('--log-file', type=str, help='Log to file')

    args = parser.parse_args(argv)

    # Handle special commands first (before logging setup)
    if args.help:
        show_banner()
        show_help()
        sys.exit(0)

    if args.example_config:
        show_banner()
        generate_example_config()
        sys.exit(0)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    if not args.quiet:
        show_banner()

    if not args.config:
        console.print("[bold red]Error:[/] No configuration file specified.\n")
        console.print("Usage: duotone-pie <config.json>")
        console.print("       duotone-pie --help\n")
        sys.exit(1)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(1)

    logger.info(f"Loading configuration from: [cyan]{config_path}[/]")

    try:
        config = ConfigManager(config_path)
        logger.info("[green]✓[/] Configuration validated")
        success = run(config)
    except (ConfigValidationError, DuotoneError) as e:
        logger.error(f"[bold red]{escape(str(e))}[/]")
        sys.exit(1)

    if success:
        logger.info("")
        logger.info("[bold green]✓ Processing complete![/]")
        sys.exit(0)
    else:
        logger.error("")
        logger.error("[bold red]✗ Processing failed![/]")
        sys.exit(1)


if __name__ == "__main__":
    main()
