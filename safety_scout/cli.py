"""Command-line interface for Safety Scout.

Ask about the safety of a place or situation, optionally with a photo and
coordinates, and get a scored, source-backed assessment. A separate chat mode
gives calm emergency advice.

Built with Click for commands and Rich for terminal output.

Usage:
    safety-scout config set-key
    safety-scout analyze -t "Is this street safe at night?" --lat 40.7128 --lng -74.006
    safety-scout analyze -i ./crossing.jpg -o ./reports/crossing --format both
    safety-scout chat
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from safety_scout import __version__
from safety_scout.ai import (
    AIClientError,
    AnalysisError,
    ChatSession,
    SafetyAnalyzer,
    get_client,
)
from safety_scout.config import (
    AppConfig,
    ConfigurationError,
    KeyStorageBackend,
    configure_api_key,
    get_config,
    get_key_manager,
)
from safety_scout.models import AnalysisRequest, Coordinates, ImagePayload
from safety_scout.report import (
    ReportFormat,
    export_analysis,
    render_analysis,
    render_chat_message,
)
from safety_scout.utils.logging import setup_logging

logger = logging.getLogger(__name__)

console = Console()

EXIT_COMMANDS = ("exit", "quit")


# =============================================================================
# Helper Functions
# =============================================================================


def print_header(text: str) -> None:
    """Print a styled header.

    Args:
        text: Header text.
    """
    console.print()
    console.print(Panel(text, style="bold blue", expand=False))
    console.print()


def print_success(text: str) -> None:
    console.print(f"[green]✓[/green] {text}")


def print_warning(text: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {text}")


def print_error(text: str) -> None:
    console.print(f"[red]✗[/red] {text}")


def print_info(text: str) -> None:
    console.print(f"[blue]ℹ[/blue] {text}")


def print_key_hint() -> None:
    """Tell the user how to configure a key."""
    console.print("  Run: [bold]safety-scout config set-key[/bold]")


def load_config(ctx: click.Context) -> AppConfig:
    """Load the configuration chosen by the group's --config option."""
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    return get_config(Path(config_path) if config_path else None)


def build_request(
    text: str | None,
    image: Path | None,
    lat: float | None,
    lng: float | None,
) -> AnalysisRequest:
    """Assemble an AnalysisRequest from command-line values.

    Raises:
        click.BadParameter: If only one coordinate is given or a value is invalid.
    """
    if (lat is None) != (lng is None):
        raise click.BadParameter("--lat and --lng must be given together")

    location = None
    if lat is not None and lng is not None:
        try:
            location = Coordinates(latitude=lat, longitude=lng)
        except ValueError as e:
            raise click.BadParameter(f"Invalid coordinates: {e}")

    payload = None
    if image is not None:
        try:
            payload = ImagePayload.from_path(image)
        except (OSError, ValueError) as e:
            raise click.BadParameter(f"Could not read image {image}: {e}")

    return AnalysisRequest(text=text or "", image=payload, location=location)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="Safety Scout")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write log records to this file",
)
@click.pass_context
def cli(
    ctx: click.Context, verbose: bool, config: str | None, log_file: Path | None
) -> None:
    """Safety Scout - situational safety advice backed by live search.

    Quick start:
        safety-scout config set-key
        safety-scout analyze -t "Is this park safe after dark?"

    For more information on a command:
        safety-scout COMMAND --help
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config

    level = "DEBUG" if verbose else load_config(ctx).log_level
    setup_logging(level=level, log_file=log_file)


# =============================================================================
# Analyze Command
# =============================================================================


@cli.command()
@click.option("--text", "-t", default="", help="Question or description of the situation")
@click.option(
    "--image",
    "-i",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Photo of the surroundings",
)
@click.option("--lat", type=float, default=None, help="Latitude of your position")
@click.option("--lng", type=float, default=None, help="Longitude of your position")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Export the result to this path (extension is replaced)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["html", "json", "both"]),
    default="html",
    help="Export format when --output is given",
)
@click.pass_context
def analyze(
    ctx: click.Context,
    text: str,
    image: Path | None,
    lat: float | None,
    lng: float | None,
    output: Path | None,
    output_format: str,
) -> None:
    """Assess the safety of a place or situation.

    Give at least one of a question, a photo or a location. The reply is
    grounded in live search results and scored from 0 (dangerous) to 100
    (safe).

    Example:
        safety-scout analyze -t "Walking home through the station" --lat 51.5 --lng -0.12
    """
    request = build_request(text, image, lat, lng)

    if request.is_empty:
        print_error("Nothing to analyze. Provide --text, --image or --lat/--lng.")
        ctx.exit(1)

    app_config = load_config(ctx)

    try:
        client = get_client(config=app_config)
    except AIClientError as e:
        print_error(str(e))
        print_key_hint()
        ctx.exit(1)

    if request.location:
        print_info(f"Location: {request.location.format_short()}")

    try:
        with console.status("[bold cyan]Scouting the area..."):
            result = SafetyAnalyzer(client=client).analyze(request)
    except AnalysisError:
        print_error("Analysis failed. Please try again.")
        ctx.exit(1)

    console.print()
    render_analysis(result, console)

    if output:
        console.print()
        for path in export_analysis(result, output, ReportFormat(output_format)):
            print_success(f"Saved {path}")


# =============================================================================
# Chat Command
# =============================================================================


@cli.command()
@click.pass_context
def chat(ctx: click.Context) -> None:
    """Talk to the emergency advisor.

    Type 'exit' or 'quit' to leave. In a life-threatening emergency, call
    local emergency services first.
    """
    app_config = load_config(ctx)

    try:
        session = ChatSession.create(client=get_client(config=app_config))
    except AIClientError as e:
        print_error(str(e))
        print_key_hint()
        ctx.exit(1)

    print_header("🛟 Safety Scout Emergency Chat")
    for message in session.transcript:
        render_chat_message(message, console)

    while True:
        try:
            text = Prompt.ask("[bold blue]You[/bold blue]", console=console)
        except EOFError:
            console.print()
            break

        if text.strip().lower() in EXIT_COMMANDS:
            break

        with console.status("[bold cyan]Thinking..."):
            reply = session.send(text)

        if reply is None:
            continue

        render_chat_message(session.transcript[-1], console)

    print_info("Stay safe.")


# =============================================================================
# Config Command Group
# =============================================================================


@cli.group()
def config() -> None:
    """Manage configuration and API keys."""
    pass


@config.command("set-key")
@click.option(
    "--backend",
    type=click.Choice([b.value for b in KeyStorageBackend]),
    default=None,
    help="Where to store the key (defaults to the configured backend)",
)
@click.pass_context
def config_set_key(ctx: click.Context, backend: str | None) -> None:
    """Store your Gemini API key.

    The key is stored according to the chosen backend:
    - env: environment variable for this process (export GEMINI_API_KEY yourself)
    - keyring: system credential store
    - encrypted_file: Fernet-encrypted file next to the config

    Get your API key at: https://aistudio.google.com/app/apikey
    """
    print_header("🔑 Configure Gemini API Key")

    config_path = ctx.obj.get("config_path") if ctx.obj else None
    config_path = Path(config_path) if config_path else AppConfig.get_default_config_path()
    app_config = get_config(config_path)
    chosen = KeyStorageBackend(backend) if backend else app_config.key_storage_backend

    api_key = click.prompt(
        "Enter your Gemini API key", hide_input=True, default="", show_default=False
    )
    if not api_key:
        print_error("No API key provided.")
        ctx.exit(1)

    try:
        configure_api_key(api_key, chosen, config_path)
    except ConfigurationError as e:
        print_error(f"Failed to store API key: {e}")
        ctx.exit(1)

    print_success("API key stored.")
    console.print(f"  Storage: {chosen.value}")
    if chosen == KeyStorageBackend.ENV:
        print_warning("The env backend lasts for this process only.")
        console.print("  Export GEMINI_API_KEY in your shell profile to keep it.")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration (the API key is never shown)."""
    print_header("⚙️ Current Configuration")

    app_config = load_config(ctx)

    table = Table(show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("AI Model", app_config.ai.model_name)
    table.add_row("Temperature", str(app_config.ai.temperature))
    table.add_row("Max Tokens", str(app_config.ai.max_tokens))
    table.add_row("Search Grounding", str(app_config.ai.use_search))
    table.add_row("Key Storage", app_config.key_storage_backend.value)
    table.add_row("Log Level", app_config.log_level)

    console.print(table)
    console.print()

    try:
        manager = get_key_manager(app_config)
    except ConfigurationError:
        manager = None

    if manager is not None and manager.is_key_configured():
        print_success(f"API key is configured ✓ (from {manager.key_source()})")
    else:
        print_warning("API key not configured")
        print_key_hint()


@config.command("test")
@click.pass_context
def config_test(ctx: click.Context) -> None:
    """Check the stored API key with one minimal model call."""
    print_header("🧪 Testing API Key")

    try:
        client = get_client(config=load_config(ctx))
    except AIClientError as e:
        print_error(str(e))
        print_key_hint()
        ctx.exit(1)

    with console.status("[bold cyan]Making test API call..."):
        ok, message = client.test_connection()

    if ok:
        print_success(message)
    else:
        print_error(f"API check failed: {message}")
        ctx.exit(1)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print()
        print_info("Interrupted.")
        sys.exit(130)
    except Exception as e:
        error_msg = str(e).replace("[", "\\[").replace("]", "\\]")
        print_error(f"Unexpected error: {error_msg}")
        logger.exception("Unexpected error")
        sys.exit(1)


if __name__ == "__main__":
    main()
