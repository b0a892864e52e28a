import logging
from pathlib import Path

# Try rich_click for better CLI experience
# but fallback to click if not available
try:
    import rich_click as click
except ImportError:
    import click

from pydantic_yaml import to_yaml_str

from .settings import DEFAULT_CONFIG_PATH, Settings, settings_var

logger = logging.getLogger(__name__)


@click.group()
@click.pass_context
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode.",
)
def cli(ctx: click.Context, debug: bool):
    """
    CLI for managing settings.
    """
    settings = Settings()

    if ctx.invoked_subcommand is None:
        # If no subcommand is provided, show the help message
        click.echo("No subcommand provided.")
        click.echo(ctx.get_help())
        ctx.exit()

    if debug:
        settings.DEBUG = True
    logger.setLevel(logging.DEBUG if settings.DEBUG else settings.LOGGING_LEVEL)

    settings_var.set(settings)


@cli.command()
def show():
    """
    Show the currently effective settings.
    """
    settings = settings_var.get()
    click.echo(settings.model_dump_json(indent=2))


@cli.command()
@click.argument("filename", type=click.Path(path_type=Path, exists=False, dir_okay=False, writable=True), default=DEFAULT_CONFIG_PATH)
def generate(filename: Path):
    """
    Generate the settings file <FILENAME>.

    By default, it will be created either in the user config directory or in the file defined by the
    $LIIMA_CONFIG_FILE environment variable.
    """
    settings = settings_var.get()

    filename.parent.mkdir(parents=True, exist_ok=True)

    # Cookies may hold a subscription session, keep them out of generated files
    yaml = to_yaml_str(settings.model_copy(update={"COOKIES": {}}))

    with filename.open("w", encoding="utf-8") as f:
        f.write(yaml)
    click.echo(f"Settings file generated at {filename}")


if __name__ == "__main__":
    cli()
