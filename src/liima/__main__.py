import os
from pathlib import Path
from typing import Optional

import structlog
from opentelemetry import trace
from structlog import get_logger

from .abc import ActionKind
from .discovery import has_pagination
from .merger import MergeContext, MergeError, Merger
from .readwise import PublishError
from .scraper import FetchError, ParseError, load_document
from .settings import get_settings
from .tokens import create_token_store
from .utils import setup_logging, setup_tracing

try:
    import rich_click as click
except ImportError:
    import click


logger = get_logger(__package__)
tracer = trace.get_tracer(__package__ or "__main__")

MODES = {
    "in-place": ActionKind.MERGE_IN_PLACE,
    "document": ActionKind.MERGE_TO_DOCUMENT,
    "publish": ActionKind.MERGE_PUBLISH,
}

TOKEN_PROMPT = "Enter your Readwise access token (from readwise.io/access_token)"


def prompt_token() -> Optional[str]:
    try:
        return click.prompt(TOKEN_PROMPT, default="", show_default=False, hide_input=True)
    except click.Abort:
        return None


@click.group()
@click.version_option(package_name="liima")
@click.option("--debug", is_flag=True, help="Enable debug mode.", default=bool(os.getenv("DEBUG", False)))
def cli(debug: bool):
    """
    Merge paginated Golem.de articles into a single document.
    """
    if debug:
        os.environ["DEBUG"] = "1"

    setup_logging(debug=debug)
    setup_tracing()


@cli.command()
@click.argument("url")
@click.option("--mode", type=click.Choice(list(MODES)), default="document", show_default=True,
              help="Write the pages into the original page, into a new document, or save them into Readwise.")
@click.option("--html", "html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Use a saved copy of the page instead of fetching it.")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Output file.")
@click.option("--format", "fmt", type=click.Choice(["html", "markdown"]), default="html", show_default=True,
              help="Format of the merged document.")
@click.option("--open", "open_output", is_flag=True, help="Open the result in the browser.")
@click.option("--force", is_flag=True, help="Merge even if the page has no pagination.")
@tracer.start_as_current_span("cli.merge")
def merge(url: str, mode: str, html_file: Optional[Path], output: Optional[Path], fmt: str, open_output: bool,
          force: bool):
    """
    Merge all pages of the article at URL.
    """
    action = MODES[mode]
    structlog.contextvars.bind_contextvars(action=action.value)

    try:
        context = MergeContext.create(url, get_settings(), prompt=prompt_token)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    with context.client:
        try:
            host = load_document(html_file, url) if html_file else context.client.load(url)
        except (FetchError, ParseError, OSError) as e:
            raise click.ClickException(str(e)) from e

        if not force and not has_pagination(host.tree, host.url, context.outlet):
            click.echo("The article has only one page, nothing to merge. Use --force to merge anyway.")
            return

        try:
            result = Merger(context).run(action, host, output=output, fmt=fmt)
        except (MergeError, PublishError) as e:
            raise click.ClickException(str(e)) from e

    click.echo(result.message)
    if result.output:
        click.echo(f"Saved to {result.output}")
        if open_output:
            click.launch(str(result.output.resolve()))
    if result.remote_id:
        click.echo(f"Successfully saved to Readwise! Document ID: {result.remote_id}")


@cli.group()
def token():
    """
    Manage the stored Readwise access token.
    """
    structlog.contextvars.bind_contextvars(action=ActionKind.OPEN_SETTINGS.value)


@token.command()
def status():
    """
    Show whether a token is stored.
    """
    store = create_token_store(get_settings())
    if store.get():
        click.echo("Readwise token is set.")
    else:
        click.echo("Readwise token is not set.")


@token.command("set")
@click.option("--token", "value", prompt=TOKEN_PROMPT, hide_input=True, help="Readwise access token.")
def set_token(value: str):
    """
    Store a new token.
    """
    store = create_token_store(get_settings())
    if not store.set(value):
        raise click.ClickException("Token could not be saved.")
    click.echo("Token saved.")


@token.command()
@click.confirmation_option(prompt="Are you sure you want to clear the stored Readwise token?")
def clear():
    """
    Remove the stored token.
    """
    store = create_token_store(get_settings())
    if not store.delete():
        raise click.ClickException("Token could not be cleared.")
    click.echo("Token cleared.")


if __name__ == "__main__":

    with tracer.start_as_current_span("main") as span:
        cli()
