from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer

from plugin_wiki.site_config import SiteConfig, SiteConfigError, load_site_config

app = typer.Typer(add_completion=False)


def _load_config(config: Path | None) -> SiteConfig:
    try:
        return load_site_config(config)
    except SiteConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def version() -> None:
    """Print version."""
    from plugin_wiki import __version__

    typer.echo(__version__)


@app.command()
def render(
    source: Annotated[
        Path | None,
        typer.Argument(
            dir_okay=False,
            help="Wiki markup file to render (default: read stdin).",
        ),
    ] = None,
    *,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", dir_okay=False, help="Write to this file instead of stdout."),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: html or json."),
    ] = "html",
    expand_all: Annotated[
        bool,
        typer.Option(help="Render every dropdown expanded."),
    ] = False,
    max_depth: Annotated[int, typer.Option(min=1, help="Maximum dropdown nesting depth.")] = 64,
) -> None:
    """Render wiki markup to HTML or a JSON block tree."""
    from plugin_wiki.entrypoints.render import OutputFormat, run_render

    try:
        resolved_format = OutputFormat(output_format.strip().lower())
    except ValueError as exc:
        typer.echo(f"Error: unsupported format {output_format!r}; use html or json.", err=True)
        raise typer.Exit(code=1) from exc

    run_render(
        source=source,
        output=output,
        output_format=resolved_format,
        expand_all=expand_all,
        max_depth=max_depth,
    )


@app.command()
def seed(
    *,
    data_dir: Annotated[
        Path | None,
        typer.Option(file_okay=False, help="Wiki data directory (default: from config)."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(dir_okay=False, help="Config YAML (default: PLUGIN_WIKI_CONFIG or ~/.config)."),
    ] = None,
) -> None:
    """Fill empty collections with the default pages, categories and announcement."""
    from plugin_wiki.wiki_store import WikiStore

    site_config = _load_config(config)
    store = WikiStore(data_dir if data_dir is not None else site_config.data_dir)
    seeded = store.seed_initial_data()
    typer.echo(
        f"Seeded {seeded['pages']} pages, {seeded['categories']} categories, "
        f"{seeded['announcements']} announcements in {store.layout.root}",
    )


@app.command()
def pages(
    *,
    data_dir: Annotated[
        Path | None,
        typer.Option(file_okay=False, help="Wiki data directory (default: from config)."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(dir_okay=False, help="Config YAML (default: PLUGIN_WIKI_CONFIG or ~/.config)."),
    ] = None,
) -> None:
    """List wiki pages in display order."""
    from plugin_wiki.wiki_store import WikiStore, WikiStoreError

    site_config = _load_config(config)
    store = WikiStore(data_dir if data_dir is not None else site_config.data_dir)
    try:
        listed = store.list_pages()
    except WikiStoreError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not listed:
        typer.echo(f"No pages found under {store.layout.pages_dir}")
        return
    for page in listed:
        category = page.category or "-"
        typer.echo(f"{page.order:>3}  {page.id:<24} {category:<16} {page.title}")


@app.command()
def serve(
    *,
    data_dir: Annotated[
        Path | None,
        typer.Option(file_okay=False, help="Wiki data directory (default: from config)."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(dir_okay=False, help="Config YAML (default: PLUGIN_WIKI_CONFIG or ~/.config)."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(min=0, max=65535, help="Port to bind (0 picks a free port)."),
    ] = None,
    no_browser: Annotated[
        bool,
        typer.Option("--no-browser", help="Do not open the site in a browser."),
    ] = False,
    seed_data: Annotated[
        bool,
        typer.Option("--seed/--no-seed", help="Seed default content into an empty data directory."),
    ] = True,
) -> None:
    """Serve the landing page, wiki browser and admin API."""
    from plugin_wiki.entrypoints.wiki_web import run_wiki_server

    site_config = _load_config(config)
    if port is not None:
        site_config = replace(site_config, port=port)
    if no_browser:
        site_config = replace(site_config, open_browser=False)

    run_wiki_server(config=site_config, data_dir=data_dir, seed=seed_data)


def main() -> None:
    app()
