from __future__ import annotations

import json
import sys
from enum import StrEnum
from pathlib import Path

import typer

from plugin_wiki.block_scanner import DEFAULT_MAX_DEPTH, render
from plugin_wiki.domain.render_tree import Dropdown, RenderTree, ViewState, tree_to_json
from plugin_wiki.markup_html import render_html


class OutputFormat(StrEnum):
    html = "html"
    json = "json"


def run_render(
    *,
    source: Path | None,
    output: Path | None,
    output_format: OutputFormat,
    expand_all: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    if source is None:
        document = sys.stdin.read()
    else:
        try:
            document = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            typer.echo(f"Error: cannot read {source}: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    view = ViewState()
    if expand_all:
        view = ViewState(expanded=frozenset(_dropdown_ids(render(document, max_depth=max_depth))))
    tree = render(document, view=view, max_depth=max_depth)

    if output_format is OutputFormat.json:
        rendered = json.dumps(tree_to_json(tree), indent=2, ensure_ascii=False) + "\n"
    else:
        rendered = render_html(tree)

    if output is None:
        typer.echo(rendered, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    typer.echo(f"Wrote {output}", err=True)


def _dropdown_ids(tree: RenderTree) -> list[str]:
    ids: list[str] = []
    for block in tree:
        if isinstance(block, Dropdown):
            ids.append(block.dropdown_id)
            ids.extend(_dropdown_ids(block.children))
    return ids
