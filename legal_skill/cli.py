from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from legal_skill.api.service import describe_config, run_task
from legal_skill.domain.exceptions import BusinessError

console = Console()
err_console = Console(stderr=True)


def _progress(text: str) -> None:
    err_console.print(text, style="dim", markup=False, highlight=False)


def _require_file(path: str) -> str:
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        err_console.print(f"[red]File not found:[/red] {resolved}")
        sys.exit(1)
    return str(resolved)


def _emit(result: dict, raw: bool) -> None:
    analysis = result.get("analysis") or ""
    if raw:
        click.echo(analysis)
    else:
        console.print(Markdown(analysis))


def _run(task: str, raw: bool, **kwargs) -> None:
    try:
        result = run_task(task, on_text=_progress, **kwargs)
    except BusinessError as exc:
        err_console.print(f"[red]{exc.code}:[/red] {exc.message}")
        sys.exit(1)
    _emit(result, raw)


model_option = click.option("--model", "-m", default=None, help="Model name (overrides AI_MODEL).")
original_language_option = click.option(
    "--original-language",
    is_flag=True,
    help="Answer in the language of the document.",
)
raw_option = click.option("--raw", is_flag=True, help="Print plain markdown instead of rendering it.")


@click.group()
def main() -> None:
    """legal-skill: contract review, NDA triage and legal briefs."""


@main.command("review")
@click.argument("file")
@click.option("--side", type=click.Choice(["vendor", "customer"]), default=None, help="Which side we are on.")
@click.option("--focus", default=None, help="Comma-separated focus areas, e.g. 'liability,termination'.")
@model_option
@original_language_option
@raw_option
def cmd_review(file: str, side: str | None, focus: str | None, model: str | None,
               original_language: bool, raw: bool) -> None:
    """Review a contract against the playbook."""
    focus_areas = [f.strip() for f in focus.split(",")] if focus else None
    _run(
        "review",
        raw,
        document_path=_require_file(file),
        side=side,
        focus_areas=focus_areas,
        model=model,
        reply_in_original_language=original_language,
    )


@main.command("triage")
@click.argument("file")
@model_option
@original_language_option
@raw_option
def cmd_triage(file: str, model: str | None, original_language: bool, raw: bool) -> None:
    """Triage an NDA (GREEN / YELLOW / RED)."""
    _run(
        "triage",
        raw,
        document_path=_require_file(file),
        model=model,
        reply_in_original_language=original_language,
    )


@main.command("brief")
@click.argument("kind", type=click.Choice(["topic", "incident"]))
@click.argument("query", nargs=-1, required=True)
@model_option
@original_language_option
@raw_option
def cmd_brief(kind: str, query: tuple[str, ...], model: str | None, original_language: bool, raw: bool) -> None:
    """Generate a topic or incident brief."""
    _run(
        "brief",
        raw,
        brief_type=kind,
        query=" ".join(query),
        model=model,
        reply_in_original_language=original_language,
    )


@main.command("config")
def cmd_config() -> None:
    """Show the active provider configuration."""
    table = Table(show_header=False)
    for key, value in describe_config().items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


if __name__ == "__main__":
    main()
