from pathlib import Path
from typing import List, Optional

import structlog
import typer
from pydantic import ValidationError

from mrp.engine.describe import DescriptionCache, describe_ability, describe_all
from mrp.engine.loader import load_content
from mrp.engine.merge import slash_merge_with_details
from mrp.engine.models import AbilityMetadata
from mrp.engine.schema_models import ClauseListAdapter
from mrp.engine.settings import load_settings
from mrp.tools.export_schemas import export_schemas as write_schemas
from mrp.util.logging_utils import level_from_name, setup_logging

app = typer.Typer()
log = structlog.get_logger()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output")):
    settings = load_settings()
    setup_logging(level_from_name("debug" if verbose else settings.log_level))


@app.command()
def describe(
    text: str,
    name: str = "(ability)",
    school: str = "?",
    element: Optional[List[str]] = typer.Option(None, "--element", "-e"),
    skill_type: str = "?",
    rarity: Optional[int] = None,
    sb_points: Optional[int] = None,
    abbreviate: bool = False,
    content: Optional[Path] = typer.Option(None, help="Content file or directory for statuses and related abilities"),
    show_clauses: bool = typer.Option(False, "--json", help="Also print the normalized clauses"),
    show_trace: bool = typer.Option(False, "--trace", help="Print the diagnostic trail"),
):
    settings = load_settings()
    try:
        ability = AbilityMetadata(
            id=0, name=name, effects=text, school=school, type=skill_type,
            element=element or [], rarity=rarity, sb_points=sb_points,
        )
    except ValidationError as e:
        typer.echo(f"Invalid ability metadata: {e.errors()[0]['msg']}", err=True)
        raise typer.Exit(code=2)

    index = load_content(content) if content else None
    options = settings.render_options().model_copy(update={"abbreviate": abbreviate or settings.abbreviate})
    result = describe_ability(
        ability, options,
        related=index.abilities_by_name if index else None,
        status_table=index.status_table if index else None,
    )
    typer.echo(result.notation)
    if result.is_uncertain:
        typer.echo("(uncertain)")
    if show_clauses:
        typer.echo(ClauseListAdapter.dump_json(result.clauses, indent=2, by_alias=True).decode("utf-8"))
    if show_trace:
        for line in result.trail:
            typer.echo(line)


@app.command()
def batch(path: Path, workers: int = 1):
    settings = load_settings()
    index = load_content(path)
    cache = DescriptionCache(settings.cache_max_entries)
    results = describe_all(
        index.abilities.values(), settings.render_options(),
        related=index.abilities_by_name, cache=cache, status_table=index.status_table, workers=workers,
    )
    failed = 0
    for aid, description in sorted(results.items()):
        typer.echo(f"{index.get_ability(aid).name}: {description.notation}")
        if description.parse.failed:
            failed += 1
            log.warning("Ability could not be parsed", ability_id=aid)
    typer.echo(f"{len(results)} abilities, {failed} unparsed")


@app.command()
def merge(options: List[str]):
    result = slash_merge_with_details(options)
    typer.echo(result.result)
    typer.echo(f"fallback: {str(result.merge_failed).lower()}")


@app.command("export-schemas")
def export_schemas(out_dir: Path):
    for path in write_schemas(out_dir):
        typer.echo(f"Wrote {path}")


if __name__ == "__main__":
    app()
