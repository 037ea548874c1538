import json
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from otterir.config import get_config
from otterir.diagnostics import Diagnostic, Severity
from otterir.exceptions import OtterIRError
from otterir.generator import Generator
from otterir.loader import SchemaLoader
from otterir.model.types import describe

console = Console()
app = typer.Typer(
    name='otterir',
    help='Lower OpenAPI documents into a language-agnostic typed model',
    no_args_is_help=True,
)


def _diagnostics_table(diagnostics: list[Diagnostic]) -> Table:
    table = Table(title='Diagnostics')
    table.add_column('Severity')
    table.add_column('Kind')
    table.add_column('Location', overflow='fold')
    table.add_column('Message', overflow='fold')
    for d in diagnostics:
        color = 'red' if d.severity is Severity.ERROR else 'yellow'
        table.add_row(
            f'[{color}]{d.severity.value}[/{color}]', d.kind.value, d.location, d.message
        )
    return table


@app.command()
def analyze(
    source: Annotated[str, typer.Argument(help='Path or URL of the OpenAPI document')],
    config: Annotated[
        str | None,
        typer.Option(
            '--config', '-c', help='Path to configuration file (YAML or JSON)'
        ),
    ] = None,
    strict: Annotated[
        bool, typer.Option('--strict', help='Treat unsupported constructs as errors')
    ] = False,
    as_json: Annotated[
        bool, typer.Option('--json', help='Print the result as JSON')
    ] = False,
    verbose: Annotated[
        bool, typer.Option('--verbose', '-v', help='Enable debug logging')
    ] = False,
) -> None:
    """Resolve, transform and map an OpenAPI document and report the result.

    Examples:
        otterir analyze ./openapi.yaml
        otterir analyze https://example.com/openapi.json --strict
        otterir analyze api.json --json
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.ERROR)

    try:
        settings = get_config(config)
        if strict:
            settings = settings.model_copy(update={'strict_mode': True})
        document = SchemaLoader().load(source)
        result = Generator(settings).generate(document)
    except OtterIRError as e:
        if as_json:
            diagnostics = e.diagnostics or [e.to_diagnostic()]
            payload = {
                'error': e.message,
                'diagnostics': [d.to_dict() for d in diagnostics],
            }
            typer.echo(json.dumps(payload, indent=2))
        else:
            console.print(f'[red]Error:[/red] {e.message}')
            if e.diagnostics:
                console.print(_diagnostics_table(e.diagnostics))
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    if result.diagnostics:
        console.print(_diagnostics_table(result.diagnostics))

    table = Table(title='Types')
    table.add_column('Schema')
    table.add_column('Type', overflow='fold')
    for schema_id, expr in result.named_types.items():
        table.add_row(schema_id, describe(expr))
    console.print(table)
    console.print(
        f'[green]Mapped {len(result.named_types)} named types[/green] '
        f'({len(result.types)} schemas, {len(result.warnings)} warnings)'
    )


@app.command()
def version() -> None:
    """Show the version of otterir."""
    from otterir import __version__

    console.print(f'otterir version: {__version__}')


if __name__ == '__main__':
    app()
