import click
from flask.cli import with_appcontext

from .bulk_import import import_athletes, import_people, read_rows
from .models import ATHLETES, PEOPLE
from .stores import build_stores


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the documents table if it does not exist."""
    from .datastore import ensure_schema

    ensure_schema()
    click.echo("Document schema ready")


def _echo_report(report):
    if report.message:
        click.echo(report.message)
    for line in report.errors:
        click.echo(f"  - {line}")


@click.command('import-people')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_people_command(path):
    """Create people from a spreadsheet, skipping incomplete rows.

    Usage: flask --app roster import-people people.xlsx
    """
    store = build_stores().mounted(PEOPLE)
    report = import_people(store, read_rows(path, path))
    _echo_report(report)
    if report.failed:
        raise SystemExit(1)


@click.command('import-athletes')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_athletes_command(path):
    """Create athletes from a spreadsheet; nothing is created if any row fails to match.

    Usage: flask --app roster import-athletes athletes.xlsx
    """
    store = build_stores().mounted(ATHLETES)
    report = import_athletes(store, read_rows(path, path))
    _echo_report(report)
    if report.failed:
        raise SystemExit(1)


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(import_people_command)
    app.cli.add_command(import_athletes_command)
