# wedding_signup/cli/main_cli.py
import typer
from . import admin_cli
from . import slug_cli

app = typer.Typer(
    name="wedding-signup",
    help="Operate the wedding signup service: inspect reservations, look up weddings, check slugs.",
    no_args_is_help=True
)

# Server-backed commands need ADMIN_API_KEY; 'slug check' works offline
app.add_typer(admin_cli.app, name="admin")
app.add_typer(slug_cli.app, name="slug")


@app.callback()
def main_callback():
    """
    Wedding signup operator CLI.

    Run 'wedding-signup admin --help' for server-side commands and
    'wedding-signup slug --help' for local slug checks.
    """


def cli_entry_point():
    """Console script target declared in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
