# wedding_signup/cli/wedding_cli.py
import typer
from typing_extensions import Annotated

from .utils_cli import make_api_request

app = typer.Typer(
    name="wedding",
    help="Look up provisioned weddings via Admin API.",
    no_args_is_help=True
)


@app.command("get")
def get_wedding(
    slug: Annotated[
        str,
        typer.Argument(help="The slug of the wedding to retrieve.")
    ]
):
    """Get details for a provisioned wedding."""
    make_api_request("GET", f"/admin/weddings/{slug}")


if __name__ == "__main__":
    app()
