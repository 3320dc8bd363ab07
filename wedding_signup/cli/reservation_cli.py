# wedding_signup/cli/reservation_cli.py
import typer
from typing_extensions import Annotated

from .utils_cli import make_api_request

app = typer.Typer(
    name="reservation",
    help="Inspect and expire pending slug reservations via Admin API.",
    no_args_is_help=True
)


@app.command("list")
def list_reservations(
    skip: Annotated[
        int,
        typer.Option("--skip", help="Number of reservations to skip.", min=0)
    ] = 0,
    limit: Annotated[
        int,
        typer.Option("--limit", help="Maximum number of reservations to return.", min=1, max=100)
    ] = 100
):
    """List pending reservations, newest first."""
    params = {"skip": skip, "limit": limit}
    make_api_request("GET", "/admin/reservations/", params_payload=params)


@app.command("expire-stale")
def expire_stale():
    """Expire reservations past their TTL and free their slugs now."""
    data = make_api_request("POST", "/admin/reservations/expire-stale")
    if data is not None:
        typer.secho(f"Expired {data.get('expired_count', 0)} reservation(s).", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
