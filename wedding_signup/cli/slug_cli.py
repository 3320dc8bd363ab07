# wedding_signup/cli/slug_cli.py
import typer
from typing import Optional
from typing_extensions import Annotated

from ..slugs.policy import is_reserved, normalize, suggest_alternatives, validate_format
from .utils_cli import make_api_request

app = typer.Typer(
    name="slug",
    help="Check wedding slugs against the naming policy.",
    no_args_is_help=True
)


@app.command("check")
def check_slug(
    slug: Annotated[str, typer.Argument(help="Slug to check.")],
    remote: Annotated[
        bool,
        typer.Option("--remote", help="Also ask the running server whether the slug is free.")
    ] = False,
    year: Annotated[
        Optional[int],
        typer.Option("--year", help="Year used for the first suggestion (defaults to the current year).")
    ] = None
):
    """Validate a slug locally and optionally query live availability."""
    candidate = normalize(slug)
    if not validate_format(candidate):
        typer.secho(
            f"'{candidate}' is invalid: 3-50 characters, lowercase letters, numbers and hyphens only.",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)

    if is_reserved(candidate):
        typer.secho(f"'{candidate}' is reserved.", fg=typer.colors.RED)
        typer.echo(f"Suggestions: {', '.join(suggest_alternatives(candidate, year))}")
        raise typer.Exit(code=1)

    typer.secho(f"'{candidate}' passes the naming policy.", fg=typer.colors.GREEN)
    if remote:
        data = make_api_request("GET", "/api/weddings/check-slug", params_payload={"slug": candidate})
        if data and not data.get("available"):
            raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
