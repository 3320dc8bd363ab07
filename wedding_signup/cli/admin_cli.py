# wedding_signup/cli/admin_cli.py
import typer
from . import reservation_cli
from . import wedding_cli

app = typer.Typer(
    name="admin",
    help="Wedding Signup Administrative Commands.",
    no_args_is_help=True
)

app.add_typer(reservation_cli.app, name="reservation")
app.add_typer(wedding_cli.app, name="wedding")


@app.callback()
def admin_callback():
    """
    Admin commands talk to a running server through the admin API
    and need ADMIN_API_KEY in the .env file.
    """
    pass


if __name__ == "__main__":
    app()
