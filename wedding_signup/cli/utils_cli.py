# wedding_signup/cli/utils_cli.py
import requests
import typer
import json
from typing import Optional, Dict, Any, Union, List

from . import config


def _error_detail(response: requests.Response) -> str:
    try:
        err_data = response.json()
    except json.JSONDecodeError:
        return f"Raw response: {response.text}"
    if isinstance(err_data, dict):
        # Signup endpoints answer with error/message, admin endpoints with detail
        if "error" in err_data:
            return f"Error: {err_data['error']} ({err_data.get('message', '')})"
        return f"Detail: {err_data.get('detail', response.text)}"
    return f"Detail: {err_data}"


def make_api_request(
    method: str,
    endpoint: str,
    json_payload: Optional[Dict[str, Any]] = None,
    params_payload: Optional[Dict[str, Any]] = None,
    expected_status: Union[int, List[int]] = 200,
    expect_json_response: bool = True
) -> Any:
    """
    Makes an HTTP request against the running signup API and echoes the
    exchange to the console.

    Sends the admin API key when one is configured. Any unexpected status
    or transport failure ends the command with exit code 1.
    """
    full_url = f"{config.WEDDING_SIGNUP_CLI_API_BASE_URL}{endpoint}"
    headers: Dict[str, str] = {}

    if config.WEDDING_SIGNUP_CLI_ADMIN_API_KEY:
        headers["X-Admin-API-Key"] = config.WEDDING_SIGNUP_CLI_ADMIN_API_KEY
    elif "/admin/" in endpoint:
        typer.secho(
            "CLI: Warning - ADMIN_API_KEY not set in .env for CLI. Admin API calls might fail.",
            fg=typer.colors.YELLOW
        )

    typer.echo(f"CLI: {method.upper()} {full_url}")
    if json_payload:
        typer.echo(f"CLI: JSON Payload: {json.dumps(json_payload, indent=2)}")
    if params_payload:
        typer.echo(f"CLI: Query Params: {params_payload}")
    if headers:
        log_headers = headers.copy()
        if "X-Admin-API-Key" in log_headers:
            log_headers["X-Admin-API-Key"] = "*******"
        typer.echo(f"CLI: Headers: {log_headers}")

    try:
        response = requests.request(
            method,
            full_url,
            json=json_payload,
            params=params_payload,
            headers=headers,
            timeout=30
        )
    except requests.exceptions.ConnectionError as e:
        typer.secho(
            f"CLI: Connection Error - Could not connect to API at {full_url}. Is the server running? Error: {e}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    except requests.exceptions.RequestException as e:
        typer.secho(f"CLI: Request Error - {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"CLI: Response Status: {response.status_code}")

    expected_statuses = [expected_status] if isinstance(expected_status, int) else expected_status
    if response.status_code not in expected_statuses:
        typer.secho(
            f"CLI: API Error - Expected status {expected_status}, got {response.status_code}. "
            f"{_error_detail(response)}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)

    if not response.content and response.status_code == 204:
        typer.secho(f"CLI: Success (Status {response.status_code}, No Content).", fg=typer.colors.GREEN)
        return None

    if not expect_json_response:
        typer.secho(
            f"CLI: Success (Status {response.status_code}). Raw text: {response.text[:200]}...",
            fg=typer.colors.GREEN
        )
        return response.text

    try:
        data = response.json()
    except json.JSONDecodeError:
        typer.secho(
            f"CLI: Error - Could not decode JSON response. Raw text: {response.text}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    typer.echo(typer.style("CLI: Response JSON:", fg=typer.colors.CYAN))
    typer.echo(json.dumps(data, indent=2))
    return data
