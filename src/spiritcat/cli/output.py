"""Helpers shared by CLI commands for writing results to stdout."""

import json
from typing import Any

import typer


def emit_json(payload: Any) -> None:
    """Write ``payload`` to stdout as indented JSON.

    Dates, decimals and other non-JSON scalars are rendered with ``str``.
    """
    typer.echo(json.dumps(payload, indent=2, default=str))
