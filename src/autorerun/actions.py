import os
from typing import Mapping

import typer


def _escape(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def set_output(name: str, value: str) -> None:
    path = os.environ.get("GITHUB_OUTPUT")
    if not path:
        typer.echo(f"{name}={value}")
        return
    with open(path, "a") as fh:
        fh.write(f"{name}={value}\n")


def set_outputs(outputs: Mapping[str, str]) -> None:
    for name, value in outputs.items():
        set_output(name, value)


def set_failed(message: str) -> None:
    typer.echo(f"::error::{_escape(message)}", err=True)
