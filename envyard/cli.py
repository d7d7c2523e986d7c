# /*
# Copyright 2026 The Envyard Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""
cli.py - Command line interface for envyard environments.

Subcommands:
    apply      Create the resources of a blueprint
    destroy    Tear down the recorded resources
    status     Show recorded resources and what backs them
    check      Functional checks (running, http)

Examples:
    # Bring up an environment
    envyard apply ./blueprint

    # Verify an ingress answers
    envyard check http http://localhost:8080 --status 200

    # Tear everything down, including partially created resources
    envyard destroy ./blueprint

Settings are read from ENVYARD_* environment variables, e.g.
ENVYARD_STATE_DIR or ENVYARD_MAX_WORKERS.
"""

from __future__ import annotations

import logging
import sys

import typer

from envyard import console
from envyard.commands import apply_cmd, check_cmd, destroy_cmd, status_cmd

app = typer.Typer(
    help="Provision ephemeral multi-resource test environments.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.command("apply")(apply_cmd.apply)
app.command("destroy")(destroy_cmd.destroy)
app.command("status")(status_cmd.status)
app.add_typer(check_cmd.app, name="check")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
