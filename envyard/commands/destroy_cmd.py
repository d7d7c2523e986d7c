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

"""Destroy subcommand."""

from __future__ import annotations

from pathlib import Path

import typer

from envyard import commands, console
from envyard.errors import EnvyardError


def destroy(
    blueprint: Path | None = typer.Argument(
        None, help="Blueprint whose unrecorded resources are cleaned up as well"),
) -> None:
    """Tear down every resource recorded in the run state."""
    engine = commands.build_engine()
    try:
        report = engine.destroy(blueprint)
    except EnvyardError as err:
        console.print(f"[red]\u274c {err}[/red]")
        raise typer.Exit(code=1) from err

    for key in report.skipped:
        console.print(f"[yellow]  - {key} skipped[/yellow]")
    if not report.ok:
        console.print(f"[red]\u274c Destroy failed: {len(report.failed)} failed, {len(report.skipped)} skipped[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]\u2705 {len(report.destroyed)} resources destroyed[/green]")
