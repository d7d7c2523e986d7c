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

"""Status subcommand."""

from __future__ import annotations

from rich.table import Table

from envyard import commands, console


def status() -> None:
    """Show recorded resources and the runtime objects backing them."""
    lines = commands.build_engine().status()
    if not lines:
        console.print("[yellow]\u2139\ufe0f  No resources recorded[/yellow]")
        return

    table = Table("Resource", "Runtime ids", "Status")
    for line in lines:
        if line.error:
            state = f"[red]{line.error}[/red]"
        elif line.ids:
            state = "[green]present[/green]"
        else:
            state = "[yellow]missing[/yellow]"
        table.add_row(line.key, ", ".join(line.ids), state)
    console.print(table)
