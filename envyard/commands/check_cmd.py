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

"""Functional check subcommands (running, http)."""

from __future__ import annotations

import typer

from envyard import commands, console
from envyard.checks import wait_for_container_running, wait_for_http_status
from envyard.constants import TYPE_NETWORK
from envyard.errors import EnvyardError
from envyard.providers import PROVIDERS

app = typer.Typer(help="Check that a running environment behaves as expected.")


def _parse_targets(targets: list[str]) -> list[tuple[str, str]]:
    """Split ``type/name`` pairs, accepting the bare ``<type> <name>`` form too."""
    if len(targets) == 2 and not any("/" in target for target in targets):
        return [(targets[0], targets[1])]
    pairs = []
    for target in targets:
        resource_type, sep, name = target.partition("/")
        if not sep or not resource_type or not name:
            raise EnvyardError(f"expected <type>/<name>, got '{target}'")
        pairs.append((resource_type, name))
    return pairs


def _check_running(engine, resource_type: str, name: str) -> None:
    provider = PROVIDERS.get(resource_type)
    if provider is None:
        raise EnvyardError(f"unknown resource type '{resource_type}'")
    target = provider.runtime_name(resource_type, name)
    if resource_type == TYPE_NETWORK:
        if len(engine.clients.tasks.find_network_ids(target)) != 1:
            raise EnvyardError(f"expected 1 network called {target}")
    else:
        wait_for_container_running(engine.clients.tasks, target, engine.config.start_policy())


@app.command()
def running(
    targets: list[str] = typer.Argument(..., help="Resources as type/name pairs, or a single '<type> <name>'"),
) -> None:
    """Check that the given resources are running and have not crashed."""
    try:
        pairs = _parse_targets(targets)
    except EnvyardError as err:
        console.print(f"[red]\u274c {err}[/red]")
        raise typer.Exit(code=1) from err

    engine = commands.build_engine()
    failed = 0
    for resource_type, name in pairs:
        try:
            _check_running(engine, resource_type, name)
        except EnvyardError as err:
            failed += 1
            console.print(f"[red]\u274c {resource_type} {name}: {err}[/red]")
            continue
        console.print(f"[green]\u2705 {resource_type} {name} is running[/green]")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def http(
    url: str = typer.Argument(..., help="URL to call"),
    status: int = typer.Option(200, "--status", help="Expected HTTP status code"),
) -> None:
    """Check that a HTTP call results in the expected status."""
    engine = commands.build_engine()
    try:
        wait_for_http_status(engine.clients.http, url, status, engine.config.start_policy(quiescence=False))
    except EnvyardError as err:
        console.print(f"[red]\u274c {err}[/red]")
        raise typer.Exit(code=1) from err
    console.print(f"[green]\u2705 {url} returned {status}[/green]")
