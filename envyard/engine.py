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

"""Engine composing blueprint, graph, providers and run state into workflows."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from rich.panel import Panel

from envyard import console as default_console
from envyard import logger as default_logger
from envyard.blueprint import Blueprint, load_blueprint
from envyard.clients import Clients, default_clients
from envyard.config import EngineConfig
from envyard.errors import RuntimeCallError
from envyard.graph import Graph, WalkResult
from envyard.providers import ResourceStatus, StatusTracker, generate
from envyard.resources import Resource
from envyard.state import StateEntry, StateStore, compute_delta

# ============================================================================
# Reports
# ============================================================================


@dataclass
class ApplyReport:
    """Outcome of an apply.

    Attributes:
        created: Keys created in this run, in completion order.
        unchanged: Keys already recorded in the run state.
        destroyed: Keys removed because they left the blueprint.
        failed: Keys whose create or destroy raised, mapped to the error.
        skipped: Keys not attempted because a prerequisite failed.
    """

    created: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    destroyed: list[str] = field(default_factory=list)
    failed: dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


@dataclass
class DestroyReport:
    """Outcome of a teardown."""

    destroyed: list[str] = field(default_factory=list)
    failed: dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


@dataclass
class StatusLine:
    """A recorded resource and the runtime objects currently backing it."""

    key: str
    ids: list[str] = field(default_factory=list)
    error: str | None = None


# ============================================================================
# Internal helpers
# ============================================================================


def _teardown_resources(entries: Iterable[StateEntry]) -> list[Resource]:
    """Rebuild recorded resources, keeping only dependencies still recorded."""
    entries = list(entries)
    recorded = {entry.key for entry in entries}
    resources = []
    for entry in entries:
        resource = entry.to_resource()
        resource.depends_on = [key for key in resource.depends_on if key in recorded]
        resources.append(resource)
    return resources


def _restore(resource: Resource, entry: StateEntry) -> None:
    """Give an unchanged resource the resolved config and outputs it was created with."""
    recorded = entry.to_resource()
    for name in entry.config:
        setattr(resource, name, getattr(recorded, name))
    resource.outputs.update(recorded.outputs)


# ============================================================================
# Engine
# ============================================================================


class Engine:
    """Creates and tears down the resources of a blueprint.

    The engine holds no resource state between calls beyond what the run
    state file records. Each apply or destroy gets a fresh status tracker
    and fresh providers.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clients: Clients | None = None,
        logger: logging.Logger | None = None,
        console=default_console,
    ) -> None:
        self.config = config or EngineConfig()
        self.clients = clients or default_clients()
        self.logger = logger or default_logger
        self.console = console
        self.store = StateStore(self.config.state_file)
        self.tracker = StatusTracker()

    def _in_block(self, fn: Callable[[Resource], None]) -> Callable[[Resource], None]:
        """Wrap a visit so its console output prints as one block."""

        def _run(resource: Resource) -> None:
            with self.console.block():
                fn(resource)

        return _run

    def _walk(self, graph: Graph, order: list[Resource], visit: Callable[[Resource], None]) -> WalkResult:
        return graph.walk(order, self._in_block(visit), max_workers=self.config.max_workers)

    # ------------------------------------------------------------------
    # Visits
    # ------------------------------------------------------------------

    def _create(self, blueprint: Blueprint, graph: Graph, resource: Resource) -> None:
        key = resource.key
        self.tracker.transition(key, ResourceStatus.CREATING)
        self.console.print(f"[yellow]\u2139\ufe0f  Creating {key}...[/yellow]")
        try:
            blueprint.resolve(resource)
            generate(resource, self.clients, self.config, self.logger).create()
        except Exception as err:
            self.tracker.transition(key, ResourceStatus.FAILED)
            self.console.print(f"[red]\u274c {key}: {err}[/red]")
            raise
        self.tracker.transition(key, ResourceStatus.READY)
        self.store.record(StateEntry.from_resource(resource, graph.dependencies(key)))
        self.console.print(f"[green]\u2705 {key} ready[/green]")

    def _destroy(self, blueprint: Blueprint, resource: Resource) -> None:
        key = resource.key
        if self.tracker.get(key) is None:
            self.tracker.register(key)
        self.tracker.transition(key, ResourceStatus.DESTROYING)
        self.console.print(f"[yellow]\u2139\ufe0f  Destroying {key}...[/yellow]")
        try:
            blueprint.resolve(resource, strict=False)
            generate(resource, self.clients, self.config, self.logger).destroy()
        except Exception as err:
            self.tracker.transition(key, ResourceStatus.FAILED)
            self.console.print(f"[red]\u274c {key}: {err}[/red]")
            raise
        self.tracker.transition(key, ResourceStatus.DESTROYED)
        self.store.forget(key)
        self.console.print(f"[green]\u2705 {key} destroyed[/green]")

    def _teardown(self, blueprint: Blueprint) -> WalkResult:
        """Destroy every resource of *blueprint* in reverse topological order."""
        graph = Graph.build(blueprint)
        order = list(reversed(graph.topological_order()))
        return self._walk(graph, order, lambda resource: self._destroy(blueprint, resource))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply(self, path: str | Path) -> ApplyReport:
        """Create every blueprint resource missing from the run state.

        The blueprint is loaded and its graph validated before anything is
        touched, so a cycle or unresolved reference fails without side
        effects. Resources recorded in the state but gone from the blueprint
        are destroyed first.

        Args:
            path: Blueprint file or directory.

        Returns:
            ApplyReport describing what happened to each resource.

        Raises:
            BlueprintError: If the blueprint cannot be loaded.
            CycleError: If the dependencies form a cycle.
            UnresolvedReferenceError: If a dependency names an unknown resource.
        """
        blueprint = load_blueprint(path)
        graph = Graph.build(blueprint)
        state = self.store.load()
        delta = compute_delta(blueprint.resources, state)
        self.tracker = StatusTracker()
        report = ApplyReport(unchanged=list(delta.unchanged))

        for key in delta.unchanged:
            _restore(blueprint.get(key), state.get(key))
            self.tracker.register(key, ResourceStatus.READY)

        if delta.destroy:
            self.console.print(Panel.fit("Removing resources no longer in the blueprint", style="bold blue"))
            removed = Blueprint(_teardown_resources(state.get(key) for key in delta.destroy))
            result = self._teardown(removed)
            report.destroyed.extend(result.completed)
            report.failed.update(result.failed)
            report.skipped.extend(result.skipped)

        pending = set(delta.create)
        order = [resource for resource in graph.topological_order() if resource.key in pending]
        if order:
            self.console.print(Panel.fit(f"Creating {len(order)} resources", style="bold blue"))
            for resource in order:
                self.tracker.register(resource.key)
            result = self._walk(graph, order, lambda resource: self._create(blueprint, graph, resource))
            report.created.extend(result.completed)
            report.failed.update(result.failed)
            report.skipped.extend(result.skipped)

        self.logger.info(
            "Apply finished: %d created, %d unchanged, %d destroyed, %d failed, %d skipped",
            len(report.created),
            len(report.unchanged),
            len(report.destroyed),
            len(report.failed),
            len(report.skipped),
        )
        return report

    def destroy(self, path: str | Path | None = None) -> DestroyReport:
        """Tear down every recorded resource.

        Args:
            path: Optional blueprint; its resources missing from the run
                state are destroyed too, which cleans up after a failed
                create whose sub-resources were left behind.

        Returns:
            DestroyReport describing what happened to each resource.
        """
        state = self.store.load()
        self.tracker = StatusTracker()
        teardown = Blueprint(_teardown_resources(state.resources))
        if path is not None:
            for resource in load_blueprint(path):
                if resource.key not in teardown:
                    teardown.add(resource)

        report = DestroyReport()
        if not len(teardown):
            self.console.print("[yellow]\u2139\ufe0f  Nothing to destroy[/yellow]")
            return report

        self.console.print(Panel.fit(f"Destroying {len(teardown)} resources", style="bold blue"))
        result = self._teardown(teardown)
        report.destroyed.extend(result.completed)
        report.failed.update(result.failed)
        report.skipped.extend(result.skipped)
        self.logger.info(
            "Destroy finished: %d destroyed, %d failed, %d skipped",
            len(report.destroyed),
            len(report.failed),
            len(report.skipped),
        )
        return report

    def status(self) -> list[StatusLine]:
        """Look up the runtime objects of every recorded resource."""
        lines = []
        for entry in self.store.load().resources:
            line = StatusLine(key=entry.key)
            try:
                line.ids = generate(entry.to_resource(), self.clients, self.config, self.logger).lookup()
            except RuntimeCallError as err:
                line.error = str(err)
            lines.append(line)
        return lines
