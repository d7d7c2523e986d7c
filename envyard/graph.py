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

"""Resource dependency graph: build, order and parallel-safe traversal."""

from __future__ import annotations

import graphlib
import heapq
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from envyard.errors import BlueprintError, CycleError, UnresolvedReferenceError
from envyard.resources import Resource


@dataclass
class Node:
    """One resource in the graph.

    Attributes:
        resource: The wrapped resource.
        index: Declaration position, used to break ordering ties.
        incoming: Keys of the resources this one depends on.
        outgoing: Keys of the resources depending on this one.
    """

    resource: Resource
    index: int
    incoming: set[str] = field(default_factory=set)
    outgoing: set[str] = field(default_factory=set)


@dataclass
class WalkResult:
    """Outcome of a graph walk.

    Attributes:
        completed: Keys whose visit returned, in completion order.
        failed: Keys whose visit raised, mapped to the exception.
        skipped: Keys never visited because a prerequisite failed or was skipped.
    """

    completed: list[str] = field(default_factory=list)
    failed: dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


def _missing_expression(resource: Resource, key: str) -> str:
    for ref in resource.references():
        if ref.key == key:
            return ref.expression
    return key


class Graph:
    """Directed acyclic graph of resources; an edge A -> B means B depends on A."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}

    @classmethod
    def build(cls, resources: Iterable[Resource]) -> Graph:
        """Build the graph from explicit dependencies and references.

        Args:
            resources: Every resource of the environment, in declaration order.

        Returns:
            The validated graph.

        Raises:
            BlueprintError: If two resources share a key.
            UnresolvedReferenceError: If a dependency names an unknown resource.
            CycleError: If the dependencies form a cycle.
        """
        graph = cls()
        resources = list(resources)
        for index, resource in enumerate(resources):
            if resource.key in graph._nodes:
                raise BlueprintError(f"duplicate resource {resource.key}")
            graph._nodes[resource.key] = Node(resource=resource, index=index)

        for resource in resources:
            for dep in resource.dependencies():
                if dep == resource.key:
                    raise CycleError([resource.key, resource.key])
                if dep not in graph._nodes:
                    raise UnresolvedReferenceError(resource.key, _missing_expression(resource, dep))
                graph._nodes[dep].outgoing.add(resource.key)
                graph._nodes[resource.key].incoming.add(dep)

        graph._check_acyclic()
        return graph

    def _check_acyclic(self) -> None:
        sorter = graphlib.TopologicalSorter({key: node.incoming for key, node in self._nodes.items()})
        try:
            sorter.prepare()
        except graphlib.CycleError as err:
            raise CycleError(list(err.args[1])) from err

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: str) -> bool:
        return key in self._nodes

    def node(self, key: str) -> Node:
        return self._nodes[key]

    def _by_index(self, keys: Iterable[str]) -> list[str]:
        return sorted(keys, key=lambda k: self._nodes[k].index)

    def dependencies(self, key: str) -> list[str]:
        """Keys the given resource depends on, in declaration order."""
        return self._by_index(self._nodes[key].incoming)

    def dependents(self, key: str) -> list[str]:
        """Keys depending on the given resource, in declaration order."""
        return self._by_index(self._nodes[key].outgoing)

    def topological_order(self) -> list[Resource]:
        """Return resources so every dependency precedes its dependents.

        Among resources that are ready at the same time, the one declared
        first comes first, which makes the order deterministic. Teardown
        uses the exact reverse of this list.
        """
        remaining = {key: len(node.incoming) for key, node in self._nodes.items()}
        ready = [(node.index, key) for key, node in self._nodes.items() if not node.incoming]
        heapq.heapify(ready)

        order: list[Resource] = []
        while ready:
            _, key = heapq.heappop(ready)
            order.append(self._nodes[key].resource)
            for dependent in self._nodes[key].outgoing:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (self._nodes[dependent].index, dependent))
        return order

    def walk(
        self,
        order: Sequence[Resource],
        visit: Callable[[Resource], None],
        max_workers: int = 1,
    ) -> WalkResult:
        """Visit resources in *order*, running independent branches concurrently.

        The prerequisites of a resource are its graph neighbours placed
        earlier in *order*: its dependencies for a forward order, its
        dependents for the reversed order used by teardown. A resource is
        only visited once all its prerequisites completed; if one failed or
        was skipped, the resource is skipped instead.

        Args:
            order: The topological order or its reverse, possibly a subset.
            visit: Callable invoked once per visited resource.
            max_workers: Maximum number of concurrent visits.

        Returns:
            WalkResult describing what completed, failed and was skipped.
        """
        position = {resource.key: i for i, resource in enumerate(order)}
        prerequisites = {
            key: {
                other
                for other in self._nodes[key].incoming | self._nodes[key].outgoing
                if other in position and position[other] < position[key]
            }
            for key in position
        }

        result = WalkResult()
        completed: set[str] = set()
        blocked: set[str] = set()
        pending = [resource for resource in order]

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            running: dict[Future, str] = {}
            while pending or running:
                still_pending = []
                for resource in pending:
                    deps = prerequisites[resource.key]
                    if deps & blocked:
                        blocked.add(resource.key)
                        result.skipped.append(resource.key)
                    elif deps <= completed and len(running) < max_workers:
                        running[executor.submit(visit, resource)] = resource.key
                    else:
                        still_pending.append(resource)
                pending = still_pending

                if not running:
                    break

                finished, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in finished:
                    key = running.pop(future)
                    error = future.exception()
                    if error is None:
                        completed.add(key)
                        result.completed.append(key)
                    else:
                        blocked.add(key)
                        result.failed[key] = error
        return result
