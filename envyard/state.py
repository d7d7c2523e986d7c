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

"""Persisted run state used for incremental apply and teardown."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from envyard.errors import EnvyardError
from envyard.resources import RESOURCE_TYPES, Resource


class StateEntry(BaseModel):
    """A resource that was created successfully.

    Attributes:
        type: Resource type tag.
        name: Resource name.
        depends_on: Keys the resource depended on when it was created.
        config: Resolved configuration fields.
        outputs: Outputs published by the provider.
    """

    type: str
    name: str
    depends_on: list[str] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.type}.{self.name}"

    @classmethod
    def from_resource(cls, resource: Resource, depends_on: list[str]) -> StateEntry:
        return cls(
            type=resource.type,
            name=resource.name,
            depends_on=depends_on,
            config=resource.config_fields(),
            outputs=dict(resource.outputs),
        )

    def to_resource(self) -> Resource:
        """Rebuild the resource, with its outputs, from the recorded entry."""
        model = RESOURCE_TYPES.get(self.type)
        if model is None:
            raise EnvyardError(f"state contains unknown resource type '{self.type}'")
        try:
            resource = model.model_validate({**self.config, "name": self.name, "depends_on": self.depends_on})
        except ValidationError as err:
            raise EnvyardError(f"state entry {self.key} is invalid: {err}") from err
        resource.outputs.update(self.outputs)
        return resource


class RunState(BaseModel):
    """Ordered record of created resources."""

    resources: list[StateEntry] = Field(default_factory=list)

    def keys(self) -> list[str]:
        return [entry.key for entry in self.resources]

    def get(self, key: str) -> StateEntry | None:
        for entry in self.resources:
            if entry.key == key:
                return entry
        return None

    def put(self, entry: StateEntry) -> None:
        """Add *entry*, replacing a previous record with the same key in place."""
        for i, existing in enumerate(self.resources):
            if existing.key == entry.key:
                self.resources[i] = entry
                return
        self.resources.append(entry)

    def remove(self, key: str) -> None:
        self.resources = [entry for entry in self.resources if entry.key != key]


@dataclass
class Delta:
    """Difference between a blueprint and the recorded state.

    Attributes:
        create: Blueprint keys with no state record.
        unchanged: Keys present in both.
        destroy: State keys missing from the blueprint, in recorded order.
    """

    create: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    destroy: list[str] = field(default_factory=list)


def compute_delta(resources: list[Resource], state: RunState) -> Delta:
    """Compare blueprint resources against the recorded state by type and name."""
    recorded = set(state.keys())
    wanted = [resource.key for resource in resources]
    wanted_set = set(wanted)
    delta = Delta()
    for key in wanted:
        (delta.unchanged if key in recorded else delta.create).append(key)
    delta.destroy = [key for key in state.keys() if key not in wanted_set]
    return delta


class StateStore:
    """JSON file holding the RunState, with single-writer access.

    Every mutation is written through to disk straight away so a crash
    mid-apply keeps the record of what was already created.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._state: RunState | None = None

    def load(self) -> RunState:
        """Read the state file; a missing file is an empty state."""
        with self._lock:
            if not self.path.exists():
                self._state = RunState()
            else:
                try:
                    self._state = RunState.model_validate_json(self.path.read_text())
                except (OSError, ValidationError) as err:
                    raise EnvyardError(f"unable to read run state {self.path}: {err}") from err
            return self._state.model_copy(deep=True)

    def record(self, entry: StateEntry) -> None:
        with self._lock:
            self._current().put(entry)
            self._save()

    def forget(self, key: str) -> None:
        with self._lock:
            self._current().remove(key)
            self._save()

    def _current(self) -> RunState:
        if self._state is None:
            self._state = RunState()
            if self.path.exists():
                self._state = RunState.model_validate_json(self.path.read_text())
        return self._state

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(self._state.model_dump_json(indent=2))
        tmp.replace(self.path)
