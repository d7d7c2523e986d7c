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

"""Blueprint loading and the resource arena used for reference resolution."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from envyard.constants import BLUEPRINT_META_KEY, BLUEPRINT_SUFFIXES
from envyard.errors import BlueprintError, UnresolvedReferenceError
from envyard.resources import RESOURCE_TYPES, REFERENCE_PATTERN, Reference, Resource, substitute


class BlueprintMeta(BaseModel):
    """Descriptive metadata from the optional ``blueprint:`` block."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    author: str | None = None
    slug: str | None = None
    intro: str | None = None


class Blueprint:
    """Resources of one environment, keyed by ``<type>.<name>``.

    Resources keep their declaration order. Reference resolution mutates
    the stored resources in place, so every holder of a resource sees its
    resolved fields.
    """

    def __init__(self, resources: list[Resource] | None = None, meta: BlueprintMeta | None = None) -> None:
        self.meta = meta or BlueprintMeta()
        self._arena: dict[str, Resource] = {}
        for resource in resources or []:
            self.add(resource)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._arena.values())

    def __len__(self) -> int:
        return len(self._arena)

    def __contains__(self, key: str) -> bool:
        return key in self._arena

    @property
    def resources(self) -> list[Resource]:
        return list(self._arena.values())

    def add(self, resource: Resource) -> None:
        if resource.key in self._arena:
            raise BlueprintError(f"duplicate resource {resource.key}")
        self._arena[resource.key] = resource

    def get(self, key: str) -> Resource | None:
        return self._arena.get(key)

    def find(self, resource_type: str, name: str) -> Resource | None:
        return self._arena.get(f"{resource_type}.{name}")

    def value(self, owner: Resource, ref: Reference) -> Any:
        """Return the current value of a reference.

        Outputs published by the target's provider win over its
        configuration fields.

        Raises:
            UnresolvedReferenceError: If the target or the field is unknown.
        """
        target = self._arena.get(ref.key)
        if target is None:
            raise UnresolvedReferenceError(owner.key, ref.expression)
        if ref.field in target.outputs:
            return target.outputs[ref.field]
        if ref.field in type(target).model_fields:
            value = getattr(target, ref.field)
            if isinstance(value, str) and REFERENCE_PATTERN.search(value):
                raise UnresolvedReferenceError(owner.key, ref.expression, f"{ref.key} is not resolved yet")
            return value
        raise UnresolvedReferenceError(owner.key, ref.expression, f"{ref.key} has no field '{ref.field}'")

    def resolve(self, resource: Resource, strict: bool = True) -> Resource:
        """Substitute every reference in *resource* in place.

        Args:
            resource: Resource to resolve; must belong to this blueprint.
            strict: When False, references that cannot be resolved yet are
                left as expressions instead of raising.

        Returns:
            The same resource instance.
        """

        def _lookup(ref: Reference) -> Any:
            try:
                return self.value(resource, ref)
            except UnresolvedReferenceError:
                if strict:
                    raise
                return ref.expression

        for name in type(resource).model_fields:
            if name in ("name", "depends_on"):
                continue
            try:
                setattr(resource, name, substitute(getattr(resource, name), _lookup))
            except ValidationError as err:
                raise BlueprintError(f"{resource.key}: resolved field '{name}' is invalid: {err}") from err
        return resource


def _blueprint_files(path: Path) -> list[Path]:
    if path.is_file():
        return [path]
    if path.is_dir():
        return sorted(p for p in path.iterdir() if p.is_file() and p.suffix in BLUEPRINT_SUFFIXES)
    raise BlueprintError(f"blueprint {path} does not exist")


def parse_document(blueprint: Blueprint, data: Any, source: str = "<string>") -> None:
    """Add the resources declared in one parsed YAML document.

    Args:
        blueprint: Blueprint receiving the resources.
        data: Parsed YAML mapping of ``type -> name -> fields``.
        source: Origin used in error messages.

    Raises:
        BlueprintError: On unknown types, malformed entries or invalid fields.
    """
    if data is None:
        return
    if not isinstance(data, dict):
        raise BlueprintError(f"{source}: expected a mapping of resource types")

    for type_tag, entries in data.items():
        if type_tag == BLUEPRINT_META_KEY:
            try:
                blueprint.meta = BlueprintMeta.model_validate(entries or {})
            except ValidationError as err:
                raise BlueprintError(f"{source}: invalid blueprint block: {err}") from err
            continue

        model = RESOURCE_TYPES.get(type_tag)
        if model is None:
            raise BlueprintError(f"{source}: unknown resource type '{type_tag}'")
        if not isinstance(entries, dict):
            raise BlueprintError(f"{source}: '{type_tag}' must map resource names to fields")

        for name, fields in entries.items():
            if fields is not None and not isinstance(fields, dict):
                raise BlueprintError(f"{source}: {type_tag}.{name} must be a mapping")
            try:
                resource = model.model_validate({**(fields or {}), "name": str(name)})
            except ValidationError as err:
                raise BlueprintError(f"{source}: invalid {type_tag}.{name}: {err}") from err
            blueprint.add(resource)


def parse_blueprint(text: str, source: str = "<string>") -> Blueprint:
    """Parse a single YAML document into a Blueprint."""
    blueprint = Blueprint()
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise BlueprintError(f"{source}: {err}") from err
    parse_document(blueprint, data, source)
    return blueprint


def load_blueprint(path: str | Path) -> Blueprint:
    """Load a blueprint from a YAML file or a directory of YAML files.

    Files in a directory are read in sorted order; declaration order is
    file order, then key order within each file.

    Raises:
        BlueprintError: If the path is missing or any file is invalid.
    """
    blueprint = Blueprint()
    for file in _blueprint_files(Path(path)):
        try:
            data = yaml.safe_load(file.read_text())
        except (OSError, yaml.YAMLError) as err:
            raise BlueprintError(f"{file}: {err}") from err
        parse_document(blueprint, data, str(file))
    if not len(blueprint):
        raise BlueprintError(f"blueprint {path} does not declare any resources")
    return blueprint
