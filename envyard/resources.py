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

"""Typed resource models and reference expressions.

Resources are parsed from a blueprint with their references left as
``${<type>.<name>.<field>}`` strings. The graph is built from those
expressions and each one is substituted in place once the resource it
points at has been created.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, ClassVar, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from envyard.constants import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_DOCS_PORT,
    DEFAULT_HELM_NAMESPACE,
    TYPE_CLUSTER,
    TYPE_CONTAINER,
    TYPE_DOCS,
    TYPE_EXEC,
    TYPE_HELM,
    TYPE_INGRESS,
    TYPE_NETWORK,
)
from envyard.utils import fqdn as make_fqdn

REFERENCE_PATTERN = re.compile(r"\$\{\s*([a-z_]+)\.([A-Za-z0-9][A-Za-z0-9_-]*)\.([A-Za-z0-9_]+)\s*\}")
NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]*$"

# Fields that describe the resource itself rather than its configuration.
_META_FIELDS = frozenset({"name", "depends_on"})


class Reference(NamedTuple):
    """A parsed ``${type.name.field}`` expression."""

    type: str
    name: str
    field: str

    @property
    def key(self) -> str:
        return f"{self.type}.{self.name}"

    @property
    def expression(self) -> str:
        return "${" + f"{self.type}.{self.name}.{self.field}" + "}"


def find_references(value: Any) -> list[Reference]:
    """Collect every reference expression found in *value*, recursively."""
    if isinstance(value, str):
        return [Reference(*m.groups()) for m in REFERENCE_PATTERN.finditer(value)]
    if isinstance(value, BaseModel):
        return [ref for name in type(value).model_fields for ref in find_references(getattr(value, name))]
    if isinstance(value, dict):
        return [ref for item in value.values() for ref in find_references(item)]
    if isinstance(value, (list, tuple)):
        return [ref for item in value for ref in find_references(item)]
    return []


def substitute(value: Any, lookup: Callable[[Reference], Any]) -> Any:
    """Replace reference expressions in *value* with looked-up outputs.

    A string made of a single reference becomes the raw output value, so
    non-string outputs such as ports survive. References embedded in a
    longer string are interpolated as text. Models are updated in place.
    """
    if isinstance(value, str):
        match = REFERENCE_PATTERN.fullmatch(value.strip())
        if match:
            return lookup(Reference(*match.groups()))
        return REFERENCE_PATTERN.sub(lambda m: str(lookup(Reference(*m.groups()))), value)
    if isinstance(value, BaseModel):
        for name in type(value).model_fields:
            setattr(value, name, substitute(getattr(value, name), lookup))
        return value
    if isinstance(value, dict):
        return {key: substitute(item, lookup) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, lookup) for item in value]
    return value


class Port(BaseModel):
    """Port published from a container to the host."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, coerce_numbers_to_str=True)

    local: int = Field(ge=1, le=65535)
    host: int | None = Field(default=None, ge=1, le=65535)
    remote: int | None = Field(default=None, ge=1, le=65535)
    protocol: Literal["tcp", "udp"] = "tcp"

    @property
    def host_port(self) -> int:
        return self.host or self.local

    @property
    def remote_port(self) -> int:
        return self.remote or self.local


class Volume(BaseModel):
    """Volume or bind mount attached to a container."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, coerce_numbers_to_str=True)

    source: str
    destination: str
    type: Literal["bind", "volume"] = "bind"


class ContainerSpec(BaseModel):
    """Runtime description of a container handed to ContainerTasks.

    Unlike resources, the name is used verbatim as the runtime object name,
    so it may be a fully qualified name.
    """

    name: str
    image: str
    network: str | None = None
    command: list[str] = Field(default_factory=list)
    entrypoint: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    ports: list[Port] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)
    privileged: bool = False


class Resource(BaseModel):
    """Base class of every blueprint resource.

    Attributes:
        name: Name, unique within the resource type.
        depends_on: Explicit dependencies as ``<type>.<name>`` keys.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True, coerce_numbers_to_str=True)

    TYPE: ClassVar[str] = ""

    name: str = Field(pattern=NAME_PATTERN)
    depends_on: list[str] = Field(default_factory=list)

    _outputs: dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def type(self) -> str:
        return self.TYPE

    @property
    def key(self) -> str:
        return f"{self.TYPE}.{self.name}"

    @property
    def fqdn(self) -> str:
        return make_fqdn(self.name, self.TYPE)

    @property
    def outputs(self) -> dict[str, Any]:
        """Values published by the provider once the resource is created."""
        return self._outputs

    def references(self) -> list[Reference]:
        """Reference expressions found in the configuration fields."""
        return [
            ref
            for name in type(self).model_fields
            if name not in _META_FIELDS
            for ref in find_references(getattr(self, name))
        ]

    def dependencies(self) -> list[str]:
        """Keys of every resource this one depends on, in first-seen order."""
        keys = list(self.depends_on) + [ref.key for ref in self.references()]
        return list(dict.fromkeys(keys))

    def config_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude=set(_META_FIELDS))


class NetworkResource(Resource):
    """Docker network shared by the other resources."""

    TYPE: ClassVar[str] = TYPE_NETWORK

    subnet: str | None = None


class ContainerResource(Resource):
    """A single container on the runtime."""

    TYPE: ClassVar[str] = TYPE_CONTAINER

    image: str
    network: str | None = None
    command: list[str] = Field(default_factory=list)
    entrypoint: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    ports: list[Port] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)
    privileged: bool = False


class ClusterResource(Resource):
    """Single node Kubernetes cluster running in a container."""

    TYPE: ClassVar[str] = TYPE_CLUSTER

    driver: Literal["k3s"] = "k3s"
    network: str
    image: str | None = None


class HelmResource(Resource):
    """Helm release installed into a cluster."""

    TYPE: ClassVar[str] = TYPE_HELM

    kubeconfig: str
    chart: str
    namespace: str = DEFAULT_HELM_NAMESPACE
    values: str | None = None
    overrides: dict[str, str] = Field(default_factory=dict)
    wait: bool = True
    timeout: str = "300s"


class IngressResource(Resource):
    """Proxy container exposing a service on the host.

    ``target`` is either a network address (e.g. a container FQDN) or, when
    ``kubeconfig`` is set, the name of a Kubernetes service.
    """

    TYPE: ClassVar[str] = TYPE_INGRESS

    network: str
    target: str
    ports: list[Port] = Field(min_length=1)
    kubeconfig: str | None = None
    namespace: str = DEFAULT_HELM_NAMESPACE
    image: str | None = None


class ExecResource(Resource):
    """Command run on the control host."""

    TYPE: ClassVar[str] = TYPE_EXEC

    command: str
    arguments: list[str] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    working_directory: str | None = None
    timeout: int = Field(default=DEFAULT_COMMAND_TIMEOUT_SECONDS, ge=1)


class DocsResource(Resource):
    """Documentation site served from a local folder."""

    TYPE: ClassVar[str] = TYPE_DOCS

    path: str
    port: int = Field(default=DEFAULT_DOCS_PORT, ge=1, le=65535)
    network: str | None = None
    image: str | None = None


RESOURCE_TYPES: dict[str, type[Resource]] = {
    cls.TYPE: cls
    for cls in (
        NetworkResource,
        ContainerResource,
        ClusterResource,
        HelmResource,
        IngressResource,
        ExecResource,
        DocsResource,
    )
}
