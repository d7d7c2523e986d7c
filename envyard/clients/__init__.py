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

"""Capability interfaces for the external systems providers drive.

Providers only ever see these interfaces, so tests can swap in fakes and
no provider depends on a concrete runtime client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from envyard.resources import ContainerSpec


class ContainerTasks(ABC):
    """Container runtime operations."""

    @abstractmethod
    def find_container_ids(self, name: str) -> list[str]:
        """Return ids of containers (running or not) with exactly this name."""

    @abstractmethod
    def create_volume(self, name: str) -> str:
        """Create a named volume and return its id."""

    @abstractmethod
    def remove_volume(self, name: str) -> None:
        """Remove a named volume; a missing volume is not an error."""

    @abstractmethod
    def create_container(self, spec: ContainerSpec) -> str:
        """Create and start a container named ``spec.name``; return its id."""

    @abstractmethod
    def remove_container(self, container_id: str) -> None:
        """Force remove a container; a missing container is not an error."""

    @abstractmethod
    def container_state(self, container_id: str) -> str:
        """Return the runtime state, e.g. ``running`` or ``exited``."""

    @abstractmethod
    def container_logs(self, container_id: str, stdout: bool, stderr: bool) -> bytes:
        """Return the logs written by a container so far."""

    @abstractmethod
    def copy_from_container(self, container_id: str, src_path: str, dest_path: str) -> None:
        """Copy a single file out of a container's filesystem."""

    @abstractmethod
    def find_network_ids(self, name: str) -> list[str]:
        """Return ids of networks with exactly this name."""

    @abstractmethod
    def create_network(self, name: str, subnet: str | None = None) -> str:
        """Create a bridge network and return its id."""

    @abstractmethod
    def remove_network(self, network_id: str) -> None:
        """Remove a network; a missing network is not an error."""


class KubernetesClient(ABC):
    """Kubernetes API access for one cluster."""

    @abstractmethod
    def set_config(self, path: Path) -> None:
        """Point the client at a kubeconfig file; raise if it is rejected."""

    @abstractmethod
    def get_pods(self, selector: str) -> list[dict]:
        """List pods in every namespace matching a label selector."""


class HelmClient(ABC):
    """Helm release management."""

    @abstractmethod
    def release_exists(self, kubeconfig: Path, release: str, namespace: str) -> bool:
        """Return True if the release is installed."""

    @abstractmethod
    def install(
        self,
        kubeconfig: Path,
        release: str,
        chart: str,
        namespace: str,
        values: Path | None = None,
        overrides: dict[str, str] | None = None,
        wait: bool = True,
        timeout: str = "300s",
    ) -> None:
        """Install a chart as a new release."""

    @abstractmethod
    def uninstall(self, kubeconfig: Path, release: str, namespace: str) -> None:
        """Uninstall a release; a missing release is not an error."""


class CommandRunner(ABC):
    """Runs commands on the control host."""

    @abstractmethod
    def run(
        self,
        command: str,
        arguments: list[str],
        environment: dict[str, str] | None = None,
        working_directory: str | None = None,
        timeout: int | None = None,
    ) -> str:
        """Run a command to completion and return its output."""


class HTTPClient(ABC):
    """Minimal HTTP access used by readiness checks."""

    @abstractmethod
    def get(self, url: str) -> int:
        """Issue a GET and return the status code."""


@dataclass
class Clients:
    """Capability bundle handed to providers.

    Attributes:
        tasks: Container runtime operations.
        kubernetes: Factory returning a fresh Kubernetes client; each
            cluster configures its own instance.
        helm: Helm release operations.
        command: Local command runner.
        http: HTTP client.
    """

    tasks: ContainerTasks
    kubernetes: Callable[[], KubernetesClient]
    helm: HelmClient
    command: CommandRunner
    http: HTTPClient


def default_clients() -> Clients:
    """Build the real capability implementations."""
    from envyard.clients.command import ShellCommandRunner
    from envyard.clients.docker_tasks import DockerTasks
    from envyard.clients.helm import HelmCLI
    from envyard.clients.http import RequestsHTTP
    from envyard.clients.kubectl import KubectlClient

    return Clients(
        tasks=DockerTasks(),
        kubernetes=KubectlClient,
        helm=HelmCLI(),
        command=ShellCommandRunner(),
        http=RequestsHTTP(),
    )
