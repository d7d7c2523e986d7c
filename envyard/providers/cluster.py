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

"""k3s cluster lifecycle: server container, readiness and kubeconfig."""

from __future__ import annotations

import shutil
import threading

from envyard.checks import wait_for_log_marker, wait_for_pods
from envyard.constants import (
    K3S_CLUSTER_SECRET,
    K3S_IMAGES_MOUNT,
    K3S_INGRESS_FLAG,
    K3S_KUBECONFIG_PATH,
    K3S_READY_MARKER,
    K3S_SYSTEM_POD_SELECTORS,
    SERVER_CONTAINER_PREFIX,
)
from envyard.errors import AlreadyExistsError
from envyard.providers.base import Provider
from envyard.resources import ClusterResource, ContainerSpec, Port, Volume
from envyard.utils import allocate_api_port, fqdn, rewrite_kubeconfig_server


# Held from choosing a free host port until the container publishing it exists.
_PORT_LOCK = threading.Lock()


class ClusterProvider(Provider):
    """Single node k3s cluster running in a privileged container.

    Outputs:
        fqdn: Network name of the server container.
        api_port: Host port mapped to the API server.
        kubeconfig: Config reaching the API server through the host port.
        kubeconfig_docker: Config reaching the API server by network name.
        container_id: Id of the server container.
        volume: Id of the image cache volume.
    """

    resource: ClusterResource

    @classmethod
    def runtime_name(cls, resource_type: str, name: str) -> str:
        return f"{SERVER_CONTAINER_PREFIX}.{fqdn(name, resource_type)}"

    @property
    def server_name(self) -> str:
        return self.runtime_name(self.resource.type, self.resource.name)

    @property
    def image(self) -> str:
        return self.resource.image or self.config.k3s_image

    def _server_spec(self, volume_id: str, api_port: int) -> ContainerSpec:
        """Build the server container; the API listens on the same port inside and out."""
        return ContainerSpec(
            name=self.server_name,
            image=self.image,
            network=self.resource.network,
            privileged=True,
            volumes=[Volume(source=volume_id, destination=K3S_IMAGES_MOUNT, type="volume")],
            ports=[Port(local=api_port, host=api_port, protocol="tcp")],
            environment={
                "K3S_KUBECONFIG_OUTPUT": K3S_KUBECONFIG_PATH,
                "K3S_CLUSTER_SECRET": K3S_CLUSTER_SECRET,
            },
            command=["server", f"--https-listen-port={api_port}", K3S_INGRESS_FLAG],
        )

    def create(self) -> None:
        """Create the cluster.

        Steps: refuse to adopt existing containers, create the image cache
        volume, start the server, wait for the kubelet log line, extract
        the kubeconfig, write the network-name variant, configure a
        Kubernetes client and wait for the system pods.

        The Kubernetes client loads the extracted config, which reaches the
        API server through 127.0.0.1 and the mapped host port, because the
        engine runs on the host. The rewritten copy names the server
        container and is only usable from containers on the Docker network,
        such as ingress.

        Raises:
            AlreadyExistsError: If a server container already exists.
            RuntimeCallError: If a runtime or Kubernetes call fails.
            CrashDetectedError: If the server container exits while starting.
            ReadinessTimeoutError: If the server or system pods never become ready.
        """
        tasks = self.clients.tasks
        self.logger.info("Creating cluster %s (image %s)", self.resource.name, self.image)

        existing = tasks.find_container_ids(self.server_name)
        if existing:
            raise AlreadyExistsError(
                f"cluster {self.resource.name} already exists ({len(existing)} container(s) named {self.server_name})"
            )

        volume_id = tasks.create_volume(self.resource.name)

        with _PORT_LOCK:
            api_port = allocate_api_port(self.server_name, self.config.api_port_floor)
            container_id = tasks.create_container(self._server_spec(volume_id, api_port))
        self.logger.debug("Cluster %s server %s listening on port %d", self.resource.name, container_id, api_port)

        # A started container says nothing about the k3s process inside it.
        wait_for_log_marker(tasks, container_id, K3S_READY_MARKER, self.config.start_policy())

        paths = self.config.kubeconfig_paths(self.resource.name)
        paths.directory.mkdir(parents=True, exist_ok=True)
        tasks.copy_from_container(container_id, K3S_KUBECONFIG_PATH, str(paths.local))
        paths.local.chmod(0o600)
        rewrite_kubeconfig_server(paths.local, paths.docker, self.server_name)

        kubernetes = self.clients.kubernetes()
        kubernetes.set_config(paths.local)
        wait_for_pods(kubernetes, K3S_SYSTEM_POD_SELECTORS, self.config.start_policy(quiescence=False))

        self.resource.outputs.update(
            fqdn=self.server_name,
            api_port=api_port,
            kubeconfig=str(paths.local),
            kubeconfig_docker=str(paths.docker),
            container_id=container_id,
            volume=volume_id,
        )
        self.logger.info("Cluster %s is ready", self.resource.name)

    def destroy(self) -> None:
        tasks = self.clients.tasks
        self.logger.info("Destroying cluster %s", self.resource.name)
        for container_id in tasks.find_container_ids(self.server_name):
            tasks.remove_container(container_id)
        tasks.remove_volume(self.resource.name)

        paths = self.config.kubeconfig_paths(self.resource.name)
        if paths.directory.exists():
            shutil.rmtree(paths.directory)

    def lookup(self) -> list[str]:
        return self.clients.tasks.find_container_ids(self.server_name)
