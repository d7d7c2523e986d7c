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

"""ContainerTasks implementation backed by the Docker SDK."""

from __future__ import annotations

import io
import re
import tarfile
from contextlib import contextmanager
from pathlib import Path

import docker
from docker.types import IPAMConfig, IPAMPool

from envyard import logger
from envyard.clients import ContainerTasks
from envyard.constants import LABEL_MANAGED
from envyard.errors import RuntimeCallError
from envyard.resources import ContainerSpec
from envyard.utils import fqdn

_MANAGED_LABELS = {LABEL_MANAGED: "true"}


@contextmanager
def _docker_errors(action: str):
    """Surface Docker SDK failures as RuntimeCallError."""
    try:
        yield
    except docker.errors.DockerException as err:
        raise RuntimeCallError(f"{action}: {err}") from err


class DockerTasks(ContainerTasks):
    """Container runtime operations through ``docker.from_env()``."""

    def __init__(self, client: docker.DockerClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            with _docker_errors("unable to connect to Docker"):
                self._client = docker.from_env()
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def find_container_ids(self, name: str) -> list[str]:
        with _docker_errors(f"unable to list containers called {name}"):
            containers = self.client.containers.list(all=True, filters={"name": f"^/{re.escape(name)}$"})
        return [c.id for c in containers if c.name == name]

    def _ensure_image(self, image: str) -> None:
        try:
            self.client.images.get(image)
        except docker.errors.ImageNotFound:
            logger.info("Pulling image %s", image)
            with _docker_errors(f"unable to pull image {image}"):
                self.client.images.pull(image)

    def create_container(self, spec: ContainerSpec) -> str:
        with _docker_errors(f"unable to create container {spec.name}"):
            self._ensure_image(spec.image)
            container = self.client.containers.create(
                spec.image,
                name=spec.name,
                hostname=spec.name,
                command=spec.command or None,
                entrypoint=spec.entrypoint or None,
                environment=spec.environment,
                privileged=spec.privileged,
                ports={f"{p.local}/{p.protocol}": p.host_port for p in spec.ports},
                volumes={v.source: {"bind": v.destination, "mode": "rw"} for v in spec.volumes},
                network=spec.network,
                labels=_MANAGED_LABELS,
                detach=True,
            )
            container.start()
        return container.id

    def remove_container(self, container_id: str) -> None:
        with _docker_errors(f"unable to remove container {container_id}"):
            try:
                self.client.containers.get(container_id).remove(force=True)
            except docker.errors.NotFound:
                return

    def container_state(self, container_id: str) -> str:
        with _docker_errors(f"unable to inspect container {container_id}"):
            return self.client.containers.get(container_id).status

    def container_logs(self, container_id: str, stdout: bool, stderr: bool) -> bytes:
        with _docker_errors(f"unable to read logs of container {container_id}"):
            return self.client.containers.get(container_id).logs(stdout=stdout, stderr=stderr)

    def copy_from_container(self, container_id: str, src_path: str, dest_path: str) -> None:
        with _docker_errors(f"unable to copy {src_path} from container {container_id}"):
            bits, _ = self.client.containers.get(container_id).get_archive(src_path)
            archive = io.BytesIO(b"".join(bits))

        try:
            with tarfile.open(fileobj=archive) as tar:
                member = next((m for m in tar.getmembers() if m.isfile()), None)
                if member is None:
                    raise RuntimeCallError(f"{src_path} in container {container_id} is not a file")
                data = tar.extractfile(member).read()
        except tarfile.TarError as err:
            raise RuntimeCallError(f"unable to unpack {src_path} from container {container_id}: {err}") from err

        dest = Path(dest_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    def create_volume(self, name: str) -> str:
        with _docker_errors(f"unable to create volume for {name}"):
            volume = self.client.volumes.create(name=fqdn(name, "volume"), labels=_MANAGED_LABELS)
        return volume.id

    def remove_volume(self, name: str) -> None:
        with _docker_errors(f"unable to remove volume for {name}"):
            try:
                self.client.volumes.get(fqdn(name, "volume")).remove(force=True)
            except docker.errors.NotFound:
                return

    # ------------------------------------------------------------------
    # Networks
    # ------------------------------------------------------------------

    def find_network_ids(self, name: str) -> list[str]:
        with _docker_errors(f"unable to list networks called {name}"):
            networks = self.client.networks.list(names=[name])
        return [n.id for n in networks if n.name == name]

    def create_network(self, name: str, subnet: str | None = None) -> str:
        ipam = IPAMConfig(pool_configs=[IPAMPool(subnet=subnet)]) if subnet else None
        with _docker_errors(f"unable to create network {name}"):
            network = self.client.networks.create(name, driver="bridge", ipam=ipam, labels=_MANAGED_LABELS)
        return network.id

    def remove_network(self, network_id: str) -> None:
        with _docker_errors(f"unable to remove network {network_id}"):
            try:
                self.client.networks.get(network_id).remove()
            except docker.errors.NotFound:
                return
