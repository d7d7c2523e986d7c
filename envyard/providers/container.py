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

"""Generic container lifecycle, shared by ingress and docs."""

from __future__ import annotations

from envyard.checks import wait_for_container_running
from envyard.errors import AlreadyExistsError
from envyard.providers.base import Provider
from envyard.resources import ContainerResource, ContainerSpec


class ContainerProvider(Provider):
    """Runs a single container named after the resource FQDN.

    Subclasses describe their container by overriding ``container_spec``
    and may add a readiness step in ``wait_ready``.
    """

    resource: ContainerResource

    @property
    def container_name(self) -> str:
        return self.runtime_name(self.resource.type, self.resource.name)

    def container_spec(self) -> ContainerSpec:
        resource = self.resource
        return ContainerSpec(
            name=self.container_name,
            image=resource.image,
            network=resource.network,
            command=resource.command,
            entrypoint=resource.entrypoint,
            environment=resource.environment,
            ports=resource.ports,
            volumes=resource.volumes,
            privileged=resource.privileged,
        )

    def wait_ready(self) -> None:
        """Hook run after the container is running."""

    def create(self) -> None:
        tasks = self.clients.tasks
        self.logger.info("Creating %s %s", self.resource.type, self.resource.name)
        if tasks.find_container_ids(self.container_name):
            raise AlreadyExistsError(f"{self.resource.key} already exists as {self.container_name}")

        spec = self.container_spec()
        container_id = tasks.create_container(spec)
        wait_for_container_running(tasks, self.container_name, self.config.start_policy())
        self.wait_ready()

        self.resource.outputs.update(id=container_id, fqdn=self.container_name)

    def destroy(self) -> None:
        self.logger.info("Destroying %s %s", self.resource.type, self.resource.name)
        for container_id in self.clients.tasks.find_container_ids(self.container_name):
            self.clients.tasks.remove_container(container_id)

    def lookup(self) -> list[str]:
        return self.clients.tasks.find_container_ids(self.container_name)
