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

"""Docker network lifecycle."""

from __future__ import annotations

from envyard.errors import AlreadyExistsError
from envyard.providers.base import Provider
from envyard.resources import NetworkResource


class NetworkProvider(Provider):
    """Bridge network named after the resource FQDN."""

    resource: NetworkResource

    def create(self) -> None:
        tasks = self.clients.tasks
        name = self.resource.fqdn
        self.logger.info("Creating network %s", name)
        if tasks.find_network_ids(name):
            raise AlreadyExistsError(f"network {name} already exists")

        network_id = tasks.create_network(name, self.resource.subnet)
        self.resource.outputs.update(name=name, id=network_id)

    def destroy(self) -> None:
        self.logger.info("Destroying network %s", self.resource.fqdn)
        for network_id in self.clients.tasks.find_network_ids(self.resource.fqdn):
            self.clients.tasks.remove_network(network_id)

    def lookup(self) -> list[str]:
        return self.clients.tasks.find_network_ids(self.resource.fqdn)
