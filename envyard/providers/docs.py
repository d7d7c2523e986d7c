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

"""Documentation site container."""

from __future__ import annotations

from pathlib import Path

from envyard.checks import wait_for_http_status
from envyard.constants import DEFAULT_DOCS_IMAGE, DOCS_CONTAINER_PORT, DOCS_CONTENT_MOUNT
from envyard.providers.container import ContainerProvider
from envyard.resources import ContainerSpec, DocsResource, Port, Volume


class DocsProvider(ContainerProvider):
    """Serves a local docs folder and waits until the site answers."""

    resource: DocsResource

    @property
    def url(self) -> str:
        return f"http://localhost:{self.resource.port}"

    def container_spec(self) -> ContainerSpec:
        resource = self.resource
        return ContainerSpec(
            name=self.container_name,
            image=resource.image or DEFAULT_DOCS_IMAGE,
            network=resource.network,
            ports=[Port(local=DOCS_CONTAINER_PORT, host=resource.port)],
            volumes=[Volume(source=str(Path(resource.path).resolve()), destination=DOCS_CONTENT_MOUNT)],
        )

    def wait_ready(self) -> None:
        wait_for_http_status(self.clients.http, self.url, 200, self.config.start_policy(quiescence=False))
        self.resource.outputs["url"] = self.url
