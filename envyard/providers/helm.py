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

"""Helm release lifecycle."""

from __future__ import annotations

from pathlib import Path

from envyard.errors import AlreadyExistsError, RuntimeCallError
from envyard.providers.base import Provider
from envyard.resources import REFERENCE_PATTERN, HelmResource


class HelmProvider(Provider):
    """Installs a chart into the cluster named by ``kubeconfig``."""

    resource: HelmResource

    @property
    def kubeconfig(self) -> Path:
        return Path(self.resource.kubeconfig)

    def _cluster_reachable(self) -> bool:
        return not REFERENCE_PATTERN.search(self.resource.kubeconfig) and self.kubeconfig.exists()

    def create(self) -> None:
        resource = self.resource
        helm = self.clients.helm
        if not self._cluster_reachable():
            raise RuntimeCallError(f"kubeconfig {resource.kubeconfig} for {resource.key} does not exist")
        if helm.release_exists(self.kubeconfig, resource.name, resource.namespace):
            raise AlreadyExistsError(f"helm release {resource.name} already exists in {resource.namespace}")

        self.logger.info("Installing chart %s as %s", resource.chart, resource.name)
        helm.install(
            self.kubeconfig,
            resource.name,
            resource.chart,
            resource.namespace,
            values=Path(resource.values) if resource.values else None,
            overrides=resource.overrides,
            wait=resource.wait,
            timeout=resource.timeout,
        )
        resource.outputs.update(release=resource.name, namespace=resource.namespace)

    def destroy(self) -> None:
        # Without the cluster's kubeconfig the cluster, and the release with it, is gone.
        if not self._cluster_reachable():
            self.logger.info("Skipping helm release %s, cluster config not found", self.resource.name)
            return
        self.logger.info("Uninstalling helm release %s", self.resource.name)
        self.clients.helm.uninstall(self.kubeconfig, self.resource.name, self.resource.namespace)

    def lookup(self) -> list[str]:
        if not self._cluster_reachable():
            return []
        if self.clients.helm.release_exists(self.kubeconfig, self.resource.name, self.resource.namespace):
            return [self.resource.name]
        return []
