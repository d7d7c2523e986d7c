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

"""Provider implementations, one per resource type."""

from __future__ import annotations

import logging

from envyard.clients import Clients
from envyard.config import EngineConfig
from envyard.constants import (
    TYPE_CLUSTER,
    TYPE_CONTAINER,
    TYPE_DOCS,
    TYPE_EXEC,
    TYPE_HELM,
    TYPE_INGRESS,
    TYPE_NETWORK,
)
from envyard.providers.base import Provider, ResourceStatus, StatusTracker
from envyard.providers.cluster import ClusterProvider
from envyard.providers.container import ContainerProvider
from envyard.providers.docs import DocsProvider
from envyard.providers.exec import ExecProvider
from envyard.providers.helm import HelmProvider
from envyard.providers.ingress import IngressProvider
from envyard.providers.network import NetworkProvider
from envyard.resources import Resource

PROVIDERS: dict[str, type[Provider]] = {
    TYPE_NETWORK: NetworkProvider,
    TYPE_CONTAINER: ContainerProvider,
    TYPE_CLUSTER: ClusterProvider,
    TYPE_HELM: HelmProvider,
    TYPE_INGRESS: IngressProvider,
    TYPE_EXEC: ExecProvider,
    TYPE_DOCS: DocsProvider,
}


def generate(
    resource: Resource,
    clients: Clients,
    config: EngineConfig,
    logger: logging.Logger | None = None,
) -> Provider:
    """Build the provider for a resource.

    Raises:
        KeyError: If the resource type has no provider.
    """
    return PROVIDERS[resource.type](resource, clients, config, logger)


__all__ = [
    "PROVIDERS",
    "Provider",
    "ResourceStatus",
    "StatusTracker",
    "generate",
]
