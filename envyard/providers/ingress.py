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

"""Ingress proxy container exposing a service on the host."""

from __future__ import annotations

from envyard.constants import DEFAULT_INGRESS_IMAGE, INGRESS_KUBECONFIG_MOUNT
from envyard.providers.container import ContainerProvider
from envyard.resources import ContainerSpec, IngressResource, Port, Volume


class IngressProvider(ContainerProvider):
    """Proxy forwarding host ports to a network address or Kubernetes service.

    Each port maps host ``host`` -> proxy ``local`` -> target ``remote``.
    """

    resource: IngressResource

    def container_spec(self) -> ContainerSpec:
        resource = self.resource
        command = ["--target", resource.target]
        command += [arg for p in resource.ports for arg in ("--port", f"{p.local}:{p.remote_port}")]

        volumes: list[Volume] = []
        environment: dict[str, str] = {}
        if resource.kubeconfig:
            command += ["--namespace", resource.namespace]
            volumes.append(Volume(source=resource.kubeconfig, destination=INGRESS_KUBECONFIG_MOUNT))
            environment["KUBECONFIG"] = INGRESS_KUBECONFIG_MOUNT

        return ContainerSpec(
            name=self.container_name,
            image=resource.image or DEFAULT_INGRESS_IMAGE,
            network=resource.network,
            command=command,
            environment=environment,
            ports=[Port(local=p.local, host=p.host_port, protocol=p.protocol) for p in resource.ports],
            volumes=volumes,
        )
