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

"""Naming, path and kubeconfig helpers shared by providers."""

from __future__ import annotations

import socket
import zlib
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import yaml

from envyard.constants import (
    FQDN_DOMAIN,
    K3S_API_PORT_RANGE,
    KUBECONFIG_DIR_NAME,
    KUBECONFIG_DOCKER_FILE_NAME,
    KUBECONFIG_FILE_NAME,
)
from envyard.errors import RuntimeCallError


def fqdn(name: str, resource_type: str) -> str:
    """Build the fully qualified name for a resource.

    The same function is used to create runtime objects and to look them
    up again, so the result must only depend on its arguments. Including
    the type keeps a ``network`` and a ``container`` called ``web`` apart.

    Args:
        name: Resource name from the blueprint.
        resource_type: Resource type tag (e.g. ``cluster``).

    Returns:
        DNS-style name such as ``k3s.cluster.envyard``.
    """
    return f"{name}.{resource_type}.{FQDN_DOMAIN}"


@dataclass(frozen=True)
class KubeConfigPaths:
    """Locations of the client configuration files for one cluster.

    Attributes:
        directory: Directory reserved for the cluster.
        local: Config pointing at the API server through the mapped host port.
        docker: Config pointing at the server container's network name.
    """

    directory: Path
    local: Path
    docker: Path


def kubeconfig_paths(state_dir: Path, cluster_name: str) -> KubeConfigPaths:
    """Return the deterministic kubeconfig paths for a cluster.

    Args:
        state_dir: Root state directory from the engine configuration.
        cluster_name: Name of the cluster resource.

    Returns:
        KubeConfigPaths under ``<state_dir>/config/<cluster_name>``.
    """
    directory = Path(state_dir) / KUBECONFIG_DIR_NAME / cluster_name
    return KubeConfigPaths(
        directory=directory,
        local=directory / KUBECONFIG_FILE_NAME,
        docker=directory / KUBECONFIG_DOCKER_FILE_NAME,
    )


def port_is_free(port: int) -> bool:
    """Check whether a TCP port can currently be bound on the host."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind(("", port))
        except OSError:
            return False
    return True


def allocate_api_port(key: str, floor: int, span: int = K3S_API_PORT_RANGE, is_free=port_is_free) -> int:
    """Pick a host port for a cluster API server.

    The search starts at a position derived from *key*, so the same cluster
    asks for the same port on every run, and walks forward until a free
    port is found. Ports never drop below *floor*.

    Args:
        key: Stable identifier, usually the cluster FQDN.
        floor: Lowest port that may be returned.
        span: Size of the window above *floor* to search.
        is_free: Predicate used to test a candidate port.

    Returns:
        A port in ``[floor, floor + span)``.

    Raises:
        RuntimeCallError: If every port in the window is taken.
    """
    span = max(1, min(span, 65536 - floor))
    start = zlib.crc32(key.encode()) % span
    for offset in range(span):
        port = floor + (start + offset) % span
        if is_free(port):
            return port
    raise RuntimeCallError(f"no free port available in range {floor}-{floor + span - 1}")


def rewrite_kubeconfig_server(source: Path, dest: Path, host: str) -> None:
    """Write a copy of a kubeconfig with every cluster server host replaced.

    The scheme and port of each ``server`` URL are kept.

    Args:
        source: kubeconfig extracted from the cluster.
        dest: Path of the rewritten copy.
        host: Hostname the new copy should point at.

    Raises:
        RuntimeCallError: If the source is not a readable kubeconfig.
    """
    try:
        data = yaml.safe_load(Path(source).read_text())
    except (OSError, yaml.YAMLError) as err:
        raise RuntimeCallError(f"unable to read kubeconfig {source}: {err}") from err
    if not isinstance(data, dict) or not data.get("clusters"):
        raise RuntimeCallError(f"kubeconfig {source} does not define any clusters")

    for entry in data["clusters"]:
        cluster = entry.get("cluster") or {}
        server = urlsplit(cluster.get("server", ""))
        netloc = f"{host}:{server.port}" if server.port else host
        cluster["server"] = server._replace(netloc=netloc).geturl()

    dest = Path(dest)
    dest.write_text(yaml.safe_dump(data, default_flow_style=False))
    dest.chmod(0o600)
