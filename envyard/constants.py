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

"""Constants, pinned image loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load pinned image names and versions from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def dep_image(component: str) -> str:
    """Return the pinned ``image:version`` reference for a component."""
    return f"{dep_value(component, 'image')}:{dep_value(component, 'version', default='latest')}"


# -- Resource type tags --
TYPE_NETWORK = "network"
TYPE_CONTAINER = "container"
TYPE_CLUSTER = "cluster"
TYPE_HELM = "helm"
TYPE_INGRESS = "ingress"
TYPE_EXEC = "exec"
TYPE_DOCS = "docs"

# -- Naming --
FQDN_DOMAIN = "envyard"
BLUEPRINT_META_KEY = "blueprint"
BLUEPRINT_SUFFIXES = (".yaml", ".yml")

# -- Runtime labels --
LABEL_MANAGED = "envyard.managed"

# -- Paths --
DEFAULT_STATE_DIR = Path.home() / ".envyard"
STATE_FILE_NAME = "state.json"
KUBECONFIG_DIR_NAME = "config"
KUBECONFIG_FILE_NAME = "kubeconfig.yaml"
KUBECONFIG_DOCKER_FILE_NAME = "kubeconfig-docker.yaml"

# -- k3s cluster --
DEFAULT_K3S_IMAGE = dep_image("k3s")
K3S_API_PORT_FLOOR = 64000
K3S_API_PORT_RANGE = 1000
K3S_READY_MARKER = "Running kubelet"
K3S_KUBECONFIG_PATH = "/output/kubeconfig.yaml"
K3S_IMAGES_MOUNT = "/images"
K3S_INGRESS_FLAG = "--disable=traefik"
K3S_CLUSTER_SECRET = "envyard-cluster-secret"
K3S_SYSTEM_POD_SELECTORS = ("app=local-path-provisioner", "k8s-app=kube-dns")
SERVER_CONTAINER_PREFIX = "server"

# -- Ingress --
DEFAULT_INGRESS_IMAGE = dep_image("ingress")
INGRESS_KUBECONFIG_MOUNT = "/.kube/kubeconfig.yaml"

# -- Docs --
DEFAULT_DOCS_IMAGE = dep_image("docs")
DOCS_CONTENT_MOUNT = "/shipyard/docs"
DOCS_CONTAINER_PORT = 3000
DEFAULT_DOCS_PORT = 8080

# -- Helm --
DEFAULT_HELM_NAMESPACE = "default"

# -- Readiness polling defaults --
DEFAULT_START_TIMEOUT_SECONDS = 120.0
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_QUIESCENCE_SECONDS = 2.0
CRASHED_CONTAINER_STATES = ("exited", "dead")
RUNNING_CONTAINER_STATE = "running"

# -- Parallelism & limits --
DEFAULT_MAX_WORKERS = 4
DEFAULT_COMMAND_TIMEOUT_SECONDS = 300
