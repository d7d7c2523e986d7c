"""
Pytest configuration and fixtures shared by the envyard tests.

Every external capability is a MagicMock bound to its interface. The
container runtime fake keeps a small registry of what was created so
existence checks and lookups behave like the real thing.
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from envyard.clients import (
    Clients,
    CommandRunner,
    ContainerTasks,
    HelmClient,
    HTTPClient,
    KubernetesClient,
)
from envyard.config import EngineConfig

KUBECONFIG = """\
apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: Y2VydA==
    server: https://127.0.0.1:64674
  name: default
contexts:
- context:
    cluster: default
    user: default
  name: default
current-context: default
kind: Config
users:
- name: default
  user:
    token: secret
"""

READY_POD = {
    "metadata": {"name": "coredns-abc"},
    "status": {"phase": "Running", "containerStatuses": [{"ready": True}]},
}


def make_tasks() -> MagicMock:
    """Build a ContainerTasks fake that remembers created containers and networks."""
    tasks = MagicMock(spec=ContainerTasks)
    tasks.containers = {}
    tasks.networks = {}

    def _create_container(spec):
        container_id = f"cid-{len(tasks.containers) + 1}"
        tasks.containers[spec.name] = container_id
        return container_id

    def _remove_container(container_id):
        for name, existing in list(tasks.containers.items()):
            if existing == container_id:
                del tasks.containers[name]

    def _create_network(name, subnet=None):
        network_id = f"net-{len(tasks.networks) + 1}"
        tasks.networks[name] = network_id
        return network_id

    def _remove_network(network_id):
        for name, existing in list(tasks.networks.items()):
            if existing == network_id:
                del tasks.networks[name]

    def _copy(container_id, src_path, dest_path):
        Path(dest_path).write_text(KUBECONFIG)

    tasks.find_container_ids.side_effect = lambda name: [tasks.containers[name]] if name in tasks.containers else []
    tasks.create_container.side_effect = _create_container
    tasks.remove_container.side_effect = _remove_container
    tasks.find_network_ids.side_effect = lambda name: [tasks.networks[name]] if name in tasks.networks else []
    tasks.create_network.side_effect = _create_network
    tasks.remove_network.side_effect = _remove_network
    tasks.create_volume.side_effect = lambda name: f"{name}.volume.envyard"
    tasks.container_state.return_value = "running"
    tasks.container_logs.return_value = b"level=info msg=\"Running kubelet --address=0.0.0.0\"\n"
    tasks.copy_from_container.side_effect = _copy
    return tasks


@pytest.fixture
def tasks():
    return make_tasks()


@pytest.fixture
def kubernetes():
    client = MagicMock(spec=KubernetesClient)
    client.get_pods.return_value = [READY_POD]
    return client


@pytest.fixture
def clients(tasks, kubernetes):
    """Capability bundle with every external system faked."""
    helm = MagicMock(spec=HelmClient)
    helm.release_exists.return_value = False
    command = MagicMock(spec=CommandRunner)
    command.run.return_value = "done\n"
    http = MagicMock(spec=HTTPClient)
    http.get.return_value = 200
    return Clients(
        tasks=tasks,
        kubernetes=MagicMock(return_value=kubernetes),
        helm=helm,
        command=command,
        http=http,
    )


@pytest.fixture
def config(tmp_path):
    """Engine settings with tiny readiness budgets."""
    return EngineConfig(
        state_dir=tmp_path / "state",
        max_workers=4,
        start_timeout=0.05,
        poll_interval=0.01,
        quiescence=0,
    )


@pytest.fixture
def write_blueprint(tmp_path):
    """Write a blueprint file and return its path."""

    def _write(text, name="blueprint.yaml"):
        path = tmp_path / "blueprint" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    return _write
