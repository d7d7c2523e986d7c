"""
Tests for the network, container, ingress, docs, exec and helm providers.
"""
from pathlib import Path

import pytest

from envyard.errors import AlreadyExistsError, CrashDetectedError, InvalidTransitionError, RuntimeCallError
from envyard.providers import PROVIDERS, generate
from envyard.providers.base import ResourceStatus, StatusTracker
from envyard.providers.container import ContainerProvider
from envyard.providers.docs import DocsProvider
from envyard.providers.exec import ExecProvider
from envyard.providers.helm import HelmProvider
from envyard.providers.ingress import IngressProvider
from envyard.providers.network import NetworkProvider
from envyard.resources import (
    RESOURCE_TYPES,
    ContainerResource,
    DocsResource,
    ExecResource,
    HelmResource,
    IngressResource,
    NetworkResource,
    Port,
)


class TestRegistry:
    def test_every_type_has_a_provider(self):
        assert set(PROVIDERS) == set(RESOURCE_TYPES)

    def test_generate(self, clients, config):
        provider = generate(NetworkResource(name="cloud"), clients, config)
        assert isinstance(provider, NetworkProvider)
        assert provider.key == "network.cloud"


class TestStatusTracker:
    """Per-resource lifecycle transitions."""

    def test_create_path(self):
        tracker = StatusTracker()
        tracker.register("network.cloud")
        tracker.transition("network.cloud", ResourceStatus.CREATING)
        tracker.transition("network.cloud", ResourceStatus.READY)
        tracker.transition("network.cloud", ResourceStatus.DESTROYING)
        tracker.transition("network.cloud", ResourceStatus.DESTROYED)
        assert tracker.get("network.cloud") is ResourceStatus.DESTROYED

    def test_failed_is_not_retried(self):
        tracker = StatusTracker()
        tracker.register("network.cloud")
        tracker.transition("network.cloud", ResourceStatus.CREATING)
        tracker.transition("network.cloud", ResourceStatus.FAILED)
        with pytest.raises(InvalidTransitionError):
            tracker.transition("network.cloud", ResourceStatus.CREATING)

    def test_pending_cannot_become_ready(self):
        tracker = StatusTracker()
        tracker.register("network.cloud")
        with pytest.raises(InvalidTransitionError):
            tracker.transition("network.cloud", ResourceStatus.READY)


class TestNetworkProvider:
    def test_create(self, clients, config, tasks):
        network = NetworkResource(name="cloud", subnet="10.5.0.0/16")
        NetworkProvider(network, clients, config).create()
        tasks.create_network.assert_called_once_with("cloud.network.envyard", "10.5.0.0/16")
        assert network.outputs == {"name": "cloud.network.envyard", "id": "net-1"}

    def test_create_existing(self, clients, config, tasks):
        tasks.networks["cloud.network.envyard"] = "net-0"
        with pytest.raises(AlreadyExistsError):
            NetworkProvider(NetworkResource(name="cloud"), clients, config).create()
        tasks.create_network.assert_not_called()

    def test_destroy(self, clients, config, tasks):
        provider = NetworkProvider(NetworkResource(name="cloud"), clients, config)
        provider.create()
        assert provider.lookup() == ["net-1"]
        provider.destroy()
        provider.destroy()
        tasks.remove_network.assert_called_once_with("net-1")
        assert provider.lookup() == []


class TestContainerProvider:
    @pytest.fixture
    def web(self):
        return ContainerResource(
            name="web",
            image="nginx:1.27",
            network="cloud.network.envyard",
            environment={"MODE": "test"},
            ports=[Port(local=80, host=8080)],
        )

    def test_create(self, web, clients, config, tasks):
        ContainerProvider(web, clients, config).create()
        spec = tasks.create_container.call_args.args[0]
        assert spec.name == "web.container.envyard"
        assert spec.image == "nginx:1.27"
        assert spec.environment == {"MODE": "test"}
        assert spec.ports == [Port(local=80, host=8080)]
        assert web.outputs == {"id": "cid-1", "fqdn": "web.container.envyard"}

    def test_create_existing(self, web, clients, config, tasks):
        provider = ContainerProvider(web, clients, config)
        provider.create()
        with pytest.raises(AlreadyExistsError):
            provider.create()
        assert tasks.create_container.call_count == 1

    def test_crashing_container(self, web, clients, config, tasks):
        tasks.container_state.return_value = "exited"
        with pytest.raises(CrashDetectedError):
            ContainerProvider(web, clients, config).create()

    def test_destroy_never_created(self, web, clients, config, tasks):
        ContainerProvider(web, clients, config).destroy()
        tasks.remove_container.assert_not_called()


class TestIngressProvider:
    def test_network_target(self, clients, config, tasks):
        ingress = IngressResource(
            name="web",
            network="cloud.network.envyard",
            target="web.container.envyard",
            ports=[Port(local=80, host=18080, remote=8080)],
        )
        IngressProvider(ingress, clients, config).create()
        spec = tasks.create_container.call_args.args[0]
        assert spec.name == "web.ingress.envyard"
        assert spec.image.startswith("shipyardrun/ingress:")
        assert spec.command == ["--target", "web.container.envyard", "--port", "80:8080"]
        assert spec.ports[0].local == 80
        assert spec.ports[0].host == 18080
        assert spec.volumes == []

    def test_kubernetes_service_target(self, clients, config, tasks, tmp_path):
        kubeconfig = tmp_path / "kubeconfig-docker.yaml"
        ingress = IngressResource(
            name="consul",
            network="cloud.network.envyard",
            target="svc/consul-server",
            namespace="consul",
            kubeconfig=str(kubeconfig),
            ports=[Port(local=8500)],
        )
        IngressProvider(ingress, clients, config).create()
        spec = tasks.create_container.call_args.args[0]
        assert spec.command[-2:] == ["--namespace", "consul"]
        assert spec.volumes[0].source == str(kubeconfig)
        assert spec.volumes[0].destination == "/.kube/kubeconfig.yaml"
        assert spec.environment == {"KUBECONFIG": "/.kube/kubeconfig.yaml"}


class TestDocsProvider:
    def test_create_waits_for_http(self, clients, config, tasks, tmp_path):
        docs = DocsResource(name="site", path=str(tmp_path), port=18080)
        DocsProvider(docs, clients, config).create()
        spec = tasks.create_container.call_args.args[0]
        assert spec.volumes[0].source == str(Path(tmp_path).resolve())
        assert spec.volumes[0].destination == "/shipyard/docs"
        assert spec.ports == [Port(local=3000, host=18080)]
        clients.http.get.assert_called_with("http://localhost:18080")
        assert docs.outputs["url"] == "http://localhost:18080"


class TestExecProvider:
    def test_runs_command(self, clients, config):
        job = ExecResource(name="seed", command="kubectl", arguments=["apply", "-f", "x.yaml"], environment={"A": "1"})
        ExecProvider(job, clients, config).create()
        clients.command.run.assert_called_once_with(
            "kubectl",
            ["apply", "-f", "x.yaml"],
            environment={"A": "1"},
            working_directory=None,
            timeout=300,
        )
        assert job.outputs["output"] == "done"

    def test_converges(self, clients, config):
        provider = ExecProvider(ExecResource(name="seed", command="true"), clients, config)
        provider.create()
        provider.create()
        assert clients.command.run.call_count == 2
        assert provider.lookup() == []

    def test_failure_propagates(self, clients, config):
        clients.command.run.side_effect = RuntimeCallError("exit code 1")
        with pytest.raises(RuntimeCallError):
            ExecProvider(ExecResource(name="seed", command="false"), clients, config).create()


class TestHelmProvider:
    @pytest.fixture
    def kubeconfig(self, tmp_path):
        path = tmp_path / "kubeconfig.yaml"
        path.write_text("apiVersion: v1\n")
        return path

    def test_install(self, clients, config, kubeconfig):
        release = HelmResource(name="consul", kubeconfig=str(kubeconfig), chart="hashicorp/consul",
                               overrides={"server.replicas": "1"})
        HelmProvider(release, clients, config).create()
        clients.helm.install.assert_called_once_with(
            kubeconfig,
            "consul",
            "hashicorp/consul",
            "default",
            values=None,
            overrides={"server.replicas": "1"},
            wait=True,
            timeout="300s",
        )
        assert release.outputs == {"release": "consul", "namespace": "default"}

    def test_existing_release(self, clients, config, kubeconfig):
        clients.helm.release_exists.return_value = True
        with pytest.raises(AlreadyExistsError):
            HelmProvider(HelmResource(name="consul", kubeconfig=str(kubeconfig), chart="c"), clients, config).create()
        clients.helm.install.assert_not_called()

    def test_missing_kubeconfig(self, clients, config, tmp_path):
        release = HelmResource(name="consul", kubeconfig=str(tmp_path / "nope.yaml"), chart="c")
        with pytest.raises(RuntimeCallError):
            HelmProvider(release, clients, config).create()

    def test_destroy(self, clients, config, kubeconfig):
        HelmProvider(HelmResource(name="consul", kubeconfig=str(kubeconfig), chart="c"), clients, config).destroy()
        clients.helm.uninstall.assert_called_once_with(kubeconfig, "consul", "default")

    def test_destroy_without_cluster_is_noop(self, clients, config):
        release = HelmResource(name="consul", kubeconfig="${cluster.k3s.kubeconfig}", chart="c")
        HelmProvider(release, clients, config).destroy()
        clients.helm.uninstall.assert_not_called()
