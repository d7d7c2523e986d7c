"""
Tests for blueprint parsing, resource models and reference resolution.
"""
import pytest

from envyard.blueprint import Blueprint, load_blueprint, parse_blueprint
from envyard.errors import BlueprintError, UnresolvedReferenceError
from envyard.resources import (
    ClusterResource,
    ContainerResource,
    ExecResource,
    HelmResource,
    NetworkResource,
    Port,
    find_references,
)

BLUEPRINT = """
blueprint:
  title: Consul on k3s
  author: Envyard
  slug: consul-k3s

network:
  cloud:
    subnet: 10.15.0.0/16

cluster:
  k3s:
    network: ${network.cloud.name}

helm:
  consul:
    kubeconfig: ${cluster.k3s.kubeconfig}
    chart: ./helm/consul
    overrides:
      server.replicas: "1"

ingress:
  consul-http:
    network: ${network.cloud.name}
    target: svc/consul-server
    kubeconfig: ${cluster.k3s.kubeconfig_docker}
    depends_on: ["helm.consul"]
    ports:
      - local: 8500
        host: 18500
"""


class TestParse:
    """YAML blueprints map type -> name -> fields."""

    def test_resources_in_declaration_order(self):
        blueprint = parse_blueprint(BLUEPRINT)
        assert [r.key for r in blueprint] == [
            "network.cloud",
            "cluster.k3s",
            "helm.consul",
            "ingress.consul-http",
        ]

    def test_metadata(self):
        blueprint = parse_blueprint(BLUEPRINT)
        assert blueprint.meta.title == "Consul on k3s"
        assert blueprint.meta.slug == "consul-k3s"

    def test_typed_fields(self):
        blueprint = parse_blueprint(BLUEPRINT)
        ingress = blueprint.find("ingress", "consul-http")
        assert ingress.ports == [Port(local=8500, host=18500)]
        assert ingress.ports[0].remote_port == 8500
        assert ingress.depends_on == ["helm.consul"]
        assert blueprint.find("helm", "consul").namespace == "default"

    def test_unknown_type(self):
        with pytest.raises(BlueprintError, match="unknown resource type 'vm'"):
            parse_blueprint("vm:\n  one: {}\n")

    def test_unknown_field(self):
        with pytest.raises(BlueprintError, match="container.web"):
            parse_blueprint("container:\n  web:\n    image: nginx\n    colour: blue\n")

    def test_missing_required_field(self):
        with pytest.raises(BlueprintError):
            parse_blueprint("container:\n  web:\n    network: x\n")

    def test_invalid_name(self):
        with pytest.raises(BlueprintError):
            parse_blueprint("network:\n  bad.name: {}\n")

    def test_invalid_yaml(self):
        with pytest.raises(BlueprintError):
            parse_blueprint("network: [unclosed\n")

    def test_empty_entry_uses_defaults(self):
        blueprint = parse_blueprint("network:\n  cloud:\n")
        assert blueprint.find("network", "cloud").subnet is None


class TestLoad:
    """Blueprints on disk, as a file or a directory."""

    def test_directory_files_sorted(self, tmp_path):
        (tmp_path / "b.yaml").write_text("container:\n  web:\n    image: nginx\n")
        (tmp_path / "a.yml").write_text("network:\n  cloud: {}\n")
        (tmp_path / "notes.txt").write_text("ignored")
        blueprint = load_blueprint(tmp_path)
        assert [r.key for r in blueprint] == ["network.cloud", "container.web"]

    def test_duplicate_across_files(self, tmp_path):
        (tmp_path / "a.yaml").write_text("network:\n  cloud: {}\n")
        (tmp_path / "b.yaml").write_text("network:\n  cloud: {}\n")
        with pytest.raises(BlueprintError, match="duplicate"):
            load_blueprint(tmp_path)

    def test_missing_path(self, tmp_path):
        with pytest.raises(BlueprintError, match="does not exist"):
            load_blueprint(tmp_path / "nope")

    def test_empty_directory(self, tmp_path):
        with pytest.raises(BlueprintError, match="does not declare"):
            load_blueprint(tmp_path)


class TestResources:
    """Keys, FQDNs and dependencies derived from resource fields."""

    def test_key_and_fqdn(self):
        network = NetworkResource(name="cloud")
        assert network.key == "network.cloud"
        assert network.fqdn == "cloud.network.envyard"

    def test_fqdn_differs_per_type(self):
        assert NetworkResource(name="web").fqdn != ContainerResource(name="web", image="x").fqdn

    def test_dependencies_deduplicated(self):
        web = ContainerResource(
            name="web",
            image="nginx",
            network="${network.cloud.name}",
            environment={"NET": "${network.cloud.id}", "DB": "${container.db.fqdn}"},
            depends_on=["container.db"],
        )
        assert web.dependencies() == ["container.db", "network.cloud"]

    def test_find_references_in_nested_models(self):
        refs = find_references([Port(local=80), {"a": ["x ${exec.seed.output} y"]}])
        assert [r.key for r in refs] == ["exec.seed"]
        assert refs[0].expression == "${exec.seed.output}"

    def test_config_fields_exclude_meta(self):
        fields = NetworkResource(name="cloud", subnet="10.0.0.0/24", depends_on=["exec.x"]).config_fields()
        assert fields == {"subnet": "10.0.0.0/24"}


class TestResolve:
    """Reference substitution against the blueprint arena."""

    @pytest.fixture
    def blueprint(self):
        return Blueprint([
            NetworkResource(name="cloud"),
            ClusterResource(name="k3s", network="${network.cloud.name}"),
            HelmResource(name="consul", kubeconfig="${cluster.k3s.kubeconfig}", chart="consul"),
            ContainerResource(
                name="web",
                image="nginx",
                environment={"API": "https://${cluster.k3s.fqdn}:${cluster.k3s.api_port}"},
            ),
        ])

    def test_outputs_are_substituted(self, blueprint):
        blueprint.find("network", "cloud").outputs["name"] = "cloud.network.envyard"
        cluster = blueprint.resolve(blueprint.find("cluster", "k3s"))
        assert cluster.network == "cloud.network.envyard"

    def test_embedded_references_interpolated(self, blueprint):
        blueprint.find("cluster", "k3s").outputs.update(fqdn="server.k3s.cluster.envyard", api_port=64123)
        web = blueprint.resolve(blueprint.find("container", "web"))
        assert web.environment == {"API": "https://server.k3s.cluster.envyard:64123"}

    def test_whole_reference_keeps_raw_value(self, blueprint):
        blueprint.find("cluster", "k3s").outputs["kubeconfig"] = "/tmp/kubeconfig.yaml"
        helm = blueprint.resolve(blueprint.find("helm", "consul"))
        assert helm.kubeconfig == "/tmp/kubeconfig.yaml"

    def test_config_field_fallback(self):
        blueprint = Blueprint([
            NetworkResource(name="cloud", subnet="10.1.0.0/16"),
            ContainerResource(name="web", image="nginx", environment={"SUBNET": "${network.cloud.subnet}"}),
        ])
        web = blueprint.resolve(blueprint.find("container", "web"))
        assert web.environment["SUBNET"] == "10.1.0.0/16"

    def test_missing_output_raises(self, blueprint):
        with pytest.raises(UnresolvedReferenceError):
            blueprint.resolve(blueprint.find("helm", "consul"))

    def test_non_strict_leaves_expression(self, blueprint):
        helm = blueprint.resolve(blueprint.find("helm", "consul"), strict=False)
        assert helm.kubeconfig == "${cluster.k3s.kubeconfig}"

    def test_unresolved_config_field_raises(self, blueprint):
        web = ContainerResource(name="api", image="nginx", network="${cluster.k3s.network}")
        blueprint.add(web)
        with pytest.raises(UnresolvedReferenceError, match="not resolved yet"):
            blueprint.resolve(web)

    def test_whole_reference_number_coerced_to_field_type(self, blueprint):
        blueprint.find("cluster", "k3s").outputs["api_port"] = 64068
        check = ExecResource(name="port", command="echo", arguments=["${cluster.k3s.api_port}"])
        web = ContainerResource(name="api", image="nginx", environment={"API_PORT": "${cluster.k3s.api_port}"})
        blueprint.add(check)
        blueprint.add(web)

        assert blueprint.resolve(check).arguments == ["64068"]
        assert blueprint.resolve(web).environment == {"API_PORT": "64068"}

    def test_whole_reference_of_wrong_shape_raises(self, blueprint):
        blueprint.find("cluster", "k3s").outputs["kubeconfig"] = {"path": "/tmp/kubeconfig.yaml"}
        with pytest.raises(BlueprintError, match="helm.consul: resolved field 'kubeconfig' is invalid"):
            blueprint.resolve(blueprint.find("helm", "consul"))
