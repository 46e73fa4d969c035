"""Unit tests for lab orchestration."""

import logging
from unittest.mock import MagicMock, call, patch

import pytest
import yaml

from gatewaylab.cluster.hosts import HostsFile
from gatewaylab.lab import GatewayLab, LabStatus, _summarize_conditions
from gatewaylab.utils.errors import (
    AddonInstallError,
    KindCommandError,
    KubectlCommandError,
    PrerequisiteError,
)


@pytest.fixture
def kind():
    mock_kind = MagicMock()
    mock_kind.cluster_exists.return_value = False
    return mock_kind


@pytest.fixture
def lab(lab_config, kind):
    """Create a lab with mocked kind and kubectl managers."""
    gateway_lab = GatewayLab(lab_config, kind=kind, hosts=HostsFile(lab_config.hosts_file))
    gateway_lab._kubectl = MagicMock()
    return gateway_lab


class TestSetup:
    """Test the setup sequence."""

    def test_steps_in_order(self, lab):
        names = [step.name for step in lab.setup_steps()]
        assert names == ["prerequisites", "cluster", "addons", "gateway", "app", "route", "hosts"]

    def test_skip_hosts(self, lab):
        names = [step.name for step in lab.setup_steps(configure_hosts=False)]
        assert "hosts" not in names

    @patch("gatewaylab.lab.check_prerequisites")
    def test_setup_runs_every_step(self, mock_prereqs, lab):
        manager = MagicMock()
        for method in (
            "create_cluster",
            "install_lab_addons",
            "deploy_gateway",
            "deploy_app",
            "apply_route",
            "configure_hosts",
        ):
            setattr(lab, method, getattr(manager, method))
        lab.status = MagicMock(return_value=LabStatus("gateway-api-lab", True, "172.18.255.200"))
        on_step = MagicMock()
        lab.on_step = on_step

        status = lab.setup(reuse_cluster=True)

        mock_prereqs.assert_called_once()
        assert manager.mock_calls == [
            call.create_cluster(reuse=True),
            call.install_lab_addons(),
            call.deploy_gateway(),
            call.deploy_app(),
            call.apply_route("basic"),
            call.configure_hosts(),
        ]
        assert on_step.call_count == 7
        assert on_step.call_args_list[0][0][:2] == (1, 7)
        assert status.gateway_ip == "172.18.255.200"

    @patch("gatewaylab.lab.check_prerequisites")
    def test_setup_stops_at_first_failure(self, mock_prereqs, lab, kind):
        mock_prereqs.side_effect = PrerequisiteError("Docker is not running")

        with pytest.raises(PrerequisiteError):
            lab.setup()

        kind.create_cluster.assert_not_called()


class TestCreateCluster:
    """Test cluster creation."""

    def test_create_with_cilium_networking(self, lab, kind):
        kind.create_cluster.return_value = {"cluster_name": "gateway-api-lab"}

        lab.create_cluster()

        name, config_yaml, k8s_version = kind.create_cluster.call_args[0]
        config = yaml.safe_load(config_yaml)
        assert name == "gateway-api-lab"
        assert k8s_version is None
        assert config["networking"] == {"disableDefaultCNI": True, "kubeProxyMode": "none"}
        assert len(config["nodes"]) == 3
        kind.export_kubeconfig.assert_called_once_with("gateway-api-lab", lab.kubeconfig_path)

    def test_existing_cluster_is_recreated(self, lab, kind):
        kind.cluster_exists.return_value = True

        lab.create_cluster()

        kind.delete_cluster.assert_called_once_with("gateway-api-lab")
        kind.create_cluster.assert_called_once()

    def test_existing_cluster_is_reused(self, lab, kind):
        kind.cluster_exists.return_value = True

        result = lab.create_cluster(reuse=True)

        assert result["reused"] is True
        kind.delete_cluster.assert_not_called()
        kind.create_cluster.assert_not_called()
        kind.export_kubeconfig.assert_called_once()


class TestAddons:
    """Test addon installation."""

    def test_install_lab_addons(self, lab):
        manager = MagicMock()
        manager.install_addons.return_value = {
            "success": True,
            "results": {},
            "failed": [],
            "message": "Addons: 4/4 succeeded",
        }

        with patch.object(lab, "addon_manager", return_value=manager):
            lab.install_lab_addons()

        names = manager.install_addons.call_args[0][0]
        kwargs = manager.install_addons.call_args[1]
        assert names == ["cilium", "metallb", "gateway-api", "envoy-gateway"]
        assert kwargs["stop_on_failure"] is True
        assert kwargs["configs"]["metallb"] == {
            "version": "v0.14.9",
            "pool_start": 200,
            "pool_end": 250,
        }

    def test_install_addons_failure(self, lab):
        manager = MagicMock()
        manager.install_addons.return_value = {
            "success": False,
            "results": {"metallb": {"success": False, "error": "pods not ready"}},
            "failed": ["metallb"],
            "message": "Addons: 1/4 succeeded, 1 failed: metallb",
        }

        with patch.object(lab, "addon_manager", return_value=manager):
            with pytest.raises(AddonInstallError, match="metallb: pods not ready"):
                lab.install_addons(["cilium", "metallb"])


class TestDeploy:
    """Test Gateway, app and route deployment."""

    @patch("gatewaylab.lab.generate_self_signed", return_value=("CERT", "KEY"))
    def test_deploy_gateway(self, mock_cert, lab):
        lab.deploy_gateway()

        mock_cert.assert_called_once_with("local.dev")
        lab.kubectl.create_tls_secret.assert_called_once_with(
            "eg-tls-cert", "envoy-gateway-system", "CERT", "KEY"
        )
        gateway = yaml.safe_load(lab.kubectl.apply_manifest.call_args[0][0])
        assert gateway["kind"] == "Gateway"
        lab.kubectl.wait.assert_called_once_with(
            "gateway/eg-gateway", "Programmed", namespace="envoy-gateway-system", timeout="5m"
        )

    def test_deploy_gateway_requires_namespace(self, lab):
        lab.kubectl.namespace_exists.return_value = False

        with pytest.raises(AddonInstallError, match="envoy-gateway-system"):
            lab.deploy_gateway()

        lab.kubectl.namespace_exists.assert_called_once_with("envoy-gateway-system")
        lab.kubectl.create_tls_secret.assert_not_called()

    def test_deploy_app(self, lab):
        lab.deploy_app()

        assert lab.kubectl.apply_manifest.call_count == 2
        waited = [c[0][0] for c in lab.kubectl.wait.call_args_list]
        assert waited == ["deployment/webapp", "deployment/webapp-canary"]

    def test_apply_route(self, lab):
        lab.apply_route("canary")

        route = yaml.safe_load(lab.kubectl.apply_manifest.call_args[0][0])
        assert route["metadata"]["name"] == "webapp-route"
        assert route["spec"]["hostnames"] == ["webapp.local.dev"]

    def test_apply_unknown_route(self, lab):
        with pytest.raises(ValueError, match="Unknown route"):
            lab.apply_route("mirror")


class TestHosts:
    """Test hosts file configuration."""

    def test_configure_hosts(self, lab):
        lab.hosts.path.write_text("127.0.0.1 localhost\n")
        lab.kubectl.get_jsonpath.return_value = "172.18.255.200"

        assert lab.configure_hosts() is True
        assert "172.18.255.200 webapp.local.dev api.local.dev" in lab.hosts.path.read_text()

    def test_configure_hosts_without_ip(self, lab, caplog):
        lab.kubectl.get_jsonpath.return_value = ""

        assert lab.configure_hosts() is False
        assert "Could not get Gateway IP" in caplog.text


class TestCleanup:
    """Test teardown."""

    def test_cleanup(self, lab, kind):
        kind.delete_cluster.return_value = {"success": True, "deleted": True}
        lab.hosts.path.write_text("127.0.0.1 localhost\n172.18.255.200 webapp.local.dev\n")
        lab.kubeconfig_path.parent.mkdir(parents=True)
        lab.kubeconfig_path.write_text("kubeconfig")

        result = lab.cleanup()

        kind.delete_cluster.assert_called_once_with("gateway-api-lab", missing_ok=True)
        assert result == {"cluster_deleted": True, "hosts_removed": 1}
        assert lab.hosts.path.read_text() == "127.0.0.1 localhost\n"
        assert not lab.kubeconfig_path.parent.exists()

    def test_cleanup_nothing_to_do(self, lab, kind):
        kind.delete_cluster.return_value = {"success": True, "deleted": False}

        result = lab.cleanup()

        assert result == {"cluster_deleted": False, "hosts_removed": 0}

    def test_cleanup_continues_when_delete_fails(self, lab, kind, caplog):
        kind.delete_cluster.side_effect = KindCommandError("Failed to delete cluster")
        lab.hosts.path.write_text("127.0.0.1 localhost\n172.18.255.200 webapp.local.dev\n")
        lab.kubeconfig_path.parent.mkdir(parents=True)
        lab.kubeconfig_path.write_text("kubeconfig")

        with caplog.at_level(logging.WARNING):
            result = lab.cleanup()

        assert result == {"cluster_deleted": False, "hosts_removed": 1}
        assert lab.hosts.path.read_text() == "127.0.0.1 localhost\n"
        assert not lab.kubeconfig_path.parent.exists()
        assert "Could not delete cluster" in caplog.text

    @patch("gatewaylab.cluster.kind_manager.subprocess.run", side_effect=FileNotFoundError())
    def test_cleanup_without_kind_cli(self, mock_run, lab_config):
        lab = GatewayLab(lab_config, hosts=HostsFile(lab_config.hosts_file))
        lab.hosts.path.write_text("172.18.255.200 webapp.local.dev api.local.dev\n")

        result = lab.cleanup()

        assert result == {"cluster_deleted": False, "hosts_removed": 1}
        assert "local.dev" not in lab.hosts.path.read_text()


class TestStatus:
    """Test status collection."""

    def test_missing_cluster(self, lab, kind):
        status = lab.status()

        assert status.cluster_exists is False
        assert status.nodes == []
        lab.kubectl.get_resources.assert_not_called()

    def test_running_cluster(self, lab, kind):
        kind.cluster_exists.return_value = True
        kind.get_node_names.return_value = ["gateway-api-lab-control-plane"]
        lab.kubectl.get_jsonpath.return_value = "172.18.255.200"
        lab.kubectl.get_resources.return_value = [
            {
                "kind": "Gateway",
                "metadata": {"name": "eg-gateway", "namespace": "envoy-gateway-system"},
                "status": {"conditions": [{"type": "Programmed", "status": "True"}]},
            }
        ]

        status = lab.status()

        kind.export_kubeconfig.assert_called_once()
        assert status.gateway_ip == "172.18.255.200"
        assert status.resources == [
            {
                "kind": "Gateway",
                "namespace": "envoy-gateway-system",
                "name": "eg-gateway",
                "status": "Programmed=True",
            }
        ]

    def test_unreadable_resources(self, lab, kind):
        kind.cluster_exists.return_value = True
        lab.kubectl.get_jsonpath.side_effect = KubectlCommandError("connection refused")

        status = lab.status()

        assert status.cluster_exists is True
        assert status.resources == []


class TestSummarizeConditions:
    """Test condition summaries."""

    def test_route_parent_conditions(self):
        item = {
            "status": {
                "parents": [
                    {
                        "conditions": [
                            {"type": "Accepted", "status": "True"},
                            {"type": "ResolvedRefs", "status": "True"},
                        ]
                    }
                ]
            }
        }
        assert _summarize_conditions(item) == "Accepted=True, ResolvedRefs=True"

    def test_no_status(self):
        assert _summarize_conditions({}) == "-"
