"""Unit tests for kubectl manager."""

import json
import subprocess
from unittest.mock import Mock, patch

import pytest

from gatewaylab.cluster.kubectl_manager import KubectlManager, _duration_seconds
from gatewaylab.utils.errors import (
    ClusterNotFoundError,
    InvalidManifestError,
    KubectlCommandError,
)


@pytest.fixture
def manager(kubeconfig):
    with patch.object(KubectlManager, "_check_kubectl_available"):
        yield KubectlManager(kubeconfig)


class TestKubectlManagerInit:
    """Tests for kubectl availability checks."""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_init_success(self, mock_run, kubeconfig):
        mock_run.return_value = Mock(returncode=0, stdout="Client Version: v1.31.0")

        manager = KubectlManager(kubeconfig)

        assert manager.kubeconfig_path == kubeconfig
        assert mock_run.call_args[0][0] == ["kubectl", "version", "--client"]

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_init_kubectl_not_found(self, mock_run, kubeconfig):
        mock_run.side_effect = FileNotFoundError()

        with pytest.raises(KubectlCommandError) as exc_info:
            KubectlManager(kubeconfig)

        assert "kubectl CLI not found" in str(exc_info.value)
        assert "install kubectl" in str(exc_info.value)

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_init_kubectl_timeout(self, mock_run, kubeconfig):
        mock_run.side_effect = subprocess.TimeoutExpired("kubectl", 10)

        with pytest.raises(KubectlCommandError, match="timed out"):
            KubectlManager(kubeconfig)


class TestRunKubectl:
    """Tests for command construction."""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_uses_kubeconfig(self, mock_run, manager, kubeconfig):
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")

        manager._run_kubectl(["get", "pods"])

        assert mock_run.call_args[0][0] == [
            "kubectl",
            "--kubeconfig",
            str(kubeconfig),
            "get",
            "pods",
        ]

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_timeout(self, mock_run, manager):
        mock_run.side_effect = subprocess.TimeoutExpired("kubectl", 30)

        with pytest.raises(KubectlCommandError, match="timed out after 30 seconds"):
            manager._run_kubectl(["get", "pods"])


class TestClusterAccess:
    """Tests for cluster reachability."""

    def test_missing_kubeconfig(self, tmp_path):
        with patch.object(KubectlManager, "_check_kubectl_available"):
            manager = KubectlManager(tmp_path / "missing")

        with pytest.raises(ClusterNotFoundError, match="Kubeconfig not found"):
            manager.check_cluster_access()

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_accessible(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="Kubernetes control plane", stderr="")
        manager.check_cluster_access()

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_not_accessible(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="connection refused")

        with pytest.raises(ClusterNotFoundError, match="connection refused"):
            manager.check_cluster_access()

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_timeout(self, mock_run, manager):
        mock_run.side_effect = subprocess.TimeoutExpired("kubectl", 10)

        with pytest.raises(ClusterNotFoundError, match="Timeout connecting"):
            manager.check_cluster_access()


class TestApply:
    """Tests for manifest application."""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_apply_manifest(self, mock_run, manager):
        mock_run.return_value = Mock(
            returncode=0,
            stdout="namespace/demo-app created\ndeployment.apps/webapp created\n",
            stderr="",
        )

        result = manager.apply_manifest(
            "kind: Namespace\n---\nkind: Deployment\n", namespace="demo"
        )

        args = mock_run.call_args[0][0]
        assert args[3:5] == ["apply", "-f"]
        assert args[-2:] == ["-n", "demo"]
        assert result["applied"] is True
        assert result["resources"] == [
            "namespace/demo-app created",
            "deployment.apps/webapp created",
        ]

    def test_apply_invalid_yaml(self, manager):
        with pytest.raises(InvalidManifestError):
            manager.apply_manifest("kind: [unclosed")

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_apply_failure(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="admission webhook denied")

        with pytest.raises(KubectlCommandError, match="admission webhook denied"):
            manager.apply_manifest("kind: Gateway\n")

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_apply_url(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="crd created\n", stderr="")
        url = "https://example.com/manifest.yaml"

        manager.apply_url(url)

        assert mock_run.call_args[0][0][-3:] == ["apply", "-f", url]

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_apply_url_failure_names_source(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="404")

        with pytest.raises(KubectlCommandError, match="Failed to apply https://example.com/x"):
            manager.apply_url("https://example.com/x")


class TestWait:
    """Tests for condition waits."""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_wait_args(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="condition met", stderr="")

        result = manager.wait(
            "pod", "ready", namespace="metallb-system", selector="app=metallb", timeout="90s"
        )

        args = mock_run.call_args[0][0][3:]
        assert args == [
            "wait",
            "pod",
            "--for=condition=ready",
            "--timeout=90s",
            "-n",
            "metallb-system",
            "--selector",
            "app=metallb",
        ]
        assert mock_run.call_args[1]["timeout"] == 120
        assert result["met"] is True

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_wait_failure(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="timed out waiting")

        with pytest.raises(KubectlCommandError, match="Timed out waiting for gateway/eg-gateway"):
            manager.wait("gateway/eg-gateway", "Programmed", timeout="5m")

    @pytest.mark.parametrize(
        "duration,seconds", [("90s", 90), ("5m", 300), ("1h", 3600), ("45", 45)]
    )
    def test_duration_seconds(self, duration, seconds):
        assert _duration_seconds(duration) == seconds


class TestGet:
    """Tests for resource reads."""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_get_jsonpath(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="172.18.255.200\n", stderr="")

        ip = manager.get_jsonpath(
            "gateway/eg-gateway", "{.status.addresses[0].value}", namespace="envoy-gateway-system"
        )

        assert ip == "172.18.255.200"
        assert "jsonpath={.status.addresses[0].value}" in mock_run.call_args[0][0]

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_get_jsonpath_not_found(self, mock_run, manager):
        mock_run.return_value = Mock(
            returncode=1, stdout="", stderr='Error from server (NotFound): gateways "x" not found'
        )
        assert manager.get_jsonpath("gateway/x", "{.metadata.name}") == ""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_get_jsonpath_error(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="Unauthorized")

        with pytest.raises(KubectlCommandError, match="Unauthorized"):
            manager.get_jsonpath("gateway/x", "{.metadata.name}")

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_get_resources_all_namespaces(self, mock_run, manager):
        items = [{"kind": "Gateway", "metadata": {"name": "eg-gateway"}}]
        mock_run.return_value = Mock(returncode=0, stdout=json.dumps({"items": items}), stderr="")

        assert manager.get_resources("gatewayclass,gateway,httproute") == items
        assert mock_run.call_args[0][0][-1] == "--all-namespaces"

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_get_resources_bad_json(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="not json", stderr="")

        with pytest.raises(KubectlCommandError, match="parse kubectl output"):
            manager.get_resources("gateway", namespace="default")

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_resource_exists(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        assert manager.resource_exists("daemonset/cilium", namespace="kube-system") is True

        mock_run.return_value = Mock(returncode=1, stdout="", stderr="NotFound")
        assert manager.resource_exists("daemonset/cilium", namespace="kube-system") is False

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_namespace_exists(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        assert manager.namespace_exists("envoy-gateway-system") is True
        assert mock_run.call_args[0][0][3:] == ["get", "namespace/envoy-gateway-system"]

        mock_run.return_value = Mock(returncode=1, stdout="", stderr="NotFound")
        assert manager.namespace_exists("envoy-gateway-system") is False


class TestTLSSecret:
    """Tests for TLS secret creation."""

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_create_tls_secret(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=0, stdout="secret/eg-tls-cert created", stderr="")

        result = manager.create_tls_secret("eg-tls-cert", "envoy-gateway-system", "CERT", "KEY")

        args = mock_run.call_args[0][0][3:]
        assert args[:4] == ["create", "secret", "tls", "eg-tls-cert"]
        assert args[-2:] == ["-n", "envoy-gateway-system"]
        assert any(arg.startswith("--cert=") for arg in args)
        assert any(arg.startswith("--key=") for arg in args)
        assert result["created"] is True

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_existing_secret_is_kept(self, mock_run, manager):
        mock_run.return_value = Mock(
            returncode=1,
            stdout="",
            stderr='error: failed to create secret secrets "eg-tls-cert" already exists',
        )

        result = manager.create_tls_secret("eg-tls-cert", "envoy-gateway-system", "CERT", "KEY")

        assert result["created"] is False

    @patch("gatewaylab.cluster.kubectl_manager.subprocess.run")
    def test_secret_failure(self, mock_run, manager):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr='namespaces "x" not found')

        with pytest.raises(KubectlCommandError, match="Failed to create secret"):
            manager.create_tls_secret("eg-tls-cert", "x", "CERT", "KEY")
