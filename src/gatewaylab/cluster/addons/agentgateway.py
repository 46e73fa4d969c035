"""agentgateway addon for AI-agent (MCP and A2A) traffic."""

from pathlib import Path
from typing import Any

from gatewaylab.cluster.addons.base import BaseAddon
from gatewaylab.utils.errors import HelmCommandError, LabError


class AgentGatewayAddon(BaseAddon):
    """agentgateway addon.

    Installs the agentgateway control plane and its CRDs from the kgateway OCI
    charts. It registers the ``agentgateway`` GatewayClass, so Gateways using it
    route MCP and agent-to-agent traffic next to the Envoy Gateway listeners.

    Requires the Gateway API CRDs (gateway-api addon).
    """

    name = "agentgateway"

    DEFAULT_VERSION = "v2.1.1"
    NAMESPACE = "agentgateway-system"
    CHART_REPO = "oci://ghcr.io/kgateway-dev/charts"
    CRDS_RELEASE = "agentgateway-crds"
    RELEASE_NAME = "agentgateway"
    DEPLOYMENT_NAME = "agentgateway"
    GATEWAY_CLASS = "agentgateway"

    def __init__(
        self, cluster_name: str, kubeconfig_path: Path, config: dict[str, Any] | None = None
    ):
        """Initialize agentgateway addon.

        Args:
            cluster_name: Name of the cluster
            kubeconfig_path: Path to cluster's kubeconfig file
            config: Optional configuration:
                - version: chart version (default: v2.1.1)
                - namespace: install namespace (default: agentgateway-system)
                - values: Additional Helm values dict
        """
        super().__init__(cluster_name, kubeconfig_path, config)
        self.version = self.config.get("version", self.DEFAULT_VERSION)
        self.namespace = self.config.get("namespace", self.NAMESPACE)
        self.custom_values = self.config.get("values", {})

    def check_prerequisites(self) -> bool:
        if not super().check_prerequisites():
            return False
        if not self.kubectl.resource_exists("crd/gateways.gateway.networking.k8s.io"):
            self.log_error(
                "Gateway API CRDs are not installed. Install the gateway-api addon first"
            )
            return False
        return True

    def is_installed(self) -> bool:
        return self._helm_release_exists(self.RELEASE_NAME, self.namespace)

    def install(self) -> dict[str, Any]:
        try:
            self._helm_install(
                release_name=self.CRDS_RELEASE,
                chart=f"{self.CHART_REPO}/{self.CRDS_RELEASE}",
                namespace=self.namespace,
                version=self.version,
            )
            self._helm_install(
                release_name=self.RELEASE_NAME,
                chart=f"{self.CHART_REPO}/{self.RELEASE_NAME}",
                namespace=self.namespace,
                values=self.custom_values,
                version=self.version,
            )
        except HelmCommandError as e:
            return {
                "success": False,
                "error": str(e),
                "message": f"Helm installation failed: {e}",
            }

        return {"success": True, "message": f"agentgateway installed (version {self.version})"}

    def wait_for_ready(self, timeout: int = 300) -> bool:
        self.log_info("Waiting for agentgateway controller to be ready")
        try:
            self.kubectl.wait(
                f"deployment/{self.DEPLOYMENT_NAME}",
                "Available",
                namespace=self.namespace,
                timeout=f"{timeout}s",
            )
        except LabError as e:
            self.log_warn(f"agentgateway not ready: {e}")
            return False
        return True

    def verify(self) -> bool:
        """The chart-managed GatewayClass must be accepted by the controller."""
        try:
            self.kubectl.wait(f"gatewayclass/{self.GATEWAY_CLASS}", "Accepted", timeout="60s")
        except LabError as e:
            self.log_warn(f"GatewayClass '{self.GATEWAY_CLASS}' not accepted: {e}")
            return False
        return True
