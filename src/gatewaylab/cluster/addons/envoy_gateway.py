"""Envoy Gateway controller addon."""

import time
from pathlib import Path
from typing import Any

from gatewaylab.cluster.addons.base import BaseAddon
from gatewaylab.utils.errors import HelmCommandError, LabError

GATEWAY_CLASS_TEMPLATE = """apiVersion: gateway.networking.k8s.io/v1
kind: GatewayClass
metadata:
  name: {name}
spec:
  controllerName: {controller}
"""


class EnvoyGatewayAddon(BaseAddon):
    """Envoy Gateway addon.

    Installs the Envoy Gateway controller from its OCI Helm chart. The controller
    watches Gateway and HTTPRoute resources and programs Envoy proxies. The chart
    is installed with ``--skip-crds`` because the Gateway API CRDs come from the
    gateway-api addon, so the ``eg`` GatewayClass is created here.
    """

    name = "envoy-gateway"

    DEFAULT_VERSION = "v1.2.6"
    NAMESPACE = "envoy-gateway-system"
    HELM_CHART = "oci://docker.io/envoyproxy/gateway-helm"
    RELEASE_NAME = "eg"
    DEPLOYMENT_NAME = "envoy-gateway"
    GATEWAY_CLASS = "eg"
    CONTROLLER_NAME = "gateway.envoyproxy.io/gatewayclass-controller"

    def __init__(
        self, cluster_name: str, kubeconfig_path: Path, config: dict[str, Any] | None = None
    ):
        """Initialize Envoy Gateway addon.

        Args:
            cluster_name: Name of the cluster
            kubeconfig_path: Path to cluster's kubeconfig file
            config: Optional configuration:
                - version: chart version (default: v1.2.6)
                - values: Additional Helm values dict
        """
        super().__init__(cluster_name, kubeconfig_path, config)
        self.version = self.config.get("version", self.DEFAULT_VERSION)
        self.custom_values = self.config.get("values", {})

    def is_installed(self) -> bool:
        """Check the controller (Helm release or deployment) and the GatewayClass.

        The GatewayClass is created after the controller is ready; without it
        the addon counts as not installed so the class gets applied.
        """
        if not self._controller_installed():
            return False

        try:
            return self.kubectl.resource_exists(f"gatewayclass/{self.GATEWAY_CLASS}")
        except LabError as e:
            self.log_info(f"GatewayClass check failed: {e}")
            return False

    def _controller_installed(self) -> bool:
        if self._helm_release_exists(self.RELEASE_NAME, self.NAMESPACE):
            self.log_info("Detected via Helm release")
            return True

        try:
            if self.kubectl.resource_exists(
                f"deployment/{self.DEPLOYMENT_NAME}", namespace=self.NAMESPACE
            ):
                self.log_info("Detected via kubectl deployment")
                return True
        except LabError as e:
            self.log_info(f"kubectl check failed: {e}")

        return False

    def install(self) -> dict[str, Any]:
        try:
            self._helm_install(
                release_name=self.RELEASE_NAME,
                chart=self.HELM_CHART,
                namespace=self.NAMESPACE,
                values=self.custom_values,
                version=self.version,
                extra_args=["--skip-crds"],
            )
        except HelmCommandError as e:
            return {
                "success": False,
                "error": str(e),
                "message": f"Helm installation failed: {e}",
            }

        return {
            "success": True,
            "message": f"Envoy Gateway installed (version {self.version})",
        }

    def wait_for_ready(self, timeout: int = 300) -> bool:
        """Wait for the controller, then create the GatewayClass and wait for Accepted."""
        self.log_info("Waiting for Envoy Gateway controller to be ready")
        try:
            self.kubectl.wait(
                f"deployment/{self.DEPLOYMENT_NAME}",
                "Available",
                namespace=self.NAMESPACE,
                timeout=f"{timeout}s",
            )

            self.log_info(f"Creating GatewayClass '{self.GATEWAY_CLASS}'")
            self.kubectl.apply_manifest(
                GATEWAY_CLASS_TEMPLATE.format(
                    name=self.GATEWAY_CLASS, controller=self.CONTROLLER_NAME
                )
            )

            # The controller needs a moment to observe the new class
            time.sleep(2)
            self.kubectl.wait(f"gatewayclass/{self.GATEWAY_CLASS}", "Accepted", timeout="60s")

        except LabError as e:
            self.log_warn(f"Envoy Gateway not ready: {e}")
            return False

        return True
