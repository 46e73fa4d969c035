"""Cilium CNI addon."""

from pathlib import Path
from typing import Any

from gatewaylab.cluster.addons.base import BaseAddon
from gatewaylab.utils.errors import LabError


class CiliumAddon(BaseAddon):
    """Cilium CNI addon.

    Installs Cilium with the cilium CLI in kube-proxy replacement mode. Pod
    networking is provided through eBPF instead of kindnet and iptables.

    Cluster Requirements (applied before cluster creation):
    - networking.disableDefaultCNI: true (no kindnet)
    - networking.kubeProxyMode: none (Cilium replaces kube-proxy)
    """

    name = "cilium"

    DEFAULT_VERSION = "1.16.5"
    NAMESPACE = "kube-system"
    DAEMONSET_NAME = "cilium"
    API_SERVER_PORT = 6443

    def __init__(
        self, cluster_name: str, kubeconfig_path: Path, config: dict[str, Any] | None = None
    ):
        """Initialize Cilium addon.

        Args:
            cluster_name: Name of the cluster
            kubeconfig_path: Path to cluster's kubeconfig file
            config: Optional configuration:
                - version: Cilium version (default: 1.16.5)
                - values: Additional Helm values passed with --set
        """
        super().__init__(cluster_name, kubeconfig_path, config)
        self.version = self.config.get("version", self.DEFAULT_VERSION)
        self.custom_values = self.config.get("values", {})

    def get_cluster_config_requirements(self) -> dict[str, Any]:
        """Cilium owns pod networking and service load-balancing."""
        return {"networking": {"disableDefaultCNI": True, "kubeProxyMode": "none"}}

    def is_installed(self) -> bool:
        """Check for the cilium daemonset in kube-system."""
        try:
            return self.kubectl.resource_exists(
                f"daemonset/{self.DAEMONSET_NAME}", namespace=self.NAMESPACE
            )
        except LabError as e:
            self.log_info(f"Install check failed: {e}")
            return False

    def install(self) -> dict[str, Any]:
        """Run ``cilium install`` against the lab cluster."""
        # Without kube-proxy the agents reach the API server by container name
        values = {
            "kubeProxyReplacement": "true",
            "k8sServiceHost": f"{self.cluster_name}-control-plane",
            "k8sServicePort": str(self.API_SERVER_PORT),
        }
        values.update(self.custom_values)

        args = ["install", "--version", self.version]
        for key, value in values.items():
            args.extend(["--set", f"{key}={value}"])

        self.log_info(f"Installing Cilium CNI v{self.version}")
        self._run_cilium(args, timeout=300)

        return {"success": True, "message": f"Cilium installed (version {self.version})"}

    def wait_for_ready(self, timeout: int = 300) -> bool:
        """Wait with ``cilium status --wait`` (this may take 1-2 minutes)."""
        self.log_info("Waiting for Cilium to be ready")
        try:
            self._run_cilium(
                ["status", "--wait", "--wait-duration", f"{timeout}s"], timeout=timeout + 30
            )
        except LabError as e:
            self.log_warn(f"Cilium did not become ready: {e}")
            return False
        return True
