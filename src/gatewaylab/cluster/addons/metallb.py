"""MetalLB load-balancer addon."""

from pathlib import Path
from typing import Any

from gatewaylab.cluster.addons.base import BaseAddon
from gatewaylab.cluster.network import (
    METALLB_NAMESPACE,
    POOL_NAME,
    derive_address_pool,
    inspect_subnets,
    render_pool_manifest,
)
from gatewaylab.utils.errors import LabError


class MetalLBAddon(BaseAddon):
    """MetalLB addon.

    Provides LoadBalancer IPs where no cloud provider exists. The address pool is
    carved out of the Docker network KinD runs on, so the IPs are reachable from
    the host.
    """

    name = "metallb"

    DEFAULT_VERSION = "v0.14.9"
    MANIFEST_URL = (
        "https://raw.githubusercontent.com/metallb/metallb/{version}/config/manifests/metallb-native.yaml"
    )
    POD_SELECTOR = "app=metallb"

    def __init__(
        self, cluster_name: str, kubeconfig_path: Path, config: dict[str, Any] | None = None
    ):
        """Initialize MetalLB addon.

        Args:
            cluster_name: Name of the cluster
            kubeconfig_path: Path to cluster's kubeconfig file
            config: Optional configuration:
                - version: MetalLB release tag (default: v0.14.9)
                - pool_start / pool_end: last-octet bounds of the pool (default: 200-250)
                - network: Docker network to derive the pool from (default: kind)
        """
        super().__init__(cluster_name, kubeconfig_path, config)
        self.version = self.config.get("version", self.DEFAULT_VERSION)
        self.pool_start = int(self.config.get("pool_start", 200))
        self.pool_end = int(self.config.get("pool_end", 250))
        self.network = self.config.get("network", "kind")
        self.address_range: str | None = None

    @property
    def manifest_url(self) -> str:
        return self.MANIFEST_URL.format(version=self.version)

    def is_installed(self) -> bool:
        """Check for the MetalLB controller deployment and the configured address pool.

        A controller without the pool (an earlier run stopped before
        ``configure_pool``) counts as not installed so the pool gets applied.
        """
        try:
            return self.kubectl.resource_exists(
                "deployment/controller", namespace=METALLB_NAMESPACE
            ) and self.kubectl.resource_exists(
                f"ipaddresspool/{POOL_NAME}", namespace=METALLB_NAMESPACE
            )
        except LabError as e:
            self.log_info(f"Install check failed: {e}")
            return False

    def install(self) -> dict[str, Any]:
        """Apply the MetalLB native manifest."""
        self.log_info(f"Installing MetalLB {self.version}")
        self.kubectl.apply_url(self.manifest_url)
        return {"success": True, "message": f"MetalLB installed (version {self.version})"}

    def wait_for_ready(self, timeout: int = 120) -> bool:
        """Wait for MetalLB pods, then configure the address pool.

        The IPAddressPool CRD is served by the MetalLB webhook, so the pool can only
        be applied once the pods are ready.
        """
        self.log_info("Waiting for MetalLB pods to be ready")
        try:
            self.kubectl.wait(
                "pod",
                "ready",
                namespace=METALLB_NAMESPACE,
                selector=self.POD_SELECTOR,
                timeout=f"{timeout}s",
            )
        except LabError as e:
            self.log_warn(f"MetalLB pods not ready: {e}")
            return False

        self.configure_pool()
        return True

    def configure_pool(self) -> str:
        """Derive the address range from the Docker network and apply it.

        Returns:
            The configured address range
        """
        self.log_info("Configuring MetalLB IP pool based on Docker network")
        subnets = inspect_subnets(self.network)
        self.address_range = derive_address_pool(subnets, self.pool_start, self.pool_end)
        self.kubectl.apply_manifest(render_pool_manifest(self.address_range))
        self.log_info(f"Using IP range: {self.address_range}")
        return self.address_range
