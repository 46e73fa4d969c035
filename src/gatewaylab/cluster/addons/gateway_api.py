"""Gateway API CRDs addon."""

from pathlib import Path
from typing import Any

from gatewaylab.cluster.addons.base import BaseAddon
from gatewaylab.utils.errors import LabError


class GatewayAPIAddon(BaseAddon):
    """Gateway API standard channel CRDs.

    Adds GatewayClass, Gateway, HTTPRoute, GRPCRoute and ReferenceGrant to the
    cluster. Controllers are installed separately and skip their own CRDs.
    """

    name = "gateway-api"

    DEFAULT_VERSION = "v1.2.1"
    MANIFEST_URL = (
        "https://github.com/kubernetes-sigs/gateway-api/releases/download/{version}/standard-install.yaml"
    )
    CRDS = (
        "gatewayclasses.gateway.networking.k8s.io",
        "gateways.gateway.networking.k8s.io",
        "httproutes.gateway.networking.k8s.io",
    )

    def __init__(
        self, cluster_name: str, kubeconfig_path: Path, config: dict[str, Any] | None = None
    ):
        super().__init__(cluster_name, kubeconfig_path, config)
        self.version = self.config.get("version", self.DEFAULT_VERSION)

    @property
    def manifest_url(self) -> str:
        return self.MANIFEST_URL.format(version=self.version)

    def is_installed(self) -> bool:
        try:
            return self.kubectl.resource_exists(f"crd/{self.CRDS[0]}")
        except LabError as e:
            self.log_info(f"Install check failed: {e}")
            return False

    def install(self) -> dict[str, Any]:
        self.log_info(f"Installing Gateway API CRDs {self.version}")
        self.kubectl.apply_url(self.manifest_url)
        return {"success": True, "message": f"Gateway API CRDs installed (version {self.version})"}

    def wait_for_ready(self, timeout: int = 60) -> bool:
        """Wait until the core CRDs are Established."""
        try:
            for crd in self.CRDS:
                self.kubectl.wait(f"crd/{crd}", "Established", timeout=f"{timeout}s")
        except LabError as e:
            self.log_warn(f"CRDs not established: {e}")
            return False
        return True
