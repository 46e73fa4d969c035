"""Gateway API lab orchestration.

Runs the lab steps in order: prerequisites, KinD cluster, addons (Cilium,
MetalLB, Gateway API CRDs, Envoy Gateway), TLS secret and Gateway, sample
application, HTTPRoute and hosts file. Any failing step aborts the run.
"""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gatewaylab import manifests
from gatewaylab.cluster.addons import LAB_ADDONS, AddonManager
from gatewaylab.cluster.config import get_cluster_config
from gatewaylab.cluster.hosts import HostsFile
from gatewaylab.cluster.kind_manager import KindManager
from gatewaylab.cluster.kubectl_manager import KubectlManager
from gatewaylab.cluster.tls import generate_self_signed
from gatewaylab.config import LabConfig
from gatewaylab.utils.errors import AddonInstallError, LabError
from gatewaylab.utils.prerequisites import check_prerequisites

logger = logging.getLogger(__name__)

GATEWAY_NAME = "eg-gateway"
GATEWAY_NAMESPACE = "envoy-gateway-system"
TLS_SECRET_NAME = "eg-tls-cert"
APP_NAMESPACE = "demo-app"
APP_DEPLOYMENTS = ("webapp", "webapp-canary")
GATEWAY_IP_JSONPATH = "{.status.addresses[0].value}"


@dataclass
class LabStatus:
    """Snapshot of the lab environment."""

    cluster_name: str
    cluster_exists: bool
    gateway_ip: str | None = None
    nodes: list[str] = field(default_factory=list)
    resources: list[dict[str, str]] = field(default_factory=list)


@dataclass
class SetupStep:
    """A named step of the setup sequence."""

    name: str
    description: str
    action: Callable[[], Any]


class GatewayLab:
    """Builds, inspects and tears down the Gateway API lab."""

    def __init__(
        self,
        config: LabConfig,
        kind: KindManager | None = None,
        hosts: HostsFile | None = None,
        on_step: Callable[[int, int, SetupStep], None] | None = None,
    ):
        """Initialize the lab.

        Args:
            config: Lab configuration
            kind: KinD manager (created on first use if omitted)
            hosts: Hosts file wrapper (defaults to ``config.hosts_file``)
            on_step: Callback invoked before each setup step with (index, total, step)
        """
        self.config = config
        self.kubeconfig_path = config.get_kubeconfig_path(config.cluster_name)
        self.hosts = hosts or HostsFile(config.hosts_file)
        self.on_step = on_step
        self._kind = kind
        self._kubectl: KubectlManager | None = None

    @property
    def kind(self) -> KindManager:
        if self._kind is None:
            self._kind = KindManager()
        return self._kind

    @property
    def kubectl(self) -> KubectlManager:
        if self._kubectl is None:
            self._kubectl = KubectlManager(self.kubeconfig_path)
        return self._kubectl

    def addon_manager(self) -> AddonManager:
        return AddonManager(self.config.cluster_name, self.kubeconfig_path)

    def addon_configs(self) -> dict[str, dict[str, Any]]:
        """Per-addon configuration derived from the lab config."""
        return {
            "cilium": {"version": self.config.cilium_version},
            "metallb": {
                "version": self.config.metallb_version,
                "pool_start": self.config.pool_start,
                "pool_end": self.config.pool_end,
            },
            "gateway-api": {"version": self.config.gateway_api_version},
            "envoy-gateway": {"version": self.config.envoy_gateway_version},
            "agentgateway": {"version": self.config.agentgateway_version},
        }

    # -- setup ---------------------------------------------------------------

    def setup_steps(
        self, reuse_cluster: bool = False, configure_hosts: bool = True
    ) -> list[SetupStep]:
        """Return the ordered setup sequence."""
        steps = [
            SetupStep("prerequisites", "Checking prerequisites", check_prerequisites),
            SetupStep(
                "cluster",
                f"Creating KIND cluster: {self.config.cluster_name}",
                lambda: self.create_cluster(reuse=reuse_cluster),
            ),
            SetupStep(
                "addons",
                "Installing Cilium, MetalLB, Gateway API and Envoy Gateway",
                self.install_lab_addons,
            ),
            SetupStep("gateway", "Deploying TLS certificate and Gateway", self.deploy_gateway),
            SetupStep("app", "Deploying sample web application", self.deploy_app),
            SetupStep("route", "Deploying HTTPRoute", lambda: self.apply_route("basic")),
        ]
        if configure_hosts:
            steps.append(SetupStep("hosts", "Configuring hosts file", self.configure_hosts))
        return steps

    def setup(self, reuse_cluster: bool = False, configure_hosts: bool = True) -> LabStatus:
        """Create the complete lab environment.

        Raises:
            LabError: From the first failing step
        """
        steps = self.setup_steps(reuse_cluster=reuse_cluster, configure_hosts=configure_hosts)
        for index, step in enumerate(steps, start=1):
            if self.on_step:
                self.on_step(index, len(steps), step)
            logger.info(f"[{index}/{len(steps)}] {step.description}")
            step.action()

        return self.status()

    def create_cluster(self, reuse: bool = False) -> dict:
        """Create the KinD cluster, replacing an existing one unless ``reuse``.

        The kubeconfig is exported to the lab data directory either way.
        """
        name = self.config.cluster_name

        if self.kind.cluster_exists(name):
            if reuse:
                logger.info(f"Reusing existing cluster '{name}'")
                self.kind.export_kubeconfig(name, self.kubeconfig_path)
                return {"cluster_name": name, "status": "running", "reused": True}
            logger.warning(f"Cluster {name} already exists. Deleting...")
            self.kind.delete_cluster(name)

        manager = self.addon_manager()
        requirements = manager.collect_cluster_requirements(LAB_ADDONS, self.addon_configs())
        config_yaml, source = get_cluster_config(
            name,
            worker_count=self.config.worker_count,
            data_dir=Path(self.config.data_dir),
            addon_requirements=requirements,
        )
        logger.info(f"Using {source}")

        result = self.kind.create_cluster(name, config_yaml, self.config.k8s_version)
        self.kind.export_kubeconfig(name, self.kubeconfig_path)
        return result

    def install_lab_addons(self) -> dict[str, Any]:
        """Install the default lab addons, stopping at the first failure.

        Raises:
            AddonInstallError: If any addon fails
        """
        return self.install_addons(LAB_ADDONS)

    def install_addons(self, names: list[str]) -> dict[str, Any]:
        """Install the named addons in order.

        Raises:
            AddonInstallError: If any addon fails
        """
        result = self.addon_manager().install_addons(
            names, configs=self.addon_configs(), stop_on_failure=True
        )
        if not result["success"]:
            details = "; ".join(
                f"{name}: {result['results'].get(name, {}).get('error', 'failed')}"
                for name in result["failed"]
            )
            raise AddonInstallError(f"{result['message']} ({details})")
        logger.info(result["message"])
        return result

    def deploy_gateway(self) -> None:
        """Create the TLS secret, then the Gateway, and wait until it is Programmed.

        Raises:
            AddonInstallError: If the Envoy Gateway namespace is missing
        """
        if not self.kubectl.namespace_exists(GATEWAY_NAMESPACE):
            raise AddonInstallError(
                f"Namespace {GATEWAY_NAMESPACE} not found. Install the envoy-gateway addon first."
            )

        logger.info("Creating self-signed TLS certificate for HTTPS")
        cert_pem, key_pem = generate_self_signed(self.config.domain)
        self.kubectl.create_tls_secret(TLS_SECRET_NAME, GATEWAY_NAMESPACE, cert_pem, key_pem)

        logger.info("Deploying Gateway resource (ports 80 and 443)")
        self.kubectl.apply_manifest(manifests.load_manifest(manifests.GATEWAY, self.config.domain))

        logger.info("Waiting for Gateway to get an external IP and be ready")
        self.kubectl.wait(
            f"gateway/{GATEWAY_NAME}", "Programmed", namespace=GATEWAY_NAMESPACE, timeout="5m"
        )

    def deploy_app(self) -> None:
        """Deploy the stable and canary web applications and wait for both."""
        for name in (manifests.WEBAPP, manifests.WEBAPP_CANARY):
            self.kubectl.apply_manifest(manifests.load_manifest(name, self.config.domain))

        logger.info("Waiting for application pods to be ready")
        for deployment in APP_DEPLOYMENTS:
            self.kubectl.wait(
                f"deployment/{deployment}", "Available", namespace=APP_NAMESPACE, timeout="120s"
            )

    def apply_route(self, route: str) -> dict:
        """Apply one of the routing examples (basic, canary, header).

        Raises:
            ValueError: If the route name is unknown
        """
        if route not in manifests.ROUTES:
            raise ValueError(
                f"Unknown route: '{route}'. Available routes: {', '.join(manifests.ROUTES)}"
            )
        logger.info(f"Applying '{route}' HTTPRoute")
        return self.kubectl.apply_manifest(
            manifests.load_manifest(manifests.ROUTES[route], self.config.domain)
        )

    def get_gateway_ip(self) -> str | None:
        """Return the Gateway's external IP assigned by MetalLB, if any."""
        ip = self.kubectl.get_jsonpath(
            f"gateway/{GATEWAY_NAME}", GATEWAY_IP_JSONPATH, namespace=GATEWAY_NAMESPACE
        )
        return ip or None

    def configure_hosts(self) -> bool:
        """Map the Gateway IP to the lab hostnames in the hosts file.

        Returns:
            True if the hosts file was changed
        """
        gateway_ip = self.get_gateway_ip()
        if not gateway_ip:
            logger.warning(
                f"Could not get Gateway IP. You may need to configure {self.hosts.path} manually."
            )
            return False

        return self.hosts.add_entry(gateway_ip, self.config.fqdns, self.config.domain)

    # -- teardown ------------------------------------------------------------

    def cleanup(self) -> dict[str, Any]:
        """Delete the cluster, the hosts entries and the local cluster data.

        A cluster that cannot be deleted (kind missing or failing) is logged and
        the hosts and data directory are cleaned regardless.
        """
        name = self.config.cluster_name

        logger.info(f"Deleting KIND cluster: {name}")
        try:
            cluster_result = self.kind.delete_cluster(name, missing_ok=True)
        except LabError as e:
            logger.warning(f"Could not delete cluster '{name}': {e}")
            cluster_result = {"success": False, "deleted": False, "error": str(e)}

        logger.info(f"Removing {self.hosts.path} entries for {self.config.domain}")
        removed = self.hosts.remove_entries(self.config.domain)
        if not removed:
            logger.info("No host entries found.")

        data_dir = self.config.get_cluster_data_dir(name)
        if data_dir.exists():
            shutil.rmtree(data_dir)
            logger.debug(f"Removed {data_dir}")

        return {
            "cluster_deleted": cluster_result.get("deleted", False),
            "hosts_removed": removed,
        }

    # -- inspection ----------------------------------------------------------

    def status(self) -> LabStatus:
        """Collect the current state of the lab."""
        name = self.config.cluster_name
        status = LabStatus(cluster_name=name, cluster_exists=self.kind.cluster_exists(name))
        if not status.cluster_exists:
            return status

        status.nodes = self.kind.get_node_names(name)
        if not self.kubeconfig_path.exists():
            self.kind.export_kubeconfig(name, self.kubeconfig_path)

        try:
            status.gateway_ip = self.get_gateway_ip()
            items = self.kubectl.get_resources("gatewayclass,gateway,httproute")
        except LabError as e:
            logger.warning(f"Could not read Gateway API resources: {e}")
            return status

        status.resources = [
            {
                "kind": item.get("kind", ""),
                "namespace": item.get("metadata", {}).get("namespace", ""),
                "name": item.get("metadata", {}).get("name", ""),
                "status": _summarize_conditions(item),
            }
            for item in items
        ]
        return status


def _summarize_conditions(item: dict) -> str:
    """Summarize a Gateway API object's conditions as ``Type=Status`` pairs."""
    status = item.get("status", {})
    conditions = status.get("conditions")
    if conditions is None:
        # HTTPRoute reports conditions per parent
        conditions = [
            c for parent in status.get("parents", []) for c in parent.get("conditions", [])
        ]
    return ", ".join(f"{c.get('type')}={c.get('status')}" for c in conditions) or "-"
