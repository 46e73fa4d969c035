"""Addon manager for orchestrating addon installations."""

import logging
from pathlib import Path
from typing import Any

from gatewaylab.cluster.addons.agentgateway import AgentGatewayAddon
from gatewaylab.cluster.addons.base import BaseAddon
from gatewaylab.cluster.addons.cilium import CiliumAddon
from gatewaylab.cluster.addons.envoy_gateway import EnvoyGatewayAddon
from gatewaylab.cluster.addons.gateway_api import GatewayAPIAddon
from gatewaylab.cluster.addons.metallb import MetalLBAddon

logger = logging.getLogger(__name__)

# Installed by `setup`, in dependency order
LAB_ADDONS = ["cilium", "metallb", "gateway-api", "envoy-gateway"]


class AddonManager:
    """Manages installation of cluster add-ons."""

    def __init__(self, cluster_name: str, kubeconfig_path: Path):
        """Initialize addon manager.

        Args:
            cluster_name: Name of the cluster
            kubeconfig_path: Path to cluster's kubeconfig file
        """
        self.cluster_name = cluster_name
        self.kubeconfig_path = kubeconfig_path
        self._addon_registry: dict[str, type[BaseAddon]] = {}
        self._aliases: dict[str, str] = {}
        self._register_addons()

    def _register_addons(self) -> None:
        """Register available addons and their aliases."""
        self._addon_registry = {
            "cilium": CiliumAddon,
            "metallb": MetalLBAddon,
            "gateway-api": GatewayAPIAddon,
            "envoy-gateway": EnvoyGatewayAddon,
            "agentgateway": AgentGatewayAddon,
        }
        self._aliases = {
            "cni": "cilium",
            "lb": "metallb",
            "crds": "gateway-api",
            "eg": "envoy-gateway",
            "envoy": "envoy-gateway",
            "agw": "agentgateway",
        }

    @property
    def available_addons(self) -> list[str]:
        return sorted(self._addon_registry)

    def _validate_addon_name(self, name: str) -> str:
        """Validate and normalize addon name, resolving aliases.

        Raises:
            ValueError: If addon name is invalid
        """
        name_lower = name.lower().strip()
        name_lower = self._aliases.get(name_lower, name_lower)
        if name_lower not in self._addon_registry:
            available = ", ".join(self.available_addons)
            raise ValueError(f"Unknown addon: '{name}'. Available addons: {available}")
        return name_lower

    def _get_addon_instance(self, name: str, config: dict[str, Any] | None = None) -> BaseAddon:
        addon_class = self._addon_registry[name]
        return addon_class(self.cluster_name, self.kubeconfig_path, config)

    def collect_cluster_requirements(
        self, addon_names: list[str], configs: dict[str, dict[str, Any]] | None = None
    ) -> list[dict[str, Any]]:
        """Gather pre-creation requirements for ``config_merge.merge_addon_requirements``.

        Raises:
            ValueError: If an addon name is invalid
        """
        configs = configs or {}
        requirements = []
        for name in dict.fromkeys(self._validate_addon_name(n) for n in addon_names):
            addon = self._get_addon_instance(name, configs.get(name))
            requirement = addon.get_cluster_config_requirements()
            if requirement:
                requirements.append(requirement)
        return requirements

    def install_addons(
        self,
        addon_names: list[str],
        configs: dict[str, dict[str, Any]] | None = None,
        stop_on_failure: bool = False,
    ) -> dict[str, Any]:
        """Install multiple addons in the given order.

        Args:
            addon_names: List of addon names to install
            configs: Optional dict of addon-specific configurations
            stop_on_failure: Do not attempt remaining addons after a failure

        Returns:
            Dict with installation results:
            - success: bool (True if all succeeded or were skipped)
            - results: dict of addon_name -> result
            - failed: list of failed addon names
            - not_run: list of addons left out after a failure
            - message: summary message
        """
        if not addon_names:
            return {
                "success": True,
                "results": {},
                "failed": [],
                "not_run": [],
                "message": "No addons specified",
            }

        configs = configs or {}
        results: dict[str, dict[str, Any]] = {}
        failed: list[str] = []

        unique_addons: list[str] = []
        for name in addon_names:
            try:
                normalized = self._validate_addon_name(name)
            except ValueError as e:
                logger.warning(str(e))
                failed.append(name)
                results[name] = {
                    "success": False,
                    "error": str(e),
                    "message": f"Invalid addon name: {name}",
                }
                continue
            if normalized not in unique_addons:
                unique_addons.append(normalized)

        logger.info(
            f"Installing {len(unique_addons)} addon(s) for cluster '{self.cluster_name}': "
            f"{', '.join(unique_addons)}"
        )

        not_run: list[str] = []
        for index, addon_name in enumerate(unique_addons):
            if failed and stop_on_failure:
                not_run = unique_addons[index:]
                logger.warning(f"Skipping remaining addons after failure: {', '.join(not_run)}")
                break

            logger.info(f"Processing addon: {addon_name}")
            try:
                addon = self._get_addon_instance(addon_name, configs.get(addon_name))
                result = addon.run()
            except Exception as e:
                logger.error(f"Unexpected error installing addon '{addon_name}': {e}")
                result = {
                    "success": False,
                    "error": str(e),
                    "message": f"Unexpected error: {e}",
                }

            results[addon_name] = result
            if not result.get("success"):
                failed.append(addon_name)
                logger.warning(f"Addon '{addon_name}' installation failed")

        total = len(unique_addons)
        succeeded = sum(1 for r in results.values() if r.get("success"))
        skipped = sum(1 for r in results.values() if r.get("skipped"))

        message = f"Addons: {succeeded}/{total} succeeded"
        if skipped > 0:
            message += f", {skipped} already installed"
        if failed:
            message += f", {len(failed)} failed: {', '.join(failed)}"
        if not_run:
            message += f", {len(not_run)} not run"

        return {
            "success": not failed,
            "results": results,
            "failed": failed,
            "not_run": not_run,
            "message": message,
        }
