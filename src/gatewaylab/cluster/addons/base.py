"""Base addon class for all cluster add-ons."""

import logging
import os
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from gatewaylab.cluster.kubectl_manager import KubectlManager
from gatewaylab.utils.errors import CiliumCommandError, HelmCommandError, LabError

logger = logging.getLogger(__name__)


class BaseAddon(ABC):
    """Abstract base class for cluster add-ons.

    All add-ons should inherit from this class and implement the abstract methods.
    """

    #: Registry name; also used as the log prefix
    name: str = "addon"

    def __init__(
        self, cluster_name: str, kubeconfig_path: Path, config: dict[str, Any] | None = None
    ):
        """Initialize addon.

        Args:
            cluster_name: Name of the cluster
            kubeconfig_path: Path to cluster's kubeconfig file
            config: Optional configuration dict for the addon
        """
        self.cluster_name = cluster_name
        self.kubeconfig_path = kubeconfig_path
        self.config = config or {}
        self.addon_name = self.name
        self._kubectl: KubectlManager | None = None

    @property
    def kubectl(self) -> KubectlManager:
        """Kubectl manager bound to this addon's kubeconfig, created on first use."""
        if self._kubectl is None:
            self._kubectl = KubectlManager(self.kubeconfig_path)
        return self._kubectl

    def log_info(self, message: str) -> None:
        """Log info message with addon prefix."""
        logger.info(f"[{self.addon_name}] {message}")

    def log_warn(self, message: str) -> None:
        """Log warning message with addon prefix."""
        logger.warning(f"[{self.addon_name}] {message}")

    def log_error(self, message: str) -> None:
        """Log error message with addon prefix."""
        logger.error(f"[{self.addon_name}] {message}")

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        env["KUBECONFIG"] = str(self.kubeconfig_path)
        return env

    def _run_tool(
        self,
        cmd: list[str],
        error_cls: type[LabError],
        check: bool = True,
        timeout: int = 120,
        install_hint: str = "",
    ) -> subprocess.CompletedProcess[str]:
        """Run a CLI with ``KUBECONFIG`` pointing at the lab cluster.

        Raises:
            error_cls: If the command fails (with check=True), times out or is missing
        """
        logger.debug(f"Running command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self._env(),
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise error_cls(f"{cmd[0]} command timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise error_cls(f"{cmd[0]} CLI not found. {install_hint}".strip()) from e

        if check and result.returncode != 0:
            error_msg = result.stderr or result.stdout
            raise error_cls(f"{cmd[0]} command failed: {error_msg}")

        return result

    def _run_helm(
        self, args: list[str], check: bool = True, timeout: int = 120
    ) -> subprocess.CompletedProcess[str]:
        """Run helm command with kubeconfig.

        Raises:
            HelmCommandError: If command fails and check=True
        """
        return self._run_tool(
            ["helm"] + args,
            HelmCommandError,
            check=check,
            timeout=timeout,
            install_hint="Please install helm: https://helm.sh/docs/intro/install/",
        )

    def _run_cilium(
        self, args: list[str], check: bool = True, timeout: int = 120
    ) -> subprocess.CompletedProcess[str]:
        """Run cilium CLI command with kubeconfig.

        Raises:
            CiliumCommandError: If command fails and check=True
        """
        return self._run_tool(
            ["cilium"] + args,
            CiliumCommandError,
            check=check,
            timeout=timeout,
            install_hint="Please install the cilium CLI: https://github.com/cilium/cilium-cli",
        )

    def _helm_install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        values: dict[str, Any] | None = None,
        version: str | None = None,
        extra_args: list[str] | None = None,
    ) -> None:
        """Install or upgrade a Helm chart.

        Args:
            release_name: Name for the Helm release
            chart: Chart reference (repo/chart or oci:// URL)
            namespace: Kubernetes namespace
            values: Optional Helm values as --set key=value pairs
            version: Optional chart version
            extra_args: Additional helm flags, e.g. ``--skip-crds``
        """
        cmd_args = [
            "upgrade",
            "--install",
            release_name,
            chart,
            "--namespace",
            namespace,
            "--create-namespace",
        ]

        if version:
            cmd_args.extend(["--version", version])

        if values:
            for key, value in values.items():
                cmd_args.extend(["--set", f"{key}={value}"])

        if extra_args:
            cmd_args.extend(extra_args)

        self.log_info(f"Installing Helm chart: {chart}")
        self._run_helm(cmd_args, timeout=300)

    def _helm_release_exists(self, release_name: str, namespace: str) -> bool:
        try:
            result = self._run_helm(["list", "-n", namespace, "-q"], check=False, timeout=30)
        except HelmCommandError as e:
            self.log_info(f"Helm check failed: {e}")
            return False
        return result.returncode == 0 and release_name in result.stdout.split()

    def get_cluster_config_requirements(self) -> dict[str, Any]:
        """Return cluster config patches needed before cluster creation.

        Called before the cluster exists: must not touch the kubeconfig or the
        cluster, and must be deterministic. Supported key: ``networking``.
        """
        return {}

    def check_prerequisites(self) -> bool:
        """Check the cluster API answers.

        Returns:
            True if prerequisites are met, False otherwise
        """
        try:
            self.kubectl.check_cluster_access()
        except LabError as e:
            self.log_error(f"Cluster is not accessible via kubectl: {e}")
            return False
        return True

    @abstractmethod
    def is_installed(self) -> bool:
        """Check if addon is already installed."""
        pass

    @abstractmethod
    def install(self) -> dict[str, Any]:
        """Install the addon.

        Returns:
            Dict with installation result:
            - success: bool
            - message: str
            - error: str (optional)
        """
        pass

    def wait_for_ready(self, timeout: int = 120) -> bool:
        """Wait for addon to be ready."""
        return True

    def verify(self) -> bool:
        """Verify addon is functioning correctly."""
        return True

    def _failure(self, error: str, message: str, start_time: float | None = None) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": False,
            "addon": self.addon_name,
            "error": error,
            "message": message,
        }
        if start_time is not None:
            result["duration"] = time.time() - start_time
        return result

    def run(self) -> dict[str, Any]:
        """Run the complete addon installation flow.

        prerequisites -> already installed (skip) -> install -> wait -> verify

        Returns:
            Dict with installation result
        """
        self.log_info(f"Starting installation for cluster '{self.cluster_name}'")
        start_time = time.time()

        if not self.check_prerequisites():
            return self._failure(
                "Prerequisites not met", f"Prerequisites check failed for {self.addon_name}"
            )

        if self.is_installed():
            self.log_info("Already installed, skipping")
            return {
                "success": True,
                "addon": self.addon_name,
                "skipped": True,
                "message": f"{self.addon_name} is already installed",
            }

        try:
            result = self.install()
            if not result.get("success"):
                result.setdefault("addon", self.addon_name)
                result["duration"] = time.time() - start_time
                return result

            if not self.wait_for_ready():
                self.log_warn("Addon installed but not ready within timeout")
                return self._failure(
                    "Timeout waiting for addon to be ready",
                    f"{self.addon_name} installation timeout",
                    start_time,
                )

            if not self.verify():
                self.log_warn("Addon verification failed")
                return self._failure(
                    "Verification failed", f"{self.addon_name} verification failed", start_time
                )

        except Exception as e:
            self.log_error(f"Installation failed: {e}")
            return self._failure(
                str(e), f"{self.addon_name} installation failed: {e}", start_time
            )

        duration = time.time() - start_time
        self.log_info(f"Installation completed successfully in {duration:.1f}s")
        return {
            "success": True,
            "addon": self.addon_name,
            "message": result.get("message", f"{self.addon_name} installed successfully"),
            "duration": duration,
        }
