"""Kubectl resource management operations."""

import json
import logging
import subprocess
import tempfile
from pathlib import Path

import yaml

from gatewaylab.utils.errors import (
    ClusterNotFoundError,
    InvalidManifestError,
    KubectlCommandError,
)

logger = logging.getLogger(__name__)


def _is_not_found(output: str) -> bool:
    return "NotFound" in output or "not found" in output.lower()


class KubectlManager:
    """Manager for kubectl operations against the lab cluster."""

    def __init__(self, kubeconfig_path: Path):
        """Initialize kubectl manager.

        Args:
            kubeconfig_path: Path to the cluster's kubeconfig file
        """
        self.kubeconfig_path = kubeconfig_path
        self._check_kubectl_available()

    def _check_kubectl_available(self) -> None:
        """Check if kubectl CLI is available.

        Raises:
            KubectlCommandError: If kubectl is not available
        """
        try:
            result = subprocess.run(
                ["kubectl", "version", "--client"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            if result.returncode != 0:
                raise KubectlCommandError("kubectl CLI is not available or not working correctly")
            logger.debug(f"kubectl version: {result.stdout.strip()}")
        except FileNotFoundError as e:
            raise KubectlCommandError(
                "kubectl CLI not found. Please install kubectl: "
                "https://kubernetes.io/docs/tasks/tools/install-kubectl/"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise KubectlCommandError("kubectl version check timed out") from e

    def _run_kubectl(self, args: list[str], timeout: int = 30) -> subprocess.CompletedProcess[str]:
        """Run kubectl command with the lab kubeconfig.

        Raises:
            KubectlCommandError: If the command times out or kubectl is missing
        """
        cmd = ["kubectl", "--kubeconfig", str(self.kubeconfig_path)] + args
        logger.debug(f"Running kubectl command: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise KubectlCommandError(f"kubectl command timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise KubectlCommandError("kubectl CLI not found in PATH") from e

    def check_cluster_access(self) -> None:
        """Verify the cluster API answers.

        Raises:
            ClusterNotFoundError: If kubeconfig is missing or the API is unreachable
        """
        if not self.kubeconfig_path.exists():
            raise ClusterNotFoundError(
                f"Kubeconfig not found at {self.kubeconfig_path}. Run setup first."
            )

        try:
            result = self._run_kubectl(["cluster-info"], timeout=10)
        except KubectlCommandError as e:
            raise ClusterNotFoundError(f"Timeout connecting to the cluster: {e}") from e

        if result.returncode != 0:
            raise ClusterNotFoundError(
                "Cluster is not accessible. It may be stopped or deleted. "
                f"{result.stderr.strip()}"
            )

    def apply_manifest(self, manifest: str, namespace: str | None = None) -> dict:
        """Apply a YAML manifest (possibly multi-document) to the cluster.

        Raises:
            InvalidManifestError: If manifest is not valid YAML
            KubectlCommandError: If kubectl apply fails
        """
        try:
            list(yaml.safe_load_all(manifest))
        except yaml.YAMLError as e:
            raise InvalidManifestError(f"Invalid YAML manifest: {e}") from e

        temp_file = None
        try:
            with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
                f.write(manifest)
                temp_file = f.name

            args = ["apply", "-f", temp_file]
            if namespace:
                args.extend(["-n", namespace])
            return self._apply(args, source="manifest")

        finally:
            if temp_file:
                Path(temp_file).unlink(missing_ok=True)

    def apply_url(self, url: str) -> dict:
        """Apply a remote manifest by URL.

        Raises:
            KubectlCommandError: If kubectl apply fails
        """
        return self._apply(["apply", "-f", url], source=url)

    def _apply(self, args: list[str], source: str) -> dict:
        result = self._run_kubectl(args, timeout=120)

        if result.returncode != 0:
            error_msg = result.stderr or result.stdout
            raise KubectlCommandError(f"Failed to apply {source}: {error_msg}")

        resources = [line.strip() for line in result.stdout.strip().split("\n") if line.strip()]
        logger.info(f"Applied {source}: {len(resources)} resources")

        return {"applied": True, "resources": resources, "output": result.stdout}

    def wait(
        self,
        resource: str,
        condition: str,
        namespace: str | None = None,
        selector: str | None = None,
        timeout: str = "120s",
    ) -> dict:
        """Block until ``resource`` reports ``condition`` (``kubectl wait``).

        Args:
            resource: Resource reference, e.g. ``deployment/webapp`` or ``pod``
            condition: Condition name, e.g. ``Available``, ``ready``, ``Programmed``
            namespace: Optional namespace
            selector: Optional label selector (used with a bare resource kind)
            timeout: kubectl duration string

        Raises:
            KubectlCommandError: If the condition is not met in time
        """
        args = ["wait", resource, f"--for=condition={condition}", f"--timeout={timeout}"]
        if namespace:
            args.extend(["-n", namespace])
        if selector:
            args.extend(["--selector", selector])

        # Allow kubectl to report its own timeout before ours fires
        seconds = _duration_seconds(timeout) + 30
        result = self._run_kubectl(args, timeout=seconds)

        if result.returncode != 0:
            error_msg = result.stderr or result.stdout
            raise KubectlCommandError(
                f"Timed out waiting for {resource} to be {condition}: {error_msg}"
            )

        logger.debug(f"{resource} condition {condition} met")
        return {"resource": resource, "condition": condition, "met": True}

    def get_jsonpath(self, resource: str, jsonpath: str, namespace: str | None = None) -> str:
        """Read a field with ``-o jsonpath``; returns "" if the object doesn't exist.

        Raises:
            KubectlCommandError: On failures other than NotFound
        """
        args = ["get", resource, "-o", f"jsonpath={jsonpath}"]
        if namespace:
            args.extend(["-n", namespace])

        result = self._run_kubectl(args)

        if result.returncode != 0:
            if _is_not_found(result.stderr):
                return ""
            raise KubectlCommandError(f"Failed to read {resource}: {result.stderr}")

        return result.stdout.strip()

    def get_resources(self, kinds: str, namespace: str | None = None) -> list[dict]:
        """Get resources as parsed JSON items, across all namespaces by default.

        Raises:
            KubectlCommandError: If kubectl fails or output isn't JSON
        """
        args = ["get", kinds, "-o", "json"]
        args.extend(["-n", namespace] if namespace else ["--all-namespaces"])

        result = self._run_kubectl(args)

        if result.returncode != 0:
            error_msg = result.stderr or result.stdout
            raise KubectlCommandError(f"Failed to get {kinds}: {error_msg}")

        try:
            return json.loads(result.stdout).get("items", [])
        except json.JSONDecodeError as e:
            raise KubectlCommandError(f"Failed to parse kubectl output as JSON: {e}") from e

    def resource_exists(self, resource: str, namespace: str | None = None) -> bool:
        """Return True if ``kubectl get <resource>`` succeeds."""
        args = ["get", resource]
        if namespace:
            args.extend(["-n", namespace])
        try:
            return self._run_kubectl(args, timeout=10).returncode == 0
        except KubectlCommandError:
            return False

    def namespace_exists(self, name: str) -> bool:
        """Return True if the namespace exists."""
        return self.resource_exists(f"namespace/{name}")

    def create_tls_secret(self, name: str, namespace: str, cert_pem: str, key_pem: str) -> dict:
        """Create a ``kubernetes.io/tls`` secret; an existing secret is left untouched.

        Raises:
            KubectlCommandError: If creation fails for another reason
        """
        with tempfile.TemporaryDirectory() as tmp:
            cert_path = Path(tmp) / "tls.crt"
            key_path = Path(tmp) / "tls.key"
            cert_path.write_text(cert_pem)
            key_path.write_text(key_pem)
            key_path.chmod(0o600)

            result = self._run_kubectl(
                [
                    "create",
                    "secret",
                    "tls",
                    name,
                    f"--cert={cert_path}",
                    f"--key={key_path}",
                    "-n",
                    namespace,
                ]
            )

        if result.returncode != 0:
            if "AlreadyExists" in result.stderr or "already exists" in result.stderr:
                logger.info(f"Secret {namespace}/{name} already exists, keeping it")
                return {"name": name, "namespace": namespace, "created": False}
            raise KubectlCommandError(
                f"Failed to create secret {namespace}/{name}: {result.stderr}"
            )

        logger.info(f"Created TLS secret {namespace}/{name}")
        return {"name": name, "namespace": namespace, "created": True}


def _duration_seconds(duration: str) -> int:
    """Convert a simple kubectl duration (``90s``, ``5m``, ``1h``) to seconds."""
    units = {"s": 1, "m": 60, "h": 3600}
    duration = duration.strip()
    if duration and duration[-1] in units:
        return int(duration[:-1]) * units[duration[-1]]
    return int(duration)
