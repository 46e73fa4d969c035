"""Host prerequisite checks for the lab CLI tools."""

import logging
import shutil
import subprocess

from gatewaylab.utils.errors import PrerequisiteError

logger = logging.getLogger(__name__)

REQUIRED_TOOLS: dict[str, str] = {
    "docker": "https://docs.docker.com/get-docker/",
    "kubectl": "https://kubernetes.io/docs/tasks/tools/install-kubectl/",
    "kind": "https://kind.sigs.k8s.io/docs/user/quick-start/#installation",
    "helm": "https://helm.sh/docs/intro/install/",
    "cilium": "https://docs.cilium.io/en/stable/gettingstarted/k8s-install-default/#install-the-cilium-cli",
}


def find_missing_tools(tools: dict[str, str] | None = None) -> list[str]:
    """Return the names of tools not found on PATH."""
    tools = REQUIRED_TOOLS if tools is None else tools
    return [name for name in tools if shutil.which(name) is None]


def docker_running() -> bool:
    """Check the Docker daemon answers ``docker info``."""
    try:
        result = subprocess.run(["docker", "info"], capture_output=True, text=True, timeout=15)
        return result.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False


def check_prerequisites() -> None:
    """Verify every required CLI is installed and Docker is running.

    Raises:
        PrerequisiteError: Listing all missing tools, or if Docker is not running
    """
    logger.info("Checking prerequisites...")

    missing = find_missing_tools()
    if missing:
        details = "\n".join(f"  - {name}: {REQUIRED_TOOLS[name]}" for name in missing)
        raise PrerequisiteError(f"Required tools are not installed:\n{details}")

    if not docker_running():
        raise PrerequisiteError("Docker is not running. Please start Docker.")

    logger.info("All prerequisites met")
