"""Configuration management for the Gateway API lab.

This module handles configuration loading from environment variables and .env files,
including the pinned component versions the lab installs.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from gatewaylab.utils.errors import ConfigurationError
from gatewaylab.utils.validation import (
    validate_cluster_name,
    validate_hostname_label,
    validate_k8s_version,
)


def _split_csv(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@dataclass
class LabConfig:
    """Gateway API lab configuration.

    Defaults are pinned to known-working component versions; every field can be
    overridden through a ``LAB_*`` environment variable.
    """

    # Cluster
    cluster_name: str = "gateway-api-lab"
    worker_count: int = 2
    k8s_version: str | None = None

    # Component versions
    cilium_version: str = "1.16.5"
    metallb_version: str = "v0.14.9"
    gateway_api_version: str = "v1.2.1"
    envoy_gateway_version: str = "v1.2.6"
    agentgateway_version: str = "v2.1.1"

    # Networking
    domain: str = "local.dev"
    hostnames: list[str] = field(default_factory=lambda: ["webapp", "api"])
    pool_start: int = 200
    pool_end: int = 250
    hosts_file: str = "/etc/hosts"

    # Local state
    data_dir: str = "./data"
    log_level: str = "info"

    def __post_init__(self):
        """Load configuration from environment variables after initialization."""
        load_dotenv()

        self.cluster_name = os.getenv("LAB_CLUSTER_NAME", self.cluster_name)
        self.k8s_version = os.getenv("LAB_K8S_VERSION", self.k8s_version) or None

        self.cilium_version = os.getenv("LAB_CILIUM_VERSION", self.cilium_version)
        self.metallb_version = os.getenv("LAB_METALLB_VERSION", self.metallb_version)
        self.gateway_api_version = os.getenv("LAB_GATEWAY_API_VERSION", self.gateway_api_version)
        self.envoy_gateway_version = os.getenv(
            "LAB_ENVOY_GATEWAY_VERSION", self.envoy_gateway_version
        )
        self.agentgateway_version = os.getenv(
            "LAB_AGENTGATEWAY_VERSION", self.agentgateway_version
        )

        self.domain = os.getenv("LAB_DOMAIN", self.domain).strip().strip(".").lower()
        hostnames = os.getenv("LAB_HOSTNAMES")
        if hostnames is not None:
            self.hostnames = _split_csv(hostnames)
        self.hosts_file = os.getenv("LAB_HOSTS_FILE", self.hosts_file)

        self.data_dir = os.getenv("LAB_DATA_DIR", self.data_dir)
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).lower()

        try:
            self.worker_count = int(os.getenv("LAB_WORKER_COUNT", self.worker_count))
            self.pool_start = int(os.getenv("LAB_POOL_START", self.pool_start))
            self.pool_end = int(os.getenv("LAB_POOL_END", self.pool_end))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric configuration value: {e}") from e

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ConfigurationError: If any setting is out of range or malformed.
        """
        try:
            validate_cluster_name(self.cluster_name)
            if self.k8s_version:
                validate_k8s_version(self.k8s_version)
            for hostname in self.hostnames:
                validate_hostname_label(hostname)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if self.worker_count < 0:
            raise ConfigurationError("Worker count cannot be negative")

        if not self.hostnames:
            raise ConfigurationError(
                "At least one hostname is required. Set LAB_HOSTNAMES, e.g. 'webapp,api'."
            )

        if not self.domain:
            raise ConfigurationError("Domain cannot be empty. Set LAB_DOMAIN.")

        if not (1 <= self.pool_start <= 254 and 1 <= self.pool_end <= 254):
            raise ConfigurationError(
                f"Address pool bounds must be between 1 and 254 "
                f"(got {self.pool_start}-{self.pool_end})"
            )

        if self.pool_start > self.pool_end:
            raise ConfigurationError(
                f"Address pool start ({self.pool_start}) is greater than end ({self.pool_end})"
            )

    @property
    def fqdns(self) -> list[str]:
        """Fully qualified lab hostnames, e.g. ``webapp.local.dev``."""
        return [f"{hostname}.{self.domain}" for hostname in self.hostnames]

    def get_cluster_data_dir(self, cluster_name: str) -> Path:
        """Get data directory path for a specific cluster.

        Args:
            cluster_name: Name of the cluster

        Returns:
            Path to cluster data directory
        """
        return Path(self.data_dir) / cluster_name

    def get_kubeconfig_path(self, cluster_name: str) -> Path:
        """Get kubeconfig file path for a specific cluster.

        Args:
            cluster_name: Name of the cluster

        Returns:
            Path to kubeconfig file
        """
        return self.get_cluster_data_dir(cluster_name) / "kubeconfig"
