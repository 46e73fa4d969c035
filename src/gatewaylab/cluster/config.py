"""KinD cluster configuration templates and discovery."""

import logging
from pathlib import Path
from typing import Any

import yaml

from gatewaylab.cluster.config_merge import merge_addon_requirements

logger = logging.getLogger(__name__)

# Template directory containing the built-in KinD configuration
_TEMPLATE_DIR = Path(__file__).parent / "templates"

DEFAULT_TEMPLATE = "lab"


def _load_builtin_template(template_name: str) -> str:
    """Load a built-in template from the templates directory.

    Raises:
        FileNotFoundError: If template file doesn't exist
    """
    template_path = _TEMPLATE_DIR / f"{template_name}.yaml"

    if not template_path.exists():
        raise FileNotFoundError(f"Built-in template not found: {template_path}")

    return template_path.read_text()


def discover_config_file(cluster_name: str, data_dir: Path | None = None) -> Path | None:
    """Find a user-provided KinD config at ``<data_dir>/clusters/<name>/kind-config.yaml``."""
    if data_dir:
        cluster_config = data_dir / "clusters" / cluster_name / "kind-config.yaml"
        if cluster_config.exists():
            return cluster_config
    return None


def load_config_from_file(filepath: Path, cluster_name: str) -> str:
    """Load and process KinD configuration from file.

    Args:
        filepath: Path to configuration file
        cluster_name: Cluster name to replace {name} placeholder

    Returns:
        Processed configuration YAML string

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid or doesn't pass validation
    """
    if not filepath.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    config_content = filepath.read_text().replace("{name}", cluster_name)

    try:
        yaml.safe_load(config_content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in configuration file {filepath}: {e}") from e

    validate_cluster_config(config_content)

    return config_content


def render_lab_config(name: str, worker_count: int) -> dict[str, Any]:
    """Render the built-in lab template as a dict with ``worker_count`` worker nodes."""
    content = _load_builtin_template(DEFAULT_TEMPLATE).replace("{name}", name)
    config = yaml.safe_load(content)
    config["nodes"].extend({"role": "worker"} for _ in range(worker_count))
    return config


def get_cluster_config(
    name: str,
    worker_count: int = 2,
    data_dir: Path | None = None,
    addon_requirements: list[dict[str, Any]] | None = None,
) -> tuple[str, str]:
    """Build the KinD cluster configuration for the lab.

    A cluster-specific file under ``data_dir`` takes precedence over the built-in
    template. Addon pre-creation requirements are merged into either one.

    Returns:
        Tuple of (config_yaml, source_description)

    Raises:
        ValueError: If a cluster-specific config exists but cannot be loaded
    """
    config_path = discover_config_file(name, data_dir)
    if config_path:
        try:
            base = yaml.safe_load(load_config_from_file(config_path, name))
        except Exception as e:
            raise ValueError(f"Failed to load cluster-specific config: {e}") from e
        source = f"Cluster-specific config: {config_path}"
    else:
        base = render_lab_config(name, worker_count)
        source = f"Built-in template: {DEFAULT_TEMPLATE} (1 control-plane, {worker_count} workers)"

    merged = merge_addon_requirements(base, addon_requirements or [])
    rendered = yaml.safe_dump(merged, sort_keys=False)
    validate_cluster_config(rendered)

    logger.debug(f"Cluster config from {source}:\n{rendered}")
    return rendered, source


def validate_cluster_config(config: str) -> bool:
    """Validate cluster configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if not config or not config.strip():
        raise ValueError("Cluster configuration cannot be empty")

    if "kind: Cluster" not in config:
        raise ValueError("Configuration must contain 'kind: Cluster'")

    if "apiVersion: kind.x-k8s.io/v1alpha4" not in config:
        raise ValueError("Configuration must contain 'apiVersion: kind.x-k8s.io/v1alpha4'")

    return True
