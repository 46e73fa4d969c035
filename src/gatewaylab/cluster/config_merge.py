"""Merging of addon pre-creation requirements into KinD cluster configs.

Addons such as Cilium must shape the cluster before it exists (no default CNI,
no kube-proxy). Each addon declares these needs and they are folded into the
cluster config here.
"""

import copy
import logging
from typing import Any

logger = logging.getLogger(__name__)


def merge_addon_requirements(
    base_config: dict[str, Any], addon_requirements: list[dict[str, Any]]
) -> dict[str, Any]:
    """Merge addon configuration requirements into a base cluster config.

    Only ``networking`` is supported: keys are merged and the first addon to set
    a key wins (conflicts are logged).

    Args:
        base_config: Base cluster configuration dict (not modified)
        addon_requirements: List of addon requirement dicts

    Returns:
        Merged cluster configuration dict
    """
    merged = copy.deepcopy(base_config)

    networking: dict[str, Any] = {}
    for requirement in addon_requirements:
        for key, value in requirement.get("networking", {}).items():
            if key in networking and networking[key] != value:
                logger.warning(
                    f"Networking conflict for '{key}': "
                    f"existing={networking[key]}, new={value}. Using existing value."
                )
            else:
                networking[key] = value

    if networking:
        merged.setdefault("networking", {}).update(networking)
        logger.info(f"Applied {len(networking)} networking override(s)")

    return merged
