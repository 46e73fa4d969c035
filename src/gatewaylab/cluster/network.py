"""Docker network inspection and MetalLB address pool derivation."""

import ipaddress
import json
import logging
import subprocess

from gatewaylab.utils.errors import DockerCommandError

logger = logging.getLogger(__name__)

KIND_NETWORK = "kind"
METALLB_NAMESPACE = "metallb-system"
POOL_NAME = "kind-pool"
L2_ADVERTISEMENT_NAME = "kind-l2"


def inspect_subnets(network: str = KIND_NETWORK) -> list[str]:
    """Return the IPAM subnets of a Docker network.

    Raises:
        DockerCommandError: If docker fails or the network doesn't exist
    """
    try:
        result = subprocess.run(
            ["docker", "network", "inspect", network],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except FileNotFoundError as e:
        raise DockerCommandError("docker CLI not found in PATH") from e
    except subprocess.TimeoutExpired as e:
        raise DockerCommandError(f"Timeout inspecting docker network '{network}'") from e

    if result.returncode != 0:
        error_msg = result.stderr or result.stdout
        raise DockerCommandError(f"Failed to inspect docker network '{network}': {error_msg}")

    try:
        networks = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise DockerCommandError(f"Unexpected docker network inspect output: {e}") from e

    subnets = [
        config["Subnet"]
        for net in networks
        for config in (net.get("IPAM") or {}).get("Config") or []
        if config.get("Subnet")
    ]
    logger.debug(f"Docker network '{network}' subnets: {subnets}")
    return subnets


def derive_address_pool(subnets: list[str], start: int = 200, end: int = 250) -> str:
    """Derive a LoadBalancer address range from the kind network.

    The first IPv4 subnet ``A.B.x.x`` yields ``A.B.255.<start>-A.B.255.<end>``, the
    top of a /16 that Docker does not hand out to containers.

    Raises:
        DockerCommandError: If no IPv4 subnet is present
        ValueError: If the bounds are out of range
    """
    if not (1 <= start <= end <= 254):
        raise ValueError(f"Invalid address pool bounds: {start}-{end}")

    for subnet in subnets:
        try:
            network = ipaddress.ip_network(subnet, strict=False)
        except ValueError:
            logger.debug(f"Ignoring unparseable subnet: {subnet}")
            continue
        if network.version != 4:
            continue

        prefix = ".".join(str(network.network_address).split(".")[:2])
        address_range = f"{prefix}.255.{start}-{prefix}.255.{end}"
        logger.info(f"Detected KIND network {network}, using IP range {address_range}")
        return address_range

    raise DockerCommandError(f"No IPv4 subnet found in docker network (subnets: {subnets})")


def render_pool_manifest(address_range: str) -> str:
    """Render the MetalLB IPAddressPool and L2Advertisement for ``address_range``."""
    return f"""apiVersion: metallb.io/v1beta1
kind: IPAddressPool
metadata:
  name: {POOL_NAME}
  namespace: {METALLB_NAMESPACE}
spec:
  addresses:
    - {address_range}
---
apiVersion: metallb.io/v1beta1
kind: L2Advertisement
metadata:
  name: {L2_ADVERTISEMENT_NAME}
  namespace: {METALLB_NAMESPACE}
spec:
  ipAddressPools:
    - {POOL_NAME}
"""
