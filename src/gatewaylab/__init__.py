"""Gateway API lab: a local Kubernetes Gateway API environment on KinD.

Creates a multi-node KinD cluster with Cilium, MetalLB and Envoy Gateway, deploys
a sample application behind a Gateway and wires up local hostnames.
"""

from importlib.metadata import PackageNotFoundError, version

from gatewaylab.config import LabConfig
from gatewaylab.lab import GatewayLab, LabStatus

# Read version from package metadata with fallback
try:
    __version__ = version("gateway-api-lab")
except PackageNotFoundError:
    # Fallback for development/testing environments
    __version__ = "0.1.0"

__all__ = [
    "GatewayLab",
    "LabConfig",
    "LabStatus",
    "__version__",
]
