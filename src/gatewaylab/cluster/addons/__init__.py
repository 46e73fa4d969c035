"""Cluster add-on management for the Gateway API lab.

Each component the lab installs (CNI, load balancer, Gateway API CRDs and
controllers) is an addon with a common install/wait/verify flow.
"""

from gatewaylab.cluster.addons.agentgateway import AgentGatewayAddon
from gatewaylab.cluster.addons.cilium import CiliumAddon
from gatewaylab.cluster.addons.envoy_gateway import EnvoyGatewayAddon
from gatewaylab.cluster.addons.gateway_api import GatewayAPIAddon
from gatewaylab.cluster.addons.manager import LAB_ADDONS, AddonManager
from gatewaylab.cluster.addons.metallb import MetalLBAddon

__all__ = [
    "LAB_ADDONS",
    "AddonManager",
    "AgentGatewayAddon",
    "CiliumAddon",
    "EnvoyGatewayAddon",
    "GatewayAPIAddon",
    "MetalLBAddon",
]
