"""Packaged Kubernetes manifests for the lab's Gateway, sample app and routes."""

from pathlib import Path

_MANIFEST_DIR = Path(__file__).parent

GATEWAY = "gateway"
WEBAPP = "webapp"
WEBAPP_CANARY = "webapp-canary"

# Routing examples, each replacing the rules of the shared webapp-route
ROUTES = {
    "basic": "httproute-basic",
    "canary": "httproute-canary",
    "header": "httproute-header",
}


def load_manifest(name: str, domain: str) -> str:
    """Load a packaged manifest and fill in the ``{domain}`` placeholder.

    Raises:
        FileNotFoundError: If no manifest with that name is packaged
    """
    path = _MANIFEST_DIR / f"{name}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")
    return path.read_text().replace("{domain}", domain)
