"""Pytest fixtures for testing the Gateway API lab."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gatewaylab.config import LabConfig


@pytest.fixture
def lab_config(tmp_path: Path) -> LabConfig:
    """Create a lab configuration isolated from the caller's environment.

    Returns:
        LabConfig with data and hosts file under tmp_path
    """
    env = {
        "LAB_DATA_DIR": str(tmp_path / "data"),
        "LAB_HOSTS_FILE": str(tmp_path / "hosts"),
    }
    with patch.dict(os.environ, env, clear=True), patch("gatewaylab.config.load_dotenv"):
        config = LabConfig()

    return config


@pytest.fixture
def kubeconfig(tmp_path: Path) -> Path:
    """Create a kubeconfig file placeholder."""
    path = tmp_path / "kubeconfig"
    path.write_text("apiVersion: v1\nkind: Config\n")
    return path


@pytest.fixture
def completed():
    """Factory for subprocess.run results."""

    def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
        return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)

    return _completed
