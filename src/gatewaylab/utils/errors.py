"""Custom exception classes for the Gateway API lab."""


class LabError(Exception):
    """Base exception for Gateway API lab errors."""

    pass


class ConfigurationError(LabError):
    """Raised when configuration is invalid or missing."""

    pass


class PrerequisiteError(LabError):
    """Raised when a required CLI tool is missing or Docker is not running."""

    pass


class ClusterNotFoundError(LabError):
    """Raised when a cluster cannot be found."""

    pass


class ClusterAlreadyExistsError(LabError):
    """Raised when attempting to create a cluster that already exists."""

    pass


class KindCommandError(LabError):
    """Raised when a kind CLI command fails."""

    pass


class KubectlCommandError(LabError):
    """Raised when a kubectl command fails."""

    pass


class HelmCommandError(LabError):
    """Raised when a helm command fails."""

    pass


class CiliumCommandError(LabError):
    """Raised when a cilium CLI command fails."""

    pass


class DockerCommandError(LabError):
    """Raised when a docker command fails or returns unusable data."""

    pass


class InvalidManifestError(LabError):
    """Raised when a Kubernetes manifest cannot be parsed."""

    pass


class AddonInstallError(LabError):
    """Raised when an addon required by the lab fails to install."""

    pass


class HostsFileError(LabError):
    """Raised when the hosts file cannot be read or updated."""

    pass
