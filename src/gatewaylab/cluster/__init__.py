"""KinD cluster, kubectl and host-side helpers used by the lab."""
