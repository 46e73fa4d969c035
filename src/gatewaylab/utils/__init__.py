"""Shared utilities for the Gateway API lab."""
