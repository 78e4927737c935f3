"""Firewall rules, backend services and command validation for multicluster ingresses."""

__version__ = "0.4.0"

__all__ = ["models", "firewallrule", "backendservice", "commands", "cli"]