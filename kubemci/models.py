"""Resource models shared by the load balancer syncers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ServicePort:
    """A kubernetes service port exposed on every node of a cluster."""

    node_port: int
    protocol: str = "HTTP"
    svc_name: str = ""
    svc_namespace: str = ""
    svc_port: str = ""

    def description(self) -> str:
        """Return a JSON description of the service, or "" if it is unnamed."""
        if not self.svc_name or not self.svc_port:
            return ""
        return json.dumps(
            {
                "kubernetes.io/service-name": f"{self.svc_namespace}/{self.svc_name}",
                "kubernetes.io/service-port": self.svc_port,
            },
            separators=(",", ":"),
        )


@dataclass
class Backend:
    """An instance group serving a backend service."""

    group: str
    balancing_mode: str = ""
    max_rate_per_instance: float = 0.0
    capacity_scaler: float = 0.0


@dataclass
class ConnectionDraining:
    """Connection draining settings of a backend service."""

    draining_timeout_sec: int = 0


@dataclass
class IapSettings:
    """Identity-aware proxy settings of a backend service."""

    enabled: bool = False
    oauth2_client_id: str = ""
    oauth2_client_secret: str = ""


@dataclass
class BackendService:
    """A global backend service of an L7 load balancer."""

    name: str
    description: str = ""
    protocol: str = ""
    health_checks: list[str] = field(default_factory=list)
    port: int = 0
    port_name: str = ""
    backends: list[Backend] = field(default_factory=list)
    connection_draining: ConnectionDraining | None = None
    kind: str = ""
    load_balancing_scheme: str = ""
    session_affinity: str = ""
    timeout_sec: int = 0
    affinity_cookie_ttl_sec: int = 0
    cdn_policy: Any = None
    enable_cdn: bool = False
    iap: IapSettings | None = None
    fingerprint: str = ""
    self_link: str = ""


@dataclass
class HealthCheck:
    """A health check used by a backend service."""

    name: str = ""
    self_link: str = ""
    request_path: str = ""


@dataclass
class NamedPort:
    """A named port on an instance group."""

    name: str
    port: int


@dataclass
class FirewallAllowed:
    """A protocol and the ports a firewall rule lets through."""

    ip_protocol: str
    ports: list[str] = field(default_factory=list)


@dataclass
class Firewall:
    """A firewall rule."""

    name: str
    description: str = ""
    source_ranges: list[str] = field(default_factory=list)
    allowed: list[FirewallAllowed] = field(default_factory=list)
    target_tags: list[str] = field(default_factory=list)
    direction: str = ""
    network: str = ""
    priority: int = 0
    creation_timestamp: str = ""
    id: int = 0
    kind: str = ""
    self_link: str = ""


@dataclass
class Instance:
    """A compute instance; ``networks`` holds the URL of each network interface."""

    name: str
    zone: str = ""
    tags: list[str] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)


NamedPortsMap = dict[int, NamedPort]
HealthChecksMap = dict[int, HealthCheck]
BackendServicesMap = dict[str, BackendService]


class NotFoundError(LookupError):
    """Raised by providers when a requested resource does not exist."""


class AggregateError(Exception):
    """Several errors collected while carrying on past each of them."""

    def __init__(self, *errors: BaseException | None) -> None:
        super().__init__()
        self.errors: list[BaseException] = []
        for error in errors:
            self.append(error)

    def append(self, error: BaseException | None) -> AggregateError:
        """Add an error, flattening nested aggregates and skipping None."""
        if isinstance(error, AggregateError):
            self.errors.extend(error.errors)
        elif error is not None:
            self.errors.append(error)
        return self

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return f"1 error occurred:\n\t* {self.errors[0]}\n\n"
        points = "\n\t".join(f"* {error}" for error in self.errors)
        return f"{len(self.errors)} errors occurred:\n\t{points}\n\n"


@dataclass(frozen=True)
class CloudConfig:
    """Settings for talking to the cloud provider."""

    project_id: str


def cloud_config(project_id: str) -> CloudConfig:
    """Return the cloud configuration for the given project."""
    return CloudConfig(project_id=project_id)