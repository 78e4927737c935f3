"""Backend services of multicluster L7 load balancers."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any

from kubemci.models import (
    AggregateError,
    Backend,
    BackendService,
    BackendServicesMap,
    ConnectionDraining,
    HealthCheck,
    HealthChecksMap,
    NamedPort,
    NamedPortsMap,
    NotFoundError,
    ServicePort,
)

log = logging.getLogger(__name__)

# Sends every request in a region to instances in that region.
_MAX_RATE_PER_INSTANCE = 1e14


def desired_backends(ig_links: list[str]) -> list[Backend]:
    """Return one backend per instance group link, in sorted order."""
    return [
        Backend(
            group=link,
            balancing_mode="RATE",
            max_rate_per_instance=_MAX_RATE_PER_INSTANCE,
            capacity_scaler=1,
        )
        for link in sorted(ig_links)
    ]


def backend_service_matches(desired: BackendService, existing: BackendService) -> bool:
    """Compare the fields of two backend services that the syncer manages."""
    compared = (
        "affinity_cookie_ttl_sec",
        "backends",
        "cdn_policy",
        "connection_draining",
        "description",
        "enable_cdn",
        "health_checks",
        "iap",
        "load_balancing_scheme",
        "name",
        "port",
        "port_name",
        "protocol",
        "session_affinity",
        "timeout_sec",
    )
    differing = [
        name for name in compared if getattr(desired, name) != getattr(existing, name)
    ]
    if differing:
        log.info("Backend services differ in fields: %s", ", ".join(differing))
    return not differing


class BackendServiceSyncer:
    """Manages the backend services of a multicluster load balancer.

    ``namer`` provides ``be_service_name(node_port)``; ``provider`` provides
    ``get_global_backend_service``, ``create_global_backend_service``,
    ``update_global_backend_service`` and ``delete_global_backend_service``
    and raises NotFoundError for missing services.
    """

    def __init__(self, namer: Any, provider: Any) -> None:
        self._namer = namer
        self._provider = provider

    def ensure_backend_service(
        self,
        lb_name: str,
        ports: list[ServicePort],
        hc_map: HealthChecksMap,
        np_map: NamedPortsMap,
        ig_links: list[str],
        force_update: bool,
    ) -> BackendServicesMap:
        """Make sure a backend service exists for each port.

        Returns the services keyed by kubernetes service name. Every port is
        tried; failures are raised together as an AggregateError.
        """
        print("Ensuring backend services")
        log.debug("Health checks: %s, named ports: %s, instance groups: %s", hc_map, np_map, ig_links)
        errors = AggregateError()
        ensured: BackendServicesMap = {}
        for port in ports:
            try:
                be = self._ensure_backend_service(
                    lb_name,
                    port,
                    hc_map.get(port.node_port),
                    np_map.get(port.node_port),
                    ig_links,
                    force_update,
                )
            except Exception as err:
                wrapped = RuntimeError(f"Error {err} in ensuring backend service for port {port}")
                print(f"Error ensuring backend service for port {port}: {wrapped}. Continuing.")
                errors.append(wrapped)
                continue
            ensured[port.svc_name] = be
        if errors.errors:
            raise errors
        return ensured

    def delete_backend_services(self, ports: list[ServicePort]) -> None:
        """Delete every backend service ensure_backend_service would have created."""
        print("Deleting backend services")
        errors = AggregateError()
        for port in ports:
            try:
                self._delete_backend_service(port)
            except Exception as err:
                errors.append(err)
        if errors.errors:
            print(f"Errors in deleting backend services: {errors}")
            raise errors
        print("Successfully deleted all backend services")

    def remove_from_clusters(self, ports: list[ServicePort], remove_ig_links: list[str]) -> None:
        """Drop the given instance groups from the backend service of each port."""
        print("Removing backend services from clusters")
        errors = AggregateError()
        for port in ports:
            try:
                self._remove_from_clusters(port, remove_ig_links)
            except Exception as err:
                wrapped = RuntimeError(f"Error {err} in removing backend service for port {port}")
                print(f"Error in removing backend service for port {port}: {wrapped}. Continuing.")
                errors.append(wrapped)
        if errors.errors:
            raise errors

    def _remove_from_clusters(self, port: ServicePort, remove_ig_links: list[str]) -> None:
        name = self._namer.be_service_name(port.node_port)
        try:
            existing = self._provider.get_global_backend_service(name)
        except Exception as err:
            message = f"error in fetching existing backend service {name}: {err}"
            print(message)
            raise RuntimeError(message) from err
        remove_groups = {backend.group for backend in desired_backends(remove_ig_links)}
        desired = dataclasses.replace(
            existing,
            backends=[b for b in existing.backends if b.group not in remove_groups],
        )
        log.debug("Existing backend service: %r, desired: %r", existing, desired)
        self._update_backend_service(desired)

    def _delete_backend_service(self, port: ServicePort) -> None:
        name = self._namer.be_service_name(port.node_port)
        log.info("Deleting backend service %s", name)
        try:
            self._provider.delete_global_backend_service(name)
        except NotFoundError:
            print("Backend service", name, "does not exist. Nothing to delete")
            return
        except Exception as err:
            print("Error in deleting backend service", name, ":", err)
            raise
        log.info("Successfully deleted backend service %s", name)

    def _ensure_backend_service(
        self,
        lb_name: str,
        port: ServicePort,
        hc: HealthCheck | None,
        np: NamedPort | None,
        ig_links: list[str],
        force_update: bool,
    ) -> BackendService:
        print("Ensuring backend service for port:", port)
        if hc is None:
            raise ValueError(
                "missing health check probably due to an error in creating health check. "
                "Cannot create backend service without health check link"
            )
        if not hc.self_link:
            raise ValueError(f"missing self link in health check {hc.name}")
        if np is None:
            raise ValueError("missing corresponding named port on the instance group")
        desired = self._desired_backend_service(lb_name, port, hc.self_link, np.name, ig_links)
        name = desired.name
        try:
            existing = self._provider.get_global_backend_service(name)
        except Exception as err:
            log.debug("Got error %s while trying to get existing backend service %s", err, name)
            return self._create_backend_service(desired)
        print("Backend service", name, "exists already. Checking if it matches our desired backend service")
        if backend_service_matches(desired, existing):
            print("Desired backend service exists already. Nothing to do.")
            return existing
        if force_update:
            desired.fingerprint = existing.fingerprint
            return self._update_backend_service(desired)
        print("Will not overwrite a differing BackendService without the --force flag.")
        log.debug("Desired backend service: %r, existing: %r", desired, existing)
        raise RuntimeError("will not overwrite BackendService without --force")

    def _update_backend_service(self, desired: BackendService) -> BackendService:
        name = desired.name
        print("Updating existing backend service", name, "to match the desired state")
        try:
            self._provider.update_global_backend_service(desired)
        except Exception as err:
            print(f"Error from UpdateGlobalBackendService: {err}")
            raise
        print("Backend service", name, "updated successfully")
        return self._provider.get_global_backend_service(name)

    def _create_backend_service(self, desired: BackendService) -> BackendService:
        name = desired.name
        print("Creating backend service", name)
        self._provider.create_global_backend_service(desired)
        print("Backend service", name, "created successfully")
        return self._provider.get_global_backend_service(name)

    def _desired_backend_service(
        self,
        lb_name: str,
        port: ServicePort,
        hc_link: str,
        port_name: str,
        ig_links: list[str],
    ) -> BackendService:
        return BackendService(
            name=self._namer.be_service_name(port.node_port),
            description=(
                f"Backend service for service {port.description()} as part of "
                f"kubernetes multicluster loadbalancer {lb_name}"
            ),
            protocol=port.protocol,
            health_checks=[hc_link],
            port=port.node_port,
            port_name=port_name,
            backends=desired_backends(ig_links),
            connection_draining=ConnectionDraining(),
            kind="compute#backendService",
            load_balancing_scheme="EXTERNAL",
            session_affinity="NONE",
            timeout_sec=30,
        )


@dataclass
class FakeBackendService:
    """A backend service recorded by FakeBackendServiceSyncer."""

    lb_name: str
    port: ServicePort
    hc_map: HealthChecksMap
    np_map: NamedPortsMap
    ig_links: list[str] = field(default_factory=list)


@dataclass
class FakeBackendServiceSyncer:
    """In-memory stand-in for BackendServiceSyncer, for tests."""

    ensured_backend_services: list[FakeBackendService] = field(default_factory=list)

    def ensure_backend_service(
        self,
        lb_name: str,
        ports: list[ServicePort],
        hc_map: HealthChecksMap,
        np_map: NamedPortsMap,
        ig_links: list[str],
        force_update: bool,
    ) -> BackendServicesMap:
        ensured: BackendServicesMap = {}
        for port in ports:
            self.ensured_backend_services.append(
                FakeBackendService(
                    lb_name=lb_name,
                    port=port,
                    hc_map=hc_map,
                    np_map=np_map,
                    ig_links=list(ig_links),
                )
            )
            ensured[port.svc_name] = BackendService(name="")
        return ensured

    def delete_backend_services(self, ports: list[ServicePort]) -> None:
        self.ensured_backend_services = []

    def remove_from_clusters(self, ports: list[ServicePort], remove_ig_links: list[str]) -> None:
        affected = {port.node_port for port in ports}
        for be in self.ensured_backend_services:
            if be.port.node_port not in affected:
                continue
            # Each link is removed at most once per backend service.
            pending = set(remove_ig_links)
            kept = []
            for link in be.ig_links:
                if link in pending:
                    pending.discard(link)
                else:
                    kept.append(link)
            be.ig_links = kept