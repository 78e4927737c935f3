"""Firewall rules letting the L7 load balancer reach cluster nodes."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any

from kubemci.models import (
    Firewall,
    FirewallAllowed,
    Instance,
    NotFoundError,
    ServicePort,
)

log = logging.getLogger(__name__)

# Source ranges from which the L7 load balancer performs health checks.
L7_SRC_RANGES = ("130.211.0.0/22", "35.191.0.0/16")


def firewall_rule_matches(desired: Firewall, existing: Firewall) -> bool:
    """Compare two rules, ignoring output-only fields and the default priority."""
    normalized = dataclasses.replace(
        existing,
        creation_timestamp="",
        id=0,
        kind="",
        self_link="",
        priority=0 if existing.priority == 1000 else existing.priority,
    )
    equal = desired == normalized
    if not equal:
        log.debug("Desired firewall rule %r differs from existing %r", desired, normalized)
    return equal


class FirewallRuleSyncer:
    """Manages the firewall rule of a multicluster load balancer.

    ``namer`` provides ``firewall_rule_name()``; ``provider`` provides
    ``get_firewall``, ``create_firewall``, ``update_firewall`` and
    ``delete_firewall`` and raises NotFoundError for missing rules;
    ``instance_getter`` provides ``get_instance(ig_link)``.
    """

    def __init__(self, namer: Any, provider: Any, instance_getter: Any) -> None:
        self._namer = namer
        self._provider = provider
        self._instance_getter = instance_getter

    def ensure_firewall_rule(
        self,
        lb_name: str,
        ports: list[ServicePort],
        ig_links: dict[str, list[str]],
        force_update: bool,
    ) -> None:
        """Make sure the firewall rule for the given ports exists.

        A differing rule is only overwritten when force_update is true.
        """
        print("Ensuring firewall rule")
        log.debug("Received ports: %s, instance groups: %s", ports, ig_links)
        try:
            self._ensure_firewall_rule(lb_name, ports, ig_links, force_update)
        except Exception as err:
            raise RuntimeError(f"Error {err} in ensuring firewall rule") from err

    def delete_firewall_rules(self) -> None:
        """Delete the rule ensure_firewall_rule would have created, if present."""
        name = self._namer.firewall_rule_name()
        print("Deleting firewall rule", name)
        try:
            self._provider.delete_firewall(name)
        except NotFoundError:
            print("Firewall rule", name, "does not exist. Nothing to delete")
            return
        except Exception as err:
            print(f"Error in deleting firewall rule {name}: {err}")
            raise
        print("Firewall rule", name, "deleted successfully")

    def remove_from_clusters(self, lb_name: str, remove_ig_links: dict[str, list[str]]) -> None:
        """Drop the target tags of the given clusters from the existing rule."""
        print("Removing clusters from firewall rule")
        log.debug("Received instance groups: %s", remove_ig_links)
        try:
            self._remove_from_clusters(remove_ig_links)
        except Exception as err:
            raise RuntimeError(f"Error in removing clusters from firewall rule: {err}") from err

    def _remove_from_clusters(self, remove_ig_links: dict[str, list[str]]) -> None:
        name = self._namer.firewall_rule_name()
        try:
            existing = self._provider.get_firewall(name)
        except Exception as err:
            message = f"error in fetching existing firewall rule {name}: {err}"
            print(message)
            raise RuntimeError(message) from err
        desired = self._desired_firewall_rule_without_clusters(existing, remove_ig_links)
        log.debug("Existing firewall rule: %r, desired: %r", existing, desired)
        self._update_firewall_rule(desired)

    def _ensure_firewall_rule(
        self,
        lb_name: str,
        ports: list[ServicePort],
        ig_links: dict[str, list[str]],
        force_update: bool,
    ) -> None:
        desired = self._desired_firewall_rule(lb_name, ports, ig_links)
        name = desired.name
        try:
            existing = self._provider.get_firewall(name)
        except Exception as err:
            log.debug("Got error %s while trying to get existing firewall rule %s", err, name)
            self._create_firewall_rule(desired)
            return
        print("Firewall rule", name, "exists already. Checking if it matches our desired firewall rule")
        desired.network = existing.network
        if firewall_rule_matches(desired, existing):
            print("Desired firewall rule exists already.")
            return
        if force_update:
            self._update_firewall_rule(desired)
            return
        print("Will not overwrite a differing firewall rule without the --force flag.")
        raise RuntimeError("will not overwrite firewall rule without --force")

    def _update_firewall_rule(self, desired: Firewall) -> None:
        print("Updating existing firewall rule", desired.name, "to match the desired state")
        try:
            self._provider.update_firewall(desired)
        except Exception as err:
            print("Error updating firewall:", err)
            raise
        print("Firewall rule", desired.name, "updated successfully")

    def _create_firewall_rule(self, desired: Firewall) -> None:
        print("Creating firewall rule", desired.name)
        self._provider.create_firewall(desired)
        print("Firewall rule", desired.name, "created successfully")

    def _desired_firewall_rule(
        self, lb_name: str, ports: list[ServicePort], ig_links: dict[str, list[str]]
    ) -> Firewall:
        instances = self._get_instances(ig_links)
        target_tags = sorted(self._get_target_tags(instances))
        fw_ports = sorted(str(port.node_port) for port in ports)
        if not instances:
            raise ValueError("no instance groups given to compute the firewall rule from")
        # All instances are assumed to be in the same network.
        network = instances[0].networks[0] if instances[0].networks else ""
        return Firewall(
            name=self._namer.firewall_rule_name(),
            description=f"Firewall rule for kubernetes multicluster loadbalancer {lb_name}",
            source_ranges=list(L7_SRC_RANGES),
            allowed=[FirewallAllowed(ip_protocol="tcp", ports=fw_ports)],
            target_tags=target_tags,
            direction="INGRESS",
            network=network,
        )

    def _desired_firewall_rule_without_clusters(
        self, existing: Firewall, remove_ig_links: dict[str, list[str]]
    ) -> Firewall:
        remove_tags = set(self._get_target_tags(self._get_instances(remove_ig_links)))
        log.debug("Removing target tags %s from %s", remove_tags, existing.target_tags)
        new_tags = sorted(tag for tag in existing.target_tags if tag not in remove_tags)
        return dataclasses.replace(existing, target_tags=new_tags)

    def _get_instances(self, ig_links: dict[str, list[str]]) -> list[Instance]:
        """Return one instance from the first instance group of each cluster."""
        return [self._instance_getter.get_instance(links[0]) for links in ig_links.values()]

    @staticmethod
    def _get_target_tags(instances: list[Instance]) -> list[str]:
        """Return the first network tag of each instance."""
        tags = []
        for instance in instances:
            if not instance.tags:
                raise ValueError(f"no network tag found on instance {instance.zone}/{instance.name}")
            tags.append(instance.tags[0])
        return tags


@dataclass
class FakeFirewallRule:
    """A firewall rule recorded by FakeFirewallRuleSyncer."""

    lb_name: str
    ports: list[ServicePort]
    ig_links: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class FakeFirewallRuleSyncer:
    """In-memory stand-in for FirewallRuleSyncer, for tests."""

    ensured_firewall_rules: list[FakeFirewallRule] = field(default_factory=list)

    def ensure_firewall_rule(
        self,
        lb_name: str,
        ports: list[ServicePort],
        ig_links: dict[str, list[str]],
        force_update: bool,
    ) -> None:
        self.ensured_firewall_rules.append(
            FakeFirewallRule(lb_name=lb_name, ports=ports, ig_links=ig_links)
        )

    def delete_firewall_rules(self) -> None:
        self.ensured_firewall_rules = []

    def remove_from_clusters(self, lb_name: str, remove_ig_links: dict[str, list[str]]) -> None:
        for rule in self.ensured_firewall_rules:
            if rule.lb_name != lb_name:
                continue
            rule.ig_links = {
                cluster: links
                for cluster, links in rule.ig_links.items()
                if cluster not in remove_ig_links
            }