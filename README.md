# kubemci

`kubemci` is a library for keeping the cloud resources behind one global L7
load balancer, spread across several Kubernetes clusters, in their desired
state: the firewall rule that lets health checks and traffic reach the nodes,
and the backend services that point at each cluster's instance groups. It also
holds the option types, argument validation and argument parser for a
`kubemci` command line.

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

### `kubemci.models`

Plain dataclasses describing the resources:

- `ServicePort` (frozen): `node_port`, `protocol` (default `"HTTP"`),
  `svc_name`, `svc_namespace`, `svc_port`. `description()` returns a compact
  JSON object with the keys `kubernetes.io/service-name`
  (`"<namespace>/<name>"`) and `kubernetes.io/service-port`, or `""` when the
  name or port is empty.
- `Backend`, `ConnectionDraining`, `IapSettings`, `BackendService`
- `HealthCheck`, `NamedPort`
- `FirewallAllowed`, `Firewall`
- `Instance` (`name`, `zone`, `tags`, and `networks`, the URL of each network
  interface)
- `CloudConfig` and `cloud_config(project_id)`, which returns
  `CloudConfig(project_id=...)`.

Two exceptions:

- `NotFoundError` (a `LookupError`) is what providers raise for a resource
  that does not exist.
- `AggregateError` collects several errors. `append(error)` skips `None`,
  flattens another `AggregateError`, and returns the aggregate itself; the
  collected errors are in `.errors`.

### `kubemci.firewallrule`

`FirewallRuleSyncer(namer, provider, instance_getter)` works with any objects
that provide:

- `namer.firewall_rule_name()`
- `provider.get_firewall(name)`, `create_firewall(fw)`, `update_firewall(fw)`,
  `delete_firewall(name)`, raising `NotFoundError` for a missing rule
- `instance_getter.get_instance(ig_link)` returning an `Instance`

Methods:

- `ensure_firewall_rule(lb_name, ports, ig_links, force_update)` builds the
  desired rule: TCP on the sorted node ports, source ranges `130.211.0.0/22`
  and `35.191.0.0/16`, direction `INGRESS`, and as target tags the first
  network tag of one instance from the first instance group of each cluster
  (`ig_links` maps cluster name to instance group links). If no rule exists
  it is created. If one exists and matches, nothing happens; if it differs it
  is updated only when `force_update` is true. Any failure is raised as a
  `RuntimeError` whose message begins with `Error` and ends with
  `in ensuring firewall rule`.
- `delete_firewall_rules()` deletes the rule; a missing rule is not an error.
- `remove_from_clusters(lb_name, remove_ig_links)` removes the target tags of
  the given clusters from the existing rule and updates it. Failures are
  raised as `RuntimeError`.

`firewall_rule_matches(desired, existing)` compares two rules, ignoring
`creation_timestamp`, `id`, `kind`, `self_link`, and treating an existing
priority of 1000 as the default (0).

`FakeFirewallRuleSyncer` has the same three methods and records what it was
asked to ensure in `ensured_firewall_rules` (a list of `FakeFirewallRule`).

### `kubemci.backendservice`

`BackendServiceSyncer(namer, provider)` works with any objects that provide:

- `namer.be_service_name(node_port)`
- `provider.get_global_backend_service(name)`,
  `create_global_backend_service(be)`, `update_global_backend_service(be)`,
  `delete_global_backend_service(name)`, raising `NotFoundError` for a
  missing service

Methods:

- `ensure_backend_service(lb_name, ports, hc_map, np_map, ig_links,
  force_update)` ensures one backend service per port, using the health
  check and named port found under the port's `node_port` in `hc_map` and
  `np_map`. It returns a dict keyed by `svc_name`. Every port is attempted;
  if any fail, all failures are raised together as an `AggregateError`. An
  existing service that differs is only overwritten when `force_update` is
  true.
- `delete_backend_services(ports)` deletes the services; missing ones are
  not an error. Other failures are raised as an `AggregateError`.
- `remove_from_clusters(ports, remove_ig_links)` removes the backends for the
  given instance groups from each port's service. Failures are raised as an
  `AggregateError`.

`desired_backends(ig_links)` returns one `Backend` per link, in sorted order,
with balancing mode `RATE`, a maximum rate per instance of `1e14` and a
capacity scaler of 1. `backend_service_matches(desired, existing)` compares
the fields the syncer manages.

`FakeBackendServiceSyncer` has the same three methods and records calls in
`ensured_backend_services` (a list of `FakeBackendService`).

### `kubemci.commands`

`CreateOptions`, `DeleteOptions` and `RemoveClustersOptions`, with
`validate_create_args`, `validate_delete_args` and
`validate_remove_clusters_args(options, args, project_lookup=None)`. Each
requires exactly one argument (the load balancer name), an ingress filename,
a project and a kubeconfig filename, and raises `UsageError` (a `ValueError`)
otherwise. When `gcp_project` is empty, `project_lookup()` is called for a
default; if it is missing, raises, or returns `""`, validation fails. On
success a new options object is returned with `gcp_project` and `lb_name`
filled in; the one passed in is left unchanged.

### `kubemci.cli`

- `GetStatusOptions` and `validate_get_status_args(options, args,
  project_lookup=None)`: one argument, the load balancer name.
- `ListOptions` and `validate_list_args(options, args, project_lookup=None)`:
  no arguments.
- `validate_version_args(args)` and `run_version(args, out=None)`, which
  writes `Client version: 0.4.0` to `out` or standard output.
- `build_parser()` returns an `argparse.ArgumentParser` with the
  subcommands `create`, `delete`, `get-status`, `version`, `list` and
  `remove-clusters` and their flags (`-i/--ingress`, `-k/--kubeconfig`,
  `--kubecontexts` as comma separated values, `--gcp-project`, `-f/--force`,
  `--validate/--no-validate`, `-n/--namespace`, `--static-ip`). Positional
  arguments end up in `args`, the subcommand in `command`.

## Examples

```python
import io

from kubemci.cli import ListOptions, build_parser, run_version, validate_list_args

options = validate_list_args(ListOptions(), [], lambda: "default-project")
assert options.gcp_project == "default-project"

out = io.StringIO()
run_version([], out)
assert out.getvalue() == "Client version: 0.4.0\n"

parsed = build_parser().parse_args(["create", "my-lb", "-i", "ingress.yaml"])
assert parsed.command == "create" and parsed.args == ["my-lb"]
```

```python
from kubemci.firewallrule import FakeFirewallRuleSyncer

syncer = FakeFirewallRuleSyncer()
syncer.ensure_firewall_rule("my-lb", [], {"cluster1": ["ig1"], "cluster2": ["ig2"]}, False)
syncer.remove_from_clusters("my-lb", {"cluster2": ["ig2"]})
assert syncer.ensured_firewall_rules[0].ig_links == {"cluster1": ["ig1"]}
```

## What this package does not do

- There is no installed command. `build_parser()` parses a command line, but
  nothing in the package runs the subcommands it describes.
- It contains no cloud API client, no Kubernetes client and no kubeconfig or
  ingress YAML loading. The syncers act only through the namer, provider and
  instance getter objects you pass in.
- It does not find the default project itself; you supply `project_lookup`.
- It manages firewall rules and backend services only. Health checks,
  instance group named ports, URL maps, target proxies, forwarding rules and
  static IP addresses are not created, listed or deleted by it, and there is
  no status or listing of existing load balancers.