"""Options and argument validation for the create, delete and remove-clusters commands."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

log = logging.getLogger(__name__)

ProjectLookup = Callable[[], str]

_MISSING_PROJECT = (
    "unexpected cannot determine GCP project. Either set --gcp-project flag, "
    "or set a default project with gcloud such that gcloud config get-value project "
    "returns that"
)


class UsageError(ValueError):
    """Raised when a command is given missing or unexpected arguments."""


@dataclass
class CreateOptions:
    """Options of the create command."""

    # Name of the YAML file containing the ingress spec.
    ingress_filename: str = ""
    # Path to the kubeconfig file.
    kubeconfig_filename: str = ""
    # Contexts to use from the kubeconfig file.
    kube_contexts: list[str] = field(default_factory=list)
    # Name of the load balancer.
    lb_name: str = ""
    # Project in which the load balancer is configured.
    gcp_project: str = ""
    # Overwrite existing resources that differ from what is requested.
    force_update: bool = False
    # Check the ingress spec and the services before creating anything.
    validate: bool = True
    # Namespace for the ingress when its spec leaves it out.
    namespace: str = ""
    # Global static IP name for the ingress when its spec leaves it out.
    static_ip_name: str = ""


@dataclass
class DeleteOptions:
    """Options of the delete command."""

    ingress_filename: str = ""
    kubeconfig_filename: str = ""
    kube_contexts: list[str] = field(default_factory=list)
    lb_name: str = ""
    gcp_project: str = ""
    # Delete whatever can be deleted in case of errors.
    force_delete: bool = False
    namespace: str = ""


@dataclass
class RemoveClustersOptions:
    """Options of the remove-clusters command."""

    ingress_filename: str = ""
    kubeconfig_filename: str = ""
    kube_contexts: list[str] = field(default_factory=list)
    lb_name: str = ""
    gcp_project: str = ""
    force_update: bool = False
    namespace: str = ""


_Options = TypeVar("_Options", CreateOptions, DeleteOptions, RemoveClustersOptions)


def _lookup_project(project_lookup: ProjectLookup | None) -> str:
    """Return the default project, or raise UsageError if there is none."""
    if project_lookup is None:
        raise UsageError(_MISSING_PROJECT)
    try:
        project = project_lookup()
    except Exception as err:
        raise UsageError(_MISSING_PROJECT) from err
    if not project:
        raise UsageError(_MISSING_PROJECT)
    log.debug("Got project from gcloud: %s.", project)
    return project


def _validate_ingress_command(
    options: _Options, args: Sequence[str], project_lookup: ProjectLookup | None
) -> _Options:
    if len(args) != 1:
        raise UsageError(
            f"unexpected args: {list(args)}. Expected one arg as name of load balancer"
        )
    if not options.ingress_filename:
        raise UsageError("unexpected missing argument ingress")
    project = options.gcp_project or _lookup_project(project_lookup)
    if not options.kubeconfig_filename:
        raise UsageError("unexpected missing argument kubeconfig")
    return dataclasses.replace(options, gcp_project=project, lb_name=args[0])


def validate_create_args(
    options: CreateOptions,
    args: Sequence[str],
    project_lookup: ProjectLookup | None = None,
) -> CreateOptions:
    """Check the create arguments and return the options with project and name filled in.

    ``project_lookup`` returns the default project when none was given.
    """
    return _validate_ingress_command(options, args, project_lookup)


def validate_delete_args(
    options: DeleteOptions,
    args: Sequence[str],
    project_lookup: ProjectLookup | None = None,
) -> DeleteOptions:
    """Check the delete arguments and return the options with project and name filled in."""
    return _validate_ingress_command(options, args, project_lookup)


def validate_remove_clusters_args(
    options: RemoveClustersOptions,
    args: Sequence[str],
    project_lookup: ProjectLookup | None = None,
) -> RemoveClustersOptions:
    """Check the remove-clusters arguments and return the completed options."""
    return _validate_ingress_command(options, args, project_lookup)