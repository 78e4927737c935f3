"""Command-line parser and the get-status, list and version commands."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TextIO

from kubemci.commands import UsageError

log = logging.getLogger(__name__)

CLIENT_VERSION = "0.4.0"

ProjectLookup = Callable[[], str]

_SHORT_DESCRIPTION = (
    "kubemci is used to configure an ingress across multiple kubernetes clusters."
)
_LONG_DESCRIPTION = (
    "kubemci is used to configure an ingress across multiple kubernetes clusters.\n"
    "It assumes that there is a working gcloud and kubectl in PATH."
)

_MISSING_PROJECT = (
    "unexpected cannot determine GCP project. Either set --gcp-project flag, "
    "or set a default project with gcloud such that gcloud config get-value project "
    "returns that"
)
_MISSING_PROJECT_QUOTED = (
    "unexpected cannot determine GCP project. Either set --gcp-project flag, "
    "or set a default project with gcloud such that 'gcloud config get-value project' "
    "returns that"
)

_PROJECT_HELP = (
    "[optional] name of the gcp project. Is fetched using gcloud config "
    "get-value project if unset here"
)


@dataclass
class GetStatusOptions:
    """Options of the get-status command."""

    # Name of the load balancer.
    lb_name: str = ""
    # Project in which the load balancer is configured.
    gcp_project: str = ""


@dataclass
class ListOptions:
    """Options of the list command."""

    gcp_project: str = ""


def _lookup_project(project_lookup: ProjectLookup | None, message: str) -> str:
    """Return the default project, or raise UsageError with ``message``."""
    if project_lookup is None:
        raise UsageError(message)
    try:
        project = project_lookup()
    except Exception as err:
        raise UsageError(message) from err
    if not project:
        raise UsageError(message)
    log.debug("Got project from gcloud: %s.", project)
    return project


def validate_get_status_args(
    options: GetStatusOptions,
    args: Sequence[str],
    project_lookup: ProjectLookup | None = None,
) -> GetStatusOptions:
    """Check the get-status arguments and return the options with project and name filled in."""
    if len(args) != 1:
        raise UsageError(
            f"unexpected args: {list(args)}. Expected one arg as name of load balancer"
        )
    project = options.gcp_project or _lookup_project(project_lookup, _MISSING_PROJECT)
    return dataclasses.replace(options, gcp_project=project, lb_name=args[0])


def validate_list_args(
    options: ListOptions,
    args: Sequence[str],
    project_lookup: ProjectLookup | None = None,
) -> ListOptions:
    """Check the list arguments and return the options with the project filled in."""
    project = options.gcp_project or _lookup_project(
        project_lookup, _MISSING_PROJECT_QUOTED
    )
    if args:
        raise UsageError(f"unexpected args: {list(args)}. Expected 0 arguments")
    return dataclasses.replace(options, gcp_project=project)


def validate_version_args(args: Sequence[str]) -> None:
    """Raise UsageError unless no arguments were given."""
    if args:
        raise UsageError(f"unexpected args: {list(args)}. Expected no arguments")


def run_version(args: Sequence[str], out: TextIO | None = None) -> None:
    """Write the client version to ``out`` (standard output by default)."""
    stream = sys.stdout if out is None else out
    print("Client version:", CLIENT_VERSION, file=stream)


class _StringSliceAction(argparse.Action):
    """Collect comma separated values across repeated uses of a flag."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        current = list(getattr(namespace, self.dest) or [])
        current.extend(item for item in str(values).split(",") if item)
        setattr(namespace, self.dest, current)


def _add_ingress_flags(parser: argparse.ArgumentParser, contexts_help: str) -> None:
    parser.add_argument(
        "-i", "--ingress", dest="ingress_filename", default="",
        help="[required] filename containing ingress spec",
    )
    parser.add_argument(
        "-k", "--kubeconfig", dest="kubeconfig_filename", default="",
        help="[required] path to kubeconfig file",
    )
    parser.add_argument(
        "--kubecontexts", dest="kube_contexts", action=_StringSliceAction,
        default=[], help=contexts_help,
    )


def _add_project_flag(parser: argparse.ArgumentParser, help_text: str = _PROJECT_HELP) -> None:
    parser.add_argument("--gcp-project", dest="gcp_project", default="", help=help_text)


def _add_namespace_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-n", "--namespace", dest="namespace", default="",
        help="[optional] namespace for the ingress only if left unspecified by ingress spec",
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the kubemci command and its subcommands."""
    parser = argparse.ArgumentParser(
        prog="kubemci",
        description=_LONG_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")

    create = subparsers.add_parser(
        "create", help="Create a multicluster ingress.",
        description=(
            "Create a multicluster ingress.\n\nTakes an ingress spec and a list of "
            "clusters and creates a multicluster ingress targetting those clusters."
        ),
    )
    create.add_argument("args", nargs="*", metavar="lbname")
    _add_ingress_flags(
        create,
        "[optional] contexts in the kubeconfig file to install the ingress into",
    )
    _add_project_flag(create)
    create.add_argument(
        "-f", "--force", dest="force_update", action="store_true",
        help="[optional] overwrite existing settings if they are different",
    )
    create.add_argument(
        "--validate", dest="validate", action=argparse.BooleanOptionalAction,
        default=True,
        help=(
            "[optional] If enabled (default), do some validation checks and potentially "
            "return an error, before creating load balancer"
        ),
    )
    _add_namespace_flag(create)
    create.add_argument(
        "--static-ip", dest="static_ip_name", default="",
        help="[optional] Global Static IP name to use only if left unspecified by ingress spec",
    )

    delete = subparsers.add_parser(
        "delete", help="Delete a multicluster ingress.",
        description=(
            "Delete a multicluster ingress.\n\nTakes an ingress spec and a list of "
            "clusters and deletes the multicluster ingress targetting those clusters."
        ),
    )
    delete.add_argument("args", nargs="*", metavar="lbname")
    _add_ingress_flags(
        delete,
        "[optional] contexts in the kubeconfig file to delete the ingress from",
    )
    _add_project_flag(delete)
    delete.add_argument(
        "-f", "--force", dest="force_delete", action="store_true",
        help=(
            "[optional] delete whatever can be deleted in case of errors. This should "
            "only be used in exceptional cases (for example: when the clusters are "
            "deleted before the ingress was deleted)"
        ),
    )
    _add_namespace_flag(delete)

    get_status = subparsers.add_parser(
        "get-status", help="Get the status of an existing multicluster ingress.",
        description=(
            "Get the status of an existing multicluster ingress.\n\nTakes as input the "
            "name of the load balancer and prints its status (ip address, list of "
            "clusters it is spread to, etc)."
        ),
    )
    get_status.add_argument("args", nargs="*", metavar="lbname")
    _add_project_flag(get_status)

    version = subparsers.add_parser(
        "version", help="Print the version of this tool.",
        description=(
            "Print the version of this tool.\n\nRelease builds have versions of the "
            "form x.y.z.\nversion x.y.z+ indicates that the client has some changes "
            "over the x.y.z release."
        ),
    )
    version.add_argument("args", nargs="*")

    list_parser = subparsers.add_parser(
        "list", help="List multicluster ingresses.",
        description=(
            "List multicluster ingresses.\n\nList multicluster ingresses found in the "
            "given GCP project. Searches for MCIs based on naming convention."
        ),
    )
    list_parser.add_argument("args", nargs="*")
    _add_project_flag(
        list_parser,
        "[optional] name of the gcp project. Is fetched using "
        "'gcloud config get-value project' if unset here",
    )

    remove = subparsers.add_parser(
        "remove-clusters",
        help="Remove an existing multicluster ingress from some clusters.",
        description=(
            "Remove an existing multicluster ingress from some clusters.\n\nTakes a load "
            "balancer name and a list of clusters and removes the existing multicluster "
            "ingress from those clusters.\nIf the clusters have already been deleted, you "
            "can run \"kubemci create --force\" with the updated cluster list to update "
            "the load balancer to be restricted to those clusters."
        ),
    )
    remove.add_argument("args", nargs="*", metavar="lbname")
    _add_ingress_flags(
        remove,
        "[optional] contexts in the kubeconfig file to remove the ingress from",
    )
    _add_project_flag(remove, "[required] name of the gcp project")
    remove.add_argument(
        "-f", "--force", dest="force_update", action="store_true",
        help="[optional] overwrite existing settings if they are different",
    )
    _add_namespace_flag(remove)

    return parser