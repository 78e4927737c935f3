import pytest

from kubemci.commands import (
    CreateOptions,
    DeleteOptions,
    RemoveClustersOptions,
    UsageError,
    validate_create_args,
    validate_delete_args,
    validate_remove_clusters_args,
)


def _no_project():
    return ""


def _mock_project():
    return "mock-project"


def _failing_lookup():
    raise OSError("gcloud not available")


def _full(options_cls):
    return options_cls(
        ingress_filename="ingress.yaml",
        gcp_project="gcp-project",
        kubeconfig_filename="kubeconfig",
    )


def _without_project(options_cls):
    return options_cls(ingress_filename="ingress.yaml", kubeconfig_filename="kubeconfig")


def test_empty_options_fail():
    with pytest.raises(UsageError, match="unexpected args"):
        validate_create_args(CreateOptions(), [], _no_project)
    with pytest.raises(UsageError, match="unexpected args"):
        validate_delete_args(DeleteOptions(), [], _no_project)
    with pytest.raises(UsageError, match="unexpected args"):
        validate_remove_clusters_args(RemoveClustersOptions(), [], _no_project)


def test_missing_load_balancer_name():
    message = "Expected one arg as name of load balancer"
    with pytest.raises(UsageError, match=message):
        validate_create_args(_full(CreateOptions), [], _no_project)
    with pytest.raises(UsageError, match=message):
        validate_delete_args(_full(DeleteOptions), [], _no_project)
    with pytest.raises(UsageError, match=message):
        validate_remove_clusters_args(_full(RemoveClustersOptions), [], _no_project)


def test_too_many_args():
    with pytest.raises(UsageError, match="unexpected args"):
        validate_create_args(_full(CreateOptions), ["a", "b"], _no_project)
    with pytest.raises(UsageError, match="unexpected args"):
        validate_delete_args(_full(DeleteOptions), ["a", "b"], _no_project)
    with pytest.raises(UsageError, match="unexpected args"):
        validate_remove_clusters_args(_full(RemoveClustersOptions), ["a", "b"], _no_project)


def test_missing_ingress():
    message = "unexpected missing argument ingress"
    with pytest.raises(UsageError, match=message):
        validate_create_args(
            CreateOptions(gcp_project="gcp-project", kubeconfig_filename="kubeconfig"),
            ["lbname"],
            _no_project,
        )
    with pytest.raises(UsageError, match=message):
        validate_delete_args(
            DeleteOptions(gcp_project="gcp-project", kubeconfig_filename="kubeconfig"),
            ["lbname"],
            _no_project,
        )
    with pytest.raises(UsageError, match=message):
        validate_remove_clusters_args(
            RemoveClustersOptions(gcp_project="gcp-project", kubeconfig_filename="kubeconfig"),
            ["lbname"],
            _no_project,
        )


def test_missing_kubeconfig():
    message = "unexpected missing argument kubeconfig"
    with pytest.raises(UsageError, match=message):
        validate_create_args(
            CreateOptions(ingress_filename="ingress.yaml", gcp_project="gcp-project"),
            ["lbname"],
            _no_project,
        )
    with pytest.raises(UsageError, match=message):
        validate_delete_args(
            DeleteOptions(ingress_filename="ingress.yaml", gcp_project="gcp-project"),
            ["lbname"],
            _no_project,
        )
    with pytest.raises(UsageError, match=message):
        validate_remove_clusters_args(
            RemoveClustersOptions(ingress_filename="ingress.yaml", gcp_project="gcp-project"),
            ["lbname"],
            _no_project,
        )


def test_all_arguments_given():
    results = [
        validate_create_args(_full(CreateOptions), ["lbname"], _no_project),
        validate_delete_args(_full(DeleteOptions), ["lbname"], _no_project),
        validate_remove_clusters_args(_full(RemoveClustersOptions), ["lbname"], _no_project),
    ]
    for result in results:
        assert result.gcp_project == "gcp-project"
        assert result.lb_name == "lbname"


def test_missing_gcp_project():
    message = "cannot determine GCP project"
    with pytest.raises(UsageError, match=message):
        validate_create_args(_without_project(CreateOptions), ["lbname"], _no_project)
    with pytest.raises(UsageError, match=message):
        validate_delete_args(_without_project(DeleteOptions), ["lbname"], _no_project)
    with pytest.raises(UsageError, match=message):
        validate_remove_clusters_args(
            _without_project(RemoveClustersOptions), ["lbname"], _no_project
        )


def test_missing_gcp_project_without_lookup():
    message = "cannot determine GCP project"
    with pytest.raises(UsageError, match=message):
        validate_create_args(_without_project(CreateOptions), ["lbname"], None)
    with pytest.raises(UsageError, match=message):
        validate_delete_args(_without_project(DeleteOptions), ["lbname"], None)
    with pytest.raises(UsageError, match=message):
        validate_remove_clusters_args(_without_project(RemoveClustersOptions), ["lbname"], None)


def test_failing_project_lookup():
    message = "cannot determine GCP project"
    with pytest.raises(UsageError, match=message):
        validate_create_args(_without_project(CreateOptions), ["lbname"], _failing_lookup)
    with pytest.raises(UsageError, match=message):
        validate_delete_args(_without_project(DeleteOptions), ["lbname"], _failing_lookup)
    with pytest.raises(UsageError, match=message):
        validate_remove_clusters_args(
            _without_project(RemoveClustersOptions), ["lbname"], _failing_lookup
        )


def test_gcp_project_from_gcloud():
    results = [
        validate_create_args(_without_project(CreateOptions), ["lbname"], _mock_project),
        validate_delete_args(_without_project(DeleteOptions), ["lbname"], _mock_project),
        validate_remove_clusters_args(
            _without_project(RemoveClustersOptions), ["lbname"], _mock_project
        ),
    ]
    for result in results:
        assert result.gcp_project == "mock-project"


def test_explicit_project_wins_over_gcloud():
    results = [
        validate_create_args(_full(CreateOptions), ["lbname"], _mock_project),
        validate_delete_args(_full(DeleteOptions), ["lbname"], _mock_project),
        validate_remove_clusters_args(_full(RemoveClustersOptions), ["lbname"], _mock_project),
    ]
    for result in results:
        assert result.gcp_project == "gcp-project"


def test_create_options_validate_by_default():
    options = CreateOptions(
        ingress_filename="ingress.yaml",
        gcp_project="gcp-project",
        kubeconfig_filename="kubeconfig",
        static_ip_name="my-ip",
    )
    result = validate_create_args(options, ["lbname"], _no_project)
    assert result.validate is True
    assert result.force_update is False
    assert result.static_ip_name == "my-ip"


def test_validation_keeps_other_options():
    options = DeleteOptions(
        ingress_filename="ingress.yaml",
        kubeconfig_filename="kubeconfig",
        kube_contexts=["ctx1", "ctx2"],
        force_delete=True,
        namespace="ns",
    )
    result = validate_delete_args(options, ["lbname"], _mock_project)
    assert result.kube_contexts == ["ctx1", "ctx2"]
    assert result.force_delete is True
    assert result.namespace == "ns"
    assert options.gcp_project == ""