"""Scope path helpers."""

from hubgate.config.constants import HUB_SCOPE, deployment_scope, tenant_scope
from hubgate.core.utils import normalize_scope, scope_ancestors


class TestScopeAncestors:
    def test_walks_to_root(self):
        assert scope_ancestors("/hub/deployments/gpt4o") == [
            "/hub/deployments/gpt4o",
            "/hub/deployments",
            "/hub",
            "/",
        ]

    def test_root_only(self):
        assert scope_ancestors("/") == ["/"]


class TestNormalizeScope:
    def test_collapses_slashes(self):
        assert normalize_scope("//hub///tenants/x/") == "/hub/tenants/x"

    def test_empty_is_root(self):
        assert normalize_scope("") == "/"


def test_scope_builders():
    assert deployment_scope("d1").startswith(HUB_SCOPE + "/")
    assert tenant_scope("contoso-abc123") == "/tenants/contoso-abc123"
    assert HUB_SCOPE in scope_ancestors(deployment_scope("d1"))
