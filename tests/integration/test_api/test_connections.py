"""
Connection API Integration Tests

Tests for the connection broker endpoints.

Endpoint Summary:
=================
- POST /control-plane/api/v1/tenants/{id}/connections     - Issue connection
- GET  /control-plane/api/v1/tenants/{id}/connections     - List connections
- GET  /control-plane/api/v1/connections/{id}             - Get connection
- POST /control-plane/api/v1/connections/{id}/rotate      - Rotate key
- POST /control-plane/api/v1/connections/{id}/revoke      - Revoke

Authorization:
==============
- Every operation needs manage-connections on /tenants/{unique_name}
- Hub admins pass every check

Important Notes:
================
- The key is returned only by issue and rotate
- Validation runs before any write: a rejected issue leaves nothing behind
"""

import pytest
from httpx import AsyncClient

from tests.helpers import CONTROL_PLANE, auth_headers, register_payload

# pylint: disable=unused-argument


def _connections_url(tenant: dict) -> str:
    return f"{CONTROL_PLANE}/tenants/{tenant['tenant']['id']}/connections"


# =============================================================================
# ISSUE
# =============================================================================


class TestIssueConnection:
    """Tests for POST /tenants/{id}/connections."""

    @pytest.mark.asyncio
    async def test_issue_connection(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        Issue returns the key once.

        Scenario: Issue a second connection for gpt-4.1-mini.
        Expected: 201 with an hgk- key, version 1 and the requested allow-list.
        """
        response = await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["gpt-4.1-mini"], "name": "batch-jobs"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["key"].startswith("hgk-")
        assert data["key_prefix"] == f"{data['key'][:8]}...{data['key'][-4:]}"
        assert data["key_version"] == 1
        assert data["model_allow_list"] == ["gpt-4.1-mini"]
        assert data["is_revoked"] is False
        assert data["gateway_target"].endswith("/gateway/api/v1/openai")

    @pytest.mark.asyncio
    async def test_duplicate_models_collapse(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["gpt-4.1-mini", "gpt-4.1-mini"]},
            headers=admin_headers,
        )
        assert response.json()["model_allow_list"] == ["gpt-4.1-mini"]

    @pytest.mark.asyncio
    async def test_unknown_models_listed(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        Every unknown model is reported, not just the first.

        Scenario: Request two unregistered models and a registered one.
        Expected: 404 UNKNOWN_MODEL listing both unknown names.
        """
        response = await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["o3", "gpt-4.1-mini", "dall-e-3"]},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UNKNOWN_MODEL"
        assert response.json()["error"]["details"]["models"] == ["o3", "dall-e-3"]

    @pytest.mark.asyncio
    async def test_model_outside_tenant_allowance(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        await client.post(
            f"{CONTROL_PLANE}/models",
            json=register_payload(name="o3", backend_id="aoai-eus2-o3"),
            headers=admin_headers,
        )

        response = await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["o3"]},
            headers=admin_headers,
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "MODEL_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_rejected_issue_leaves_nothing(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["o3"]},
            headers=admin_headers,
        )

        response = await client.get(_connections_url(onboarded_tenant), headers=admin_headers)
        assert response.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_empty_model_list_rejected(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await client.post(
            _connections_url(onboarded_tenant), json={"models": []}, headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_outsider_forbidden(
        self, client: AsyncClient, outsider_headers: dict, onboarded_tenant: dict
    ):
        response = await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["gpt-4.1-mini"]},
            headers=outsider_headers,
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_tenant_scoped_manager_allowed(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        manage-connections on the tenant scope is enough.

        Scenario: A user granted manage-connections on /tenants/{name}.
        Expected: That user can issue for this tenant.
        """
        unique_name = onboarded_tenant["tenant"]["unique_name"]
        await client.post(
            f"{CONTROL_PLANE}/access/grants",
            json={
                "principal_id": "tenant-operator",
                "principal_type": "User",
                "resource_scope": f"/tenants/{unique_name}",
                "capability": "manage-connections",
            },
            headers=admin_headers,
        )

        response = await client.post(
            _connections_url(onboarded_tenant),
            json={"models": ["gpt-4.1-mini"]},
            headers=auth_headers("tenant-operator"),
        )
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, client: AsyncClient, admin_headers: dict, registered_model):
        response = await client.post(
            f"{CONTROL_PLANE}/tenants/00000000-0000-0000-0000-000000000000/connections",
            json={"models": ["gpt-4.1-mini"]},
            headers=admin_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_tenant_id(self, client: AsyncClient, admin_headers: dict, test_db):
        response = await client.post(
            f"{CONTROL_PLANE}/tenants/not-a-uuid/connections",
            json={"models": ["gpt-4.1-mini"]},
            headers=admin_headers,
        )
        assert response.status_code == 400


# =============================================================================
# GET / LIST
# =============================================================================


class TestReadConnections:
    """Keys never appear on reads."""

    @pytest.mark.asyncio
    async def test_get_connection_hides_key(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        connection_id = onboarded_tenant["connection"]["id"]
        response = await client.get(
            f"{CONTROL_PLANE}/connections/{connection_id}", headers=admin_headers
        )

        assert response.status_code == 200
        assert "key" not in response.json()
        assert response.json()["tenant_id"] == onboarded_tenant["tenant"]["id"]

    @pytest.mark.asyncio
    async def test_list_excludes_revoked_by_default(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        connection_id = onboarded_tenant["connection"]["id"]
        await client.post(f"{CONTROL_PLANE}/connections/{connection_id}/revoke", headers=admin_headers)

        active = await client.get(_connections_url(onboarded_tenant), headers=admin_headers)
        everything = await client.get(
            _connections_url(onboarded_tenant),
            params={"include_revoked": True},
            headers=admin_headers,
        )

        assert active.json()["data"] == []
        assert len(everything.json()["data"]) == 1


# =============================================================================
# ROTATE / REVOKE
# =============================================================================


class TestConnectionLifecycle:
    """Rotation and revocation."""

    @pytest.mark.asyncio
    async def test_rotate_keeps_identity(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        Rotation replaces the key only.

        Scenario: Rotate the onboarding connection.
        Expected: Same id and allow-list, new key, version 2.
        """
        original = onboarded_tenant["connection"]
        response = await client.post(
            f"{CONTROL_PLANE}/connections/{original['id']}/rotate", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == original["id"]
        assert data["model_allow_list"] == original["model_allow_list"]
        assert data["key"] != original["key"]
        assert data["key_version"] == 2
        assert data["rotated_at"] is not None
        assert data["previous_key_valid_until"] is None

    @pytest.mark.asyncio
    async def test_rotate_grace_out_of_range(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        connection_id = onboarded_tenant["connection"]["id"]
        response = await client.post(
            f"{CONTROL_PLANE}/connections/{connection_id}/rotate",
            json={"grace_seconds": -1},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        connection_id = onboarded_tenant["connection"]["id"]
        url = f"{CONTROL_PLANE}/connections/{connection_id}/revoke"

        first = await client.post(url, headers=admin_headers)
        second = await client.post(url, headers=admin_headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["is_revoked"] is True
        assert second.json()["revoked_at"] == first.json()["revoked_at"]

    @pytest.mark.asyncio
    async def test_rotate_revoked_conflicts(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        connection_id = onboarded_tenant["connection"]["id"]
        await client.post(f"{CONTROL_PLANE}/connections/{connection_id}/revoke", headers=admin_headers)

        response = await client.post(
            f"{CONTROL_PLANE}/connections/{connection_id}/rotate", headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_revoke_unknown_connection(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        response = await client.post(
            f"{CONTROL_PLANE}/connections/00000000-0000-0000-0000-000000000000/revoke",
            headers=admin_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_outsider_cannot_revoke(
        self, client: AsyncClient, outsider_headers: dict, onboarded_tenant: dict
    ):
        connection_id = onboarded_tenant["connection"]["id"]
        response = await client.post(
            f"{CONTROL_PLANE}/connections/{connection_id}/revoke", headers=outsider_headers
        )
        assert response.status_code == 403
