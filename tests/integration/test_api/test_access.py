"""
Access Policy API Integration Tests

Tests for grant authorization, scope coverage and the grant ledger.

Endpoint Summary:
=================
- POST /control-plane/api/v1/access/grants                      - Grant
- POST /control-plane/api/v1/access/check                       - Check
- POST /control-plane/api/v1/access/grants/{id}/revoke          - Revoke
- GET  /control-plane/api/v1/access/principals/{id}/grants      - History

Grant Rules (in order):
=======================
1. A service identity can never self-grant a non-self-grantable capability
2. Self-grant of invoke-own-resources inside the own tenant scope is allowed
3. Hub admins and manage-access holders on the scope may grant
4. Everyone else gets 403
"""

from datetime import UTC, datetime

import pytest
from httpx import AsyncClient

from hubgate.config.constants import PrincipalType
from tests.helpers import CONTROL_PLANE, auth_headers, tenant_config

# pylint: disable=unused-argument


ACCESS = f"{CONTROL_PLANE}/access"


def _grant(
    principal_id: str,
    scope: str,
    capability: str,
    principal_type: str = "User",
) -> dict:
    return {
        "principal_id": principal_id,
        "principal_type": principal_type,
        "resource_scope": scope,
        "capability": capability,
    }


def _service_headers(principal_id: str = "svc-contoso-rag") -> dict:
    return auth_headers(principal_id, PrincipalType.SERVICE_IDENTITY)


async def _check(client: AsyncClient, headers: dict, principal_id: str, scope: str, capability: str, **extra):
    response = await client.post(
        f"{ACCESS}/check",
        json={"principal_id": principal_id, "resource_scope": scope, "capability": capability, **extra},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()["allowed"]


# =============================================================================
# GRANT AUTHORIZATION
# =============================================================================


class TestGrantAuthorization:
    """Who may grant what."""

    @pytest.mark.asyncio
    async def test_hub_admin_grants(self, client: AsyncClient, admin_headers: dict, test_db):
        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("analyst", "/hub/deployments/aoai-eus2-gpt41mini", "invoke-model"),
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["principal_id"] == "analyst"
        assert data["capability"] == "invoke-model"
        assert data["provider_role"] == "Cognitive Services OpenAI User"
        assert data["revoked_at"] is None

    @pytest.mark.asyncio
    async def test_identical_grant_returns_existing(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        body = _grant("analyst", "/hub", "read-secrets")
        first = await client.post(f"{ACCESS}/grants", json=body, headers=admin_headers)
        second = await client.post(f"{ACCESS}/grants", json=body, headers=admin_headers)

        assert second.json()["id"] == first.json()["id"]

    @pytest.mark.asyncio
    async def test_scope_is_normalized(self, client: AsyncClient, admin_headers: dict, test_db):
        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("analyst", "//hub//deployments/", "invoke-model"),
            headers=admin_headers,
        )
        assert response.json()["resource_scope"] == "/hub/deployments"

    @pytest.mark.asyncio
    async def test_service_identity_self_grant_blocked(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        A spoke cannot widen its own access.

        Scenario: svc-contoso-rag holds manage-access on its tenant scope and
        grants itself read-secrets there.
        Expected: 403 even though manage-access would otherwise allow it.
        """
        scope = f"/tenants/{onboarded_tenant['tenant']['unique_name']}"
        await client.post(
            f"{ACCESS}/grants",
            json=_grant("svc-contoso-rag", scope, "manage-access", "ServiceIdentity"),
            headers=admin_headers,
        )

        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("svc-contoso-rag", scope, "read-secrets", "ServiceIdentity"),
            headers=_service_headers(),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_service_identity_grants_others_with_manage_access(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        scope = f"/tenants/{onboarded_tenant['tenant']['unique_name']}"
        await client.post(
            f"{ACCESS}/grants",
            json=_grant("svc-contoso-rag", scope, "manage-access", "ServiceIdentity"),
            headers=admin_headers,
        )

        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("contoso-dev", f"{scope}/search", "read-index-data"),
            headers=_service_headers(),
        )
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_self_grant_own_resources_allowed(
        self, client: AsyncClient, onboarded_tenant: dict
    ):
        """
        invoke-own-resources is self-grantable inside the own tenant.

        Scenario: The tenant principal self-grants on a sub-scope of its tenant.
        Expected: 201 without any manage-access.
        """
        scope = f"/tenants/{onboarded_tenant['tenant']['unique_name']}/search"
        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("svc-contoso-rag", scope, "invoke-own-resources", "ServiceIdentity"),
            headers=_service_headers(),
        )

        assert response.status_code == 201
        assert response.json()["granted_by"] == "svc-contoso-rag"
        assert response.json()["provider_role"] == "Azure AI User"

    @pytest.mark.asyncio
    async def test_self_grant_on_other_tenant_forbidden(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        other = await client.post(
            f"{CONTROL_PLANE}/tenants/onboard",
            json={
                "tenants": [
                    tenant_config(
                        display_name="Fabrikam",
                        resource_group="rg-fabrikam",
                        principal_id="svc-fabrikam",
                        attach_gateway=False,
                    )
                ]
            },
            headers=admin_headers,
        )
        other_scope = f"/tenants/{other.json()['results'][0]['tenant']['unique_name']}"

        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("svc-contoso-rag", other_scope, "invoke-own-resources", "ServiceIdentity"),
            headers=_service_headers(),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_outsider_cannot_grant(
        self, client: AsyncClient, outsider_headers: dict, test_db
    ):
        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("someone-without-grants", "/hub", "manage-access"),
            headers=outsider_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_principal_type_conflict(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        A principal id keeps one type.

        Scenario: svc-contoso-rag is a ServiceIdentity; grant to it as a User.
        Expected: 422 CONSTRAINT_VIOLATION naming the recorded type.
        """
        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("svc-contoso-rag", "/hub", "read-secrets", "User"),
            headers=admin_headers,
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "CONSTRAINT_VIOLATION"
        assert error["details"]["principal_type"] == "ServiceIdentity"

    @pytest.mark.asyncio
    async def test_unknown_capability_rejected(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        response = await client.post(
            f"{ACCESS}/grants",
            json=_grant("analyst", "/hub", "Owner"),
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# =============================================================================
# CHECK
# =============================================================================


class TestCheck:
    """Scope coverage and point-in-time checks."""

    @pytest.mark.asyncio
    async def test_ancestor_grant_covers_descendants(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        await client.post(
            f"{ACCESS}/grants",
            json=_grant("analyst", "/tenants/contoso-rag-abc123", "read-index-data"),
            headers=admin_headers,
        )
        analyst = auth_headers("analyst")

        assert await _check(
            client, analyst, "analyst", "/tenants/contoso-rag-abc123/search/docs", "read-index-data"
        )
        assert not await _check(client, analyst, "analyst", "/tenants/other-xyz789", "read-index-data")
        assert not await _check(
            client, analyst, "analyst", "/tenants/contoso-rag-abc123", "write-index-data"
        )

    @pytest.mark.asyncio
    async def test_descendant_grant_does_not_cover_parent(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        await client.post(
            f"{ACCESS}/grants",
            json=_grant("analyst", "/hub/deployments/aoai-eus2-gpt41mini", "invoke-model"),
            headers=admin_headers,
        )
        assert not await _check(client, admin_headers, "analyst", "/hub", "invoke-model")

    @pytest.mark.asyncio
    async def test_checking_others_needs_manage_access(
        self, client: AsyncClient, outsider_headers: dict, test_db
    ):
        response = await client.post(
            f"{ACCESS}/check",
            json={"principal_id": "analyst", "resource_scope": "/hub", "capability": "invoke-model"},
            headers=outsider_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_point_in_time_check(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        """
        The ledger answers for past instants.

        Scenario: Grant, then revoke, then ask about before, during and after.
        Expected: False before the grant, True at grant time, False now.
        """
        granted = await client.post(
            f"{ACCESS}/grants",
            json=_grant("analyst", "/hub", "read-blob-data"),
            headers=admin_headers,
        )
        grant = granted.json()
        await client.post(f"{ACCESS}/grants/{grant['id']}/revoke", headers=admin_headers)

        before = datetime(2000, 1, 1, tzinfo=UTC).isoformat()
        assert not await _check(client, admin_headers, "analyst", "/hub", "read-blob-data", as_of=before)
        assert await _check(
            client, admin_headers, "analyst", "/hub", "read-blob-data", as_of=grant["granted_at"]
        )
        assert not await _check(client, admin_headers, "analyst", "/hub", "read-blob-data")


# =============================================================================
# REVOKE / HISTORY
# =============================================================================


class TestRevokeAndHistory:
    """Revocation and the grant ledger."""

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        granted = await client.post(
            f"{ACCESS}/grants", json=_grant("analyst", "/hub", "read-secrets"), headers=admin_headers
        )
        url = f"{ACCESS}/grants/{granted.json()['id']}/revoke"

        first = await client.post(url, headers=admin_headers)
        second = await client.post(url, headers=admin_headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["revoked_by"] == "ops-hub-admin"
        assert second.json()["revoked_at"] == first.json()["revoked_at"]

    @pytest.mark.asyncio
    async def test_principal_revokes_own_grant(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        granted = await client.post(
            f"{ACCESS}/grants", json=_grant("analyst", "/hub", "read-secrets"), headers=admin_headers
        )

        response = await client.post(
            f"{ACCESS}/grants/{granted.json()['id']}/revoke", headers=auth_headers("analyst")
        )

        assert response.status_code == 200
        assert response.json()["revoked_by"] == "analyst"

    @pytest.mark.asyncio
    async def test_outsider_cannot_revoke(
        self, client: AsyncClient, admin_headers: dict, outsider_headers: dict, test_db
    ):
        granted = await client.post(
            f"{ACCESS}/grants", json=_grant("analyst", "/hub", "read-secrets"), headers=admin_headers
        )

        response = await client.post(
            f"{ACCESS}/grants/{granted.json()['id']}/revoke", headers=outsider_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_revoke_unknown_grant(self, client: AsyncClient, admin_headers: dict, test_db):
        response = await client.post(
            f"{ACCESS}/grants/00000000-0000-0000-0000-000000000000/revoke", headers=admin_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_history_includes_revoked(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        first = await client.post(
            f"{ACCESS}/grants", json=_grant("analyst", "/hub", "read-secrets"), headers=admin_headers
        )
        await client.post(
            f"{ACCESS}/grants", json=_grant("analyst", "/hub", "read-blob-data"), headers=admin_headers
        )
        await client.post(f"{ACCESS}/grants/{first.json()['id']}/revoke", headers=admin_headers)

        response = await client.get(
            f"{ACCESS}/principals/analyst/grants", headers=auth_headers("analyst")
        )

        assert response.status_code == 200
        grants = response.json()["grants"]
        assert response.json()["principal_id"] == "analyst"
        assert len(grants) == 2
        assert sum(1 for g in grants if g["revoked_at"] is not None) == 1

    @pytest.mark.asyncio
    async def test_history_of_others_needs_manage_access(
        self, client: AsyncClient, outsider_headers: dict, test_db
    ):
        response = await client.get(f"{ACCESS}/principals/analyst/grants", headers=outsider_headers)
        assert response.status_code == 403
