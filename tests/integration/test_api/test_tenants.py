"""
Tenant API Integration Tests

Tests for onboarding, lookup and deprovisioning of spoke tenants.

Endpoint Summary:
=================
- POST /control-plane/api/v1/tenants/onboard               - Onboard configs
- GET  /control-plane/api/v1/tenants                       - List tenants
- GET  /control-plane/api/v1/tenants/{id}                  - Get tenant
- PATCH /control-plane/api/v1/tenants/{id}                 - Update tenant
- POST /control-plane/api/v1/tenants/{id}/deprovision      - Deprovision
- GET  /control-plane/api/v1/auth/me                       - Caller identity

Authorization:
==============
- Onboard, list, update, deprovision: manage-access on /hub
- Get: the tenant's own principal, or manage-access on its scope
"""

import re

import pytest
from httpx import AsyncClient

from hubgate.config.constants import PrincipalType
from tests.helpers import (
    CHAT_BODY,
    CONTROL_PLANE,
    HUB_ADMIN_ID,
    auth_headers,
    gateway_url,
    tenant_config,
)

# pylint: disable=unused-argument


async def _onboard(client: AsyncClient, headers: dict, *configs: dict):
    return await client.post(
        f"{CONTROL_PLANE}/tenants/onboard",
        json={"tenants": list(configs)},
        headers=headers,
    )


# =============================================================================
# ONBOARD
# =============================================================================


class TestOnboardTenants:
    """Tests for POST /tenants/onboard."""

    @pytest.mark.asyncio
    async def test_onboard_creates_tenant(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        Onboarding allocates a name and attaches the tenant.

        Scenario: Onboard Contoso RAG with attach_gateway.
        Expected: Name from the display name plus a suffix, a connection for
        its allowed models.
        """
        tenant = onboarded_tenant["tenant"]

        assert onboarded_tenant["created"] is True
        assert re.fullmatch(r"contoso-rag-[0-9a-z]{6}", tenant["unique_name"])
        assert tenant["subscription_id"] == "00000000-0000-0000-0000-000000000001"
        assert tenant["allowed_models"] == ["gpt-4.1-mini"]
        assert onboarded_tenant["connection"]["model_allow_list"] == ["gpt-4.1-mini"]
        assert onboarded_tenant["connection"]["key"].startswith("hgk-")

    @pytest.mark.asyncio
    async def test_onboard_grants_own_resources(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        unique_name = onboarded_tenant["tenant"]["unique_name"]
        response = await client.post(
            f"{CONTROL_PLANE}/access/check",
            json={
                "principal_id": "svc-contoso-rag",
                "resource_scope": f"/tenants/{unique_name}/search",
                "capability": "invoke-own-resources",
            },
            headers=admin_headers,
        )
        assert response.json()["allowed"] is True

    @pytest.mark.asyncio
    async def test_onboard_converges(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        Re-running onboarding creates nothing new.

        Scenario: Onboard the same config twice.
        Expected: Same tenant, created False, no second connection.
        """
        response = await _onboard(client, admin_headers, tenant_config())

        assert response.status_code == 201
        result = response.json()["results"][0]
        assert result["created"] is False
        assert result["connection"] is None
        assert result["tenant"]["id"] == onboarded_tenant["tenant"]["id"]

        connections = await client.get(
            f"{CONTROL_PLANE}/tenants/{result['tenant']['id']}/connections",
            headers=admin_headers,
        )
        assert connections.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_onboard_converges_attributes(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await _onboard(
            client, admin_headers, tenant_config(display_name="Contoso RAG", metadata={"team": "rag"})
        )
        assert response.json()["results"][0]["tenant"]["metadata"] == {"team": "rag"}

    @pytest.mark.asyncio
    async def test_different_resource_group_gets_different_name(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await _onboard(
            client, admin_headers, tenant_config(resource_group="rg-contoso-rag-dev")
        )

        other = response.json()["results"][0]["tenant"]
        assert other["unique_name"] != onboarded_tenant["tenant"]["unique_name"]
        assert other["unique_name"].startswith("contoso-rag-")

    @pytest.mark.asyncio
    async def test_seed_is_case_insensitive(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await _onboard(
            client, admin_headers, tenant_config(resource_group="  RG-Contoso-RAG ")
        )
        assert (
            response.json()["results"][0]["tenant"]["unique_name"]
            == onboarded_tenant["tenant"]["unique_name"]
        )

    @pytest.mark.asyncio
    async def test_renamed_display_name_keeps_tenant(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        """
        The seed, not the display name, identifies a tenant.

        Scenario: Re-onboard the same subscription and resource group as
        "Contoso RAG v2".
        Expected: Same tenant and name, display name updated, no second
        tenant or connection.
        """
        response = await _onboard(client, admin_headers, tenant_config(display_name="Contoso RAG v2"))

        assert response.status_code == 201
        result = response.json()["results"][0]
        assert result["created"] is False
        assert result["connection"] is None
        assert result["tenant"]["id"] == onboarded_tenant["tenant"]["id"]
        assert result["tenant"]["unique_name"] == onboarded_tenant["tenant"]["unique_name"]
        assert result["tenant"]["display_name"] == "Contoso RAG v2"

        listing = await client.get(f"{CONTROL_PLANE}/tenants", headers=admin_headers)
        assert listing.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_prefix_change_for_existing_seed_conflicts(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await _onboard(
            client, admin_headers, tenant_config(name_prefix="contoso-search")
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "CONFLICT"
        assert error["details"]["unique_name"] == onboarded_tenant["tenant"]["unique_name"]

    @pytest.mark.asyncio
    async def test_name_prefix_overrides_display_name(
        self, client: AsyncClient, admin_headers: dict, registered_model
    ):
        response = await _onboard(
            client, admin_headers, tenant_config(name_prefix="fabrikam", attach_gateway=False)
        )

        result = response.json()["results"][0]
        assert result["tenant"]["unique_name"].startswith("fabrikam-")
        assert result["connection"] is None

    @pytest.mark.asyncio
    async def test_unregistered_model_rolls_back_batch(
        self, client: AsyncClient, admin_headers: dict, registered_model
    ):
        """
        A failing record fails the whole batch.

        Scenario: Second record allows an unregistered model with attach_gateway.
        Expected: 404 UNKNOWN_MODEL and the first tenant does not exist either.
        """
        response = await _onboard(
            client,
            admin_headers,
            tenant_config(),
            tenant_config(
                display_name="Fabrikam",
                resource_group="rg-fabrikam",
                principal_id="svc-fabrikam",
                allowed_models=["o3"],
            ),
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UNKNOWN_MODEL"

        tenants = await client.get(f"{CONTROL_PLANE}/tenants", headers=admin_headers)
        assert tenants.json()["data"] == []

    @pytest.mark.asyncio
    async def test_connection_models_subset(
        self, client: AsyncClient, admin_headers: dict, registered_model
    ):
        response = await _onboard(
            client,
            admin_headers,
            tenant_config(allowed_models=["gpt-4.1-mini", "o3"], connection_models=["gpt-4.1-mini"]),
        )

        assert response.status_code == 201
        assert response.json()["results"][0]["connection"]["model_allow_list"] == ["gpt-4.1-mini"]

    @pytest.mark.asyncio
    async def test_onboard_requires_manage_access(
        self, client: AsyncClient, outsider_headers: dict, registered_model
    ):
        response = await _onboard(client, outsider_headers, tenant_config())
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_onboard_requires_token(self, client: AsyncClient, test_db):
        response = await _onboard(client, {}, tenant_config())

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHENTICATED"

    @pytest.mark.asyncio
    async def test_punctuation_only_name_rejected(
        self, client: AsyncClient, admin_headers: dict, test_db
    ):
        response = await _onboard(
            client, admin_headers, tenant_config(display_name="!!!", attach_gateway=False)
        )
        assert response.status_code == 400


# =============================================================================
# READ / UPDATE
# =============================================================================


class TestTenantQueries:
    """Tests for list, get and patch."""

    @pytest.mark.asyncio
    async def test_list_tenants(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        response = await client.get(f"{CONTROL_PLANE}/tenants", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["data"][0]["id"] == onboarded_tenant["tenant"]["id"]

    @pytest.mark.asyncio
    async def test_get_by_own_principal(self, client: AsyncClient, onboarded_tenant: dict):
        tenant_id = onboarded_tenant["tenant"]["id"]
        response = await client.get(
            f"{CONTROL_PLANE}/tenants/{tenant_id}",
            headers=auth_headers("svc-contoso-rag", PrincipalType.SERVICE_IDENTITY),
        )

        assert response.status_code == 200
        assert response.json()["principal_id"] == "svc-contoso-rag"

    @pytest.mark.asyncio
    async def test_get_by_outsider_forbidden(
        self, client: AsyncClient, outsider_headers: dict, onboarded_tenant: dict
    ):
        tenant_id = onboarded_tenant["tenant"]["id"]
        response = await client.get(f"{CONTROL_PLANE}/tenants/{tenant_id}", headers=outsider_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_get_unknown_tenant(self, client: AsyncClient, admin_headers: dict, test_db):
        response = await client.get(
            f"{CONTROL_PLANE}/tenants/00000000-0000-0000-0000-000000000000",
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_update_tenant(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        tenant_id = onboarded_tenant["tenant"]["id"]
        response = await client.patch(
            f"{CONTROL_PLANE}/tenants/{tenant_id}",
            json={"display_name": "Contoso Retrieval", "allowed_models": ["gpt-4.1-mini"] * 2},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Contoso Retrieval"
        assert data["allowed_models"] == ["gpt-4.1-mini"]
        assert data["unique_name"] == onboarded_tenant["tenant"]["unique_name"]


# =============================================================================
# DEPROVISION
# =============================================================================


class TestDeprovisionTenant:
    """Tests for POST /tenants/{id}/deprovision."""

    @pytest.mark.asyncio
    async def test_deprovision_revokes_everything(
        self,
        client: AsyncClient,
        admin_headers: dict,
        onboarded_tenant: dict,
        key_headers: dict,
    ):
        """
        Deprovisioning detaches the tenant from the hub.

        Scenario: Deprovision an onboarded tenant, then call the gateway.
        Expected: Connection and grant revoked, key rejected with 401,
        tenant hidden from reads.
        """
        tenant = onboarded_tenant["tenant"]
        response = await client.post(
            f"{CONTROL_PLANE}/tenants/{tenant['id']}/deprovision", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {
            "tenant_id": tenant["id"],
            "unique_name": tenant["unique_name"],
            "revoked_connections": 1,
            "revoked_grants": 1,
        }

        gateway = await client.post(gateway_url(), json=CHAT_BODY, headers=key_headers)
        assert gateway.status_code == 401

        lookup = await client.get(f"{CONTROL_PLANE}/tenants/{tenant['id']}", headers=admin_headers)
        assert lookup.status_code == 404

    @pytest.mark.asyncio
    async def test_reonboard_after_deprovision(
        self, client: AsyncClient, admin_headers: dict, onboarded_tenant: dict
    ):
        tenant = onboarded_tenant["tenant"]
        await client.post(f"{CONTROL_PLANE}/tenants/{tenant['id']}/deprovision", headers=admin_headers)

        response = await _onboard(client, admin_headers, tenant_config())

        result = response.json()["results"][0]
        assert result["created"] is True
        assert result["tenant"]["unique_name"] == tenant["unique_name"]
        assert result["connection"]["key_version"] == 1

    @pytest.mark.asyncio
    async def test_deprovision_requires_manage_access(
        self, client: AsyncClient, onboarded_tenant: dict
    ):
        response = await client.post(
            f"{CONTROL_PLANE}/tenants/{onboarded_tenant['tenant']['id']}/deprovision",
            headers=auth_headers("svc-contoso-rag", PrincipalType.SERVICE_IDENTITY),
        )
        assert response.status_code == 403


# =============================================================================
# AUTH
# =============================================================================


class TestAuthMe:
    """Tests for GET /auth/me."""

    @pytest.mark.asyncio
    async def test_me_reports_hub_admin(self, client: AsyncClient, admin_headers: dict):
        response = await client.get(f"{CONTROL_PLANE}/auth/me", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["id"] == HUB_ADMIN_ID
        assert response.json()["type"] == "User"
        assert response.json()["is_hub_admin"] is True

    @pytest.mark.asyncio
    async def test_me_service_identity(self, client: AsyncClient):
        response = await client.get(
            f"{CONTROL_PLANE}/auth/me",
            headers=auth_headers("svc-contoso-rag", PrincipalType.SERVICE_IDENTITY),
        )

        assert response.json()["type"] == "ServiceIdentity"
        assert response.json()["is_hub_admin"] is False

    @pytest.mark.asyncio
    async def test_me_rejects_garbage_token(self, client: AsyncClient):
        response = await client.get(
            f"{CONTROL_PLANE}/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
