"""Integration tests for the Credit Ledger API endpoints"""

from datetime import datetime, timedelta, timezone
import pytest
from httpx import AsyncClient

PREFIX = "/api"
OWNER = "0xowner"


async def purchase(client: AsyncClient, credit_kind: str, amount: int, tx_hash: str) -> dict:
    response = await client.post(
        f"{PREFIX}/credits/transactions",
        json={
            "owner_id": OWNER,
            "kind": "purchase",
            "credit_kind": credit_kind,
            "amount": amount,
            "cost_in_native_currency": "0.0001",
            "external_tx_hash": tx_hash,
        },
    )
    assert response.status_code == 201
    return response.json()


class TestCreditsAPIIntegration:

    @pytest.mark.asyncio
    async def test_purchase_confirm_and_balance(self, client: AsyncClient):
        submitted = await purchase(client, "storage", 100, "0xabc")
        assert submitted["status"] == "pending"

        response = await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/confirm",
            json={"external_tx_hash": "0xabc"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        balance = await client.get(f"{PREFIX}/credits/owners/{OWNER}/balance")
        assert balance.json() == {"owner_id": OWNER, "compute": 0, "storage": 100}

        polled = await client.get(f"{PREFIX}/credits/transactions/{submitted['transaction_id']}")
        assert polled.json()["external_tx_hash"] == "0xabc"

    @pytest.mark.asyncio
    async def test_duplicate_hash_returns_409(self, client: AsyncClient):
        await purchase(client, "compute", 10, "0xdup")

        response = await client.post(
            f"{PREFIX}/credits/transactions",
            json={"owner_id": OWNER, "kind": "purchase", "credit_kind": "compute", "amount": 10,
                  "external_tx_hash": "0xdup"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_EXTERNAL_TX"

    @pytest.mark.asyncio
    async def test_usage_without_funds_returns_402(self, client: AsyncClient):
        response = await client.post(
            f"{PREFIX}/credits/usage",
            json={"owner_id": OWNER, "agent_id": "agent_a", "credit_kind": "compute", "amount": 5},
        )

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"

    @pytest.mark.asyncio
    async def test_usage_request_validation(self, client: AsyncClient):
        response = await client.post(
            f"{PREFIX}/credits/usage",
            json={"owner_id": OWNER, "agent_id": "agent_a", "credit_kind": "compute", "amount": -5},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_wrong_sign_returns_400(self, client: AsyncClient):
        response = await client.post(
            f"{PREFIX}/credits/transactions",
            json={"owner_id": OWNER, "kind": "usage", "credit_kind": "compute", "amount": 5, "agent_id": "a"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_AMOUNT_SIGN"

    @pytest.mark.asyncio
    async def test_bill_usage_and_history(self, client: AsyncClient):
        submitted = await purchase(client, "compute", 50, "0xfund")
        await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/confirm",
            json={"external_tx_hash": "0xfund"},
        )

        billed = await client.post(
            f"{PREFIX}/credits/usage",
            json={"owner_id": OWNER, "agent_id": "agent_a", "credit_kind": "compute", "amount": 20,
                  "operation_label": "Text analysis"},
        )
        history = await client.get(f"{PREFIX}/credits/history", params={"owner_id": OWNER, "q": "text"})

        assert billed.status_code == 201
        assert billed.json()["transactions"][0]["amount"] == -20
        assert history.status_code == 200
        assert history.json()["total"] == 1
        assert history.json()["transactions"][0]["operation_label"] == "Text analysis"

    @pytest.mark.asyncio
    async def test_history_window_with_utc_offset(self, client: AsyncClient):
        submitted = await purchase(client, "compute", 5, "0xtz")
        await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/confirm",
            json={"external_tx_hash": "0xtz"},
        )
        now = datetime.now(timezone(timedelta(hours=-7)))

        response = await client.get(
            f"{PREFIX}/credits/history",
            params={
                "owner_id": OWNER,
                "date_from": (now - timedelta(hours=1)).isoformat(),
                "date_to": (now + timedelta(hours=1)).isoformat(),
            },
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_fail_purchase_then_confirm_is_409(self, client: AsyncClient):
        submitted = await purchase(client, "compute", 10, "0xlate")

        failed = await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/fail",
            json={"reason": "reverted"},
        )
        confirm = await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/confirm",
            json={"external_tx_hash": "0xlate"},
        )

        assert failed.json()["status"] == "failed"
        assert confirm.status_code == 409
        assert confirm.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    @pytest.mark.asyncio
    async def test_unknown_transaction_returns_404(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/credits/transactions/999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_analytics_for_unknown_owner_is_empty(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/credits/owners/0xnobody/analytics")

        assert response.status_code == 200
        assert response.json()["total_purchased"] == 0
        assert response.json()["consumption_by_agent"] == {}

    @pytest.mark.asyncio
    async def test_quote_package(self, client: AsyncClient):
        response = await client.post(f"{PREFIX}/credits/quote", json={"package": "pro"})

        assert response.status_code == 200
        assert response.json()["compute_credits"] == 200
        assert response.json()["storage_credits"] == 800


class TestAgentsAPIIntegration:

    @pytest.mark.asyncio
    async def test_register_and_transfer(self, client: AsyncClient):
        for agent_id in ("agent_a", "agent_b"):
            response = await client.post(f"{PREFIX}/agents", json={"agent_id": agent_id, "owner_id": OWNER})
            assert response.status_code == 201

        submitted = await purchase(client, "compute", 30, "0xfund")
        await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/confirm",
            json={"external_tx_hash": "0xfund"},
        )

        response = await client.post(
            f"{PREFIX}/credits/transactions",
            json={"owner_id": OWNER, "kind": "transfer", "credit_kind": "compute", "amount": 10,
                  "from_agent_id": "agent_a", "to_agent_id": "agent_b"},
        )

        assert response.status_code == 201
        assert [t["amount"] for t in response.json()["transactions"]] == [-10, 10]

    @pytest.mark.asyncio
    async def test_allocations(self, client: AsyncClient):
        for agent_id in ("agent_a", "agent_b"):
            await client.post(f"{PREFIX}/agents", json={"agent_id": agent_id, "owner_id": OWNER})
        submitted = await purchase(client, "storage", 50, "0xfund")
        await client.post(
            f"{PREFIX}/credits/purchases/{submitted['transaction_id']}/confirm",
            json={"external_tx_hash": "0xfund"},
        )
        await client.post(
            f"{PREFIX}/credits/transactions",
            json={"owner_id": OWNER, "kind": "transfer", "credit_kind": "storage", "amount": 20,
                  "from_agent_id": "agent_a", "to_agent_id": "agent_b"},
        )
        await client.post(
            f"{PREFIX}/credits/usage",
            json={"owner_id": OWNER, "agent_id": "agent_b", "credit_kind": "storage", "amount": 4},
        )

        response = await client.get(f"{PREFIX}/credits/owners/{OWNER}/allocations", params={"lookback_days": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["lookback_days"] == 2
        agents = {a["agent_id"]: a for a in body["agents"]}
        assert agents["agent_a"]["storage"] == -20
        assert agents["agent_b"]["storage"] == 16
        assert agents["agent_b"]["storage_runway_days"] == 8
        assert agents["agent_b"]["runway_days"] == 8

    @pytest.mark.asyncio
    async def test_allocations_lookback_is_validated(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/credits/owners/{OWNER}/allocations", params={"lookback_days": 0})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_to_other_owner_conflicts(self, client: AsyncClient):
        await client.post(f"{PREFIX}/agents", json={"agent_id": "agent_a", "owner_id": OWNER})

        response = await client.post(f"{PREFIX}/agents", json={"agent_id": "agent_a", "owner_id": "0xthief"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "AGENT_ALREADY_REGISTERED"

    @pytest.mark.asyncio
    async def test_get_unknown_agent(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/agents/ghost")

        assert response.status_code == 404
