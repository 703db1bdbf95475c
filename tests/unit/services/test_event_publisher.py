"""Unit tests for transaction event publishers"""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from src.adapter.services.event_publisher import (
    CompositeEventPublisher,
    LoggingEventPublisher,
    WebhookEventPublisher,
    create_event_publisher,
    transaction_payload,
)
from src.domain.credit_transaction import TransactionStatus
from tests.unit.factories import make_transaction


def test_payload_is_json_friendly():
    payload = transaction_payload("transaction.completed", make_transaction(id=12))

    assert payload["type"] == "transaction.completed"
    assert payload["transaction_id"] == 12
    assert payload["kind"] == "purchase"
    assert payload["status"] == TransactionStatus.COMPLETED.value
    assert payload["timestamp"] == "2024-05-01T12:00:00+00:00"


def test_factory_without_webhook_logs_only():
    assert isinstance(create_event_publisher(None), LoggingEventPublisher)


def test_factory_with_webhook_fans_out():
    publisher = create_event_publisher("https://hooks.example.com/ledger")

    assert isinstance(publisher, CompositeEventPublisher)
    assert isinstance(publisher.publishers[1], WebhookEventPublisher)


@pytest.mark.asyncio
class TestWebhookEventPublisher:

    @patch("src.adapter.services.event_publisher.httpx.AsyncClient")
    async def test_posts_payload(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.post = AsyncMock(return_value=MagicMock(raise_for_status=MagicMock()))
        mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)

        publisher = WebhookEventPublisher("https://hooks.example.com/ledger")
        sent = await publisher.publish("transaction.completed", make_transaction(id=3))

        assert sent is True
        assert mock_client.post.call_args.kwargs["json"]["transaction_id"] == 3

    @patch("src.adapter.services.event_publisher.httpx.AsyncClient")
    async def test_http_error_returns_false(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)

        publisher = WebhookEventPublisher("https://hooks.example.com/ledger")

        assert await publisher.publish("transaction.failed", make_transaction()) is False


@pytest.mark.asyncio
class TestCompositeEventPublisher:

    async def test_one_failing_channel_does_not_block_others(self):
        broken = MagicMock()
        broken.publish = AsyncMock(side_effect=RuntimeError("boom"))
        working = MagicMock()
        working.publish = AsyncMock(return_value=True)

        publisher = CompositeEventPublisher([broken, working])

        assert await publisher.publish("transaction.completed", make_transaction()) is True
        working.publish.assert_called_once()
