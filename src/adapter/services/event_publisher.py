"""Transaction Event Publisher Implementations

Concrete ways of announcing committed transaction status changes.
"""

import logging
from typing import Optional
import httpx
from src.app.services.event_publisher import TransactionEventPublisher
from src.domain.credit_transaction import CreditTransaction

logger = logging.getLogger(__name__)


def transaction_payload(event_type: str, transaction: CreditTransaction) -> dict:
    """JSON-serialisable event body"""
    return {
        "type": event_type,
        "transaction_id": transaction.id,
        "owner_id": transaction.owner_id,
        "kind": transaction.kind.value,
        "credit_kind": transaction.credit_kind.value,
        "amount": transaction.amount,
        "status": transaction.status.value,
        "timestamp": transaction.timestamp.isoformat(),
        "external_tx_hash": transaction.external_tx_hash,
        "agent_id": transaction.agent_id,
        "from_agent_id": transaction.from_agent_id,
        "to_agent_id": transaction.to_agent_id,
        "transfer_group_id": transaction.transfer_group_id,
        "failure_reason": transaction.failure_reason,
    }


class LoggingEventPublisher(TransactionEventPublisher):
    """
    Publisher that writes events to the application log

    Useful for development and testing, or as a fallback.
    """

    async def publish(self, event_type: str, transaction: CreditTransaction) -> bool:
        logger.info(
            f"[{event_type}] id={transaction.id} owner={transaction.owner_id} "
            f"kind={transaction.kind.value} credit_kind={transaction.credit_kind.value} "
            f"amount={transaction.amount} status={transaction.status.value}"
        )
        return True


class WebhookEventPublisher(TransactionEventPublisher):
    """
    Publisher that POSTs events to a subscriber webhook

    Sends the JSON payload built by transaction_payload().
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        """
        Initialize webhook publisher

        Args:
            webhook_url: URL to POST events to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def publish(self, event_type: str, transaction: CreditTransaction) -> bool:
        payload = transaction_payload(event_type, transaction)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                logger.info(
                    f"Webhook event {event_type} sent for transaction {transaction.id} to {self.webhook_url}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send webhook event {event_type} for transaction {transaction.id}: {e}"
            )
            return False


class CompositeEventPublisher(TransactionEventPublisher):
    """
    Publisher that delegates to several publishers

    A failing channel never prevents delivery to the others.
    """

    def __init__(self, publishers: list[TransactionEventPublisher]):
        self.publishers = publishers

    async def publish(self, event_type: str, transaction: CreditTransaction) -> bool:
        """
        Returns:
            True if at least one publisher succeeded
        """
        success = False
        for publisher in self.publishers:
            try:
                if await publisher.publish(event_type, transaction):
                    success = True
            except Exception as e:
                logger.error(f"Event publisher {type(publisher).__name__} failed: {e}")
        return success


def create_event_publisher(webhook_url: Optional[str] = None) -> TransactionEventPublisher:
    """
    Factory for the configured publisher

    Args:
        webhook_url: Optional subscriber webhook. If provided, events go to the
                     log and the webhook; otherwise only to the log.
    """
    publishers: list[TransactionEventPublisher] = [LoggingEventPublisher()]

    if webhook_url:
        publishers.append(WebhookEventPublisher(webhook_url))

    if len(publishers) == 1:
        return publishers[0]

    return CompositeEventPublisher(publishers)
