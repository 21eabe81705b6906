"""
ZengaPay payout gateway client.

Initiates mobile-money transfers for approved withdrawals. Calls are made
through the payout circuit breaker so a failing gateway is short-circuited
instead of being hammered on every approval.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import httpx

from fincore.app.core.config import settings
from fincore.app.core.exceptions import PayoutGatewayError
from fincore.app.core.reliability import CircuitBreaker, CircuitOpenError, payout_circuit_breaker

logger = logging.getLogger(__name__)

ACCEPTED_CODE = 202


@dataclass
class PayoutResult:
    accepted: bool
    transaction_reference: Optional[str] = None
    message: Optional[str] = None


class ZengaPayClient:
    """
    Thin async client for the ZengaPay transfers API.

    A transfer is accepted only when the gateway answers with code 202 and
    a transaction reference; anything else is a refusal carrying the
    gateway's message.
    """

    def __init__(
        self,
        base_url: str = None,
        api_key: Optional[str] = None,
        timeout: float = None,
        breaker: CircuitBreaker = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.zengapay_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.zengapay_api_key
        self.timeout = timeout or settings.zengapay_timeout_seconds
        self.breaker = breaker or payout_circuit_breaker
        self.transport = transport

    async def _post_transfer(self, body: dict) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport
        ) as client:
            response = await client.post(
                "/transfers",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"}
            )
        if response.status_code >= 500:
            # Server-side failures count against the breaker; refusals do not
            response.raise_for_status()
        return response

    async def initiate_transfer(
        self,
        withdrawal_id: int,
        msisdn: str,
        amount: Decimal
    ) -> PayoutResult:
        """
        Ask the gateway to pay `amount` to `msisdn`.

        Returns:
            PayoutResult (accepted or refused with the gateway message)

        Raises:
            PayoutGatewayError: Gateway unreachable, erroring, or circuit open
        """
        if not self.api_key:
            raise PayoutGatewayError("Payout gateway API key is not configured")

        body = {
            "msisdn": msisdn,
            "amount": int(amount),
            "external_reference": f"WD-{withdrawal_id}",
            "narration": f"Payout - {amount:,.0f}",
            "use_contact": "false",
        }

        try:
            response = await self.breaker.call(self._post_transfer, body)
        except CircuitOpenError as exc:
            logger.warning("Payout for withdrawal %s short-circuited", withdrawal_id)
            raise PayoutGatewayError("Payout gateway temporarily unavailable") from exc
        except httpx.HTTPError as exc:
            logger.error("Payout gateway error for withdrawal %s: %s", withdrawal_id, exc)
            raise PayoutGatewayError(f"Payout gateway error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        reference = payload.get("transactionReference")
        if response.is_success and payload.get("code") == ACCEPTED_CODE and reference:
            logger.info("Payout for withdrawal %s accepted: %s", withdrawal_id, reference)
            return PayoutResult(accepted=True, transaction_reference=reference)

        message = payload.get("message") or f"Transfer refused with HTTP {response.status_code}"
        logger.warning("Payout for withdrawal %s refused: %s", withdrawal_id, message)
        return PayoutResult(accepted=False, message=message)


def get_payout_gateway() -> ZengaPayClient:
    """FastAPI dependency; tests override it with a fake gateway."""
    return ZengaPayClient()
