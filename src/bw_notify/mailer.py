"""Escrow email side channel.

Emails mirror the ESCROW_HELD and ESCROW_RELEASED notifications. Template
rendering and transport live outside this service; `LoggingMailer` hands
the message off through the `bw.mail` logger, which deployments route to
their mail relay.
"""

import logging
from typing import Protocol

from src.bw_common.cents import cents_to_display

logger = logging.getLogger("bw.mail")


class Mailer(Protocol):
    async def send_escrow_payment_received(
        self,
        seller_email: str,
        seller_name: str,
        buyer_name: str,
        item_title: str,
        amount_cents: int,
        currency_code: str,
    ) -> bool: ...

    async def send_escrow_released(
        self,
        seller_email: str,
        seller_name: str,
        item_title: str,
        amount_cents: int,
        currency_code: str,
    ) -> bool: ...


class LoggingMailer:
    async def send_escrow_payment_received(
        self,
        seller_email: str,
        seller_name: str,
        buyer_name: str,
        item_title: str,
        amount_cents: int,
        currency_code: str,
    ) -> bool:
        logger.info(
            "to=%s subject=%r greeting=%r body=%r",
            seller_email,
            f"Payment Secured: {item_title}",
            f"Hi {seller_name}".strip(),
            f"{buyer_name} has paid {cents_to_display(amount_cents, currency_code)} for {item_title}",
        )
        return True

    async def send_escrow_released(
        self,
        seller_email: str,
        seller_name: str,
        item_title: str,
        amount_cents: int,
        currency_code: str,
    ) -> bool:
        amount = cents_to_display(amount_cents, currency_code)
        logger.info(
            "to=%s subject=%r greeting=%r body=%r",
            seller_email,
            f"Payment Released: {amount}",
            f"Hi {seller_name}".strip(),
            f"The buyer has confirmed receipt of {item_title}",
        )
        return True
