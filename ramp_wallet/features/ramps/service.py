"""IBAN registration and the recipient's donation card."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ramp_wallet.features.account.service import AccountStateProjector
from ramp_wallet.features.transfer.service import (
    SubmissionResult,
    TransactionRequestBuilder,
    TransactionSender,
    TxButton,
    TxRequest,
)
from ramp_wallet.shared.config import RecipientDescriptor
from ramp_wallet.shared.protocols import TransactionSubmitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DonationCard:
    name: str
    address: str
    iban: str
    total_donations: str


def build_donation_card(
    recipient: RecipientDescriptor, projector: AccountStateProjector
) -> DonationCard:
    donations = projector.total_donations
    return DonationCard(
        name=recipient.name,
        address=recipient.address,
        iban=recipient.iban,
        total_donations=donations.display if donations else "0",
    )


class RegistrationForm:
    """Maps the current account to an IBAN via ``fiatRamps.createAccount``."""

    def __init__(
        self,
        projector: AccountStateProjector,
        submitter: TransactionSubmitter,
        builder: TransactionRequestBuilder | None = None,
        on_status: Callable[[str], None] | None = None,
    ):
        self.projector = projector
        self.builder = builder or TransactionRequestBuilder()
        self.form_iban = ""
        self.status = ""
        self._on_status = on_status
        sender = TransactionSender(
            submitter, self._set_status, lambda: self.projector.current_address
        )
        self.button = TxButton(sender, self.build_request)

    def _set_status(self, status: str) -> None:
        self.status = status
        if self._on_status is not None:
            self._on_status(status)

    @property
    def visible(self) -> bool:
        return self.projector.current_record.is_empty

    @property
    def registered_iban(self) -> str | None:
        return self.projector.current_record.iban

    def build_request(self) -> TxRequest:
        return self.builder.register(self.form_iban)

    async def submit(self) -> SubmissionResult | None:
        if not self.visible:
            logger.info(
                "Account %s already has an IBAN mapped", self.projector.current_address
            )
            return None
        return await self.button.press()
