"""Tests for IBAN registration and the donation card."""

import asyncio

from ramp_wallet.features.account.service import (
    DEFAULT_BASELINE,
    AccountStateProjector,
    encode_iban,
)
from ramp_wallet.features.ramps.service import RegistrationForm, build_donation_card
from ramp_wallet.features.subscriptions.service import SubscriptionUpdate
from ramp_wallet.shared.protocols import QueryKind

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"


class TestDonationCard:
    def test_total_is_zero_before_first_balance(self, recipient):
        card = build_donation_card(recipient, AccountStateProjector(ALICE))

        assert card.name == "Alice"
        assert card.address == ALICE
        assert card.iban == recipient.iban
        assert card.total_donations == "0"

    def test_total_tracks_recipient_balance_delta(self, recipient):
        projector = AccountStateProjector(ALICE)
        projector.apply_balance(
            SubscriptionUpdate(
                QueryKind.SYSTEM_ACCOUNT,
                ALICE,
                {"data": {"free": DEFAULT_BASELINE + 5 * 10**10}},
            )
        )

        card = build_donation_card(recipient, projector)

        assert card.total_donations == "5 pEURO"


class TestRegistrationForm:
    def test_visible_until_record_present(self, submitter):
        projector = AccountStateProjector(ALICE)
        projector.select_account(BOB)
        form = RegistrationForm(projector, submitter)

        assert form.visible is True
        assert form.registered_iban is None

        projector.apply_account_record(
            SubscriptionUpdate(QueryKind.FIAT_RAMP_ACCOUNT, BOB, {"iban": encode_iban("DE89")})
        )

        assert form.visible is False
        assert form.registered_iban == "DE89"

    def test_submit_registers_form_iban(self, submitter):
        projector = AccountStateProjector(ALICE)
        projector.select_account(BOB)
        statuses = []
        form = RegistrationForm(projector, submitter, on_status=statuses.append)
        form.form_iban = "DE89370400440532013000"

        result = asyncio.run(form.submit())

        assert result.succeeded is True
        assert submitter.calls == [
            ("fiatRamps", "createAccount", ("DE89370400440532013000",), BOB)
        ]
        assert statuses == ["Sending...", "Ready", "InBlock", "Finalized"]
        assert form.status == "Finalized"

    def test_blank_iban_is_refused(self, submitter):
        projector = AccountStateProjector(ALICE)
        projector.select_account(BOB)
        form = RegistrationForm(projector, submitter)

        result = asyncio.run(form.submit())

        assert result.succeeded is False
        assert form.status == "Error: IBAN is required"
        assert submitter.calls == []

    def test_already_registered_account_is_not_resubmitted(self, submitter):
        projector = AccountStateProjector(ALICE)
        projector.select_account(BOB)
        projector.apply_account_record(
            SubscriptionUpdate(QueryKind.FIAT_RAMP_ACCOUNT, BOB, {"iban": encode_iban("DE89")})
        )
        form = RegistrationForm(projector, submitter)
        form.form_iban = "DE00OTHER"

        assert asyncio.run(form.submit()) is None
        assert submitter.calls == []
