"""Tests for transaction building and submission."""

import asyncio
from unittest.mock import MagicMock

import pytest

from ramp_wallet.features.account.service import AccountStateProjector, encode_iban
from ramp_wallet.features.subscriptions.service import SubscriptionUpdate
from ramp_wallet.features.transfer.service import (
    SubmissionState,
    TransactionBuildError,
    TransactionRequestBuilder,
    TransactionSender,
    TransferForm,
    TxButton,
    TxRequest,
)
from ramp_wallet.shared.config import RecipientDescriptor
from ramp_wallet.shared.protocols import QueryKind, TxProgress

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"


def registered_projector(current=BOB, iban="DE00BOB"):
    projector = AccountStateProjector(ALICE)
    projector.select_account(current)
    projector.apply_account_record(
        SubscriptionUpdate(QueryKind.FIAT_RAMP_ACCOUNT, current, {"iban": encode_iban(iban)})
    )
    return projector


class TestTxRequest:
    def test_params_follow_param_fields(self):
        request = TxRequest("fiatRamps", "transfer", (1, {"Withdraw": None}), (True, False))
        assert request.params == (1,)

    def test_length_mismatch_is_rejected(self):
        with pytest.raises(ValueError):
            TxRequest("fiatRamps", "transfer", (1,), (True, True))

    def test_request_is_immutable(self):
        request = TxRequest("fiatRamps", "createAccount", ("DE89",), (True,))
        with pytest.raises(AttributeError):
            request.callable = "transfer"


class TestTransactionRequestBuilder:
    def test_register(self):
        request = TransactionRequestBuilder().register("DE89370400440532013000")
        assert request.pallet_rpc == "fiatRamps"
        assert request.callable == "createAccount"
        assert request.input_params == ("DE89370400440532013000",)
        assert request.param_fields == (True,)
        assert request.tx_type == "SIGNED-TX"

    def test_register_requires_iban(self):
        with pytest.raises(TransactionBuildError, match="IBAN is required"):
            TransactionRequestBuilder().register("  ")

    def test_transfer_scales_amount(self):
        request = TransactionRequestBuilder().transfer(3, {"Address": BOB})
        assert request.callable == "transfer"
        assert request.input_params == (30000000000, {"Address": BOB})
        assert request.param_fields == (True, True)

    def test_transfer_copies_destination(self):
        destination = {"Iban": "DE89"}
        request = TransactionRequestBuilder().transfer(1, destination)
        destination["Iban"] = "changed"
        assert request.input_params[1] == {"Iban": "DE89"}

    @pytest.mark.parametrize("amount", [-1, "abc", 1.5])
    def test_transfer_rejects_malformed_amount(self, amount):
        with pytest.raises(TransactionBuildError):
            TransactionRequestBuilder().transfer(amount, {"Withdraw": None})

    def test_transfer_zero_is_allowed(self):
        request = TransactionRequestBuilder().transfer(0, {"Withdraw": None})
        assert request.input_params[0] == 0

    def test_custom_pallet_and_decimals(self):
        request = TransactionRequestBuilder(pallet="ramps", decimals=2).transfer(3, {})
        assert request.pallet_rpc == "ramps"
        assert request.input_params[0] == 300


class TestTransactionSender:
    def _sender(self, submitter, signer=BOB):
        statuses = []
        sender = TransactionSender(submitter, statuses.append, lambda: signer)
        return sender, statuses

    def test_successful_lifecycle(self, submitter):
        sender, statuses = self._sender(submitter)
        request = TransactionRequestBuilder().register("DE89")

        result = asyncio.run(sender.send(request))

        assert statuses == ["Sending...", "Ready", "InBlock", "Finalized"]
        assert result.state is SubmissionState.FINALIZED
        assert result.state.is_terminal is True
        assert result.succeeded is True
        assert result.block_hash == "0xabc"
        assert submitter.calls == [("fiatRamps", "createAccount", ("DE89",), BOB)]

    def test_build_failure_never_reaches_submitter(self, submitter):
        sender, statuses = self._sender(submitter)

        result = asyncio.run(
            sender.send(lambda: TransactionRequestBuilder().transfer("abc", {"Withdraw": None}))
        )

        assert statuses == ["Error: Amount must be a valid number"]
        assert result.state is SubmissionState.ERROR
        assert submitter.calls == []

    def test_no_account_selected(self, submitter):
        sender, statuses = self._sender(submitter, signer=None)

        result = asyncio.run(sender.send(TransactionRequestBuilder().register("DE89")))

        assert statuses == ["Error: No account selected"]
        assert result.error == "No account selected"
        assert submitter.calls == []

    def test_submitter_exception_becomes_error_status(self, make_submitter):
        submitter = make_submitter(progress=[TxProgress("Ready")], error=RuntimeError("1010: bad signature"))
        sender, statuses = self._sender(submitter)

        result = asyncio.run(sender.send(TransactionRequestBuilder().register("DE89")))

        assert statuses == ["Sending...", "Ready", "Error: 1010: bad signature"]
        assert result.state is SubmissionState.ERROR

    def test_dispatch_error_becomes_error_status(self, make_submitter):
        submitter = make_submitter(
            progress=[
                TxProgress("Ready"),
                TxProgress("InBlock", block_hash="0x1", error="balances.InsufficientBalance"),
            ]
        )
        sender, statuses = self._sender(submitter)

        result = asyncio.run(sender.send(TransactionRequestBuilder().transfer(1, {"Withdraw": None})))

        assert statuses[-1] == "Error: balances.InsufficientBalance"
        assert result.succeeded is False

    @pytest.mark.parametrize("status", ["Invalid", "Dropped", "Usurped", "FinalityTimeout"])
    def test_failed_pool_status(self, make_submitter, status):
        submitter = make_submitter(progress=[TxProgress("Ready"), TxProgress(status)])
        sender, statuses = self._sender(submitter)

        result = asyncio.run(sender.send(TransactionRequestBuilder().register("DE89")))

        assert statuses == ["Sending...", "Ready", f"Error: {status}"]
        assert result.state is SubmissionState.ERROR

    def test_stream_ending_after_inclusion_succeeds(self, make_submitter):
        submitter = make_submitter(
            progress=[TxProgress("Ready"), TxProgress("InBlock", block_hash="0x2")]
        )
        sender, statuses = self._sender(submitter)

        result = asyncio.run(sender.send(TransactionRequestBuilder().register("DE89")))

        assert statuses == ["Sending...", "Ready", "InBlock"]
        assert result.state is SubmissionState.IN_BLOCK
        assert result.succeeded is True

    def test_stream_ending_before_inclusion_fails(self, make_submitter):
        submitter = make_submitter(progress=[TxProgress("Ready")])
        sender, statuses = self._sender(submitter)

        result = asyncio.run(sender.send(TransactionRequestBuilder().register("DE89")))

        assert result.state is SubmissionState.ERROR
        assert statuses[-1].startswith("Error: ")


class TestTxButton:
    def test_single_outstanding_submission(self, submitter):
        statuses = []
        sender = TransactionSender(submitter, statuses.append, lambda: BOB)
        build = MagicMock(side_effect=lambda: TransactionRequestBuilder().register("DE89"))
        button = TxButton(sender, build)

        async def scenario():
            submitter.gate = asyncio.Event()
            first = asyncio.ensure_future(button.press())
            await asyncio.sleep(0)
            assert button.disabled is True
            second = await button.press()
            submitter.gate.set()
            return second, await first

        second, first = asyncio.run(scenario())

        assert second is None
        assert first.state is SubmissionState.FINALIZED
        assert len(submitter.calls) == 1
        build.assert_called_once_with()
        assert button.disabled is False
        assert button.last_result is first

    def test_button_reenabled_after_error(self, make_submitter):
        submitter = make_submitter(progress=[], error=RuntimeError("node down"))
        sender = TransactionSender(submitter, MagicMock(), lambda: BOB)
        button = TxButton(sender, lambda: TransactionRequestBuilder().register("DE89"))

        result = asyncio.run(button.press())

        assert result.state is SubmissionState.ERROR
        assert button.disabled is False


class TestTransferForm:
    def test_defaults(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)

        assert form.state.destination == "IBAN"
        assert form.state.address_to == recipient.address
        assert form.state.iban_to == recipient.iban
        assert form.state.amount == 0
        assert form.destination_options == ["IBAN", "Address"]
        assert form.button_label == "Donate"

    def test_recipient_can_withdraw(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(current=ALICE), submitter)

        form.update(destination="Withdraw")

        assert "Withdraw" in form.destination_options
        assert form.button_label == "Withdraw"
        assert form.build_request().input_params[1] == {"Withdraw": None}

    def test_withdraw_unavailable_for_other_accounts(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)
        form.update(destination="Withdraw")

        with pytest.raises(TransactionBuildError):
            form.build_request()

    def test_unknown_field_is_rejected(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)
        with pytest.raises(AttributeError):
            form.update(memo="hi")

    def test_recipient_fields_are_locked(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)

        assert form.locked_fields == {"address_to", "iban_to"}
        with pytest.raises(ValueError, match="address_to"):
            form.update(address_to=BOB)
        with pytest.raises(ValueError, match="iban_to"):
            form.update(iban_to="DE00BOB")
        assert form.state.address_to == recipient.address
        assert form.state.iban_to == recipient.iban

    def test_unchanged_locked_value_is_accepted(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)
        form.update(iban_to=recipient.iban, amount="3")
        assert form.state.amount == "3"

    def test_iban_editable_when_recipient_has_none(self, submitter):
        recipient = RecipientDescriptor(name="Alice", address=ALICE, iban="")
        form = TransferForm(recipient, registered_projector(), submitter)

        form.update(iban_to="FR7630006000011234567890189")

        assert form.locked_fields == {"address_to"}
        assert form.build_request().input_params[1] == {"Iban": "FR7630006000011234567890189"}

    def test_cannot_donate_without_registration(self, recipient, submitter):
        projector = AccountStateProjector(ALICE)
        projector.select_account(BOB)
        on_status = MagicMock()
        form = TransferForm(recipient, projector, submitter, on_status=on_status)

        result = asyncio.run(form.submit())

        assert result is None
        assert form.can_donate is False
        assert form.status == "Error: Register an IBAN for this account first"
        on_status.assert_called_once_with(form.status)
        assert submitter.calls == []

    def test_submit_snapshots_form_state(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)
        form.update(destination="Address", address_to=ALICE, amount="2")

        result = asyncio.run(form.submit())

        assert result.succeeded is True
        assert submitter.calls == [
            ("fiatRamps", "transfer", (20000000000, {"Address": ALICE}), BOB)
        ]
        assert form.status == "Finalized"

    def test_malformed_amount_reports_error(self, recipient, submitter):
        form = TransferForm(recipient, registered_projector(), submitter)
        form.update(amount="1.5")

        result = asyncio.run(form.submit())

        assert result.state is SubmissionState.ERROR
        assert form.status == "Error: Amount must be a whole number of units"
        assert submitter.calls == []
