"""Donation card and IBAN registration widgets."""

from typing import cast

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label, Static

from ramp_wallet.features.account.service import AccountStateProjector
from ramp_wallet.features.ramps.service import (
    DonationCard,
    RegistrationForm,
    build_donation_card,
)
from ramp_wallet.shared.clipboard import copy_recipient_field
from ramp_wallet.shared.config import RecipientDescriptor
from ramp_wallet.shared.logging import get_logger

logger = get_logger(__name__)


class DonationCardPanel(Vertical):
    def __init__(
        self,
        recipient: RecipientDescriptor,
        projector: AccountStateProjector,
        **kwargs,
    ):
        super().__init__(classes="panel", **kwargs)
        self.recipient = recipient
        self.projector = projector

    def compose(self) -> ComposeResult:
        card = self.card
        yield Label(f"Donate to {card.name}", classes="panel-title")
        yield Label("Address", classes="field-label")
        yield Static(card.address, classes="field-value")
        yield Label("IBAN", classes="field-label")
        yield Static(card.iban, classes="field-value")
        yield Label("Total donations", classes="field-label")
        yield Static(card.total_donations, id="total-donations", classes="total-donations")
        yield Horizontal(
            Button("Copy address", id="copy-recipient-address-button"),
            Button("Copy IBAN", id="copy-recipient-iban-button"),
        )

    @property
    def card(self) -> DonationCard:
        return build_donation_card(self.recipient, self.projector)

    def refresh_card(self) -> None:
        total = cast(Static, self.query_one("#total-donations"))
        total.update(self.card.total_donations)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "copy-recipient-address-button":
            self._copy(self.recipient.address, "Address")
        elif event.button.id == "copy-recipient-iban-button":
            self._copy(self.recipient.iban, "IBAN")
        else:
            return
        event.stop()

    def _copy(self, text: str, label: str) -> None:
        method = copy_recipient_field(text, self.app.copy_to_clipboard)
        if method is not None:
            logger.debug("Copied recipient %s via %s", label, method)
            self.app.notify(f"{label} copied to clipboard", severity="information")
        else:
            logger.warning("Clipboard copy failed for %s", label)
            self.app.notify(f"Could not copy {label}", severity="warning")


class RegistrationPanel(Vertical):
    """Shown while the selected account has no IBAN mapped."""

    def __init__(self, form: RegistrationForm, **kwargs):
        super().__init__(classes="panel", **kwargs)
        self.form = form

    def compose(self) -> ComposeResult:
        yield Label("Register your IBAN", classes="panel-title")
        yield Static(
            "Map this account to a bank account before donating.",
            classes="field-label",
        )
        yield Input(placeholder="IBAN (e.g. DE89...)", id="registration-iban-input")
        yield Button("Register", id="register-button", variant="primary")
        yield Static("", id="registration-status", classes="tx-status")

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "registration-iban-input":
            self.form.form_iban = event.value
            event.stop()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "register-button":
            return
        event.stop()
        self.run_worker(self._submit(), group="registration")

    async def _submit(self) -> None:
        button = cast(Button, self.query_one("#register-button"))
        button.disabled = True
        try:
            result = await self.form.submit()
        finally:
            button.disabled = self.form.button.disabled
        if result is not None and result.succeeded:
            self.app.notify("IBAN registered", severity="information")

    def show_status(self, status: str) -> None:
        cast(Static, self.query_one("#registration-status")).update(status)

    def refresh_form(self) -> None:
        self.display = self.form.visible
