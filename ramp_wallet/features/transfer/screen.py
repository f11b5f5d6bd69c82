"""Donate / withdraw panel for Ramp Wallet."""

from typing import cast

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Button, Input, Label, Select, Static

from ramp_wallet.features.transfer.destination import DestinationMode
from ramp_wallet.features.transfer.service import TransferForm
from ramp_wallet.shared.logging import get_logger

logger = get_logger(__name__)


class TransferPanel(Vertical):
    """Donate via on-chain transaction."""

    def __init__(self, form: TransferForm, **kwargs):
        super().__init__(classes="panel", **kwargs)
        self.form = form

    def compose(self) -> ComposeResult:
        state = self.form.state
        yield Label("Donate via on-chain transaction", classes="panel-title")
        yield Static("", id="transfer-helper", classes="field-label")
        yield Label("Destination", classes="field-label")
        yield Select(
            [(mode, mode) for mode in self.form.destination_options],
            value=state.destination,
            allow_blank=False,
            id="destination-select",
        )
        yield Label("Address", classes="field-label", id="address-to-label")
        locked = self.form.locked_fields
        yield Input(
            value=state.address_to,
            id="address-to-input",
            disabled="address_to" in locked,
        )
        yield Label("IBAN", classes="field-label", id="iban-to-label")
        yield Input(
            value=state.iban_to,
            id="iban-to-input",
            disabled="iban_to" in locked,
        )
        yield Label("Amount (whole units)", classes="field-label")
        yield Input(value=str(state.amount), id="amount-input")
        yield Button(self.form.button_label, id="donate-button", variant="primary")
        yield Static("", id="transfer-status", classes="tx-status")

    def on_mount(self) -> None:
        self.refresh_form()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "destination-select" or event.value is Select.BLANK:
            return
        event.stop()
        self.form.update(destination=str(event.value))
        self._refresh_fields()

    def on_input_changed(self, event: Input.Changed) -> None:
        fields = {
            "address-to-input": "address_to",
            "iban-to-input": "iban_to",
            "amount-input": "amount",
        }
        name = fields.get(event.input.id or "")
        if name is None:
            return
        event.stop()
        self.form.update(**{name: event.value})

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "donate-button":
            return
        event.stop()
        self.run_worker(self._submit(), group="transfer")

    async def _submit(self) -> None:
        button = cast(Button, self.query_one("#donate-button"))
        button.disabled = True
        try:
            result = await self.form.submit()
        finally:
            button.disabled = self.form.button.disabled or not self.form.can_donate
        if result is not None and result.succeeded:
            self.app.notify(f"{self.form.button_label} included", severity="information")

    def show_status(self, status: str) -> None:
        cast(Static, self.query_one("#transfer-status")).update(status)

    def _refresh_fields(self) -> None:
        destination = self.form.state.destination
        for widget_id, mode in (
            ("#address-to-label", DestinationMode.ADDRESS),
            ("#address-to-input", DestinationMode.ADDRESS),
            ("#iban-to-label", DestinationMode.IBAN),
            ("#iban-to-input", DestinationMode.IBAN),
        ):
            self.query_one(widget_id).display = destination == mode.value
        cast(Button, self.query_one("#donate-button")).label = self.form.button_label

    def refresh_form(self) -> None:
        options = self.form.destination_options
        if self.form.state.destination not in options:
            self.form.update(destination=options[0])

        select = cast(Select, self.query_one("#destination-select"))
        select.set_options([(mode, mode) for mode in options])
        select.value = self.form.state.destination

        helper = cast(Static, self.query_one("#transfer-helper"))
        button = cast(Button, self.query_one("#donate-button"))
        if self.form.can_donate:
            helper.update("")
            button.disabled = self.form.button.disabled
        else:
            helper.update("[yellow]Register an IBAN for this account to donate.[/yellow]")
            button.disabled = True
        self._refresh_fields()
