"""Main application entry point for Ramp Wallet."""

import asyncio
from typing import cast

from textual.app import App, ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Footer, Header, Label, Select, Static

from ramp_wallet.features.account.service import AccountStateProjector, AccountStateSync
from ramp_wallet.features.ramps.screen import DonationCardPanel, RegistrationPanel
from ramp_wallet.features.ramps.service import RegistrationForm
from ramp_wallet.features.subscriptions.rpc import RpcQueryService, RpcTransactionSubmitter
from ramp_wallet.features.subscriptions.service import (
    SubscriptionManager,
    SubscriptionSetupError,
)
from ramp_wallet.features.transfer.screen import TransferPanel
from ramp_wallet.features.transfer.service import TransactionRequestBuilder, TransferForm
from ramp_wallet.screens import ConnectionErrorScreen, LoadingScreen
from ramp_wallet.shared.config import AppConfig
from ramp_wallet.shared.connection_state import (
    ApiState,
    KeyringState,
    ReadinessMonitor,
    ReadinessStatus,
)
from ramp_wallet.shared.dry_run import DryRunLedger
from ramp_wallet.shared.logging import (
    LoggingConfig,
    format_error_for_user,
    get_logger,
    setup_logging,
)
from ramp_wallet.shared.network import LedgerRpcClient, NetworkError
from ramp_wallet.shared.protocols import (
    AccountProvider,
    ExtrinsicSigner,
    KeyringAccount,
    LedgerQueryService,
    StorageCodec,
    TransactionSubmitter,
)
from ramp_wallet.styles import CSS

logger = get_logger(__name__)

LEDGER_DRY_RUN = "dry-run"
LEDGER_NODE = "node"


class RampWalletApp(App):
    CSS = CSS
    TITLE = "Ramp Wallet"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("tab", "focus_next", "Next"),
        ("shift+tab", "focus_previous", "Previous"),
    ]

    def __init__(
        self,
        config: AppConfig | None = None,
        query_service: LedgerQueryService | None = None,
        submitter: TransactionSubmitter | None = None,
        account_provider: AccountProvider | None = None,
        codec: StorageCodec | None = None,
        signer: ExtrinsicSigner | None = None,
    ):
        super().__init__()
        self.wallet_config = config or AppConfig.load()
        self.query_service = query_service
        self.submitter = submitter
        self.account_provider = account_provider
        self.codec = codec
        self.signer = signer
        # A node needs SCALE codec and signing backends; without them the wallet runs dry.
        self.ledger = LEDGER_NODE if codec is not None and signer is not None else LEDGER_DRY_RUN
        self.accounts: list[KeyringAccount] = []
        self.rpc_client: LedgerRpcClient | None = None
        # Widgets on the default screen; App.query_one only sees the active screen.
        self.connection_status = Static("[dim]● Connecting...[/dim]", id="connection-status")
        self.core = VerticalScroll(id="core")
        self.projector: AccountStateProjector | None = None
        self.sync: AccountStateSync | None = None
        self.monitor = ReadinessMonitor(
            self.wallet_config.health_url if self.ledger == LEDGER_NODE else None,
            on_state_change=self._on_monitor_state_change,
        )
        self._loading_screen: LoadingScreen | None = None
        self._core_mounted = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield self.connection_status
        yield self.core
        yield Footer()

    def on_mount(self) -> None:
        logger.info("Starting Ramp Wallet (ledger=%s)", self.ledger)
        self._loading_screen = LoadingScreen(self.monitor.status)
        self.push_screen(self._loading_screen)
        self.run_worker(self._bootstrap(), exclusive=True, group="bootstrap")

    def on_unmount(self) -> None:
        self.monitor.stop()
        if self.sync is not None:
            self.sync.close()
        if self.rpc_client is not None:
            self.rpc_client.close()

    async def _bootstrap(self) -> None:
        try:
            await self._connect_ledger()
        except NetworkError as e:
            logger.error("Ledger connection failed: %s", e)
            self.monitor.set_api_state(ApiState.ERROR, format_error_for_user(e))
            return
        except ValueError as e:
            logger.error("Ledger backend misconfigured: %s", e)
            self.monitor.set_api_state(ApiState.ERROR, str(e))
            return

        self.monitor.set_api_state(ApiState.READY)
        if self.rpc_client is not None:
            self.monitor.start()

        provider = cast(AccountProvider, self.account_provider)
        self.accounts = provider.accounts()
        logger.info("Loaded %d accounts", len(self.accounts))
        self.monitor.set_keyring_state(KeyringState.READY)

    async def _connect_ledger(self) -> None:
        if self.query_service and self.submitter and self.account_provider:
            return

        if self.ledger == LEDGER_DRY_RUN:
            ledger = DryRunLedger(
                balances={self.wallet_config.recipient.address: self.wallet_config.chain.baseline}
            )
            self.query_service = self.query_service or ledger
            self.submitter = self.submitter or ledger
            self.account_provider = self.account_provider or ledger
            return

        if self.account_provider is None:
            raise ValueError("Node mode requires an account provider")

        if self.rpc_client is None:
            self.rpc_client = LedgerRpcClient(
                self.wallet_config.node_url,
                timeout_config=self.wallet_config.timeout_config,
                on_connected=lambda: self.monitor.set_api_state(ApiState.READY),
                on_disconnected=lambda: self.monitor.set_api_state(
                    ApiState.ERROR, "Connection to the node was lost"
                ),
            )
        await self.rpc_client.connect()
        self.query_service = RpcQueryService(self.rpc_client, self.codec)
        self.submitter = RpcTransactionSubmitter(self.rpc_client, self.signer)

    def _on_monitor_state_change(
        self, old: ReadinessStatus, new: ReadinessStatus
    ) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Periodic health checks run in the monitor thread.
            self.call_from_thread(self._handle_readiness, new)
        else:
            self._handle_readiness(new)

    def _handle_readiness(self, status: ReadinessStatus) -> None:
        self._update_connection_status_display(status)
        if self._core_mounted:
            if status.api_state is ApiState.ERROR:
                self.notify(status.error_message or "Node unreachable", severity="error")
            return

        if self._loading_screen is not None:
            self._loading_screen.update_status(status)

        if status.api_state is ApiState.ERROR:
            self.push_screen(ConnectionErrorScreen(status))
        elif status.is_ready:
            self.run_worker(self._mount_core(), group="core")

    def _update_connection_status_display(self, status: ReadinessStatus) -> None:
        status_widget = self.connection_status
        if status.api_state is ApiState.READY:
            status_widget.update(f"[green]● {self.ledger}[/green]")
        elif status.api_state is ApiState.ERROR:
            status_widget.update("[red]● Error[/red]")
        else:
            status_widget.update("[yellow]● Connecting...[/yellow]")

    def on_connection_error_screen_retry_requested(
        self, event: ConnectionErrorScreen.RetryRequested
    ) -> None:
        self.monitor.set_api_state(ApiState.CONNECTING)
        self.run_worker(self._bootstrap(), exclusive=True, group="bootstrap")

    async def _mount_core(self) -> None:
        if self._core_mounted:
            return
        self._core_mounted = True
        if self._loading_screen is not None:
            self.pop_screen()
            self._loading_screen = None

        chain = self.wallet_config.chain
        recipient = self.wallet_config.recipient
        submitter = cast(TransactionSubmitter, self.submitter)
        builder = TransactionRequestBuilder(pallet=chain.pallet, decimals=chain.decimals)

        self.projector = AccountStateProjector(
            recipient.address, chain.baseline, chain.decimals, chain.unit
        )
        self.sync = AccountStateSync(
            SubscriptionManager(cast(LedgerQueryService, self.query_service)),
            self.projector,
            on_error=self._on_subscription_error,
        )

        self.card_panel = DonationCardPanel(recipient, self.projector, id="donation-card")
        self.transfer_panel = TransferPanel(
            TransferForm(
                recipient,
                self.projector,
                submitter,
                builder,
                on_status=lambda status: self.transfer_panel.show_status(status),
            ),
            id="transfer-panel",
        )
        self.registration_panel = RegistrationPanel(
            RegistrationForm(
                self.projector,
                submitter,
                builder,
                on_status=lambda status: self.registration_panel.show_status(status),
            ),
            id="registration-panel",
        )

        options = [(f"{a.name} ({a.address[:8]}…)", a.address) for a in self.accounts]
        initial = self.accounts[0].address if self.accounts else None
        await self.core.mount(
            Horizontal(
                Label("Account ", classes="field-label"),
                Select(options, value=initial or Select.BLANK, id="account-select"),
                id="account-row",
            ),
            self.card_panel,
            self.registration_panel,
            self.transfer_panel,
        )

        self.projector.add_listener(lambda _projector: self._refresh_panels())
        await self.sync.start(initial)
        self._refresh_panels()

    def _refresh_panels(self) -> None:
        self.card_panel.refresh_card()
        self.registration_panel.refresh_form()
        self.transfer_panel.refresh_form()

    def _on_subscription_error(self, error: SubscriptionSetupError) -> None:
        self.notify(format_error_for_user(error), severity="warning")

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "account-select" or self.sync is None:
            return
        address = None if event.value is Select.BLANK else str(event.value)
        logger.info("Selected account %s", address)
        self.run_worker(self.sync.select_account(address), group="account")


def main(
    codec: StorageCodec | None = None,
    signer: ExtrinsicSigner | None = None,
    account_provider: AccountProvider | None = None,
):
    """Entry point for the application.

    The console script runs against the dry-run ledger. Embedders that ship
    SCALE codec and signing backends pass them here to talk to a node.
    """
    setup_logging(LoggingConfig.from_environment())
    app = RampWalletApp(codec=codec, signer=signer, account_provider=account_provider)
    app.run()


if __name__ == "__main__":
    main()
