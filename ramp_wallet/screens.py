"""Application-level screens for Ramp Wallet."""

from typing import cast

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Label, Static

from ramp_wallet.shared.connection_state import ReadinessStatus, get_readiness_message
from ramp_wallet.shared.logging import get_logger

logger = get_logger(__name__)


class BaseModalScreen(ModalScreen):
    """Base modal screen with common key bindings."""

    BINDINGS = [
        ("escape", "app.pop_screen", "Close"),
        ("tab", "focus_next", "Next"),
        ("shift+tab", "focus_previous", "Previous"),
    ]


class LoadingScreen(Screen):
    """Shown until the ledger API and the keyring are both ready."""

    BINDINGS = [("q", "app.quit", "Quit")]

    def __init__(self, status: ReadinessStatus | None = None):
        super().__init__()
        self._status = status or ReadinessStatus()
        self._loading_step = 0
        self._loading_timer = None

    def compose(self) -> ComposeResult:
        title, message = get_readiness_message(self._status)
        with Vertical(id="loading-container"):
            yield Label(title, id="loading-title")
            yield Static(f"[yellow]{message}[/yellow]", id="loading-message")

    def on_mount(self) -> None:
        frames = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

        def tick() -> None:
            self._loading_step = (self._loading_step + 1) % len(frames)
            _, message = get_readiness_message(self._status)
            message_widget = cast(Static, self.query_one("#loading-message"))
            message_widget.update(f"[yellow]{frames[self._loading_step]} {message}[/yellow]")

        self._loading_timer = self.set_interval(0.1, tick)

    def on_unmount(self) -> None:
        if self._loading_timer:
            self._loading_timer.stop()
            self._loading_timer = None

    def update_status(self, status: ReadinessStatus) -> None:
        self._status = status
        if not self.is_mounted:
            # compose() renders the latest status once mounted.
            return
        title, _ = get_readiness_message(status)
        cast(Label, self.query_one("#loading-title")).update(title)


class ConnectionErrorScreen(BaseModalScreen):
    """Shown when the ledger API reports an error before the core is mounted."""

    class RetryRequested(Message):
        pass

    def __init__(self, status: ReadinessStatus):
        super().__init__()
        self.status = status

    def compose(self) -> ComposeResult:
        title, message = get_readiness_message(self.status)
        with Vertical(id="connection-error-container"):
            yield Label(f"[red]{title}[/red]", id="connection-error-title")
            yield Static(message, id="connection-error-message")
            yield Horizontal(
                Button("Retry", id="retry-button", variant="primary"),
                Button("Quit", id="quit-button"),
            )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "retry-button":
            logger.info("User requested reconnect")
            self.app.pop_screen()
            self.app.post_message(self.RetryRequested())
        elif event.button.id == "quit-button":
            self.app.exit()
