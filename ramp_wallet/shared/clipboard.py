"""Copy recipient fields out of the terminal."""

from __future__ import annotations

import logging
from typing import Callable

import pyperclip

logger = logging.getLogger(__name__)

COPIED_VIA_SYSTEM = "system"
COPIED_VIA_TERMINAL = "terminal"


def copy_recipient_field(
    text: str, terminal_copy: Callable[[str], None] | None = None
) -> str | None:
    """Put a recipient address or IBAN on the clipboard.

    The system clipboard is tried first. Over SSH there usually is none, so
    ``terminal_copy`` (``App.copy_to_clipboard``, an OSC 52 request) is used
    as the fallback. Returns how the text was copied, or None.
    """
    if not text:
        return None

    try:
        pyperclip.copy(text)
        return COPIED_VIA_SYSTEM
    except pyperclip.PyperclipException as e:
        logger.debug("System clipboard unavailable: %s", e)

    if terminal_copy is None:
        return None
    terminal_copy(text)
    return COPIED_VIA_TERMINAL
