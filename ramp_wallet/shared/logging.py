"""Logging setup for Ramp Wallet.

Everything the wallet logs goes through ``get_logger`` so that secret URIs,
seeds and mnemonics never reach the log file, whatever module emitted them.
Failures shown to the user are translated with ``format_error_for_user``,
which knows the common node, signer and ``fiatRamps`` pallet errors.

Environment variables:

- ``RAMP_WALLET_LOG_LEVEL``: DEBUG, INFO, WARNING, ERROR or CRITICAL
- ``RAMP_WALLET_LOG_STDOUT``: also log to stdout when truthy
- ``RAMP_WALLET_LOG_FORMAT``: ``human`` (default) or ``json``
- ``RAMP_WALLET_DIR``: directory holding ``ramp-wallet.log``
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

TRUTHY = ("1", "true", "yes")
DEFAULT_WALLET_DIR = Path.home() / ".ramp-wallet"


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def numeric(self) -> int:
        return logging.getLevelName(self.value)


@dataclass
class LoggingConfig:
    log_level: LogLevel = LogLevel.INFO
    log_to_file: bool = True
    log_to_stdout: bool = False
    log_format: str = "human"
    log_dir: Path | None = None
    log_filename: str = "ramp-wallet.log"
    sanitize_sensitive: bool = True
    include_context: bool = True

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        level_name = os.getenv("RAMP_WALLET_LOG_LEVEL", "INFO").upper()
        log_level = (
            LogLevel(level_name)
            if level_name in LogLevel.__members__
            else LogLevel.INFO
        )
        wallet_dir = os.getenv("RAMP_WALLET_DIR")
        return cls(
            log_level=log_level,
            log_to_stdout=os.getenv("RAMP_WALLET_LOG_STDOUT", "").lower() in TRUTHY,
            log_format=os.getenv("RAMP_WALLET_LOG_FORMAT", "human").lower(),
            log_dir=Path(wallet_dir) if wallet_dir else None,
        )

    @property
    def log_path(self) -> Path:
        return (self.log_dir or DEFAULT_WALLET_DIR) / self.log_filename


# Secret-bearing keys in structured context; the value is dropped entirely.
SECRET_KEYS = ("seed", "mnemonic", "password", "secret", "suri")

_SECRET_ASSIGNMENT = r"['\"]?\s*[:=]\s*['\"]?"
REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(
            rf"((?:secret[_-]?seed|seed){_SECRET_ASSIGNMENT})0x[A-Fa-f0-9]{{64}}",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            rf"((?:mnemonic|secret[_-]?phrase){_SECRET_ASSIGNMENT})[a-z]+(?:\s+[a-z]+){{11,23}}",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(rf"((?:password|suri){_SECRET_ASSIGNMENT})[^\s'\"]+", re.IGNORECASE),
        r"\1[REDACTED]",
    ),
    # Bare 32-byte hex outside an assignment is treated as key material.
    (re.compile(r"\b0x[A-Fa-f0-9]{64}\b"), "[KEY_REDACTED]"),
]

# SS58 account ids on a generic Substrate network start with "5".
SS58_ADDRESS = re.compile(r"\b5[1-9A-HJ-NP-Za-km-z]{46,47}\b")
IBAN = re.compile(r"\b[A-Z]{2}\d{2}[A-Z0-9]{12,30}\b")


def mask_iban(iban: str) -> str:
    """Keep the country/check prefix and the last four characters."""
    compact = iban.replace(" ", "")
    if len(compact) <= 8:
        return compact
    return compact[:4] + "*" * (len(compact) - 8) + compact[-4:]


def sanitize_message(
    message: str, preserve_addresses: bool = True, preserve_ibans: bool = True
) -> str:
    if not message:
        return message

    for pattern, replacement in REDACTIONS:
        message = pattern.sub(replacement, message)
    if not preserve_addresses:
        message = SS58_ADDRESS.sub("[ADDRESS_REDACTED]", message)
    if not preserve_ibans:
        message = IBAN.sub(lambda match: mask_iban(match.group(0)), message)
    return message


def _sanitize_value(value: Any, preserve_addresses: bool) -> Any:
    if isinstance(value, str):
        return sanitize_message(value, preserve_addresses)
    if isinstance(value, dict):
        return sanitize_dict(value, preserve_addresses)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item, preserve_addresses) for item in value]
    return value


def sanitize_dict(
    data: dict[str, Any], preserve_addresses: bool = True
) -> dict[str, Any]:
    return {
        key: "[REDACTED]"
        if any(secret in key.lower() for secret in SECRET_KEYS)
        else _sanitize_value(value, preserve_addresses)
        for key, value in data.items()
    }


@dataclass(frozen=True)
class ErrorMapping:
    pattern: re.Pattern[str]
    user_message: str
    suggest_action: str | None = None

    @classmethod
    def of(
        cls, pattern: str, user_message: str, suggest_action: str | None = None
    ) -> "ErrorMapping":
        return cls(re.compile(pattern, re.IGNORECASE), user_message, suggest_action)


# First match wins, so pallet errors come before the generic ones.
ERROR_MAPPINGS: list[ErrorMapping] = [
    ErrorMapping.of(
        r"accountalreadyexists",
        "This account already has an IBAN registered.",
        "Select another account to register a new IBAN.",
    ),
    ErrorMapping.of(
        r"ibannotmapped",
        "No ledger account is registered for that IBAN.",
        "Check the IBAN or send to an address instead.",
    ),
    ErrorMapping.of(
        r"timeout|timed out",
        "Connection timed out. The node may be slow or unavailable.",
        "Try again later or check your network connection.",
    ),
    ErrorMapping.of(
        r"connection refused|cannot connect|connection error|websocket.*closed",
        "Unable to connect to the ledger node.",
        "Check the node URL and your internet connection.",
    ),
    ErrorMapping.of(
        r"inability to pay some fees|insufficient.*balance|balancetoolow",
        "Insufficient balance for this transaction.",
        "Top up the account or transfer a smaller amount.",
    ),
    ErrorMapping.of(
        r"rejected by user|cancell?ed",
        "The transaction was rejected in the signer.",
        "Approve the request in your signer to continue.",
    ),
    ErrorMapping.of(
        r"bad ?signature|invalid.*signature",
        "Transaction signature verification failed.",
        "Re-select the account and sign again.",
    ),
    ErrorMapping.of(
        r"priority is too low|already imported|\bstale\b",
        "A transaction with the same nonce is already pending.",
        "Wait for the pending transaction to finish and retry.",
    ),
    ErrorMapping.of(
        r"dropped|usurped|invalid transaction",
        "The node did not include the transaction.",
        "Submit it again once the node is synced.",
    ),
    ErrorMapping.of(
        r"amount",
        "The amount entered is not valid.",
        "Enter a whole, non-negative number of units.",
    ),
    ErrorMapping.of(
        r"invalid.*address|address.*invalid",
        "The address provided is not valid.",
        "Please check the destination address.",
    ),
    ErrorMapping.of(
        r"rate limit|too many requests|\b429\b",
        "Too many requests. Please slow down.",
        "Wait a moment and try again.",
    ),
    ErrorMapping.of(
        r"method not found|unknown storage|unsupported query",
        "The connected node does not support this operation.",
        "Connect to a node running the fiat ramps runtime.",
    ),
]


def get_user_friendly_error(error: Exception | str) -> tuple[str, str | None]:
    text = str(error)
    for mapping in ERROR_MAPPINGS:
        if mapping.pattern.search(text):
            return mapping.user_message, mapping.suggest_action
    return "An unexpected error occurred.", None


def format_error_for_user(error: Exception | str) -> str:
    user_message, suggestion = get_user_friendly_error(error)
    return f"{user_message} {suggestion}" if suggestion else user_message


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, context fields under ``"context"``."""

    def __init__(
        self,
        sanitize: bool = True,
        include_context: bool = True,
        preserve_addresses: bool = True,
    ):
        super().__init__()
        self.sanitize = sanitize
        self.include_context = include_context
        self.preserve_addresses = preserve_addresses

    def _clean(self, text: str) -> str:
        return sanitize_message(text, self.preserve_addresses) if self.sanitize else text

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._clean(record.getMessage()),
        }
        if self.include_context:
            payload.update(
                module=record.module, function=record.funcName, line=record.lineno
            )

        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            payload["context"] = (
                sanitize_dict(context, self.preserve_addresses)
                if self.sanitize
                else context
            )
        if record.exc_info:
            payload["exception"] = self._clean(self.formatException(record.exc_info))

        try:
            return json.dumps(payload)
        except (TypeError, ValueError):
            return " - ".join(
                str(payload[field]) for field in ("timestamp", "logger", "level", "message")
            )


class HumanReadableFormatter(logging.Formatter):
    def __init__(self, sanitize: bool = True, preserve_addresses: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.sanitize = sanitize
        self.preserve_addresses = preserve_addresses

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self.sanitize:
            return text
        return sanitize_message(text, self.preserve_addresses)


class ContextAdapter(logging.LoggerAdapter):
    """Attaches a ``context`` dict (account, key, tx hash...) to each record."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        super().__init__(logger, context or {})

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        if self.extra:
            extra["context"] = {**self.extra, **extra.get("context", {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextAdapter":
        return ContextAdapter(self.logger, {**self.extra, **context})


def get_logger(name: str, context: dict[str, Any] | None = None) -> ContextAdapter:
    return ContextAdapter(logging.getLogger(name), context)


def log_with_context(
    logger: logging.Logger | ContextAdapter,
    level: int,
    message: str,
    **context: Any,
) -> None:
    if isinstance(logger, ContextAdapter):
        logger.with_context(**context).log(level, message)
    else:
        logger.log(level, message, extra={"context": context})


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.log_format == "json":
        return StructuredFormatter(
            sanitize=config.sanitize_sensitive, include_context=config.include_context
        )
    return HumanReadableFormatter(sanitize=config.sanitize_sensitive)


def _build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.log_to_file:
        log_path = config.log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))
    if config.log_to_stdout:
        # The Textual UI owns the terminal, so stdout is for headless runs.
        handlers.append(logging.StreamHandler(sys.stdout))
    for handler in handlers:
        handler.setFormatter(_build_formatter(config))
    return handlers


_logging_initialized = False


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the root logger once per process."""
    global _logging_initialized

    if _logging_initialized:
        return
    config = config or LoggingConfig.from_environment()

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level.numeric)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in _build_handlers(config):
        root_logger.addHandler(handler)

    _logging_initialized = True


__all__ = [
    "LogLevel",
    "LoggingConfig",
    "ContextAdapter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "mask_iban",
    "sanitize_message",
    "sanitize_dict",
    "get_user_friendly_error",
    "format_error_for_user",
    "setup_logging",
    "get_logger",
    "log_with_context",
]
