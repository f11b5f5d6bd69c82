"""Fiat ramps feature: IBAN registration and donation totals."""

from ramp_wallet.features.ramps.service import (
    DonationCard,
    RegistrationForm,
    build_donation_card,
)

__all__ = ["DonationCard", "RegistrationForm", "build_donation_card"]
