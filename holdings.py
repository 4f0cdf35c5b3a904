"""
Holdings Input: validation of the BTC amount typed by the user.

The text field is edited freely (pending input); the chart only follows the
amount once "Generate chart" accepts it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from config import HoldingsConfig as Config


class HoldingsValidationError(ValueError):
    pass


class InvalidHoldingsInput(HoldingsValidationError):
    pass


class ExceedsMaxSupply(HoldingsValidationError):
    pass


class NonPositiveAmount(HoldingsValidationError):
    pass


class TooManyDecimals(HoldingsValidationError):
    pass


def format_amount(amount: Decimal) -> str:
    """Canonical text of an amount: no exponent, no trailing zeros."""
    return format(amount.normalize(), "f")


def _decimal_places(amount: Decimal) -> int:
    """Digits after the point, trailing zeros excluded (1.500000000 has 1)."""
    _, digits, exponent = amount.as_tuple()
    # no normalize(): it rounds to the context precision
    stripped = len(digits) - len(bytes(digits).rstrip(b"\x00"))
    return max(0, -(exponent + stripped))


def parse_holdings_amount(text: str) -> Decimal:
    """
    Parse and validate a holdings amount.

    Args:
        text (str): Raw field content, surrounding whitespace is ignored

    Returns:
        Decimal: 0 < amount <= 21,000,000 with at most 8 decimals

    Raises:
        InvalidHoldingsInput: not a number
        ExceedsMaxSupply: more than the 21M BTC that will ever exist
        NonPositiveAmount: zero or negative
        TooManyDecimals: finer than 1 satoshi
    """
    text = (text or "").strip()
    # Decimal() accepts digit separators, a number field should not
    if "_" in text:
        raise InvalidHoldingsInput(Config.MSG_INVALID)
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise InvalidHoldingsInput(Config.MSG_INVALID) from None

    if amount.is_nan():
        raise InvalidHoldingsInput(Config.MSG_INVALID)
    if amount > Config.MAX_SUPPLY:
        raise ExceedsMaxSupply(Config.MSG_MAX_SUPPLY)
    if amount <= 0:
        raise NonPositiveAmount(Config.MSG_NON_POSITIVE)

    if _decimal_places(amount) > Config.MAX_DECIMALS:
        raise TooManyDecimals(Config.MSG_DECIMALS)

    return amount


@dataclass(frozen=True)
class GenerateOutcome:
    accepted: bool
    amount: Decimal
    message: Optional[str] = None


class HoldingsForm:
    """Pending text + generated amount behind the holdings input field."""

    def __init__(self, amount: str = Config.DEFAULT_AMOUNT):
        self.default = Decimal(amount)
        self.amount = self.default
        self.pending_input = format_amount(self.amount)

    def edit(self, text: str) -> None:
        self.pending_input = text

    @property
    def can_generate(self) -> bool:
        return len(self.pending_input) > 0 and self.pending_input != format_amount(self.amount)

    def generate(self) -> GenerateOutcome:
        """
        Apply the pending input.

        Non-numeric input resets the field and the amount to the default.
        Any other rejection leaves both untouched so the user can fix it.
        """
        try:
            amount = parse_holdings_amount(self.pending_input)
        except InvalidHoldingsInput as e:
            self.amount = self.default
            self.pending_input = format_amount(self.default)
            return GenerateOutcome(False, self.amount, str(e))
        except HoldingsValidationError as e:
            return GenerateOutcome(False, self.amount, str(e))

        self.amount = amount
        return GenerateOutcome(True, amount)

    def submit(self, text: str) -> Optional[GenerateOutcome]:
        """Edit then generate, as pressing Enter or the button does; None when there is nothing to apply."""
        self.edit(text)
        if not self.can_generate:
            return None
        return self.generate()
