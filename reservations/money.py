"""
Money value type.

Amounts are Decimals quantized to the currency's minor unit with
ROUND_HALF_UP, the same rounding the pricing calculations use everywhere.
Mixing currencies raises InvalidCurrencyOperation.
"""

from decimal import Decimal, ROUND_HALF_UP

from .conf import get_setting
from .exceptions import InvalidCurrencyOperation

CENTS = Decimal('0.01')


def quantize(amount):
    """Round a Decimal to the minor unit (cents), half-up."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


class Money:
    """
    An amount in a single currency.

    Example:
        Money('25.00') * 3            -> Money('75.00', 'USD')
        Money('10.00') + Money('2.5') -> Money('12.50', 'USD')
    """
    __slots__ = ('amount', 'currency')

    def __init__(self, amount, currency=None):
        if isinstance(amount, float):
            raise InvalidCurrencyOperation("Money amounts must not be floats")
        self.amount = quantize(amount)
        self.currency = (currency or get_setting('CURRENCY')).upper()

    @classmethod
    def zero(cls, currency=None):
        return cls(Decimal('0.00'), currency)

    def _check(self, other):
        if not isinstance(other, Money):
            raise InvalidCurrencyOperation(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise InvalidCurrencyOperation(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    def __add__(self, other):
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other):
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor):
        if isinstance(factor, (Money, float)):
            raise InvalidCurrencyOperation(f"Cannot multiply Money by {type(factor).__name__}")
        return Money(self.amount * Decimal(factor), self.currency)

    __rmul__ = __mul__

    def percentage(self, percent):
        """Return percent% of this amount, rounded half-up to cents."""
        if isinstance(percent, float):
            raise InvalidCurrencyOperation("Percentages must not be floats")
        return Money(self.amount * Decimal(percent) / Decimal('100'), self.currency)

    def __eq__(self, other):
        if not isinstance(other, Money):
            return NotImplemented
        self._check(other)
        return self.amount == other.amount

    def __lt__(self, other):
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other):
        self._check(other)
        return self.amount <= other.amount

    def __gt__(self, other):
        self._check(other)
        return self.amount > other.amount

    def __ge__(self, other):
        self._check(other)
        return self.amount >= other.amount

    def __hash__(self):
        return hash((self.amount, self.currency))

    def __bool__(self):
        return self.amount != 0

    def is_zero(self):
        return self.amount == 0

    def __repr__(self):
        return f"Money('{self.amount}', '{self.currency}')"

    def __str__(self):
        return f"{self.amount} {self.currency}"

    def as_dict(self):
        return {'amount': str(self.amount), 'currency': self.currency}
