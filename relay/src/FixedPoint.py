"""Fixed-point normalization of decimal quotes.

Quotes arrive as decimal strings (e.g. "2412.53000000"). They are scaled by a
power of ten into an integer before being written on-chain:

    value = floor(Decimal(quote) * scale_factor)

The default scale factor of 10**10 leaves room to combine the value with an
18-decimal amount without losing the quote's own fractional digits. Parsing
uses decimal.Decimal so no binary floating point rounding is involved.

.. code-block:: python

    >>> normalize_quote("100.00000000")
    1000000000000
    >>> normalize_quote("0.123456789012", scale_factor=10**10)
    1234567890
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, Overflow, localcontext

VALUE_SCALE_FACTOR = 10**10

# Largest value a uint256 contract argument can hold.
MAX_UINT256 = 2**256 - 1

# Wide enough for any uint256 result.
_PRECISION = 100


class MalformedQuoteError(ValueError):
    """Raised when a quote string is not a usable decimal numeral."""

    pass


def normalize_quote(raw: str, scale_factor: int = VALUE_SCALE_FACTOR) -> int:
    """Convert a decimal quote string into a scaled integer.

    Digits beyond the scale factor are truncated toward zero.

    :param raw: Decimal numeral as returned by the data source.
    :param scale_factor: Positive integer multiplier (usually a power of ten).
    :returns: Scaled integer value, always in [1, MAX_UINT256].
    :raises MalformedQuoteError: If raw is not a finite positive decimal, or
        scales down to zero, or scales beyond MAX_UINT256.
    """
    if scale_factor <= 0:
        raise ValueError(f"scale_factor must be positive, got {scale_factor}")
    if not isinstance(raw, str):
        raise MalformedQuoteError(f"Quote must be a string, got {type(raw).__name__}")

    text = raw.strip()
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        ctx.rounding = ROUND_DOWN
        try:
            quote = Decimal(text)
        except InvalidOperation as e:
            raise MalformedQuoteError(f"Not a decimal numeral: {raw!r}") from e

        if not quote.is_finite():
            raise MalformedQuoteError(f"Quote is not finite: {raw!r}")
        if quote <= 0:
            raise MalformedQuoteError(f"Quote must be positive: {raw!r}")

        try:
            scaled = (quote * scale_factor).to_integral_value(rounding=ROUND_DOWN)
        except (Overflow, InvalidOperation) as e:
            raise MalformedQuoteError(f"Quote {raw!r} is out of range") from e

        if scaled > MAX_UINT256:
            raise MalformedQuoteError(f"Quote {raw!r} scales beyond uint256")
        value = int(scaled)

    # 0 is the "no data" sentinel on-chain
    if value == 0:
        raise MalformedQuoteError(f"Quote {raw!r} is below the scale resolution")
    return value
