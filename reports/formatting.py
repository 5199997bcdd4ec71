from decimal import ROUND_HALF_UP, Decimal, localcontext


def format_amount(raw: int | str, decimals: int = 18) -> str:
    """Exact token amount from base units, trailing zeros trimmed."""
    amount = int(raw)
    sign = "-" if amount < 0 else ""
    whole, rem = divmod(abs(amount), 10**decimals)
    if rem == 0:
        return f"{sign}{whole}"
    frac = str(rem).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac}"


def format_usd(raw: int | str, price: str | Decimal, decimals: int = 18) -> str:
    with localcontext() as ctx:
        ctx.prec = 120
        value = Decimal(int(raw)) / (Decimal(10) ** decimals) * Decimal(str(price))
        value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,}"


def percentage(part: int, whole: int) -> float:
    # display only
    if whole == 0:
        return 0.0
    return float(Decimal(part) * 100 / Decimal(whole))
