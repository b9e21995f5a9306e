"""Integer arithmetic utilities for BRL amounts.

All prices and totals use int (centavos). No float, no Decimal, except at
the payment gateway boundary where the wire format wants reais.
"""


def cents_to_display(cents: int) -> str:
    """Convert cents to BRL display string: 120000 -> 'R$ 1.200,00', -950 -> '-R$ 9,50'."""
    sign = "-" if cents < 0 else ""
    abs_cents = abs(cents)
    reais = f"{abs_cents // 100:,}".replace(",", ".")
    return f"{sign}R$ {reais},{abs_cents % 100:02d}"


def cents_to_reais(cents: int) -> float:
    """Gateway wire format: 65000 -> 650.0."""
    return round(cents / 100, 2)


def calculate_split(total_cents: int, rate_bps: int) -> int:
    """Revenue split in cents, rounded half-up.

    split = round(total_cents * rate_bps / 10000)
    """
    if total_cents <= 0 or rate_bps <= 0:
        return 0
    return (total_cents * rate_bps + 5000) // 10000
