from decimal import Decimal, ROUND_HALF_UP

def money(x) -> float:
    # use string to avoid float binary artifacts
    return float(Decimal(str(x or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

def qty(x) -> float:
    return float(Decimal(str(x or 0)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP))
