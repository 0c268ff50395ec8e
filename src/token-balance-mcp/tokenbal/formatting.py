def format_units(amount: int, decimals: int) -> str:
    """Render a smallest-unit integer as a fixed-point string, trimming trailing zeros."""
    if amount < 0:
        raise ValueError("amount must be unsigned.")
    if decimals <= 0:
        return str(amount)

    base = 10**decimals
    whole, frac = divmod(amount, base)
    trimmed = str(frac).rjust(decimals, "0").rstrip("0")
    if not trimmed:
        return str(whole)
    return f"{whole}.{trimmed}"
