"""
Money formatting helpers shared by messages, warnings and the UI.
"""


def format_vnd(amount: float) -> str:
    """Format a VND amount compactly, e.g. 35,000,000 -> '35M'."""
    sign = '-' if amount < 0 else ''
    amount = abs(amount)
    if amount >= 1_000_000_000:
        return f"{sign}{amount / 1_000_000_000:,.1f}B".replace('.0B', 'B')
    if amount >= 1_000_000:
        return f"{sign}{amount / 1_000_000:,.1f}M".replace('.0M', 'M')
    if amount >= 1_000:
        return f"{sign}{amount / 1_000:,.0f}K"
    return f"{sign}{amount:,.0f}"


def format_vnd_full(amount: float) -> str:
    """Format a VND amount with thousands separators, e.g. '35,000,000 VND'."""
    return f"{amount:,.0f} VND"
