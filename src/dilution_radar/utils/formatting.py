"""Human-readable number formatting for reasons and post text."""


def format_currency(value: float | None) -> str:
    """$1.2B / $3.4M / $5.6K / $7, or N/A."""
    if value is None:
        return "N/A"
    abs_value = abs(value)
    if abs_value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.1f}B"
    if abs_value >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    if abs_value >= 1_000:
        return f"${value / 1_000:.1f}K"
    return f"${value:.0f}"


def format_pct(value: float | None) -> str:
    """Signed percentage with one decimal, or N/A."""
    if value is None:
        return "N/A"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.1f}%"


def format_months(months: float | None) -> str:
    if months is None:
        return "N/A"
    if months >= 24:
        return "24+ months"
    if months < 1:
        return "<1 month"
    return f"{months:.1f} months"


def format_ratio(value: float | None, ndigits: int = 1) -> str | None:
    """Fixed-point string for JSON metrics, None when missing."""
    if value is None:
        return None
    return f"{value:.{ndigits}f}"
