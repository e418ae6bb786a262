"""Text helpers for notifications and console output."""

from decimal import Decimal, ROUND_HALF_UP

# Characters Telegram MarkdownV2 requires to be escaped
MARKDOWN_SPECIAL_CHARS = "\\_*[]()~`><&#+-=|{}.!"


def escape_markdown(text: str) -> str:
    """Escape text for a Telegram MarkdownV2 message."""
    return "".join(f"\\{ch}" if ch in MARKDOWN_SPECIAL_CHARS else ch for ch in text)


def escape_markdown_url(url: str) -> str:
    """Escape the URL part of a MarkdownV2 inline link, only `\\` and `)` need it."""
    return url.replace("\\", "\\\\").replace(")", "\\)")


def pluralize(word: str, count: int) -> str:
    return word if count == 1 else f"{word}s"


def round_eth(value: float, max_decimals: int = 4) -> str:
    """Format an ETH amount with at most `max_decimals` digits, no trailing zeros."""
    quantum = Decimal(1).scaleb(-max_decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    text = f"{rounded:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


TIME_UNITS = [
    ("year", 31536000),
    ("month", 2592000),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
]


def relative_time(elapsed_seconds: float) -> str:
    """
    Human readable offset from now, "3 days ago" or "in 2 hours".

    Negative values are in the past.
    """
    unit, size = next(((u, s) for u, s in TIME_UNITS if abs(elapsed_seconds) > s), TIME_UNITS[-1])
    count = int(abs(elapsed_seconds) / size + 0.5)
    label = f"{count} {pluralize(unit, count)}"
    return f"{label} ago" if elapsed_seconds < 0 else f"in {label}"


def shorten_hash(value: str) -> str:
    if len(value) <= 10:
        return value
    return f"{value[:6]}...{value[-4:]}"


def compare_hashes(a: str, b: str) -> bool:
    """Case-insensitive comparison of addresses / hashes."""
    return a.lower() == b.lower()
