"""Human-readable sizes for log lines and API payloads."""

_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    """Format a byte count with base-1024 units, e.g. ``1.95 KB``.

    Two decimals at most, trailing zeros dropped. Sizes beyond the GB range
    stay in GB.
    """
    if size <= 0:
        return "0 B"
    exponent = 0
    while exponent < len(_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = f"{size / 1024**exponent:.2f}".rstrip("0").rstrip(".")
    return f"{value} {_UNITS[exponent]}"
