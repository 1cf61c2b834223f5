"""Display formatting helpers."""

_UNITS = ("KB", "MB", "GB", "TB")


def human_readable_size(num_bytes: int) -> str:
    """Format a byte count with decimal units, e.g. "12.5 MB".

    Args:
        num_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if num_bytes < 1000:
        return "1 byte" if num_bytes == 1 else f"{num_bytes} bytes"

    size = num_bytes / 1000
    unit = 0
    # Advance on the rounded value so 999,999 bytes reads "1.0 MB", not "1000 KB"
    while unit < len(_UNITS) - 1 and round(size, 0 if unit == 0 else 1) >= 1000:
        size /= 1000
        unit += 1

    if unit == 0:
        return f"{size:.0f} KB"
    return f"{size:.1f} {_UNITS[unit]}"
