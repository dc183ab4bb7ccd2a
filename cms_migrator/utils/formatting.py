"""
Human-readable sizes, durations and labels for the run summary and status tables.
"""

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(bytes_size: float) -> str:
    """'0 B', '512.0 B', '145.3 MB' and so on, in powers of 1024."""
    if bytes_size <= 0:
        return "0 B"
    size = float(bytes_size)
    for unit in _SIZE_UNITS[:-1]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {_SIZE_UNITS[-1]}"


def format_duration(seconds: float) -> str:
    """Renders elapsed time as '1h 2m 3s', leaving out zero parts ('45s', '2m')."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    parts = [f"{value}{unit}" for value, unit in ((hours, "h"), (minutes, "m"), (secs, "s")) if value]
    return " ".join(parts) or "0s"


def truncate(text: str | None, width: int = 60) -> str:
    """Shortens a label for table output, marking the cut with an ellipsis."""
    if not text:
        return ""
    return text if len(text) <= width else text[: width - 1] + "…"
