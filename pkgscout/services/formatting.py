from __future__ import annotations

_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(value: int) -> str:
    size = float(value)
    for unit in _UNITS:
        if abs(size) < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{value} B"


def format_ms(value: float | None) -> str:
    return "-" if value is None else f"{value:.2f} ms"
