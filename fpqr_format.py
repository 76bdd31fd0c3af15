"""
FPQR display helpers: hex dumps and human-readable setting labels.
"""

from typing import Iterable, Optional


def bytes_to_hex(buffer) -> str:
    """'0A FF 10 ...' for every byte of the buffer."""
    return ' '.join(f"{b & 0xFF:02X}" for b in buffer)


def hex_at_indexes(buffer, indexes: Iterable[int]) -> str:
    """Hex of the bytes at ``indexes``; '??' where the buffer is too short."""
    return ' '.join(
        f"{buffer[i] & 0xFF:02X}" if 0 <= i < len(buffer) else '??'
        for i in indexes
    )


def format_seconds(value) -> str:
    """
    Exposure time in seconds as the camera shows it: '2s', '0.6s', '1/125s'.

    Non-numeric values (already a label) are returned as text.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    if value >= 0.3:
        if abs(value - 2 / 3) < 0.01:
            return '0.6s'
        if abs(value - 1 / 3) < 0.01:
            return '0.3s'
        if float(value).is_integer():
            return f"{int(value)}s"
        return f"{float(f'{value:.1f}'):g}s"
    return f"1/{round(1 / value)}s"


def format_interval_duration(value: Optional[int]) -> str:
    if value is None:
        return 'N/A'
    minutes, seconds = divmod(int(value), 60)
    return f"{minutes}min {seconds}s"


def _format_shift(value: Optional[int], negative: str, positive: str) -> str:
    if not value:
        return f"{negative}-{positive}"
    if value > 0:
        return f"{positive}{value}"
    return f"{negative}{-value}"


def format_wb_shift_ba(value: Optional[int]) -> str:
    """Blue/amber shift: 'A3', 'B2' or 'B-A' when neutral."""
    return _format_shift(value, 'B', 'A')


def format_wb_shift_mg(value: Optional[int]) -> str:
    """Magenta/green shift: 'G3', 'M2' or 'M-G' when neutral."""
    return _format_shift(value, 'M', 'G')
