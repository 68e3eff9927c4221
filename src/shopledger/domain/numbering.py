from __future__ import annotations

DEFAULT_PREFIX = "INV"
DEFAULT_PADDING = 5


def format_invoice_number(prefix: str, sequence: int, padding: int | None = DEFAULT_PADDING) -> str:
    """INV + 7 + padding 5 -> 'INV-00007'. Sequences wider than the padding are not truncated."""
    width = DEFAULT_PADDING if padding is None else int(padding)
    return f"{prefix}-{int(sequence):0{width}d}"
