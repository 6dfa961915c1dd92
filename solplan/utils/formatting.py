"""Helpers for rendering plan text."""

from __future__ import annotations

from typing import Optional, Union

Number = Union[int, float]


def format_amount(value: Number) -> str:
    """Render an amount without a trailing ``.0`` for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def shorten_address(address: str, keep: int = 8) -> str:
    """First ``keep`` characters of ``address`` followed by an ellipsis."""
    return f"{address[:keep]}..."


def capitalize(text: Optional[str]) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:]


__all__ = ["capitalize", "format_amount", "shorten_address"]
