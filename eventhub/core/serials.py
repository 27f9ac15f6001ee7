"""Serial number normalisation for the hardware lending desk.

Serials arrive from label printers, spreadsheets and hand-typed forms, so the
same device shows up as ``ab-12 34``, ``AB 1234`` or ``AB-1234``. These helpers
give every variant one canonical spelling before it is stored or compared.
"""

from __future__ import annotations

import re

__all__ = ["normalize_serial", "serial_aliases"]


_WHITESPACE_RE = re.compile(r"\s+")
_SEPARATOR_RE = re.compile(r"[\s\-_./]")


def _strip_and_collapse(value: str) -> str:
    """Trim surrounding whitespace and squash repeated spaces into one."""

    return _WHITESPACE_RE.sub(" ", value.strip())


def normalize_serial(raw: str | None) -> str | None:
    """Return the canonical representation for a serial number.

    * Trims outer whitespace and collapses repeated internal whitespace.
    * Upper-cases letters so ``sn-01`` and ``SN-01`` are the same device.
    * Returns ``None`` for blank values.
    """

    if raw is None:
        return None
    cleaned = _strip_and_collapse(raw)
    if not cleaned:
        return None
    return cleaned.upper()


def serial_aliases(raw: str | None) -> list[str]:
    """Return serial variants that should be considered the same device."""

    canonical = normalize_serial(raw)
    if canonical is None:
        return []

    aliases: list[str] = []
    seen: set[str] = set()

    def add(candidate: str | None) -> None:
        if not candidate or candidate in seen:
            return
        seen.add(candidate)
        aliases.append(candidate)

    add(canonical)
    # Separators are decoration on most labels.
    add(_SEPARATOR_RE.sub("", canonical))
    return aliases
