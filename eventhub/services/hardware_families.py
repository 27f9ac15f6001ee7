"""Group the lending-desk catalog into product families.

"Raspberry Pi 4" and "Raspberry Pi Zero" share the two-word prefix
"Raspberry Pi", so both are listed under that family with subtitles "4" and
"Zero". Names whose prefix is unique fall back to their first word.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Sequence

_WS = re.compile(r"\s+")


@dataclass
class FamilyItem:
    full_name: str
    name: str
    subtitle: str
    description: str
    is_unavailable: bool
    image: str | None


@dataclass
class HardwareFamily:
    family_id: str
    title: str
    items: list[FamilyItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def slugify(title: str) -> str:
    return _WS.sub("-", title.lower())


def _tokens(name: str | None) -> list[str]:
    return [t for t in _WS.split(name or "") if t]


def _covers(title: str, normalized: str) -> bool:
    return normalized == title or normalized.startswith(title + " ")


def _reduce(candidates: Iterable[str], blockers: Iterable[str] = ()) -> list[str]:
    """Drop every candidate that extends another candidate or blocker."""

    pool = list(dict.fromkeys(candidates))
    others = set(pool) | set(blockers)
    return [p for p in pool if not any(q != p and p.startswith(q + " ") for q in others)]


def find_family_titles(names: Sequence[str | None]) -> list[str]:
    """Multi-word prefixes shared by at least two catalog names.

    Two- and three-word prefixes are counted. The result is prefix-minimal: a
    three-word prefix is dropped when its two-word stem also qualifies.
    """

    counts: Counter[str] = Counter()
    for name in names:
        words = _tokens(name)
        if len(words) >= 3:
            counts[" ".join(words[:3])] += 1
        if len(words) >= 2:
            counts[" ".join(words[:2])] += 1
    return _reduce(prefix for prefix, count in counts.items() if count >= 2)


def _match(normalized: str, titles: Sequence[str]) -> str | None:
    best: str | None = None
    for title in titles:
        if _covers(title, normalized) and (best is None or len(title) > len(best)):
            best = title
    return best


def _fallback_title(normalized: str) -> str:
    return normalized.split(" ", 1)[0] if normalized else ""


def _resolve_titles(normalized_names: Sequence[str], candidates: list[str]) -> list[str]:
    # Single-word fallback titles count toward minimality too, so a candidate
    # like "Arduino Uno" gives way when a bare "Arduino" is in the catalog.
    titles = candidates
    while True:
        fallbacks = {_fallback_title(n) for n in normalized_names if _match(n, titles) is None}
        reduced = _reduce(titles, fallbacks)
        if reduced == titles:
            return titles
        titles = reduced


def group_by_family(items: Iterable[Any]) -> list[HardwareFamily]:
    """Bucket hardware items by family, preserving catalog order.

    ``items`` may be ORM rows or any objects exposing ``name``,
    ``description``, ``holder_id`` and ``image_urls``.
    """

    items = list(items)
    normalized = [" ".join(_tokens(getattr(item, "name", None))) for item in items]
    titles = _resolve_titles(normalized, find_family_titles(normalized))

    families: dict[str, HardwareFamily] = {}
    for item, norm in zip(items, normalized):
        title = _match(norm, titles)
        if title is None:
            title = _fallback_title(norm)
        subtitle = norm[len(title):].strip()

        family = families.get(title)
        if family is None:
            family = families[title] = HardwareFamily(family_id=slugify(title), title=title)

        image_urls = getattr(item, "image_urls", None) or []
        family.items.append(
            FamilyItem(
                full_name=getattr(item, "name", None) or "",
                name=subtitle or title,
                subtitle=subtitle,
                description=getattr(item, "description", None) or "",
                is_unavailable=getattr(item, "holder_id", None) is not None,
                image=image_urls[0] if image_urls else None,
            )
        )
    return list(families.values())


__all__ = ["FamilyItem", "HardwareFamily", "find_family_titles", "group_by_family", "slugify"]
