"""
City name normalization shared by user profiles and worker search.
"""

from typing import Optional


def normalize_city_name(city: Optional[str]) -> Optional[str]:
    """
    Canonical city normalization.

    - Trims whitespace and collapses inner runs of spaces
    - Lowercases so "New Delhi" and "new delhi" match
    - Returns None for empty or placeholder values

    Both the worker profile mirror and the search filter go through this
    function, so the equality filter in worker search matches.
    """
    if not city or not isinstance(city, str):
        return None

    normalized = " ".join(city.split()).lower()
    if normalized in {"", "unknown", "india"}:
        return None
    return normalized
