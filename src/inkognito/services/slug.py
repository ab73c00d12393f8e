"""URL slugs for confession titles."""

from __future__ import annotations

import re
import unicodedata

MAX_SLUG_LENGTH = 80
FALLBACK_SLUG = "confession"

# Streamlined System (official Bulgarian transliteration).
_BG_TO_LATIN = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ж": "zh",
    "з": "z", "и": "i", "й": "y", "к": "k", "л": "l", "м": "m", "н": "n",
    "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u", "ф": "f",
    "х": "h", "ц": "ts", "ч": "ch", "ш": "sh", "щ": "sht", "ъ": "a", "ь": "y",
    "ю": "yu", "я": "ya",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Return a URL-safe slug for `title`.

    Cyrillic is transliterated, other accents are stripped, and runs of
    anything that is not a lowercase ASCII letter or digit collapse to `-`.
    """
    transliterated = "".join(_BG_TO_LATIN.get(char, char) for char in title.lower())
    ascii_only = (
        unicodedata.normalize("NFKD", transliterated)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    slug = _NON_ALNUM.sub("-", ascii_only).strip("-")
    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug or FALLBACK_SLUG
