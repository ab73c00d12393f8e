# tests/test_slug.py
from inkognito.services.slug import FALLBACK_SLUG, MAX_SLUG_LENGTH, slugify


def test_bulgarian_titles_are_transliterated() -> None:
    assert slugify("Щастие и тъга") == "shtastie-i-taga"
    assert slugify("Юлия, Жоро и Цвети") == "yuliya-zhoro-i-tsveti"


def test_latin_accents_and_punctuation_collapse() -> None:
    assert slugify("  Crème brûlée!!  Again? ") == "creme-brulee-again"


def test_empty_result_falls_back() -> None:
    assert slugify("!!!") == FALLBACK_SLUG
    assert slugify("") == FALLBACK_SLUG


def test_long_titles_are_truncated_without_trailing_dash() -> None:
    slug = slugify("дума " * 40)

    assert len(slug) <= MAX_SLUG_LENGTH
    assert not slug.endswith("-")
