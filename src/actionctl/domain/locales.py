"""Locale-dominant response shaping.

Provider payloads often carry *locale bundles*: dicts whose every key is a
locale code (``{"en": "Hello", "it": "Ciao"}``). Sending every translation
back to an agent inflates the response, so the resolver picks the locale
that carries the most non-empty values across the whole tree and collapses
every bundle to that locale's value.

INVARIANT: The input is never mutated.
INVARIANT: Idempotent — the output contains no locale bundles.
"""

from __future__ import annotations

import re
from typing import Any

# Two-letter language code, optionally followed by a 2-3 letter region in
# either case: "en", "en-US", "pt-br".
LOCALE_PATTERN = re.compile(r"^[a-z]{2}(?:-[a-zA-Z]{2,3})?$")


def is_locale_key(key: object) -> bool:
    """True if *key* looks like a locale code."""
    return isinstance(key, str) and LOCALE_PATTERN.match(key) is not None


def is_locale_bundle(node: object) -> bool:
    """True for a non-empty dict whose keys are all locale codes."""
    return isinstance(node, dict) and len(node) > 0 and all(is_locale_key(k) for k in node)


def is_deeply_empty(value: object) -> bool:
    """Whether *value* carries no content at any depth.

    ``None``, blank strings, and lists/dicts made only of empty values are
    empty. Numbers and booleans never are.

    Examples:
        >>> is_deeply_empty({"a": ["", None, {}]})
        True
        >>> is_deeply_empty([0])
        False
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return all(is_deeply_empty(item) for item in value)
    if isinstance(value, dict):
        return all(is_deeply_empty(item) for item in value.values())
    return False


def count_locales(tree: Any) -> dict[str, int]:
    """Count, per locale, the bundle entries holding a non-empty value.

    Nested bundles inside a bundle entry are counted as well. The returned
    dict is ordered by first encounter during a depth-first walk, which is
    the tie-break order for :func:`dominant_locale`.
    """
    counts: dict[str, int] = {}
    _collect(tree, counts)
    return counts


def _collect(node: Any, counts: dict[str, int]) -> None:
    if isinstance(node, (list, tuple)):
        for child in node:
            _collect(child, counts)
    elif isinstance(node, dict):
        if is_locale_bundle(node):
            for locale, value in node.items():
                counts.setdefault(locale, 0)
                if not is_deeply_empty(value):
                    counts[locale] += 1
                _collect(value, counts)
        else:
            for value in node.values():
                _collect(value, counts)


def dominant_locale(tree: Any) -> str | None:
    """Return the most populated locale, or None when *tree* has no bundles.

    Ties go to the locale encountered first, not the alphabetically first.
    """
    chosen: str | None = None
    best = -1
    for locale, count in count_locales(tree).items():
        if count > best:
            best = count
            chosen = locale
    return chosen


def strip_to_locale(node: Any, locale: str) -> Any:
    """Structural copy of *node* with every bundle replaced by its *locale* value.

    A bundle lacking *locale* collapses to ``None``.
    """
    if isinstance(node, (list, tuple)):
        return [strip_to_locale(child, locale) for child in node]
    if isinstance(node, dict):
        if is_locale_bundle(node):
            return strip_to_locale(node.get(locale), locale)
        return {key: strip_to_locale(value, locale) for key, value in node.items()}
    return node


def resolve_dominant_locale(tree: Any, *, keep_all_locales: bool = False) -> Any:
    """Collapse every locale bundle in *tree* to the dominant locale.

    Args:
        tree: Any JSON-like value.
        keep_all_locales: Bypass shaping and return *tree* untouched.

    Returns:
        *tree* itself when shaping is bypassed or no bundle exists,
        otherwise a new tree without bundles.

    Examples:
        >>> resolve_dominant_locale(
        ...     {"title": {"en": "Hello", "it": ""}, "body": {"en": "World", "it": "Ciao"}}
        ... )
        {'title': 'Hello', 'body': 'World'}
    """
    if keep_all_locales:
        return tree
    locale = dominant_locale(tree)
    if locale is None:
        return tree
    return strip_to_locale(tree, locale)
