"""Collations and SQL value ordering.

A collator defines how two values compare. All collators share the SQL
type ordering and differ only in how they compare two strings:

    1. NULL equals NULL and sorts before everything else.
    2. Two numeric-looking values compare numerically ('10' > '9').
    3. Otherwise values order by type: NULL < number < string.
    4. Two strings compare under the collator's text rules. If the text
       comparison fails, the comparison falls back to code point order.

NaN is a number ranked below every other number and equal only to NaN.
Bytes are text; bytes that are not valid UTF-8 keep their raw byte values
(as surrogate escapes) so distinct blobs never compare equal.

Built-in collations:
    BINARY  - code point order, case-sensitive (the default)
    NOCASE  - ASCII letters folded to lower case, everything else binary
    RTRIM   - trailing spaces ignored, otherwise binary
    <locale> - Unicode Collation Algorithm (e.g. 'sv_SE', 'de-DE')

References:
    - SQLite collating sequences: https://www.sqlite.org/datatype3.html#collation
    - Unicode Technical Standard #10: https://www.unicode.org/reports/tr10/
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any

from pyuca import Collator as UCACollator

from virtual_db.domain.value_objects.values import parse_number

logger = logging.getLogger(__name__)

# Type ranks for mixed-type ordering
NULL_RANK = 0
NUMBER_RANK = 1
STRING_RANK = 2

_ASCII_FOLD = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    "abcdefghijklmnopqrstuvwxyz",
)

# Deprecated ISO 639 language codes and their replacements
_LANGUAGE_ALIASES = {
    "iw": "he",
    "in": "id",
    "ji": "yi",
    "jw": "jv",
    "mo": "ro",
    "no": "nb",
    "tl": "fil",
}

_LOCALE_SPLIT = re.compile(r"[-_]")


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _is_nan(number: int | float) -> bool:
    return isinstance(number, float) and math.isnan(number)


def _cmp_numbers(a: int | float, b: int | float) -> int:
    nan_a = _is_nan(a)
    nan_b = _is_nan(b)
    if nan_a or nan_b:
        return nan_b - nan_a
    return _cmp(a, b)


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode(errors="surrogateescape")
    return str(value)


def type_rank(value: Any) -> int:
    """Return the ordering rank of a value's SQL type."""
    if value is None:
        return NULL_RANK
    if parse_number(value) is not None:
        return NUMBER_RANK
    return STRING_RANK


class Collator(ABC):
    """Base class for collations.

    Subclasses implement ``compare_text`` and ``text_key``; the shared
    ``compare`` handles NULLs, numbers and type ordering.
    """

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        """Collation name as used in SQL (BINARY, NOCASE, RTRIM or a locale)."""
        return self._name

    @property
    def identifier(self) -> str:
        """Stable identifier for comparing collations."""
        return canonical_name(self._name)

    @abstractmethod
    def compare_text(self, a: str, b: str) -> int:
        """Compare two strings under this collation; returns -1, 0 or 1."""

    @abstractmethod
    def text_key(self, text: str) -> Any:
        """Sort key for a string, consistent with ``compare_text``."""

    def compare(self, a: Any, b: Any) -> int:
        """Compare two SQL values; returns -1, 0 or 1."""
        if a is None and b is None:
            return 0
        if a is None:
            return -1
        if b is None:
            return 1

        num_a = parse_number(a)
        num_b = parse_number(b)
        if num_a is not None and num_b is not None:
            return _cmp_numbers(num_a, num_b)

        rank_a = NUMBER_RANK if num_a is not None else STRING_RANK
        rank_b = NUMBER_RANK if num_b is not None else STRING_RANK
        if rank_a != rank_b:
            return _cmp(rank_a, rank_b)

        text_a = _text(a)
        text_b = _text(b)
        try:
            return self.compare_text(text_a, text_b)
        except (TypeError, ValueError, KeyError, UnicodeError) as e:
            logger.debug(f"Collation {self._name} failed, using binary order: {e}")
            return _cmp(text_a, text_b)

    def equals(self, a: Any, b: Any) -> bool:
        """Return True when ``a`` and ``b`` compare equal."""
        return self.compare(a, b) == 0

    def sort_key(self, value: Any) -> tuple[int, Any]:
        """Sort key consistent with ``compare``, for use with ``sorted``."""
        if value is None:
            return (NULL_RANK, 0)
        number = parse_number(value)
        if number is not None:
            if _is_nan(number):
                return (NUMBER_RANK, (0, 0))
            return (NUMBER_RANK, (1, number))
        text = _text(value)
        try:
            return (STRING_RANK, self.text_key(text))
        except (TypeError, ValueError, KeyError, UnicodeError):
            return (STRING_RANK, text)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


class BinaryCollator(Collator):
    """Code point order."""

    def __init__(self) -> None:
        super().__init__("BINARY")

    def compare_text(self, a: str, b: str) -> int:
        return _cmp(a, b)

    def text_key(self, text: str) -> Any:
        return text


class NoCaseCollator(Collator):
    """ASCII case-insensitive order, as SQLite's NOCASE."""

    def __init__(self) -> None:
        super().__init__("NOCASE")

    def compare_text(self, a: str, b: str) -> int:
        return _cmp(a.translate(_ASCII_FOLD), b.translate(_ASCII_FOLD))

    def text_key(self, text: str) -> Any:
        return text.translate(_ASCII_FOLD)


class RTrimCollator(Collator):
    """Binary order ignoring trailing spaces."""

    def __init__(self) -> None:
        super().__init__("RTRIM")

    def compare_text(self, a: str, b: str) -> int:
        return _cmp(a.rstrip(" "), b.rstrip(" "))

    def text_key(self, text: str) -> Any:
        return text.rstrip(" ")


@lru_cache(maxsize=1)
def _uca() -> UCACollator:
    # Loading the DUCET table is slow; share one instance.
    return UCACollator()


class LocaleCollator(Collator):
    """Unicode Collation Algorithm order for a locale.

    Uses the default Unicode collation element table; the locale name is
    canonicalized and kept for identity, but language-specific tailorings
    are not applied.
    """

    def __init__(self, locale: str) -> None:
        super().__init__(canonicalize_locale(locale))

    @property
    def locale(self) -> str:
        return self._name

    @property
    def identifier(self) -> str:
        return f"locale:{self._name}"

    def compare_text(self, a: str, b: str) -> int:
        if a == b:
            return 0
        return _cmp(self.text_key(a), self.text_key(b))

    def text_key(self, text: str) -> Any:
        return _uca().sort_key(text)


def canonicalize_locale(locale: str) -> str:
    """Canonicalize a locale code.

    Normalizes separators and casing, drops encoding and modifier
    suffixes, and replaces deprecated language codes::

        sv-se        -> sv_SE
        no_NO        -> nb_NO
        iw_IL        -> he_IL
        zh-hant-tw   -> zh_Hant_TW
        de_DE.UTF-8  -> de_DE

    Raises:
        ValueError: If the locale is empty.
    """
    code = locale.strip().split(".", 1)[0].split("@", 1)[0]
    if not code:
        raise ValueError(f"Invalid locale: {locale!r}")

    parts = [p for p in _LOCALE_SPLIT.split(code) if p]
    language = parts[0].lower()
    language = _LANGUAGE_ALIASES.get(language, language)

    canonical = [language]
    for part in parts[1:]:
        if len(part) == 4 and part.isalpha():
            canonical.append(part.title())
        elif (len(part) == 2 and part.isalpha()) or (len(part) == 3 and part.isdigit()):
            canonical.append(part.upper())
        else:
            canonical.append(part)
    return "_".join(canonical)


BINARY = BinaryCollator()
NOCASE = NoCaseCollator()
RTRIM = RTrimCollator()

_BUILTINS: dict[str, Collator] = {
    "BINARY": BINARY,
    "NOCASE": NOCASE,
    "RTRIM": RTRIM,
}


def canonical_name(name: str) -> str:
    """Canonical form of a collation name."""
    upper = name.strip().upper()
    if upper in _BUILTINS:
        return upper
    return canonicalize_locale(name)


@lru_cache(maxsize=64)
def _locale_collator(locale: str) -> LocaleCollator:
    return LocaleCollator(locale)


def from_name(name: str) -> Collator:
    """Get a collator by name.

    Args:
        name: BINARY, NOCASE or RTRIM (case-insensitive), or a locale code.

    Returns:
        The collator.

    Raises:
        ValueError: If the name is empty.
    """
    upper = name.strip().upper()
    if upper in _BUILTINS:
        return _BUILTINS[upper]
    return _locale_collator(canonicalize_locale(name))


def to_name(collator: Collator) -> str:
    """Get the canonical SQL name of a collator."""
    return canonical_name(collator.name)


def collations_match(a: str | Collator, b: str | Collator) -> bool:
    """Return True when two collations (names or collators) are the same."""
    return _identifier(a) == _identifier(b)


def _identifier(collation: str | Collator) -> str:
    if isinstance(collation, Collator):
        return collation.identifier
    return from_name(collation).identifier
