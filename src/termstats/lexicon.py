"""
Stoplists, startlists and the composite term filter.

A stoplist is a deny-list: with none loaded, nothing is denied. A startlist is
an allow-list: with none loaded, everything is allowed. Both compare tokens
exactly, without case folding.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from pathlib import Path

from termstats.statistics import Term

logger = logging.getLogger(__name__)


def load_word_list(path: str | Path) -> frozenset[str]:
    """
    Read a newline-delimited word list (one token per line, blank lines skipped).

    Raises:
        OSError: If the file cannot be read.
    """
    try:
        with open(path) as f:
            return frozenset(line.rstrip("\r\n") for line in f if line.strip())
    except OSError as e:
        raise OSError(f"Couldn't open file {path}") from e


def is_number(text: str) -> bool:
    """
    True if ``text`` is a finite decimal literal (e.g. "42", "3.5", "1e-3").

    Words that ``float`` happens to accept, such as "nan", "inf" and
    "infinity", and digit groups like "1_000" are not numbers.
    """
    try:
        value = float(text)
    except ValueError:
        return False
    return "_" not in text and math.isfinite(value)


def count_non_alphabetic(text: str) -> int:
    return sum(1 for ch in text if not ch.isalpha())


class Lexicon:
    """
    Decides whether a term takes part in statistics and vector building.

    Args:
        stopwords: Tokens to exclude, or None for no stoplist.
        startwords: The only tokens to admit, or None for no startlist.
    """

    def __init__(
        self,
        stopwords: Iterable[str] | None = None,
        startwords: Iterable[str] | None = None,
    ):
        self.stopwords = frozenset(stopwords) if stopwords is not None else None
        self.startwords = frozenset(startwords) if startwords is not None else None

    @classmethod
    def from_files(
        cls,
        stoplist_file: str | Path | None = None,
        startlist_file: str | Path | None = None,
    ) -> Lexicon:
        """Load the configured word lists; empty or None paths mean "not configured"."""
        stopwords = None
        startwords = None
        if stoplist_file:
            logger.info("Using stopword file: %s", stoplist_file)
            stopwords = load_word_list(stoplist_file)
        if startlist_file:
            startwords = load_word_list(startlist_file)
            logger.info(
                "Loading startword file: '%s'. Only these %d words will be indexed.",
                startlist_file,
                len(startwords),
            )
        return cls(stopwords, startwords)

    def in_stoplist(self, token: str) -> bool:
        """True if a stoplist is loaded and contains ``token``."""
        if self.stopwords is None:
            return False
        return token in self.stopwords

    def in_startlist(self, token: str) -> bool:
        """False if a startlist is loaded and lacks ``token``; True otherwise."""
        if self.startwords is None:
            return True
        return token in self.startwords

    def term_filter(
        self,
        term: Term,
        fields: Iterable[str],
        min_freq: int,
        max_freq: int,
        max_non_alphabet_chars: int,
        filter_numbers: bool,
        min_term_length: int,
        term_freq: Callable[[Term], int],
    ) -> bool:
        """
        Decide whether ``term`` survives filtering.

        Checks run cheapest first and stop at the first rejection; the
        frequency bounds, which need a statistics lookup, come last.

        Args:
            term: Term to be filtered.
            fields: Candidate fields; field names match case-insensitively.
            min_freq: Minimum global frequency accepted.
            max_freq: Maximum global frequency accepted.
            max_non_alphabet_chars: Reject terms with more non-letter characters
                than this. -1 disables character filtering, including the
                minimum length check.
            filter_numbers: Reject terms that parse as a number.
            min_term_length: Minimum term length when character filtering is on.
            term_freq: Global term frequency lookup.
        """
        field = term.field.casefold()
        if not any(field == candidate.casefold() for candidate in fields):
            return False

        if self.in_stoplist(term.text):
            return False

        if not self.in_startlist(term.text):
            return False

        if max_non_alphabet_chars != -1:
            if len(term.text) < min_term_length:
                return False
            if count_non_alphabetic(term.text) > max_non_alphabet_chars:
                return False

        if filter_numbers and is_number(term.text):
            return False

        freq = term_freq(term)
        if freq < min_freq or freq > max_freq:
            return False

        return True


__all__ = ["Lexicon", "count_non_alphabetic", "is_number", "load_word_list"]
