"""
Term weighting schemes and the pure formulas behind them.

Nothing in this module touches an index or logs: the statistics cache feeds
it numbers and decides what to report when a scheme is not recognized.

Global weights (corpus-wide, per term):
    none        1
    idf         log10(N / df)
    logentropy  1 + sum(p * log2(p)) / log2(N),  p = tf_in_doc / global_tf
    freq        global_tf
    sqrt        sqrt(global_tf)
    logfreq     ln(global_tf)                    [requires global_tf > 0]

Local weights (per term occurrence count within one document):
    none        1
    idf         tf_in_doc                        [raw count, used as a multiplier]
    logentropy  log10(1 + tf_in_doc)
    sqrt        sqrt(tf_in_doc)
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Protocol

import numpy as np


class UnrecognizedTermWeightError(ValueError):
    """Raised when a weighting scheme has no formula for the requested granularity."""

    def __init__(self, scheme: object):
        self.scheme = scheme
        super().__init__(f"Unrecognized termweight option: {scheme}")


class TermWeight(str, Enum):
    """
    Term weighting strategy used for indexing and, optionally, search.

    Values may come from the command line or environment, so names avoid underscores.
    """

    NONE = "none"
    IDF = "idf"
    LOGENTROPY = "logentropy"
    FREQ = "freq"
    SQRT = "sqrt"
    LOGFREQ = "logfreq"

    @classmethod
    def coerce(cls, value: TermWeight | str) -> TermWeight | str:
        """
        Map a scheme name to a member, case-insensitively.

        Unknown names are returned unchanged so that weight lookups can fall
        back (with a diagnostic) instead of failing at configuration time.
        """
        if isinstance(value, cls) or not isinstance(value, str):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return value


# =============================================================================
# Pure statistics
# =============================================================================


def idf_value(num_docs: int, doc_freq: int) -> float:
    """log10(num_docs / doc_freq); 0 for a term that occurs in no document."""
    if doc_freq == 0:
        return 0.0
    return math.log10(num_docs / doc_freq)


def entropy_value(frequencies: Iterable[int], global_freq: int, num_docs: int) -> float:
    """
    Log-entropy weight, as defined by Martin and Berry (2007).

        1 + sum_j(p_j * log2(p_j)) / log2(N),   p_j = tf_j / global_freq

    A term whose occurrences all fall in one document scores 1; a term spread
    evenly over every document scores 0.

    Args:
        frequencies: In-document frequency for each document containing the term.
        global_freq: Total occurrences of the term in the corpus.
        num_docs: Number of documents in the corpus.

    Returns:
        The weight. Collections of at most one document, and terms with no
        recorded occurrences, carry no distributional information and score 1.
    """
    if num_docs <= 1 or global_freq <= 0:
        return 1.0
    return 1.0 + plogp_sum(frequencies, global_freq) / math.log2(num_docs)


def plogp_sum(frequencies: Iterable[int], global_freq: int) -> float:
    """sum(p * log2(p)) over p = tf / global_freq."""
    tf = np.fromiter(frequencies, dtype=np.float64)
    if tf.size == 0 or global_freq <= 0:
        return 0.0
    p = tf / global_freq
    return float(np.sum(p * np.log2(p)))


# =============================================================================
# Scheme dispatch
# =============================================================================


_LOCAL_WEIGHTS: dict[TermWeight, Callable[[int], float]] = {
    TermWeight.NONE: lambda tf: 1.0,
    TermWeight.IDF: lambda tf: float(tf),
    TermWeight.LOGENTROPY: lambda tf: math.log10(1 + tf),
    TermWeight.SQRT: lambda tf: math.sqrt(tf),
}


def local_weight(freq_in_doc: int, scheme: TermWeight | str) -> float:
    """
    Weight of a term inside one document.

    Raises:
        UnrecognizedTermWeightError: For schemes with no local formula
            (``freq``, ``logfreq``) and for unknown values.
    """
    formula = _lookup(_LOCAL_WEIGHTS, scheme)
    return formula(freq_in_doc)


def log_frequency(global_freq: int) -> float:
    """Natural log of the global frequency; -inf for an unseen term."""
    if global_freq <= 0:
        return -math.inf
    return math.log(global_freq)


class GlobalStatistics(Protocol):
    """Lazily evaluated corpus statistics of a single term."""

    def freq(self) -> int: ...

    def idf(self) -> float: ...

    def entropy(self) -> float: ...


_GLOBAL_WEIGHTS: dict[TermWeight, Callable[[GlobalStatistics], float]] = {
    TermWeight.NONE: lambda stats: 1.0,
    TermWeight.SQRT: lambda stats: math.sqrt(stats.freq()),
    TermWeight.IDF: lambda stats: stats.idf(),
    TermWeight.LOGENTROPY: lambda stats: stats.entropy(),
    TermWeight.FREQ: lambda stats: float(stats.freq()),
    TermWeight.LOGFREQ: lambda stats: log_frequency(stats.freq()),
}


def global_weight(stats: GlobalStatistics, scheme: TermWeight | str) -> float:
    """
    Corpus-wide weight of a term.

    Only the statistic the scheme needs is evaluated, so e.g. ``none`` never
    touches the index.

    Raises:
        UnrecognizedTermWeightError: For unknown values.
    """
    formula = _lookup(_GLOBAL_WEIGHTS, scheme)
    return formula(stats)


def _lookup(table: dict[TermWeight, Callable], scheme: TermWeight | str) -> Callable:
    try:
        formula = table.get(TermWeight.coerce(scheme))
    except TypeError:
        formula = None
    if formula is None:
        raise UnrecognizedTermWeightError(scheme)
    return formula


__all__ = [
    "TermWeight",
    "UnrecognizedTermWeightError",
    "entropy_value",
    "GlobalStatistics",
    "global_weight",
    "idf_value",
    "local_weight",
    "log_frequency",
    "plogp_sum",
]
