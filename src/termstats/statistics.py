"""
Per-term corpus statistics with shared, thread-safe memoization.

``TermStatistics`` answers global term frequency, document frequency, IDF and
log-entropy questions for ``Term(field, text)`` keys, and turns them into
weights under a ``TermWeight`` scheme.

Caching:
    - Frequency, IDF and entropy are computed on first request and memoized.
    - Caches are append-only: the index is a frozen snapshot for the lifetime
      of the statistics object.
    - Each cache is split into shards with one lock per shard. Values are
      computed outside the lock, so two threads missing the same key both
      compute it and the last write wins (the result is identical).

Failures:
    Index I/O errors never propagate from a statistic getter. They are logged
    and a default is substituted: 1 for frequencies and IDF (not cached), the
    partial sum for entropy (cached). An entropy computed from a fallback
    frequency is returned but not cached.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable
from typing import TYPE_CHECKING, NamedTuple, TypeVar

from termstats.weighting import (
    TermWeight,
    UnrecognizedTermWeightError,
    entropy_value,
    global_weight,
    idf_value,
    local_weight,
)

if TYPE_CHECKING:
    from termstats.index import IndexReader

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_NUM_SHARDS = 16


class Term(NamedTuple):
    """A (field, text) pair; the identity of every cached statistic."""

    field: str
    text: str


# =============================================================================
# Sharded cache
# =============================================================================


class ShardedCache:
    """
    Append-only map split into independently locked shards.

    Readers and writers only contend when their keys hash to the same shard.
    """

    def __init__(self, num_shards: int = DEFAULT_NUM_SHARDS):
        if num_shards < 1:
            raise ValueError("num_shards must be at least 1")
        self._shards: list[dict[Hashable, object]] = [{} for _ in range(num_shards)]
        self._locks = [threading.Lock() for _ in range(num_shards)]

    def _slot(self, key: Hashable) -> int:
        return hash(key) % len(self._shards)

    def get(self, key: Hashable, default: V | None = None) -> object | V | None:
        slot = self._slot(key)
        with self._locks[slot]:
            return self._shards[slot].get(key, default)

    def put(self, key: Hashable, value: object) -> None:
        slot = self._slot(key)
        with self._locks[slot]:
            self._shards[slot][key] = value

    def __contains__(self, key: Hashable) -> bool:
        slot = self._slot(key)
        with self._locks[slot]:
            return key in self._shards[slot]

    def __len__(self) -> int:
        total = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                total += len(shard)
        return total


# =============================================================================
# Term statistics
# =============================================================================


class _TermView:
    """Binds one term to the statistic getters for scheme dispatch."""

    __slots__ = ("_stats", "_term")

    def __init__(self, stats: TermStatistics, term: Term):
        self._stats = stats
        self._term = term

    def freq(self) -> int:
        return self._stats.global_term_freq(self._term)

    def idf(self) -> float:
        return self._stats.idf(self._term)

    def entropy(self) -> float:
        return self._stats.entropy(self._term)


class TermStatistics:
    """
    Memoized corpus statistics and term weights over an index reader.

    Args:
        reader: The index to read statistics from.
        contents_fields: Candidate fields summed by ``global_weight_from_text``.
        term_weight: Default weighting scheme. Unrecognized values are kept
            and make weight lookups fall back to 1.
        num_shards: Shards per cache.
    """

    def __init__(
        self,
        reader: IndexReader,
        contents_fields: Iterable[str] = ("contents",),
        term_weight: TermWeight | str = TermWeight.IDF,
        num_shards: int = DEFAULT_NUM_SHARDS,
    ):
        self.reader = reader
        self.contents_fields = tuple(contents_fields)
        self.term_weight = TermWeight.coerce(term_weight)
        self._term_freq = ShardedCache(num_shards)
        self._idf = ShardedCache(num_shards)
        self._entropy = ShardedCache(num_shards)

    def num_docs(self) -> int:
        return self.reader.num_docs()

    def global_term_freq(self, term: Term) -> int:
        """
        Number of times ``term`` occurs in the whole corpus.

        Returns:
            The cached or freshly read count, or 1 if the index read fails.
        """
        cached = self._term_freq.get(term)
        if cached is not None:
            return cached
        try:
            tf = self.reader.total_term_freq(term.field, term.text)
        except OSError:
            logger.info("Couldn't get term frequency for term %s", term.text)
            return 1
        if tf < 0:
            logger.warning(
                "Index returned %d for term: '%s' in field: '%s'. Changing to 0. "
                "The field may have been indexed without term frequencies.",
                tf,
                term.text,
                term.field,
            )
            tf = 0
        self._term_freq.put(term, tf)
        return tf

    def doc_freq(self, term: Term) -> int:
        """
        Number of documents containing ``term``, read straight from the index.

        Returns:
            The document frequency, or 1 if the index read fails.
        """
        try:
            return self.reader.doc_freq(term.field, term.text)
        except OSError:
            logger.info("Couldn't get document frequency for term %s", term.text)
            return 1

    def idf(self, term: Term) -> float:
        """log10(num_docs / doc_freq), 0 for an absent term, 1 if the index read fails."""
        cached = self._idf.get(term)
        if cached is not None:
            return cached
        try:
            df = self.reader.doc_freq(term.field, term.text)
        except OSError:
            logger.info("Couldn't get IDF for term %s", term.text, exc_info=True)
            return 1.0
        value = idf_value(self.num_docs(), df)
        self._idf.put(term, value)
        return value

    def entropy(self, term: Term) -> float:
        """
        Log-entropy weight of ``term``: 1 + sum(p log2 p) / log2(num_docs).

        Favors terms whose occurrences are concentrated in few documents. If
        the postings cannot be read in full, the documents seen so far are used.
        """
        cached = self._entropy.get(term)
        if cached is not None:
            return cached
        gf = self.global_term_freq(term)
        # a fallback frequency is not cached, and neither is anything derived from it
        gf_is_real = term in self._term_freq
        frequencies: list[int] = []
        try:
            for _, freq in self.reader.postings(term.field, term.text):
                frequencies.append(freq)
        except OSError:
            logger.info("Couldn't get term entropy for term %s", term.text)
        value = entropy_value(frequencies, gf, self.num_docs())
        if gf_is_real:
            self._entropy.put(term, value)
        return value

    def global_weight(self, term: Term, scheme: TermWeight | str | None = None) -> float:
        """
        Corpus-wide weight of ``term`` under ``scheme`` (default: the configured one).

        ``logfreq`` requires the term to occur in the corpus; an unseen term
        gets -inf.

        Returns:
            The weight, or 1 for an unrecognized scheme.
        """
        scheme = self.term_weight if scheme is None else scheme
        try:
            return global_weight(_TermView(self, term), scheme)
        except UnrecognizedTermWeightError as e:
            logger.error("%s. Returning 1.", e)
            return 1.0

    def local_weight(self, freq_in_doc: int, scheme: TermWeight | str | None = None) -> float:
        """
        Weight of a term occurring ``freq_in_doc`` times in one document.

        Returns:
            The weight, or 1 for a scheme without a local formula.
        """
        scheme = self.term_weight if scheme is None else scheme
        try:
            return local_weight(freq_in_doc, scheme)
        except UnrecognizedTermWeightError as e:
            logger.error("%s. Returning 1.", e)
            return 1.0

    def global_weight_from_text(self, text: str, scheme: TermWeight | str | None = None) -> float:
        """Sum of ``global_weight`` for ``text`` over every contents field."""
        return sum(self.global_weight(Term(field, text), scheme) for field in self.contents_fields)

    def cache_sizes(self) -> dict[str, int]:
        return {
            "term_freq": len(self._term_freq),
            "idf": len(self._idf),
            "entropy": len(self._entropy),
        }


__all__ = ["DEFAULT_NUM_SHARDS", "ShardedCache", "Term", "TermStatistics"]
