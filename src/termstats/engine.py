"""
Term statistics engine: one object per opened index.

Wires an ``EngineConfig`` to an index reader, the stop/start word lists and
the shared statistics cache, and exposes the filter and weight operations
used by vector-building workers.

Usage:
    from termstats import EngineConfig, TermStatsEngine, Term

    engine = TermStatsEngine(EngineConfig(index_path="my_index", term_weight="logentropy"))
    if engine.term_filter(Term("contents", "fish")):
        weight = engine.global_weight(Term("contents", "fish"))
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from termstats.config import INTERNAL_DOC_ID, EngineConfig
from termstats.index import open_index
from termstats.lexicon import Lexicon
from termstats.statistics import Term, TermStatistics

if TYPE_CHECKING:
    from termstats.index import IndexReader
    from termstats.weighting import TermWeight

logger = logging.getLogger(__name__)

# Number of workers for parallel term weighting
NUM_WEIGHT_WORKERS = 8
MIN_TERMS_FOR_PARALLEL = 64


class TermStatsEngine:
    """
    Reads term statistics from an index and filters terms for indexing.

    Args:
        config: Engine configuration. ``config.index_path`` must name an index.
        reader: Already opened index to use instead of opening ``index_path``.

    Raises:
        FileNotFoundError: If the index does not exist.
        OSError: If a configured stoplist or startlist cannot be read.
    """

    def __init__(self, config: EngineConfig, reader: IndexReader | None = None):
        self.config = config
        self.reader = reader if reader is not None else open_index(config.index_path)
        self.lexicon = Lexicon.from_files(config.stoplist_file, config.startlist_file)
        self.statistics = TermStatistics(
            self.reader,
            contents_fields=config.contents_fields,
            term_weight=config.term_weight,
        )
        logger.info("Initialized TermStatsEngine from index in directory: %s", config.index_path)
        logger.info("Fields in index are: %s", ", ".join(self.field_names()))

    # ----- Lexicon -----

    def in_stoplist(self, token: str) -> bool:
        return self.lexicon.in_stoplist(token)

    def in_startlist(self, token: str) -> bool:
        return self.lexicon.in_startlist(token)

    def term_filter(self, term: Term) -> bool:
        """Apply the lexicon filter with every bound taken from the configuration."""
        return self.lexicon.term_filter(
            term,
            self.config.contents_fields,
            self.config.min_frequency,
            self.config.max_frequency,
            self.config.max_non_alphabet_chars,
            self.config.filter_numbers,
            self.config.min_term_length,
            self.statistics.global_term_freq,
        )

    def filtered_terms(self, field: str) -> Iterator[Term]:
        """Terms of ``field`` that pass ``term_filter``."""
        for text in self.reader.terms(field):
            term = Term(field, text)
            if self.term_filter(term):
                yield term

    # ----- Statistics -----

    def num_docs(self) -> int:
        return self.statistics.num_docs()

    def global_term_freq(self, term: Term) -> int:
        return self.statistics.global_term_freq(term)

    def doc_freq(self, term: Term) -> int:
        return self.statistics.doc_freq(term)

    def idf(self, term: Term) -> float:
        return self.statistics.idf(term)

    def entropy(self, term: Term) -> float:
        return self.statistics.entropy(term)

    def global_weight(self, term: Term, scheme: TermWeight | str | None = None) -> float:
        return self.statistics.global_weight(term, scheme)

    def local_weight(self, freq_in_doc: int, scheme: TermWeight | str | None = None) -> float:
        return self.statistics.local_weight(freq_in_doc, scheme)

    def global_weight_from_text(self, text: str) -> float:
        return self.statistics.global_weight_from_text(text)

    def weigh_terms(self, max_workers: int = NUM_WEIGHT_WORKERS) -> dict[Term, float]:
        """
        Global weight of every term that passes the filter in the contents fields.

        Terms are weighted in parallel over the shared caches once there are
        enough of them to be worth it.
        """
        terms = [term for field in self.config.contents_fields for term in self.filtered_terms(field)]
        if len(terms) < MIN_TERMS_FOR_PARALLEL or max_workers <= 1:
            return {term: self.global_weight(term) for term in terms}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            weights = list(executor.map(self.global_weight, terms))
        return dict(zip(terms, weights))

    def document_term_weights(self, doc_id: int, field: str) -> dict[str, float]:
        """Local times global weight of each filtered term in one document field."""
        weights = {}
        for text, freq in self.term_vector(doc_id, field).items():
            term = Term(field, text)
            if self.term_filter(term):
                weights[text] = self.local_weight(freq) * self.global_weight(term)
        return weights

    # ----- Documents and fields -----

    def field_names(self) -> list[str]:
        return self.reader.field_names()

    def terms_for_field(self, field: str) -> Iterator[str]:
        """
        Iterate over the terms of ``field``.

        Raises:
            NoSuchFieldError: If the index has no terms for ``field``.
        """
        return self.reader.terms(field)

    def document(self, doc_id: int) -> Mapping[str, str]:
        return self.reader.document(doc_id)

    def term_vector(self, doc_id: int, field: str) -> Counter[str]:
        return self.reader.term_vector(doc_id, field)

    def external_doc_id(self, doc_id: int) -> str:
        """
        Identifier of a document as stored in ``config.doc_id_field``.

        Raises:
            KeyError: If the document does not store that field.
        """
        # internal ids need no stored-field lookup
        if self.config.doc_id_field == INTERNAL_DOC_ID:
            return str(doc_id)
        try:
            return self.reader.document(doc_id)[self.config.doc_id_field]
        except (KeyError, IndexError):
            logger.error(
                "Failed to get external doc ID from doc no. %d in index. "
                "Check that doc_id_field was set correctly and exists in the index.",
                doc_id,
            )
            raise
