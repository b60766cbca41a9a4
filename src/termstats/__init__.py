"""Corpus term statistics, term weighting and term filtering over an inverted index."""

from termstats.config import INTERNAL_DOC_ID, EngineConfig
from termstats.engine import TermStatsEngine
from termstats.index import IndexReader, InvertedIndex, NoSuchFieldError, open_index
from termstats.lexicon import Lexicon, load_word_list
from termstats.statistics import Term, TermStatistics
from termstats.weighting import TermWeight, UnrecognizedTermWeightError

__all__ = [
    "INTERNAL_DOC_ID",
    "EngineConfig",
    "IndexReader",
    "InvertedIndex",
    "Lexicon",
    "NoSuchFieldError",
    "Term",
    "TermStatistics",
    "TermStatsEngine",
    "TermWeight",
    "UnrecognizedTermWeightError",
    "load_word_list",
    "open_index",
]
