"""
Engine configuration.

Defaults can be overridden through environment variables, e.g.:
    TERMSTATS_INDEX_PATH=./my_index
    TERMSTATS_CONTENTS_FIELDS=title,contents    # Comma-separated
    TERMSTATS_TERM_WEIGHT=logentropy            # none, idf, logentropy, freq, sqrt, logfreq
    TERMSTATS_STOPLIST_FILE=stopwords.txt
    TERMSTATS_MAX_NON_ALPHABET_CHARS=-1         # -1 disables character filtering
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

from termstats.weighting import TermWeight

# Sentinel for ``doc_id_field``: identify documents by their numeric index id.
INTERNAL_DOC_ID = "internal"


def _parse_fields(value: str) -> tuple[str, ...]:
    """Parse a comma-separated list of field names."""
    return tuple(v.strip() for v in value.split(",") if v.strip())


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DEFAULT_INDEX_PATH = os.environ.get("TERMSTATS_INDEX_PATH", "")
DEFAULT_STOPLIST_FILE = os.environ.get("TERMSTATS_STOPLIST_FILE", "")
DEFAULT_STARTLIST_FILE = os.environ.get("TERMSTATS_STARTLIST_FILE", "")
DEFAULT_CONTENTS_FIELDS = _parse_fields(os.environ.get("TERMSTATS_CONTENTS_FIELDS", "contents"))
DEFAULT_DOC_ID_FIELD = os.environ.get("TERMSTATS_DOC_ID_FIELD", "path")
DEFAULT_TERM_WEIGHT = os.environ.get("TERMSTATS_TERM_WEIGHT", "idf")
DEFAULT_MIN_FREQUENCY = int(os.environ.get("TERMSTATS_MIN_FREQUENCY", "0"))
DEFAULT_MAX_FREQUENCY = int(os.environ.get("TERMSTATS_MAX_FREQUENCY", str(sys.maxsize)))
DEFAULT_MAX_NON_ALPHABET_CHARS = int(os.environ.get("TERMSTATS_MAX_NON_ALPHABET_CHARS", "0"))
DEFAULT_FILTER_NUMBERS = _env_bool("TERMSTATS_FILTER_NUMBERS", False)
DEFAULT_MIN_TERM_LENGTH = int(os.environ.get("TERMSTATS_MIN_TERM_LENGTH", "0"))


@dataclass
class EngineConfig:
    """Everything ``TermStatsEngine`` needs to open an index and filter terms."""

    index_path: str = DEFAULT_INDEX_PATH
    stoplist_file: str = DEFAULT_STOPLIST_FILE
    startlist_file: str = DEFAULT_STARTLIST_FILE
    contents_fields: tuple[str, ...] = field(default=DEFAULT_CONTENTS_FIELDS)
    doc_id_field: str = DEFAULT_DOC_ID_FIELD
    term_weight: TermWeight | str = DEFAULT_TERM_WEIGHT
    # Term filter bounds
    min_frequency: int = DEFAULT_MIN_FREQUENCY
    max_frequency: int = DEFAULT_MAX_FREQUENCY
    max_non_alphabet_chars: int = DEFAULT_MAX_NON_ALPHABET_CHARS
    filter_numbers: bool = DEFAULT_FILTER_NUMBERS
    min_term_length: int = DEFAULT_MIN_TERM_LENGTH

    def __post_init__(self) -> None:
        self.index_path = str(self.index_path) if self.index_path else ""
        if not self.index_path:
            raise ValueError("index_path is a required argument for initializing a TermStatsEngine.")
        if isinstance(self.contents_fields, str):
            self.contents_fields = _parse_fields(self.contents_fields)
        else:
            self.contents_fields = tuple(self.contents_fields)
        self.term_weight = TermWeight.coerce(self.term_weight)
