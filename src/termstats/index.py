"""
Read-only inverted index over multi-field, pre-tokenized documents.

The statistics engine only consumes an index through the small ``IndexReader``
protocol below. ``InvertedIndex`` is the bundled implementation: one sparse
term-document matrix per indexed field plus the stored string fields of every
document.

On-disk layout (one directory per index):
    meta.json            num_docs and the ordered field table
    stored.json          stored string fields, one mapping per document
    <n>.terms.json       vocabulary of the n-th indexed field (row order)
    <n>.npz              scipy CSR matrix (vocab_size, num_docs) of frequencies

Usage:
    from termstats.index import InvertedIndex, open_index

    index = InvertedIndex.from_documents([
        {"path": "a.txt", "contents": ["red", "fish", "red"]},
        {"path": "b.txt", "contents": ["blue", "fish"]},
    ])
    index.save("my_index")
    reader = open_index("my_index")
    reader.total_term_freq("contents", "red")  # 2
"""

from __future__ import annotations

import json
import threading
import zipfile
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import numpy as np
from scipy.sparse import csr_matrix, lil_matrix, load_npz, save_npz

if TYPE_CHECKING:
    from numpy.typing import NDArray


META_FILE = "meta.json"
STORED_FILE = "stored.json"


class NoSuchFieldError(KeyError):
    """Raised when terms are requested for a field the index does not have."""

    def __init__(self, field: str, known_fields: Sequence[str]):
        self.field = field
        self.known_fields = list(known_fields)
        super().__init__(field)

    def __str__(self) -> str:
        return f"No terms for field: '{self.field}'. Known fields are: '{', '.join(self.known_fields)}'."


# =============================================================================
# Protocol for index readers (duck typing)
# =============================================================================


class IndexReader(Protocol):
    """Read-only view of an inverted index consumed by the statistics engine."""

    def num_docs(self) -> int: ...

    def field_names(self) -> list[str]: ...

    def doc_freq(self, field: str, text: str) -> int: ...

    def total_term_freq(self, field: str, text: str) -> int: ...

    def postings(self, field: str, text: str) -> Iterator[tuple[int, int]]: ...

    def terms(self, field: str) -> Iterator[str]: ...

    def document(self, doc_id: int) -> Mapping[str, str]: ...

    def term_vector(self, doc_id: int, field: str) -> Counter[str]: ...


# =============================================================================
# Per-field postings
# =============================================================================


class FieldPostings:
    """
    Postings of a single indexed field.

    Rows of ``tf_matrix`` are terms (in vocabulary order), columns are documents.
    Presence-only fields keep a 0/1 matrix and report no total frequency.
    """

    def __init__(self, vocabulary: list[str], tf_matrix: csr_matrix, has_frequencies: bool = True):
        self.vocabulary = vocabulary
        self.tf_matrix = tf_matrix
        self.has_frequencies = has_frequencies
        self._vocab = {term: idx for idx, term in enumerate(vocabulary)}
        self._df: NDArray[np.int64] = np.diff(tf_matrix.indptr).astype(np.int64)
        self._cf: NDArray[np.int64] = np.asarray(tf_matrix.sum(axis=1)).ravel().astype(np.int64)
        self._csc = None

    def get_term_id(self, term: str) -> int | None:
        return self._vocab.get(term)

    def doc_freq(self, term: str) -> int:
        term_id = self._vocab.get(term)
        if term_id is None:
            return 0
        return int(self._df[term_id])

    def total_term_freq(self, term: str) -> int:
        term_id = self._vocab.get(term)
        if term_id is None:
            return 0
        if not self.has_frequencies:
            return -1
        return int(self._cf[term_id])

    def postings(self, term: str) -> Iterator[tuple[int, int]]:
        term_id = self._vocab.get(term)
        if term_id is None:
            return
        start, end = self.tf_matrix.indptr[term_id], self.tf_matrix.indptr[term_id + 1]
        doc_ids = self.tf_matrix.indices[start:end]
        freqs = self.tf_matrix.data[start:end]
        order = np.argsort(doc_ids, kind="stable")
        for doc_id, freq in zip(doc_ids[order], freqs[order]):
            yield int(doc_id), int(freq)

    def term_vector(self, doc_id: int) -> Counter[str]:
        if self._csc is None:
            self._csc = self.tf_matrix.tocsc()
        start, end = self._csc.indptr[doc_id], self._csc.indptr[doc_id + 1]
        return Counter(
            {
                self.vocabulary[term_id]: int(freq)
                for term_id, freq in zip(self._csc.indices[start:end], self._csc.data[start:end])
            }
        )


# =============================================================================
# Inverted index
# =============================================================================


class InvertedIndex:
    """
    Multi-field inverted index backed by scipy sparse matrices.

    Args:
        num_docs: Number of documents in the collection.
        field_names: All field names in index order (indexed and stored).
        stored: Stored string fields for each document.
        postings: Mapping of indexed field name to its ``FieldPostings``.
    """

    def __init__(
        self,
        num_docs: int,
        field_names: list[str],
        stored: list[dict[str, str]],
        postings: dict[str, FieldPostings],
    ):
        self._num_docs = num_docs
        self._field_names = field_names
        self._stored = stored
        self._postings = postings

    @classmethod
    def from_documents(
        cls,
        documents: Sequence[Mapping[str, str | Sequence[str]]],
        omit_frequencies: Iterable[str] = (),
    ) -> InvertedIndex:
        """
        Build an index from pre-tokenized documents.

        Args:
            documents: One mapping per document. String values are stored
                fields; list values are token streams of indexed fields.
            omit_frequencies: Indexed fields to record as presence-only.

        Returns:
            The in-memory index.
        """
        omit = set(omit_frequencies)
        field_names: list[str] = []
        indexed: dict[str, dict[str, int]] = {}
        stored: list[dict[str, str]] = []

        # First pass: field order, vocabularies and stored values
        for doc in documents:
            stored_values = {}
            for name, value in doc.items():
                if name not in field_names:
                    field_names.append(name)
                if isinstance(value, str):
                    stored_values[name] = value
                    continue
                vocab = indexed.setdefault(name, {})
                for token in value:
                    if token not in vocab:
                        vocab[token] = len(vocab)
            stored.append(stored_values)

        num_docs = len(documents)
        postings: dict[str, FieldPostings] = {}
        for name, vocab in indexed.items():
            tf_matrix_lil = lil_matrix((len(vocab), num_docs), dtype=np.int64)
            for doc_idx, doc in enumerate(documents):
                value = doc.get(name)
                if value is None or isinstance(value, str):
                    continue
                for term, count in Counter(value).items():
                    tf_matrix_lil[vocab[term], doc_idx] = 1 if name in omit else count
            postings[name] = FieldPostings(
                list(vocab), csr_matrix(tf_matrix_lil), has_frequencies=name not in omit
            )

        return cls(num_docs, field_names, stored, postings)

    def save(self, path: str | Path) -> None:
        """Write the index to ``path`` (created if needed)."""
        directory = Path(path)
        directory.mkdir(parents=True, exist_ok=True)
        fields = []
        for name in self._field_names:
            entry: dict[str, object] = {"name": name, "indexed": name in self._postings}
            if name in self._postings:
                field_postings = self._field(name)
                file_id = len([f for f in fields if f["indexed"]])
                entry["file"] = str(file_id)
                entry["frequencies"] = field_postings.has_frequencies
                with open(directory / f"{file_id}.terms.json", "w", encoding="utf-8") as f:
                    json.dump(field_postings.vocabulary, f)
                save_npz(directory / f"{file_id}.npz", field_postings.tf_matrix)
            fields.append(entry)

        with open(directory / STORED_FILE, "w", encoding="utf-8") as f:
            json.dump(self._stored, f)
        with open(directory / META_FILE, "w", encoding="utf-8") as f:
            json.dump({"num_docs": self._num_docs, "fields": fields}, f, indent=2)

    def _field(self, field: str) -> FieldPostings | None:
        return self._postings.get(field)

    # ----- IndexReader -----

    def num_docs(self) -> int:
        return self._num_docs

    def field_names(self) -> list[str]:
        return list(self._field_names)

    def doc_freq(self, field: str, text: str) -> int:
        field_postings = self._field(field)
        return field_postings.doc_freq(text) if field_postings is not None else 0

    def total_term_freq(self, field: str, text: str) -> int:
        field_postings = self._field(field)
        return field_postings.total_term_freq(text) if field_postings is not None else 0

    def postings(self, field: str, text: str) -> Iterator[tuple[int, int]]:
        field_postings = self._field(field)
        if field_postings is None:
            return iter(())
        return field_postings.postings(text)

    def terms(self, field: str) -> Iterator[str]:
        """Iterate over the vocabulary of ``field`` in sorted order."""
        field_postings = self._field(field)
        if field_postings is None:
            raise NoSuchFieldError(field, self._field_names)
        return iter(sorted(field_postings.vocabulary))

    def document(self, doc_id: int) -> Mapping[str, str]:
        return self._stored[doc_id]

    def term_vector(self, doc_id: int, field: str) -> Counter[str]:
        field_postings = self._field(field)
        if field_postings is None:
            return Counter()
        return field_postings.term_vector(doc_id)


class DirectoryIndex(InvertedIndex):
    """
    ``InvertedIndex`` read from a saved directory.

    Field matrices are loaded on first access, so a damaged field file
    surfaces as ``OSError`` from whichever query touches that field.
    """

    def __init__(self, path: Path, meta: dict, stored: list[dict[str, str]]):
        self.path = path
        self._field_files = {f["name"]: f for f in meta["fields"] if f["indexed"]}
        self._load_lock = threading.Lock()
        super().__init__(
            int(meta["num_docs"]),
            [f["name"] for f in meta["fields"]],
            stored,
            {},
        )

    def _field(self, field: str) -> FieldPostings | None:
        field_postings = self._postings.get(field)
        if field_postings is not None or field not in self._field_files:
            return field_postings
        with self._load_lock:
            if field not in self._postings:
                entry = self._field_files[field]
                try:
                    with open(self.path / f"{entry['file']}.terms.json", encoding="utf-8") as f:
                        vocabulary = json.load(f)
                    tf_matrix = load_npz(self.path / f"{entry['file']}.npz").tocsr()
                except (ValueError, zipfile.BadZipFile) as e:
                    raise OSError(f"Corrupt postings for field '{field}' in {self.path}") from e
                self._postings[field] = FieldPostings(
                    vocabulary, tf_matrix, has_frequencies=entry.get("frequencies", True)
                )
            return self._postings[field]


def open_index(path: str | Path) -> DirectoryIndex:
    """
    Open a saved index directory.

    Raises:
        FileNotFoundError: If ``path`` is not an index directory.
    """
    directory = Path(path)
    if not (directory / META_FILE).is_file():
        raise FileNotFoundError(f"No index found at {directory}")
    with open(directory / META_FILE, encoding="utf-8") as f:
        meta = json.load(f)
    with open(directory / STORED_FILE, encoding="utf-8") as f:
        stored = json.load(f)
    return DirectoryIndex(directory, meta, stored)


__all__ = [
    "DirectoryIndex",
    "FieldPostings",
    "IndexReader",
    "InvertedIndex",
    "NoSuchFieldError",
    "open_index",
]
