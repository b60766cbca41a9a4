from collections import Counter

import pytest

from termstats.index import InvertedIndex


def make_documents() -> list[dict]:
    """Ten documents; "x" occurs 3 times in doc 0 and once in doc 1 of the body field."""
    documents = []
    for i in range(10):
        body = ["common"]
        if i == 0:
            body += ["x", "x", "x", "solo", "solo"]
        if i == 1:
            body += ["x", "42", "forty-two", "c3po"]
        documents.append(
            {
                "path": f"doc{i}.txt",
                "title": ["common", "x"] if i == 2 else ["common"],
                "body": body,
            }
        )
    return documents


@pytest.fixture
def documents() -> list[dict]:
    return make_documents()


@pytest.fixture
def index(documents) -> InvertedIndex:
    return InvertedIndex.from_documents(documents)


@pytest.fixture
def word_file(tmp_path):
    def _write(name: str, lines: list[str]) -> str:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n\n")
        return str(path)

    return _write


class FlakyReader:
    """Index reader whose queries can be made to fail, counting every call."""

    def __init__(self, reader, fail: set[str] | None = None, fail_postings_after: int | None = None):
        self.reader = reader
        self.fail = fail or set()
        self.fail_postings_after = fail_postings_after
        self.calls: Counter[str] = Counter()

    def _call(self, name: str):
        self.calls[name] += 1
        if name in self.fail:
            raise OSError(f"simulated failure in {name}")

    def num_docs(self) -> int:
        return self.reader.num_docs()

    def field_names(self) -> list[str]:
        return self.reader.field_names()

    def doc_freq(self, field, text):
        self._call("doc_freq")
        return self.reader.doc_freq(field, text)

    def total_term_freq(self, field, text):
        self._call("total_term_freq")
        return self.reader.total_term_freq(field, text)

    def postings(self, field, text):
        self._call("postings")
        for i, posting in enumerate(self.reader.postings(field, text)):
            if self.fail_postings_after is not None and i >= self.fail_postings_after:
                raise OSError("simulated failure while reading postings")
            yield posting

    def terms(self, field):
        return self.reader.terms(field)

    def document(self, doc_id):
        return self.reader.document(doc_id)

    def term_vector(self, doc_id, field):
        return self.reader.term_vector(doc_id, field)


@pytest.fixture
def flaky_reader(index):
    def _make(**kwargs) -> FlakyReader:
        return FlakyReader(index, **kwargs)

    return _make
