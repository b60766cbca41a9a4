import logging
import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from termstats.index import InvertedIndex
from termstats.statistics import ShardedCache, Term, TermStatistics
from termstats.weighting import TermWeight

X = Term("body", "x")


def test_scenario_ten_documents(index):
    stats = TermStatistics(index, contents_fields=["body"])
    assert stats.num_docs() == 10
    assert stats.global_term_freq(X) == 4
    assert stats.doc_freq(X) == 2
    assert stats.idf(X) == pytest.approx(math.log10(10 / 2))
    assert stats.idf(X) == pytest.approx(0.69897, abs=1e-5)
    assert stats.global_weight(X, TermWeight.SQRT) == 2.0


def test_same_text_in_different_fields_is_distinct(index):
    stats = TermStatistics(index)
    assert stats.global_term_freq(Term("body", "x")) == 4
    assert stats.global_term_freq(Term("title", "x")) == 1


def test_statistics_are_memoized(flaky_reader):
    reader = flaky_reader()
    stats = TermStatistics(reader)

    first = (stats.global_term_freq(X), stats.idf(X), stats.entropy(X))
    calls_after_first = dict(reader.calls)
    second = (stats.global_term_freq(X), stats.idf(X), stats.entropy(X))

    assert first == second
    assert reader.calls == calls_after_first
    assert stats.cache_sizes() == {"term_freq": 1, "idf": 1, "entropy": 1}


def test_doc_freq_is_not_cached(flaky_reader):
    reader = flaky_reader()
    stats = TermStatistics(reader)
    stats.doc_freq(X)
    stats.doc_freq(X)
    assert reader.calls["doc_freq"] == 2


def test_idf_of_absent_term_is_zero(index):
    stats = TermStatistics(index)
    assert stats.idf(Term("body", "missing")) == 0.0


def test_entropy_concentrated_versus_uniform(index):
    stats = TermStatistics(index)
    concentrated = stats.entropy(Term("body", "solo"))
    uniform = stats.entropy(Term("body", "common"))
    assert concentrated == pytest.approx(1.0)
    assert uniform == pytest.approx(0.0, abs=1e-12)
    assert uniform < stats.entropy(X) < concentrated


def test_entropy_single_document_corpus():
    index = InvertedIndex.from_documents([{"contents": ["a", "a", "b"]}])
    assert TermStatistics(index).entropy(Term("contents", "a")) == 1.0


def test_sentinel_frequency_normalized_to_zero(caplog):
    index = InvertedIndex.from_documents([{"tags": ["a"]}, {"tags": ["b"]}], omit_frequencies=["tags"])
    stats = TermStatistics(index)
    with caplog.at_level(logging.WARNING, logger="termstats.statistics"):
        assert stats.global_term_freq(Term("tags", "a")) == 0
    assert "Changing to 0" in caplog.text
    assert stats.global_term_freq(Term("tags", "a")) == 0
    assert stats.entropy(Term("tags", "a")) == 1.0


class TestIndexFailures:
    def test_term_freq_falls_back_to_one(self, flaky_reader, caplog):
        stats = TermStatistics(flaky_reader(fail={"total_term_freq"}))
        with caplog.at_level(logging.INFO, logger="termstats.statistics"):
            assert stats.global_term_freq(X) == 1
        assert "Couldn't get term frequency" in caplog.text
        assert stats.cache_sizes()["term_freq"] == 0

    def test_doc_freq_falls_back_to_one(self, flaky_reader):
        stats = TermStatistics(flaky_reader(fail={"doc_freq"}))
        assert stats.doc_freq(X) == 1

    def test_idf_falls_back_to_one_and_recovers(self, flaky_reader):
        reader = flaky_reader(fail={"doc_freq"})
        stats = TermStatistics(reader)
        assert stats.idf(X) == 1.0
        reader.fail.clear()
        assert stats.idf(X) == pytest.approx(math.log10(5))

    def test_entropy_uses_partial_postings(self, flaky_reader):
        stats = TermStatistics(flaky_reader(fail_postings_after=1))
        # only doc 0 (3 of 4 occurrences) was read
        expected = 1 + 0.75 * math.log2(0.75) / math.log2(10)
        assert stats.entropy(X) == pytest.approx(expected)

    def test_entropy_from_fallback_frequency_is_not_cached(self, flaky_reader):
        reader = flaky_reader(fail={"total_term_freq"})
        stats = TermStatistics(reader)
        stats.entropy(X)
        assert stats.cache_sizes()["entropy"] == 0
        reader.fail.clear()
        expected = 1 + (0.75 * math.log2(0.75) + 0.25 * math.log2(0.25)) / math.log2(10)
        assert stats.entropy(X) == pytest.approx(expected)
        assert stats.cache_sizes()["entropy"] == 1

    def test_entropy_with_no_postings_read(self, flaky_reader):
        stats = TermStatistics(flaky_reader(fail={"postings"}))
        assert stats.entropy(X) == 1.0


class TestWeights:
    @pytest.mark.parametrize(
        "scheme, expected",
        [
            (TermWeight.NONE, 1.0),
            (TermWeight.FREQ, 4.0),
            (TermWeight.SQRT, 2.0),
            (TermWeight.LOGFREQ, math.log(4)),
            (TermWeight.IDF, math.log10(5)),
            ("logentropy", 1 + (0.75 * math.log2(0.75) + 0.25 * math.log2(0.25)) / math.log2(10)),
        ],
    )
    def test_global_weight(self, index, scheme, expected):
        stats = TermStatistics(index, term_weight=scheme)
        assert stats.global_weight(X) == pytest.approx(expected)

    def test_scheme_argument_overrides_default(self, index):
        stats = TermStatistics(index, term_weight=TermWeight.NONE)
        assert stats.global_weight(X) == 1.0
        assert stats.global_weight(X, TermWeight.FREQ) == 4.0

    def test_log_frequency_of_unseen_term(self, index):
        stats = TermStatistics(index, term_weight=TermWeight.LOGFREQ)
        assert stats.global_weight(Term("body", "missing")) == -math.inf

    def test_unrecognized_scheme_returns_one(self, index, caplog):
        stats = TermStatistics(index, term_weight="bm25")
        with caplog.at_level(logging.ERROR, logger="termstats.statistics"):
            assert stats.global_weight(X) == 1.0
            assert stats.local_weight(3) == 1.0
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 2
        assert "Unrecognized termweight option: bm25" in errors[0].getMessage()

    @pytest.mark.parametrize(
        "scheme, expected",
        [
            (TermWeight.NONE, 1.0),
            (TermWeight.IDF, 3.0),
            (TermWeight.LOGENTROPY, math.log10(4)),
            (TermWeight.SQRT, math.sqrt(3)),
            (TermWeight.FREQ, 1.0),
        ],
    )
    def test_local_weight(self, index, scheme, expected):
        stats = TermStatistics(index, term_weight=scheme)
        assert stats.local_weight(3) == pytest.approx(expected)

    def test_global_weight_from_text_sums_fields(self, index):
        stats = TermStatistics(index, contents_fields=["body", "title"], term_weight=TermWeight.SQRT)
        assert stats.global_weight_from_text("x") == pytest.approx(3.0)
        assert stats.global_weight_from_text("missing") == 0.0


def test_sharded_cache():
    cache = ShardedCache(num_shards=4)
    assert cache.get(X) is None
    cache.put(X, 7)
    assert cache.get(X) == 7
    assert X in cache
    assert len(cache) == 1
    with pytest.raises(ValueError):
        ShardedCache(num_shards=0)


def test_concurrent_readers_agree(index):
    stats = TermStatistics(index, term_weight=TermWeight.LOGENTROPY, num_shards=2)
    terms = [Term("body", text) for text in index.terms("body")] * 50

    with ThreadPoolExecutor(max_workers=8) as executor:
        weights = list(executor.map(stats.global_weight, terms))

    expected = {term: TermStatistics(index).entropy(term) for term in set(terms)}
    assert all(weight == pytest.approx(expected[term]) for term, weight in zip(terms, weights))
    assert stats.cache_sizes()["entropy"] == len(expected)
