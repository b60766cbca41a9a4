"""
Print the highest-weighted terms of an index.

Usage (example):
    uv run python scripts/term_weight_report.py my_index --term-weight logentropy --top-k 25

Opens the index, applies the configured stoplist/startlist and filters to every
term of the contents fields, weights the survivors and prints a table.
"""

from __future__ import annotations

import argparse
import logging

from tqdm import tqdm

from termstats import EngineConfig, Term, TermStatsEngine, TermWeight


def main() -> None:
    parser = argparse.ArgumentParser(description="Term weight report for an index.")
    parser.add_argument("index_path", help="Index directory.")
    parser.add_argument(
        "--contents-fields", default="contents", help="Comma-separated candidate fields (default: contents)."
    )
    parser.add_argument(
        "--term-weight",
        choices=[w.value for w in TermWeight],
        default=TermWeight.IDF.value,
        help="Weighting scheme (default: idf).",
    )
    parser.add_argument("--stoplist", default="", help="Stopword file, one token per line.")
    parser.add_argument("--startlist", default="", help="Startword file, one token per line.")
    parser.add_argument("--min-frequency", type=int, default=0)
    parser.add_argument("--max-non-alphabet-chars", type=int, default=0, help="-1 disables character filtering.")
    parser.add_argument("--filter-numbers", action="store_true")
    parser.add_argument("--top-k", type=int, default=20)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    config = EngineConfig(
        index_path=args.index_path,
        stoplist_file=args.stoplist,
        startlist_file=args.startlist,
        contents_fields=args.contents_fields,
        term_weight=args.term_weight,
        min_frequency=args.min_frequency,
        max_non_alphabet_chars=args.max_non_alphabet_chars,
        filter_numbers=args.filter_numbers,
    )
    engine = TermStatsEngine(config)

    rows = []
    for field in config.contents_fields:
        texts = list(engine.terms_for_field(field))
        for text in tqdm(texts, desc=f"Weighting {field}", unit="term"):
            term = Term(field, text)
            if not engine.term_filter(term):
                continue
            rows.append(
                (
                    engine.global_weight(term),
                    term,
                    engine.global_term_freq(term),
                    engine.doc_freq(term),
                )
            )

    rows.sort(key=lambda row: row[0], reverse=True)
    print(f"\n{engine.num_docs()} documents, {len(rows)} terms passed the filter")
    print(f"{'field':<12} {'term':<24} {'weight':>10} {'freq':>8} {'df':>6}")
    print("-" * 64)
    for weight, term, freq, df in rows[: args.top_k]:
        print(f"{term.field:<12} {term.text:<24} {weight:>10.4f} {freq:>8d} {df:>6d}")


if __name__ == "__main__":
    main()
