"""Incremental full-text index over command labels (SQLite FTS5, in-memory)."""

from __future__ import annotations

import re
import sqlite3

LABEL_BOOST = 2.0
_TOKEN_RE = re.compile(r"\w+")


def build_match_query(text: str) -> str:
    """Turn free text into an FTS5 query: any token, each prefix-expanded."""
    tokens = _TOKEN_RE.findall(text.lower())
    return " OR ".join(f'"{token}"*' for token in tokens)


class SearchIndex:
    """Append-only inverted index of (ref, label) documents ranked by BM25."""

    def __init__(self, name: str = "global"):
        self.name = name
        self._conn = sqlite3.connect(":memory:", check_same_thread=False)
        self._conn.execute(
            "CREATE VIRTUAL TABLE docs USING fts5(ref UNINDEXED, label, tokenize='unicode61')"
        )
        self._size = 0

    def add(self, ref: str, label: str) -> None:
        self._conn.execute("INSERT INTO docs (ref, label) VALUES (?, ?)", (ref, label))
        self._conn.commit()
        self._size += 1

    def search(self, text: str) -> list[str]:
        """Return matching refs, best first."""
        match = build_match_query(text)
        if not match:
            return []
        rows = self._conn.execute(
            f"SELECT ref FROM docs WHERE docs MATCH ? ORDER BY bm25(docs, 0.0, {LABEL_BOOST}), rowid",
            (match,),
        ).fetchall()
        return [row[0] for row in rows]

    def __len__(self) -> int:
        return self._size

    def close(self) -> None:
        self._conn.close()
