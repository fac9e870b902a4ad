"""WordVectors -- word2vec text-format lookup table for name tokens.

Lazy-loads the table on the first embed() call. A token that is not in
the table embeds to an empty list; callers treat that as "unsupported".

File format (the plain-text word2vec layout)::

    3 4                      <- optional header: word count, dimension
    anna 0.1 0.2 0.3 0.4
    nowak 0.3 0.1 0.0 0.9
    ...
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _load_table(path: Path, *, lowercase: bool) -> tuple[dict[str, list[float]], int]:
    """Parse a word-vector file into ``({token: vector}, dimension)``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If rows disagree on dimension or hold non-numeric values.
    """
    table: dict[str, list[float]] = {}
    dim = 0
    with path.open(encoding="utf-8") as fh:
        for lineno, raw in enumerate(fh, start=1):
            parts = raw.split()
            if not parts:
                continue
            if lineno == 1 and len(parts) == 2 and all(p.isdigit() for p in parts):
                dim = int(parts[1])
                continue
            token, values = parts[0], parts[1:]
            try:
                vec = [float(v) for v in values]
            except ValueError as exc:
                msg = f"{path}:{lineno}: non-numeric vector component"
                raise ValueError(msg) from exc
            if dim == 0:
                dim = len(vec)
            if len(vec) != dim or dim == 0:
                msg = f"{path}:{lineno}: expected {dim} components, got {len(vec)}"
                raise ValueError(msg)
            table.setdefault(token.lower() if lowercase else token, vec)
    logger.debug("Loaded %d word vectors (dim=%d) from %s", len(table), dim, path)
    return table, dim


class WordVectors:
    """Deterministic token -> vector lookup backed by a word-vector file.

    The table is loaded lazily on the first ``embed()`` call and is
    immutable afterwards, so one instance can serve concurrent requests.
    """

    def __init__(self, path: Path | None, *, lowercase: bool = True) -> None:
        self._path = path
        self._lowercase = lowercase
        self._table: dict[str, list[float]] | None = None
        self._dim = 0

    def _ensure_table(self) -> dict[str, list[float]]:
        if self._table is None:
            if self._path is None:
                msg = "No word-vector file configured ([search] vectors_path)"
                raise FileNotFoundError(msg)
            self._table, self._dim = _load_table(self._path, lowercase=self._lowercase)
        return self._table

    @property
    def dim(self) -> int:
        """Vector dimension (loads the table)."""
        self._ensure_table()
        return self._dim

    def embed(self, token: str) -> list[float]:
        """Embed a single token; empty list if it is out of vocabulary."""
        key = token.strip()
        if self._lowercase:
            key = key.lower()
        if not key:
            return []
        vec = self._ensure_table().get(key)
        return list(vec) if vec is not None else []

    def is_available(self) -> bool:
        """Check if a word-vector file is configured and present."""
        return self._path is not None and self._path.is_file()
