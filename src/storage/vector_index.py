"""
In-process vector index with cosine similarity.

Holds one embedding per item id and answers nearest-neighbour queries.
Vectors are L2-normalized on insert so a query is a single matrix-vector
product. Empty or zero-norm vectors are never stored or queried.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np


@dataclass(frozen=True)
class VectorHit:
    """A nearest-neighbour match."""

    id: str
    similarity: float


def _normalize(vector) -> Optional[np.ndarray]:
    arr = np.asarray(vector, dtype=np.float32)
    if arr.ndim != 1 or arr.size == 0:
        return None
    norm = float(np.linalg.norm(arr))
    if norm == 0.0 or not np.isfinite(norm):
        return None
    return arr / norm


class VectorIndex:
    """Cosine-similarity index over a fixed dimensionality."""

    def __init__(self):
        self._ids: list[str] = []
        self._matrix: Optional[np.ndarray] = None
        self.dimension: Optional[int] = None

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, item_id: str, vector: list[float]) -> bool:
        """
        Add or replace an item's vector.

        Returns:
            False if the vector is empty, zero or of the wrong dimension
        """
        normalized = _normalize(vector)
        if normalized is None:
            return False
        if self.dimension is None:
            self.dimension = normalized.size
        elif normalized.size != self.dimension:
            return False

        if item_id in self._ids:
            self.remove(item_id)

        row = normalized.reshape(1, -1)
        self._matrix = row if self._matrix is None else np.vstack([self._matrix, row])
        self._ids.append(item_id)
        return True

    def remove(self, item_id: str) -> None:
        if item_id not in self._ids:
            return
        position = self._ids.index(item_id)
        self._ids.pop(position)
        self._matrix = np.delete(self._matrix, position, axis=0)
        if not self._ids:
            self._matrix = None

    def nearest(
        self,
        embedding: list[float],
        k: int,
        predicate: Optional[Callable[[str], bool]] = None,
    ) -> list[VectorHit]:
        """
        Return the k most similar items, best first.

        Args:
            embedding: Query vector
            k: Maximum number of hits
            predicate: Optional filter on item ids, applied before ranking

        Returns:
            Hits with similarity = 1 - cosine distance, clamped to [0, 1]
        """
        if self._matrix is None or k <= 0:
            return []
        query = _normalize(embedding)
        if query is None or query.size != self.dimension:
            return []

        scores = self._matrix @ query
        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")

        hits: list[VectorHit] = []
        for position in order:
            item_id = self._ids[int(position)]
            if predicate is not None and not predicate(item_id):
                continue
            similarity = float(np.clip(scores[int(position)], 0.0, 1.0))
            hits.append(VectorHit(id=item_id, similarity=similarity))
            if len(hits) >= k:
                break
        return hits
