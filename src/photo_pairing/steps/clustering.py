from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from photo_pairing.errors import EmbeddingError
from photo_pairing.models import ClusterGroup, FeatureRow
from photo_pairing.steps.similarity import jaccard

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\b\w{3,}\b")
_MIN_TEXT_LEN = 10
_TEXT_SIM_FLOOR = 0.3
_MULTI_COLOR = "multi"


@dataclass(slots=True)
class ClusterOutcome:
    groups: list[ClusterGroup] = field(default_factory=list)
    degenerate: bool = False
    max_off_diagonal: float = 0.0


class VisualClusterer:
    """Average-linkage clustering over image embeddings.

    A candidate joins a cluster only when its mean similarity to every
    current member clears the threshold, so a chain of marginal neighbours
    cannot drag unrelated images together. A saturated similarity matrix
    (broken embedding source) aborts clustering instead of grouping noise.
    """

    def __init__(
        self,
        threshold: float = 0.85,
        degenerate_cutoff: float = 0.98,
        text_weight: float = 0.3,
        color_penalty: float = 0.9,
    ) -> None:
        self._threshold = threshold
        self._degenerate_cutoff = degenerate_cutoff
        self._text_weight = text_weight
        self._color_penalty = color_penalty

    def cluster(
        self,
        embeddings: Mapping[str, Sequence[float]],
        features: Sequence[FeatureRow] | None = None,
    ) -> ClusterOutcome:
        ids = sorted(embeddings)
        if not ids:
            return ClusterOutcome()
        matrix = self.similarity_matrix(ids, [embeddings[image_id] for image_id in ids], features)
        max_off = max_off_diagonal(matrix)
        if is_degenerate(matrix, self._degenerate_cutoff):
            logger.warning(
                "degenerate similarity matrix (max off-diagonal %.3f > %.2f) over %d images; skipping clustering",
                max_off, self._degenerate_cutoff, len(ids),
            )
            return ClusterOutcome(degenerate=True, max_off_diagonal=max_off)

        groups = average_linkage(ids, matrix, self._threshold)
        logger.info("visual clustering built %d groups from %d images", len(groups), len(ids))
        return ClusterOutcome(groups=groups, max_off_diagonal=max_off)

    def similarity_matrix(
        self,
        ids: Sequence[str],
        vectors: Sequence[Sequence[float]],
        features: Sequence[FeatureRow] | None = None,
    ) -> np.ndarray:
        matrix = cosine_matrix(vectors)
        if features:
            by_url = {row.url: row for row in features}
            rows = [by_url.get(image_id) for image_id in ids]
            self._apply_multimodal(matrix, rows)
        return matrix

    def _apply_multimodal(self, matrix: np.ndarray, rows: Sequence[FeatureRow | None]) -> None:
        keywords = [_keywords(row.text_extracted) if row else None for row in rows]
        n = len(rows)
        for i in range(n):
            for j in range(i + 1, n):
                left, right = rows[i], rows[j]
                if left is None or right is None:
                    continue
                sim = float(matrix[i, j])
                if keywords[i] is not None and keywords[j] is not None:
                    text_sim = jaccard(keywords[i], keywords[j])
                    if text_sim > _TEXT_SIM_FLOOR:
                        sim = sim * (1 - self._text_weight) + text_sim * self._text_weight
                if _colors_conflict(left.color_key, right.color_key):
                    sim *= self._color_penalty
                matrix[i, j] = matrix[j, i] = sim


def cosine_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    if not vectors:
        return np.zeros((0, 0))
    lengths = {len(vector) for vector in vectors}
    if len(lengths) != 1:
        raise EmbeddingError(f"embedding vectors have mismatched lengths: {sorted(lengths)}")
    data = np.asarray(vectors, dtype=np.float64)
    if not np.all(np.isfinite(data)):
        raise EmbeddingError("embedding vectors contain non-finite values")
    norms = np.linalg.norm(data, axis=1, keepdims=True)
    normalized = np.divide(data, norms, out=np.zeros_like(data), where=norms > 0)
    matrix = normalized @ normalized.T
    np.fill_diagonal(matrix, 1.0)
    return matrix


def max_off_diagonal(matrix: np.ndarray) -> float:
    n = matrix.shape[0]
    if n < 2:
        return 0.0
    off = matrix[~np.eye(n, dtype=bool)]
    return float(off.max())


def is_degenerate(matrix: np.ndarray, cutoff: float = 0.98) -> bool:
    """True when some off-diagonal similarity is implausibly close to 1."""
    return matrix.shape[0] >= 2 and max_off_diagonal(matrix) > cutoff


def average_linkage(ids: Sequence[str], matrix: np.ndarray, threshold: float) -> list[ClusterGroup]:
    assigned: set[int] = set()
    groups: list[ClusterGroup] = []
    for i in range(len(ids)):
        if i in assigned:
            continue
        members = [i]
        assigned.add(i)
        for j in range(i + 1, len(ids)):
            if j in assigned:
                continue
            mean_sim = float(np.mean(matrix[members, j]))
            if mean_sim >= threshold:
                members.append(j)
                assigned.add(j)
        groups.append(_group([ids[k] for k in members], matrix, members))
    return groups


def _group(image_ids: list[str], matrix: np.ndarray, members: list[int]) -> ClusterGroup:
    digest = hashlib.sha256("|".join(image_ids).encode("utf-8")).hexdigest()[:10]
    if len(members) < 2:
        confidence = 1.0
    else:
        block = matrix[np.ix_(members, members)]
        n = len(members)
        confidence = float((block.sum() - np.trace(block)) / (n * (n - 1)))
    return ClusterGroup(cluster_id=f"clip_{digest}", image_ids=image_ids, confidence=confidence)


def _keywords(text: str) -> set[str] | None:
    if not text or len(text) <= _MIN_TEXT_LEN:
        return None
    return set(_WORD.findall(text.lower()))


def _colors_conflict(left: str, right: str) -> bool:
    if not left or not right or _MULTI_COLOR in (left, right):
        return False
    return left != right
