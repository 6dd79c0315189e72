from __future__ import annotations

import zlib
from collections.abc import Sequence
from math import sqrt
from pathlib import Path

from photo_pairing.models import FeatureRow


class HashingTextEmbedder:
    """Hashing embedding over the text a FeatureRow carries, for local testing.

    Replace with an image model adapter (CLIP, Vertex multimodal, etc).
    """

    def __init__(self, dimensions: int = 64) -> None:
        self._dimensions = dimensions

    def embed(self, rows: Sequence[FeatureRow]) -> dict[str, list[float]]:
        vectors: dict[str, list[float]] = {}
        for row in rows:
            vector = [0.0] * self._dimensions
            parts = [
                row.brand_norm,
                " ".join(sorted(row.product_tokens)),
                " ".join(sorted(row.variant_tokens)),
                row.packaging_hint.value,
                row.color_key,
                row.text_extracted,
            ]
            text = " ".join(part.lower() for part in parts if part).strip()
            for token in text.split():
                idx = zlib.crc32(token.encode("utf-8")) % self._dimensions
                vector[idx] += 1.0
            vectors[row.url] = _l2_normalize(vector)
        return vectors


class ClipImageEmbedder:
    """Sentence-Transformers CLIP adapter embedding the image files themselves."""

    def __init__(
        self,
        image_root: Path | None = None,
        model_name: str = "clip-ViT-B-32",
        batch_size: int = 32,
    ) -> None:
        self._image_root = image_root
        self._batch_size = batch_size
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as exc:
            raise ImportError(
                "CLIP backend requires sentence-transformers. "
                "Install with: pip install 'photo-pairing[clip]'"
            ) from exc
        self._model = SentenceTransformer(model_name)

    def embed(self, rows: Sequence[FeatureRow]) -> dict[str, list[float]]:
        from PIL import Image

        images = []
        for row in rows:
            path = Path(row.url) if self._image_root is None else self._image_root / row.url
            with Image.open(path) as handle:
                images.append(handle.convert("RGB"))
        vectors = self._model.encode(
            images,
            batch_size=self._batch_size,
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return {row.url: vector.tolist() for row, vector in zip(rows, vectors)}


def _l2_normalize(vector: Sequence[float]) -> list[float]:
    norm = sqrt(sum(v * v for v in vector))
    if norm == 0:
        return [0.0] * len(vector)
    return [v / norm for v in vector]
