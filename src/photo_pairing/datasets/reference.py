from __future__ import annotations

import random
from dataclasses import dataclass, field

from photo_pairing.datasets.profiles import DISTRIBUTORS, PRODUCT_PROFILES, VARIANTS
from photo_pairing.models import FeatureRow, category_tail_of
from photo_pairing.schema import Role


@dataclass(slots=True)
class ReferencePhotoSet:
    features: list[FeatureRow]
    truth: dict[str, str] = field(default_factory=dict)
    extras: dict[str, str] = field(default_factory=dict)


class ReferencePhotoSetGenerator:
    """Generate synthetic front/back photo sets (with realistic noise) for tests and benchmarks."""

    def __init__(self, seed: int = 7) -> None:
        self._rng = random.Random(seed)

    def generate(
        self,
        products: int,
        extras_rate: float = 0.0,
        brand_noise: float = 0.15,
    ) -> ReferencePhotoSet:
        photo_set = ReferencePhotoSet(features=[])
        if products <= 0:
            return photo_set

        for i in range(products):
            profile = self._rng.choice(PRODUCT_PROFILES)
            folder = f"batch{i // 6:02d}"
            burst = f"202511{10 + i % 18:02d}_{9 + i % 10:02d}{(i * 7) % 60:02d}"
            sku = f"{self._rng.randrange(10**5, 10**6)}"
            variant = self._rng.choice(VARIANTS)
            size = self._rng.choice(profile["sizes"])
            color = self._rng.choice(profile["colors"])

            front = FeatureRow(
                url=f"{folder}/{burst}_{i:03d}a.jpg",
                role=Role.FRONT,
                brand_norm=profile["brand"],
                product_tokens=frozenset(profile["products"]),
                variant_tokens=frozenset({variant}),
                size_canonical=size,
                packaging_hint=profile["packaging"],
                category_path=profile["category"],
                category_tail=category_tail_of(profile["category"]),
                color_key=color,
                text_extracted=f"{profile['brand']} {' '.join(profile['products'])} {variant} {size}",
            )
            back = FeatureRow(
                url=f"{folder}/{burst}_{i:03d}b.jpg",
                role=Role.BACK,
                brand_norm=self._back_brand(profile["brand"], brand_noise),
                product_tokens=self._back_tokens(profile["products"]),
                variant_tokens=frozenset({variant}) if self._rng.random() < 0.7 else frozenset(),
                size_canonical=size if self._rng.random() < 0.8 else None,
                packaging_hint=profile["packaging"],
                category_path=profile["category"],
                category_tail=category_tail_of(profile["category"]),
                color_key=self._shade_of(color),
                text_extracted=profile["back_text"].format(sku=sku),
            )
            photo_set.features.extend([front, back])
            photo_set.truth[front.url] = back.url

            if self._rng.random() < extras_rate:
                extra = FeatureRow(
                    url=f"{folder}/{burst}_{i:03d}c.jpg",
                    role=Role.OTHER,
                    brand_norm=profile["brand"],
                    packaging_hint=profile["packaging"],
                    category_path=profile["category"],
                    category_tail=category_tail_of(profile["category"]),
                    color_key=color,
                )
                photo_set.features.append(extra)
                photo_set.extras[extra.url] = front.url

        return photo_set

    def _back_brand(self, brand: str, noise: float) -> str:
        roll = self._rng.random()
        if roll < noise / 2:
            return ""
        if roll < noise and brand in DISTRIBUTORS:
            return DISTRIBUTORS[brand]
        return brand

    def _back_tokens(self, tokens: list[str]) -> frozenset[str]:
        kept = list(tokens)
        if len(kept) > 2 and self._rng.random() < 0.3:
            kept.pop(self._rng.randrange(len(kept)))
        return frozenset(kept)

    def _shade_of(self, color: str) -> str:
        base = color.split("-", 1)[-1]
        if self._rng.random() < 0.25:
            return f"{self._rng.choice(['light', 'dark'])}-{base}"
        return color
