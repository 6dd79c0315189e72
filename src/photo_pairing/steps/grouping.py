from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import replace

from photo_pairing.models import FeatureRow, Pair, ProductGroup, Singleton
from photo_pairing.schema import PackagingHint, Role
from photo_pairing.steps.similarity import category_tail_overlap

logger = logging.getLogger(__name__)

_MIN_EXTRA_SCORE = 2
_DATE_PREFIX_LEN = 9
_SLUG = re.compile(r"[^a-z0-9]+")


def group_extras(
    pairs: Sequence[Pair],
    features: Sequence[FeatureRow],
    max_extras: int = 4,
) -> list[ProductGroup]:
    """Turn pairs into products and attach matching "other" shots to them."""
    by_url = {row.url.lower(): row for row in features}
    extras = [row for row in features if row.role == Role.OTHER]
    used = {url for pair in pairs for url in (pair.front_url, pair.back_url)}
    products: list[ProductGroup] = []

    for pair in pairs:
        front = by_url.get(pair.front_url.lower())
        back = by_url.get(pair.back_url.lower())
        if front is None or back is None:
            logger.warning("no features for pair front=%s back=%s", pair.front_url, pair.back_url)
            continue

        matches: list[tuple[int, str, list[str]]] = []
        for extra in extras:
            if extra.url in used:
                continue
            scored = extra_score(front, back, extra)
            if scored is not None:
                matches.append((scored[0], extra.url, scored[1]))
        matches.sort(key=lambda item: (-item[0], item[1]))

        attached = []
        for score, url, reasons in matches[:max_extras]:
            attached.append(url)
            used.add(url)
            logger.debug("extra %s -> front=%s score=%d reason=%s", url, pair.front_url, score, "+".join(reasons))

        brand = front.brand_norm or back.brand_norm
        products.append(
            ProductGroup(
                product_id=_SLUG.sub("_", f"{brand}_{front.stem}".lower()).strip("_"),
                front_url=pair.front_url,
                back_url=pair.back_url,
                extras=attached,
                brand=brand,
                score=pair.score,
                triggers=list(pair.evidence),
            )
        )
    return products


def extra_score(front: FeatureRow, back: FeatureRow, extra: FeatureRow) -> tuple[int, list[str]] | None:
    reasons: list[str] = []
    score = 0

    brand_match = bool(extra.brand_norm) and extra.brand_norm in (front.brand_norm, back.brand_norm)
    brand_unknown = not front.brand_norm or not back.brand_norm or not extra.brand_norm
    if brand_match:
        reasons.append("brandMatch")
        score += 3
    elif not brand_unknown:
        return None

    if any(
        side.packaging_hint != PackagingHint.OTHER and side.packaging_hint == extra.packaging_hint
        for side in (front, back)
    ):
        reasons.append("packagingMatch")
        score += 2

    if any(category_tail_overlap(side.category_tail, extra.category_tail) for side in (front, back)):
        reasons.append("categoryMatch")
        score += 1

    if any(side.folder and side.folder == extra.folder for side in (front, back)):
        reasons.append("sameFolder")
        score += 1

    if score < _MIN_EXTRA_SCORE:
        return None
    return score, reasons


def resolve_singletons(
    singletons: Sequence[Singleton],
    products: Sequence[ProductGroup],
    features: Sequence[FeatureRow],
) -> tuple[list[ProductGroup], list[Singleton]]:
    """Promote unique-brand fronts to solo products, attach the rest as extras where they fit."""
    by_url = {row.url.lower(): row for row in features}
    resolved = [replace(product, extras=list(product.extras)) for product in products]
    remaining: list[Singleton] = []

    for singleton in singletons:
        row = by_url.get(singleton.url.lower())
        if row is None:
            remaining.append(singleton)
            continue
        brand = row.brand_norm.lower()
        known_brands = {product.brand.lower() for product in resolved if product.brand}

        if row.role == Role.FRONT and brand and brand not in known_brands:
            logger.info("solo product for %s (brand=%s)", row.url, row.brand_norm)
            resolved.append(
                ProductGroup(
                    product_id=f"solo:{row.url}",
                    front_url=row.url,
                    back_url="",
                    brand=row.brand_norm,
                    triggers=["solo-product-unique-brand"],
                )
            )
            continue

        target = _best_home(row, resolved)
        if target is not None:
            logger.info("attached %s as extra of %s", row.url, target.product_id)
            target.extras.append(row.url)
            continue
        remaining.append(singleton)

    return resolved, remaining


def _best_home(row: FeatureRow, products: Sequence[ProductGroup]) -> ProductGroup | None:
    brand = row.brand_norm.lower()
    prefix = row.file_name[:_DATE_PREFIX_LEN]
    best: ProductGroup | None = None
    best_score = 0
    for product in products:
        score = 2 if brand and brand == product.brand.lower() else 0
        if prefix and prefix in product.front_url:
            score += 1
        if score > best_score:
            best, best_score = product, score
    return best if best_score >= _MIN_EXTRA_SCORE else None
