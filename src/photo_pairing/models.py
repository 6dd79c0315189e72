from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from photo_pairing.errors import FeatureRowError
from photo_pairing.schema import BrandFlag, PackagingHint, PairSource, Role

_IMAGE_EXT = re.compile(r"\.(jpe?g|png|webp|gif)$", re.IGNORECASE)

# JSON field name -> dataclass attribute for camelCase input records.
_CAMEL_KEYS = {
    "brandNorm": "brand_norm",
    "productTokens": "product_tokens",
    "variantTokens": "variant_tokens",
    "sizeCanonical": "size_canonical",
    "packagingHint": "packaging_hint",
    "categoryPath": "category_path",
    "categoryTail": "category_tail",
    "colorKey": "color_key",
    "textExtracted": "text_extracted",
}


@dataclass(frozen=True, slots=True)
class FeatureRow:
    """Normalized per-image record produced upstream by OCR and classification."""

    url: str
    role: Role
    brand_norm: str = ""
    product_tokens: frozenset[str] = frozenset()
    variant_tokens: frozenset[str] = frozenset()
    size_canonical: str | None = None
    packaging_hint: PackagingHint = PackagingHint.OTHER
    category_path: str | None = None
    category_tail: str = ""
    color_key: str = ""
    text_extracted: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FeatureRow":
        """Validate one JSON feature record.

        Accepts camelCase or snake_case keys. Absent optional fields mean
        "unknown"; a missing url or an unrecognised role is rejected.
        """
        if not isinstance(payload, Mapping):
            raise FeatureRowError(f"feature record must be an object, got {type(payload).__name__}")
        data = {_CAMEL_KEYS.get(key, key): value for key, value in payload.items()}

        url = data.get("url")
        if not isinstance(url, str) or not url.strip():
            raise FeatureRowError("feature record is missing a url")
        url = url.strip()

        raw_role = data.get("role")
        try:
            role = Role(str(raw_role).strip().lower())
        except ValueError:
            raise FeatureRowError(f"{url}: role must be one of front/back/other, got {raw_role!r}") from None

        raw_packaging = data.get("packaging_hint") or PackagingHint.OTHER
        try:
            packaging = PackagingHint(str(raw_packaging).strip().lower())
        except ValueError:
            raise FeatureRowError(f"{url}: unknown packaging hint {raw_packaging!r}") from None

        category_path = _optional_text(data, "category_path", url)
        category_tail = _optional_text(data, "category_tail", url)
        if category_tail is None:
            category_tail = category_tail_of(category_path)

        return cls(
            url=url,
            role=role,
            brand_norm=_optional_text(data, "brand_norm", url) or "",
            product_tokens=_tokens(data, "product_tokens", url),
            variant_tokens=_tokens(data, "variant_tokens", url),
            size_canonical=_optional_text(data, "size_canonical", url) or None,
            packaging_hint=packaging,
            category_path=category_path or None,
            category_tail=category_tail,
            color_key=(_optional_text(data, "color_key", url) or "").lower(),
            text_extracted=_optional_text(data, "text_extracted", url) or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "role": self.role.value,
            "brandNorm": self.brand_norm,
            "productTokens": sorted(self.product_tokens),
            "variantTokens": sorted(self.variant_tokens),
            "sizeCanonical": self.size_canonical,
            "packagingHint": self.packaging_hint.value,
            "categoryPath": self.category_path,
            "categoryTail": self.category_tail,
            "colorKey": self.color_key,
            "textExtracted": self.text_extracted,
        }

    @property
    def folder(self) -> str:
        return self.url.rsplit("/", 1)[0] if "/" in self.url else ""

    @property
    def file_name(self) -> str:
        return self.url.rsplit("/", 1)[-1]

    @property
    def stem(self) -> str:
        return _IMAGE_EXT.sub("", self.file_name)

    @property
    def signature(self) -> tuple[str, tuple[str, ...]]:
        """Brand plus sorted product tokens; identifies a front's product claim."""
        return (self.brand_norm, tuple(sorted(self.product_tokens)))


@dataclass(frozen=True, slots=True)
class CandidateScore:
    """Heuristic score for one front/back pairing."""

    back_url: str
    pre_score: float
    prod_jac: float
    var_jac: float
    size_eq: bool
    packaging: PackagingHint
    packaging_boost: float
    cat_tail_overlap: bool
    cosmetic_back_cue: bool
    brand_flag: BrandFlag
    proximity_boost: float
    barcode_boost: float
    brand_match: bool
    pkg_match: bool
    color_match: bool

    def describe(self) -> str:
        return (
            f"back={self.back_url} preScore={self.pre_score:.2f} prodJac={self.prod_jac:.2f} "
            f"varJac={self.var_jac:.2f} sizeEq={self.size_eq} pkg={self.packaging.value} "
            f"boost={self.packaging_boost:.1f} brand={self.brand_flag.value}"
        )


@dataclass(slots=True)
class Pair:
    """A committed front/back pairing handed to listing assembly."""

    front_url: str
    back_url: str
    score: float
    source: PairSource
    confidence: float = 0.0
    evidence: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class GlobalPair:
    front: FeatureRow
    back: FeatureRow
    score: float


@dataclass(slots=True)
class Singleton:
    """An image that could not be confidently paired, with a classifiable reason."""

    url: str
    reason: str


@dataclass(slots=True)
class ClusterGroup:
    """Images judged visually identical at the clustering threshold."""

    cluster_id: str
    image_ids: list[str]
    confidence: float


@dataclass(slots=True)
class ProductGroup:
    product_id: str
    front_url: str
    back_url: str
    extras: list[str] = field(default_factory=list)
    brand: str = ""
    score: float = 0.0
    triggers: list[str] = field(default_factory=list)


def parse_feature_rows(payloads: Iterable[Mapping[str, Any]]) -> list[FeatureRow]:
    rows: list[FeatureRow] = []
    seen: set[str] = set()
    for payload in payloads:
        row = FeatureRow.from_dict(payload)
        if row.url in seen:
            raise FeatureRowError(f"duplicate feature record for {row.url}")
        seen.add(row.url)
        rows.append(row)
    return rows


def category_tail_of(category_path: str | None) -> str:
    if not category_path:
        return ""
    parts = [part.strip() for part in category_path.split(">")]
    return " > ".join(parts[-2:])


def _optional_text(data: Mapping[str, Any], key: str, url: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise FeatureRowError(f"{url}: {key} must be a string, got {type(value).__name__}")
    return value.strip()


def _tokens(data: Mapping[str, Any], key: str, url: str) -> frozenset[str]:
    value = data.get(key)
    if value is None:
        return frozenset()
    if isinstance(value, str) or not isinstance(value, (Sequence, set, frozenset)):
        raise FeatureRowError(f"{url}: {key} must be a list of strings")
    return frozenset(str(token).strip().lower() for token in value if str(token).strip())
