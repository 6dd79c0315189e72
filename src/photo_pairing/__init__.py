"""Front/back pairing and visual clustering for product photo sets."""

from photo_pairing.config import PairingConfig
from photo_pairing.models import CandidateScore, ClusterGroup, FeatureRow, GlobalPair, Pair, Singleton
from photo_pairing.schema import BrandFlag, PackagingHint, Role

__all__ = [
    "PairingConfig",
    "CandidateScore",
    "ClusterGroup",
    "FeatureRow",
    "GlobalPair",
    "Pair",
    "Singleton",
    "BrandFlag",
    "PackagingHint",
    "Role",
]
