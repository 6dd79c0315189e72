import math

from photo_pairing.config import PairingConfig
from photo_pairing.models import CandidateScore, FeatureRow
from photo_pairing.schema import BrandFlag, PackagingHint, PairSource, Role
from photo_pairing.steps.autopair import (
    AutoPairPolicy,
    score_gap,
    should_auto_pair,
    should_auto_pair_hair_cosmetic,
)

CONFIG = PairingConfig()


def _candidate(back_url: str, pre_score: float, **overrides) -> CandidateScore:
    attrs = {
        "back_url": back_url,
        "pre_score": pre_score,
        "prod_jac": 0.0,
        "var_jac": 0.0,
        "size_eq": False,
        "packaging": PackagingHint.DROPPER_BOTTLE,
        "packaging_boost": 2.0,
        "cat_tail_overlap": False,
        "cosmetic_back_cue": True,
        "brand_flag": BrandFlag.EQUAL,
        "proximity_boost": 0.0,
        "barcode_boost": 0.0,
        "brand_match": True,
        "pkg_match": True,
        "color_match": False,
    }
    attrs.update(overrides)
    return CandidateScore(**attrs)


def test_gap_without_runner_up_is_infinite() -> None:
    assert score_gap(_candidate("b", 3.0), None) == math.inf
    assert score_gap(_candidate("b", 3.0), _candidate("c", 2.5)) == 0.5


def test_general_rule_needs_score_and_gap() -> None:
    assert should_auto_pair(_candidate("b", 3.0), None, CONFIG)
    assert should_auto_pair(_candidate("b", 4.0), _candidate("c", 3.0), CONFIG)
    assert not should_auto_pair(_candidate("b", 4.0), _candidate("c", 3.5), CONFIG)
    assert not should_auto_pair(_candidate("b", 2.9), None, CONFIG)


def test_hair_rule_accepts_narrow_gap() -> None:
    top = _candidate("b", 2.2)

    assert should_auto_pair_hair_cosmetic(top, _candidate("c", 1.45), CONFIG)
    assert not should_auto_pair_hair_cosmetic(top, _candidate("c", 1.7), CONFIG)


def test_hair_rule_requires_agreeing_brand() -> None:
    second = _candidate("c", 1.0)

    for flag in (BrandFlag.MISMATCH, BrandFlag.DISTRIBUTOR_RESCUE, BrandFlag.UNKNOWN):
        assert not should_auto_pair_hair_cosmetic(_candidate("b", 2.5, brand_flag=flag), second, CONFIG)
    assert should_auto_pair_hair_cosmetic(_candidate("b", 2.5, brand_flag=BrandFlag.UNKNOWN_RESCUE), second, CONFIG)


def test_hair_rule_requires_distinctive_packaging_and_cue() -> None:
    second = _candidate("c", 1.0)

    assert not should_auto_pair_hair_cosmetic(
        _candidate("b", 2.5, packaging=PackagingHint.JAR, size_eq=True), second, CONFIG
    )
    assert not should_auto_pair_hair_cosmetic(_candidate("b", 2.5, cosmetic_back_cue=False), second, CONFIG)
    assert should_auto_pair_hair_cosmetic(_candidate("b", 2.5, packaging=PackagingHint.BOTTLE), second, CONFIG)


def test_policy_never_reuses_a_back() -> None:
    candidates = {
        "f1.jpg": [_candidate("shared.jpg", 6.0)],
        "f2.jpg": [_candidate("shared.jpg", 5.0), _candidate("own.jpg", 3.0)],
    }
    features = [
        FeatureRow(url="f1.jpg", role=Role.FRONT),
        FeatureRow(url="f2.jpg", role=Role.FRONT),
    ]

    outcome = AutoPairPolicy(CONFIG).apply(candidates, features)

    assert [(p.front_url, p.back_url) for p in outcome.pairs] == [("f1.jpg", "shared.jpg")]
    assert outcome.pairs[0].source == PairSource.AUTO
    assert outcome.pairs[0].confidence == 0.95
    assert [c.back_url for c in outcome.remaining["f2.jpg"]] == ["own.jpg"]


def test_policy_applies_hair_rule_only_to_cosmetic_fronts() -> None:
    scores = [_candidate("b1.jpg", 2.4), _candidate("b2.jpg", 1.6)]
    hair_front = FeatureRow(url="hair.jpg", role=Role.FRONT, category_path="Health & Beauty > Hair Care > Serums")
    vitamin_front = FeatureRow(url="pill.jpg", role=Role.FRONT, category_path="Health & Beauty > Vitamins")

    hair = AutoPairPolicy(CONFIG).apply({"hair.jpg": scores}, [hair_front])
    vitamin = AutoPairPolicy(CONFIG).apply({"pill.jpg": scores}, [vitamin_front])

    assert len(hair.pairs) == 1
    assert hair.pairs[0].source == PairSource.AUTO_HAIR
    assert hair.pairs[0].confidence == 0.90
    assert "INCI=True" in hair.pairs[0].evidence
    assert hair.remaining == {}
    assert vitamin.pairs == []
    assert [c.back_url for c in vitamin.remaining["pill.jpg"]] == ["b1.jpg", "b2.jpg"]


def test_declined_front_keeps_its_candidates() -> None:
    scores = [_candidate("b1.jpg", 3.5), _candidate("b2.jpg", 3.0)]

    outcome = AutoPairPolicy(CONFIG).apply({"f.jpg": scores}, [FeatureRow(url="f.jpg", role=Role.FRONT)])

    assert outcome.pairs == []
    assert outcome.remaining == {"f.jpg": scores}
