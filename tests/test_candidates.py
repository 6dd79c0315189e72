import pytest

from photo_pairing.config import PairingConfig
from photo_pairing.models import FeatureRow
from photo_pairing.schema import BrandFlag, PackagingHint, Role
from photo_pairing.steps.candidates import (
    HeuristicCandidateScorer,
    candidate_scores_for_front,
    proximity,
    ranking_key,
)


def _row(url: str, role: Role, **kwargs) -> FeatureRow:
    return FeatureRow(url=url, role=role, **kwargs)


def _product(url: str, role: Role, **overrides) -> FeatureRow:
    attrs = {
        "brand_norm": "brand",
        "product_tokens": frozenset({"test", "product"}),
        "size_canonical": "100ml",
        "packaging_hint": PackagingHint.BOTTLE,
        "category_path": "Health",
        "category_tail": "Health",
        "color_key": "blue",
    }
    attrs.update(overrides)
    return _row(url, role, **attrs)


def test_only_front_back_pairs_are_scored() -> None:
    features = [
        _product("front1.jpg", Role.FRONT),
        _product("back1.jpg", Role.BACK),
        _product("other.jpg", Role.OTHER),
    ]

    candidates = HeuristicCandidateScorer().build(features)

    assert list(candidates) == ["front1.jpg"]
    assert [c.back_url for c in candidates["front1.jpg"]] == ["back1.jpg"]
    # brand 3 + product 2 + size 1 + bottle 1 + tail 1 + colour 1.5
    assert candidates["front1.jpg"][0].pre_score == pytest.approx(9.5)


def test_brand_match_adds_three() -> None:
    common = {"packaging_hint": PackagingHint.OTHER, "size_canonical": None}
    features = [
        _product("front.jpg", Role.FRONT, brand_norm="testbrand", **common),
        _product("back1.jpg", Role.BACK, brand_norm="testbrand", **common),
        _product("back2.jpg", Role.BACK, brand_norm="otherbrand", **common),
    ]

    by_back = {c.back_url: c for c in HeuristicCandidateScorer().build(features)["front.jpg"]}

    assert by_back["back1.jpg"].pre_score - by_back["back2.jpg"].pre_score == pytest.approx(3.0)
    assert by_back["back1.jpg"].brand_flag == BrandFlag.EQUAL
    assert by_back["back2.jpg"].brand_flag == BrandFlag.MISMATCH


def test_unknown_brand_rescue() -> None:
    front = _row(
        "f.jpg", Role.FRONT, packaging_hint=PackagingHint.POUCH, category_path="Unknown", category_tail="Unknown"
    )
    back = _row(
        "b.jpg",
        Role.BACK,
        brand_norm="acmeco",
        packaging_hint=PackagingHint.POUCH,
        category_path="Unknown",
        category_tail="Unknown",
    )

    candidate = HeuristicCandidateScorer().score_pair(front, back)

    assert candidate.brand_flag == BrandFlag.UNKNOWN_RESCUE
    # pouch 1.5 + tail 1 + rescue 1.0
    assert candidate.pre_score == pytest.approx(3.5)


def test_unknown_brand_without_packaging_is_flagged_unknown() -> None:
    front = _row("f.jpg", Role.FRONT)
    back = _row("b.jpg", Role.BACK, brand_norm="acmeco")

    candidate = HeuristicCandidateScorer().score_pair(front, back)

    assert candidate.brand_flag == BrandFlag.UNKNOWN
    assert candidate.pre_score == 0.0


def test_distributor_rescue_recovers_contract_manufacturer_backs() -> None:
    front = _product("f.jpg", Role.FRONT, brand_norm="rkmd")
    rescued = _product("b.jpg", Role.BACK, brand_norm="vitaminne")
    unrescued = _product("c.jpg", Role.BACK, brand_norm="vitaminne", packaging_hint=PackagingHint.JAR)
    scorer = HeuristicCandidateScorer()

    candidate = scorer.score_pair(front, rescued)

    assert candidate.brand_flag == BrandFlag.DISTRIBUTOR_RESCUE
    # product 2 + size 1 + bottle 1 + tail 1 + rescue 1.5 + colour 1.5
    assert candidate.pre_score == pytest.approx(8.0)
    assert scorer.score_pair(front, unrescued).brand_flag == BrandFlag.MISMATCH


def test_packaging_boost_is_configurable() -> None:
    config = PairingConfig(min_pre_score=0.0)
    front = _row("f.jpg", Role.FRONT, packaging_hint=PackagingHint.DROPPER_BOTTLE, brand_norm="x")
    back = _row("b.jpg", Role.BACK, packaging_hint=PackagingHint.DROPPER_BOTTLE, brand_norm="y")

    candidate = HeuristicCandidateScorer(config).score_pair(front, back)

    assert candidate.pkg_match
    assert candidate.packaging_boost == config.pkg_boost.dropper == 2.0


def test_role_penalty_relaxed_by_strong_evidence() -> None:
    scorer = HeuristicCandidateScorer()
    front = _product("f.jpg", Role.FRONT)
    as_back = _product("b.jpg", Role.BACK)
    as_other = _product("b.jpg", Role.OTHER)
    weak_back = _product("b.jpg", Role.BACK, color_key="red")
    weak_other = _product("b.jpg", Role.OTHER, color_key="red")

    strong_drop = scorer.score_pair(front, as_back).pre_score - scorer.score_pair(front, as_other).pre_score
    weak_drop = scorer.score_pair(front, weak_back).pre_score - scorer.score_pair(front, weak_other).pre_score

    assert strong_drop == pytest.approx(0.5)
    assert weak_drop == pytest.approx(2.0)


def test_category_conflict_penalty() -> None:
    scorer = HeuristicCandidateScorer()
    front = _product("f.jpg", Role.FRONT, category_path="Hair Care", category_tail="")
    same = _product("b.jpg", Role.BACK, category_path="Hair Care", category_tail="")
    conflicting = _product("b.jpg", Role.BACK, category_path="Vitamins", category_tail="")

    drop = scorer.score_pair(front, same).pre_score - scorer.score_pair(front, conflicting).pre_score

    assert drop == pytest.approx(2.0)


def test_cosmetic_back_cue_adds_half_point() -> None:
    scorer = HeuristicCandidateScorer()
    front = _product("f.jpg", Role.FRONT)
    plain = _product("b.jpg", Role.BACK)
    inci = _product("b.jpg", Role.BACK, text_extracted="Ingredients: aqua, glycerin")

    cued = scorer.score_pair(front, inci)

    assert cued.cosmetic_back_cue
    assert cued.pre_score - scorer.score_pair(front, plain).pre_score == pytest.approx(0.5)


def test_barcode_boost_requires_unique_front_signature() -> None:
    back = _product("b.jpg", Role.BACK, text_extracted="UPC 012345678905")
    unique = HeuristicCandidateScorer().build([_product("f1.jpg", Role.FRONT), back])
    shared = HeuristicCandidateScorer().build(
        [_product("f1.jpg", Role.FRONT), _product("f2.jpg", Role.FRONT), back]
    )

    assert unique["f1.jpg"][0].barcode_boost == 0.5
    assert shared["f1.jpg"][0].barcode_boost == 0.0
    assert shared["f2.jpg"][0].barcode_boost == 0.0


def test_proximity_by_folder_or_filename() -> None:
    assert proximity(_row("shoot/a.jpg", Role.FRONT), _row("shoot/zz.png", Role.BACK)) == 0.5
    assert proximity(_row("x/IMG_1001.jpg", Role.FRONT), _row("y/IMG_1002.JPG", Role.BACK)) == 0.5
    assert proximity(_row("x/a1.jpg", Role.FRONT), _row("y/a2.jpg", Role.BACK)) == 0.0
    assert proximity(_row("x/IMG_1001.jpg", Role.FRONT), _row("y/DSC_5555.jpg", Role.BACK)) == 0.0


def test_top_k_is_truncated_and_ranked() -> None:
    front = _product("front.jpg", Role.FRONT)
    backs = [
        _product("back_a.jpg", Role.BACK),
        _product("back_b.jpg", Role.BACK, color_key="red"),
        _product("back_c.jpg", Role.BACK, size_canonical="50ml"),
        _product("back_d.jpg", Role.BACK, brand_norm="other"),
        _product("back_e.jpg", Role.BACK, product_tokens=frozenset({"test"})),
        _product("back_f.jpg", Role.BACK, category_tail="Garden"),
    ]

    candidates = HeuristicCandidateScorer(PairingConfig(top_k=4)).build([front, *backs])["front.jpg"]

    assert len(candidates) == 4
    assert candidates == sorted(candidates, key=ranking_key)
    assert [c.pre_score for c in candidates] == sorted((c.pre_score for c in candidates), reverse=True)
    assert candidates[0].back_url == "back_a.jpg"


def test_ties_break_on_product_jaccard_then_brand() -> None:
    front = _row(
        "front.jpg",
        Role.FRONT,
        brand_norm="alpha",
        product_tokens=frozenset({"a", "b"}),
        size_canonical="100ml",
        color_key="blue",
    )
    half_overlap = _row("a_back.jpg", Role.BACK, brand_norm="alpha", product_tokens=frozenset({"a", "b", "c", "d"}))
    full_overlap = _row("b_back.jpg", Role.BACK, brand_norm="alpha", product_tokens=frozenset({"a", "b"}))
    brand_only = _row("z_back.jpg", Role.BACK, brand_norm="alpha", product_tokens=frozenset({"x"}))
    colour_size_cue = _row(
        "c_back.jpg",
        Role.BACK,
        brand_norm="beta",
        product_tokens=frozenset({"x"}),
        size_canonical="100ml",
        color_key="blue",
        text_extracted="ingredients: aqua",
    )

    ranked = HeuristicCandidateScorer(PairingConfig(min_pre_score=0.0)).build(
        [front, half_overlap, full_overlap, brand_only, colour_size_cue]
    )["front.jpg"]

    assert [c.back_url for c in ranked] == ["b_back.jpg", "a_back.jpg", "z_back.jpg", "c_back.jpg"]
    assert ranked[0].pre_score == ranked[1].pre_score == 5.0
    assert ranked[2].pre_score == ranked[3].pre_score == 3.0


def test_scoring_is_deterministic() -> None:
    features = [
        _product("f1.jpg", Role.FRONT),
        _product("f2.jpg", Role.FRONT, brand_norm="other"),
        _product("b1.jpg", Role.BACK),
        _product("b2.jpg", Role.BACK, color_key="dark-blue"),
        _product("b3.jpg", Role.BACK, brand_norm="other"),
    ]
    scorer = HeuristicCandidateScorer()

    assert scorer.build(features) == scorer.build(list(features))


def test_front_without_qualifying_backs_is_absent() -> None:
    features = [
        _row("lonely.jpg", Role.FRONT, brand_norm="alpha"),
        _row("unrelated.jpg", Role.BACK, brand_norm="beta"),
    ]

    assert HeuristicCandidateScorer().build(features) == {}
    scores = candidate_scores_for_front(features, "lonely.jpg")
    assert [s.back_url for s in scores] == ["unrelated.jpg"]
    assert candidate_scores_for_front(features, "unrelated.jpg") == []
