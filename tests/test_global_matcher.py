from photo_pairing.datasets import ReferencePhotoSetGenerator
from photo_pairing.models import FeatureRow
from photo_pairing.schema import Role
from photo_pairing.steps.candidates import HeuristicCandidateScorer
from photo_pairing.steps.global_matcher import is_two_shot_set, pair_score, solve_two_shot


def _two_shot_rows() -> tuple[list[FeatureRow], list[FeatureRow]]:
    fronts = [
        FeatureRow(url="shoot/20251115_1432_f.jpg", role=Role.FRONT, brand_norm="alpha"),
        FeatureRow(url="shoot/20251115_1510_f.jpg", role=Role.FRONT, brand_norm="beta"),
    ]
    backs = [
        FeatureRow(url="shoot/20251115_1510_b.jpg", role=Role.BACK, brand_norm="beta"),
        FeatureRow(url="shoot/20251115_1432_b.jpg", role=Role.BACK, brand_norm="alpha"),
    ]
    return fronts, backs


def test_pair_score_adds_brand_and_burst_bonuses() -> None:
    fronts, backs = _two_shot_rows()

    assert pair_score(fronts[0], backs[1]) == 5.0
    assert pair_score(fronts[0], backs[1], pre_score=3.5) == 8.5
    assert pair_score(fronts[0], backs[0]) == 0.0


def test_two_shot_solver_matches_bursts() -> None:
    fronts, backs = _two_shot_rows()

    committed = solve_two_shot(fronts, backs)

    assert {(match.front.url, match.back.url) for match in committed} == {
        ("shoot/20251115_1432_f.jpg", "shoot/20251115_1432_b.jpg"),
        ("shoot/20251115_1510_f.jpg", "shoot/20251115_1510_b.jpg"),
    }
    assert all(match.score == 5.0 for match in committed)


def test_zero_scores_are_not_committed() -> None:
    fronts = [FeatureRow(url="x/a.jpg", role=Role.FRONT, brand_norm="alpha")]
    backs = [FeatureRow(url="y/b.jpg", role=Role.BACK, brand_norm="beta")]

    assert solve_two_shot(fronts, backs) == []


def test_reference_set_is_solved_one_to_one() -> None:
    photo_set = ReferencePhotoSetGenerator(seed=3).generate(products=12)
    fronts = [row for row in photo_set.features if row.role == Role.FRONT]
    backs = [row for row in photo_set.features if row.role != Role.FRONT]
    candidates = HeuristicCandidateScorer().build(photo_set.features)

    committed = solve_two_shot(fronts, backs, candidates)

    front_urls = [match.front.url for match in committed]
    back_urls = [match.back.url for match in committed]
    assert committed
    assert len(set(front_urls)) == len(front_urls)
    assert len(set(back_urls)) == len(back_urls)
    assert all(match.score > 0 for match in committed)
    assert [match.score for match in committed] == sorted((match.score for match in committed), reverse=True)


def test_two_shot_detection() -> None:
    fronts, backs = _two_shot_rows()
    extra = FeatureRow(url="shoot/extra.jpg", role=Role.OTHER)

    assert is_two_shot_set([*fronts, *backs])
    assert not is_two_shot_set([*fronts, *backs, extra])
    assert not is_two_shot_set(backs)
    assert not is_two_shot_set([])
