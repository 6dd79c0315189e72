from photo_pairing.steps.autopair import AutoPairPolicy, should_auto_pair, should_auto_pair_hair_cosmetic
from photo_pairing.steps.candidates import HeuristicCandidateScorer, candidate_scores_for_front
from photo_pairing.steps.clustering import VisualClusterer, average_linkage, is_degenerate
from photo_pairing.steps.embedding import ClipImageEmbedder, HashingTextEmbedder
from photo_pairing.steps.global_matcher import is_two_shot_set, solve_two_shot
from photo_pairing.steps.grouping import group_extras, resolve_singletons

__all__ = [
    "AutoPairPolicy",
    "should_auto_pair",
    "should_auto_pair_hair_cosmetic",
    "HeuristicCandidateScorer",
    "candidate_scores_for_front",
    "VisualClusterer",
    "average_linkage",
    "is_degenerate",
    "ClipImageEmbedder",
    "HashingTextEmbedder",
    "is_two_shot_set",
    "solve_two_shot",
    "group_extras",
    "resolve_singletons",
]
