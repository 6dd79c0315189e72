from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from photo_pairing.config import PairingConfig
from photo_pairing.datasets import ReferencePhotoSetGenerator
from photo_pairing.errors import EmbeddingError, PairingError
from photo_pairing.interfaces import EmbeddingProvider, PairingPipeline
from photo_pairing.metrics import format_metrics_log
from photo_pairing.models import FeatureRow, parse_feature_rows
from photo_pairing.runners import LocalPairingPipeline, PairingResult
from photo_pairing.steps import ClipImageEmbedder, HashingTextEmbedder, VisualClusterer, candidate_scores_for_front

_TWO_SHOT_MODES = {"auto": None, "on": True, "off": False}


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        if args.command == "pair":
            run_pair(
                features_path=args.features,
                embeddings_path=args.embeddings,
                two_shot=_TWO_SHOT_MODES[args.two_shot],
                output_dir=args.output_dir,
                explain=args.explain,
            )
            return
        if args.command == "cluster":
            run_cluster(
                features_path=args.features,
                embeddings_path=args.embeddings,
                embedding_backend=args.embedding_backend,
                image_root=args.image_root,
                threshold=args.threshold,
                output_dir=args.output_dir,
            )
            return
        if args.command == "run-test":
            run_test(
                products=args.products,
                seed=args.seed,
                extras_rate=args.extras_rate,
                brand_noise=args.brand_noise,
                two_shot=_TWO_SHOT_MODES[args.two_shot],
                output_dir=args.output_dir,
            )
            return
    except PairingError as exc:
        parser.exit(2, f"error: {exc}\n")

    parser.print_help()


def run_pair(
    *,
    features_path: Path,
    embeddings_path: Path | None,
    two_shot: bool | None,
    output_dir: Path,
    explain: int,
) -> PairingResult:
    output_dir.mkdir(parents=True, exist_ok=True)
    features = _read_features_json(features_path)
    embeddings = _read_embeddings_json(embeddings_path) if embeddings_path else None
    config = PairingConfig.from_env()

    pipeline: PairingPipeline = LocalPairingPipeline(config=config, two_shot=two_shot)
    result = pipeline.run(features, embeddings=embeddings)
    _write_result(output_dir, result)

    print(f"Pairs: {output_dir / 'pairs.json'}")
    print(f"Products: {output_dir / 'products.json'}")
    print(f"Metrics: {output_dir / 'metrics.json'}")
    print("---")
    print(format_metrics_log(result.metrics))
    if explain > 0:
        print("---")
        for front_url in list(result.candidates)[:explain]:
            print(f"PRE front={front_url}")
            for score in candidate_scores_for_front(features, front_url, config)[:3]:
                print(f" - {score.describe()}")
    return result


def run_cluster(
    *,
    features_path: Path | None,
    embeddings_path: Path | None,
    embedding_backend: str,
    image_root: Path | None,
    threshold: float,
    output_dir: Path,
) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    features = _read_features_json(features_path) if features_path else []

    if embeddings_path is not None:
        embeddings = _read_embeddings_json(embeddings_path)
    else:
        embedder: EmbeddingProvider
        if embedding_backend == "clip":
            embedder = ClipImageEmbedder(image_root=image_root)
        else:
            embedder = HashingTextEmbedder()
        embeddings = embedder.embed(features)

    outcome = VisualClusterer(threshold=threshold).cluster(embeddings, features or None)
    clusters_path = output_dir / "clusters.json"
    _write_json(
        clusters_path,
        {
            "degenerate": outcome.degenerate,
            "max_off_diagonal": round(outcome.max_off_diagonal, 4),
            "clusters": [asdict(group) for group in outcome.groups],
        },
    )

    print(f"Clusters: {clusters_path}")
    print("---")
    print(f"images={len(embeddings)}")
    print(f"clusters={len(outcome.groups)}")
    print(f"degenerate={outcome.degenerate}")


def run_test(
    *,
    products: int,
    seed: int,
    extras_rate: float,
    brand_noise: float,
    two_shot: bool | None,
    output_dir: Path,
) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    photo_set = ReferencePhotoSetGenerator(seed=seed).generate(
        products=products,
        extras_rate=extras_rate,
        brand_noise=brand_noise,
    )
    dataset_path = output_dir / "test_features.json"
    _write_json(dataset_path, [row.to_dict() for row in photo_set.features])

    result = LocalPairingPipeline(config=PairingConfig.from_env(), two_shot=two_shot).run(photo_set.features)
    _write_result(output_dir, result)

    summary = _build_summary(result, photo_set.truth)
    _write_json(output_dir / "summary.json", summary)

    print(f"Dataset: {dataset_path}")
    print(f"Summary: {output_dir / 'summary.json'}")
    print("---")
    print(format_metrics_log(result.metrics))
    print(f"correct_pairs={summary['correct_pairs']}/{summary['expected_pairs']}")
    print(f"wrong_pairs={summary['wrong_pairs']}")
    print(f"precision={summary['precision']}")
    print(f"recall={summary['recall']}")


def _build_summary(result: PairingResult, truth: dict[str, str]) -> dict[str, object]:
    correct = sum(1 for pair in result.pairs if truth.get(pair.front_url) == pair.back_url)
    wrong = len(result.pairs) - correct
    return {
        "expected_pairs": len(truth),
        "pairs": len(result.pairs),
        "correct_pairs": correct,
        "wrong_pairs": wrong,
        "precision": round(correct / len(result.pairs), 3) if result.pairs else 0.0,
        "recall": round(correct / len(truth), 3) if truth else 0.0,
        "two_shot": result.two_shot,
        "singletons": len(result.singletons),
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photo-pairing", description="Product photo pairing CLI")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="INFO")
    subparsers = parser.add_subparsers(dest="command")

    pair_parser = subparsers.add_parser("pair", help="Pair fronts with backs from a features JSON file")
    pair_parser.add_argument("--features", type=Path, required=True)
    pair_parser.add_argument("--embeddings", type=Path, default=None)
    pair_parser.add_argument("--two-shot", choices=sorted(_TWO_SHOT_MODES), default="auto")
    pair_parser.add_argument("--output-dir", type=Path, default=Path("data/pairing_output"))
    pair_parser.add_argument("--explain", type=int, default=0)

    cluster_parser = subparsers.add_parser("cluster", help="Group images by visual similarity")
    cluster_parser.add_argument("--features", type=Path, default=None)
    cluster_parser.add_argument("--embeddings", type=Path, default=None)
    cluster_parser.add_argument("--embedding-backend", choices=["hashing", "clip"], default="hashing")
    cluster_parser.add_argument("--image-root", type=Path, default=None)
    cluster_parser.add_argument("--threshold", type=float, default=0.85)
    cluster_parser.add_argument("--output-dir", type=Path, default=Path("data/cluster_output"))

    run_test_parser = subparsers.add_parser(
        "run-test",
        help="Generate a synthetic photo set, pair it, and score the result against ground truth",
    )
    run_test_parser.add_argument("--products", type=int, default=24)
    run_test_parser.add_argument("--seed", type=int, default=42)
    run_test_parser.add_argument("--extras-rate", type=float, default=0.0)
    run_test_parser.add_argument("--brand-noise", type=float, default=0.15)
    run_test_parser.add_argument("--two-shot", choices=sorted(_TWO_SHOT_MODES), default="auto")
    run_test_parser.add_argument("--output-dir", type=Path, default=Path("data/cli_output"))

    return parser


def _write_result(output_dir: Path, result: PairingResult) -> None:
    _write_json(
        output_dir / "pairs.json",
        {
            "pairs": [asdict(pair) for pair in result.pairs],
            "singletons": [asdict(singleton) for singleton in result.singletons],
            "clusters": [asdict(group) for group in result.clusters],
            "clusters_degenerate": result.clusters_degenerate,
        },
    )
    _write_json(output_dir / "products.json", [asdict(product) for product in result.products])
    _write_json(output_dir / "metrics.json", result.metrics.to_dict())


def _write_json(path: Path, payload: object) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


def _read_features_json(path: Path) -> list[FeatureRow]:
    payload = _load_json(path)
    if isinstance(payload, dict):
        payload = payload.get("features", [])
    if not isinstance(payload, list):
        raise PairingError(f"{path}: expected a list of feature records")
    return parse_feature_rows(payload)


def _read_embeddings_json(path: Path) -> dict[str, list[float]]:
    payload = _load_json(path)
    if not isinstance(payload, dict):
        raise PairingError(f"{path}: expected an object mapping image url to vector")
    embeddings: dict[str, list[float]] = {}
    for url, vector in payload.items():
        if not isinstance(vector, list) or not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector
        ):
            raise EmbeddingError(f"{path}: embedding for {url} must be a list of numbers")
        embeddings[str(url)] = [float(v) for v in vector]
    return embeddings


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


if __name__ == "__main__":
    main()
