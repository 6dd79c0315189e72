from __future__ import annotations

import argparse
import json
from pathlib import Path

from photo_pairing.datasets import ReferencePhotoSetGenerator


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic product photo feature set")
    parser.add_argument("--products", type=int, default=200)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--extras-rate", type=float, default=0.2)
    parser.add_argument("--brand-noise", type=float, default=0.15)
    parser.add_argument("--output", type=Path, default=Path("data/reference_photo_features.json"))
    args = parser.parse_args()

    photo_set = ReferencePhotoSetGenerator(seed=args.seed).generate(
        products=args.products,
        extras_rate=args.extras_rate,
        brand_noise=args.brand_noise,
    )

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("w", encoding="utf-8") as handle:
        json.dump(
            {
                "features": [row.to_dict() for row in photo_set.features],
                "truth": photo_set.truth,
            },
            handle,
            indent=2,
        )


if __name__ == "__main__":
    main()
