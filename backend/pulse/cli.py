#!/usr/bin/env python3
"""
Batch recompute resident risk scores after a weight change.

Usage:
    # Recompute with the saved organization weights
    pulse-recompute

    # Try other weights without saving them to the settings record
    pulse-recompute --age 35 --pregnancy 40 --chronic 10 --missed 25

    # Score as of a given day (defaults to today)
    pulse-recompute --as-of 2025-10-01
"""
import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from .db import Base, engine
from .deps import get_repository
from .recompute import batch_recompute
from .risk_engine import RiskWeights


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Batch recompute resident risk scores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--age", type=int, default=None, help="Override the age >= 60 weight")
    parser.add_argument("--pregnancy", type=int, default=None, help="Override the pregnancy weight")
    parser.add_argument("--chronic", type=int, default=None, help="Override the per-condition weight")
    parser.add_argument("--missed", type=int, default=None, help="Override the missed-visit weight")
    parser.add_argument("--as-of", type=str, default=None, help="Scoring date (YYYY-MM-DD), default today")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    today = datetime.strptime(args.as_of, "%Y-%m-%d").date() if args.as_of else None

    Base.metadata.create_all(bind=engine)
    repo = get_repository()

    weights = RiskWeights.from_settings(repo.get_weight_configuration())
    overrides = {
        "age_over_60": args.age,
        "pregnancy": args.pregnancy,
        "chronic_condition": args.chronic,
        "missed_visit": args.missed,
    }
    weights = replace(weights, **{k: v for k, v in overrides.items() if v is not None})

    print("=" * 60)
    print("RISK SCORE RECOMPUTE")
    print(f"Weights: age={weights.age_over_60} pregnancy={weights.pregnancy} "
          f"chronic={weights.chronic_condition} missed={weights.missed_visit}")
    print("=" * 60)

    try:
        report = batch_recompute(repo, weights, today)
    except Exception as e:
        print(f"\n✗ Fatal error: {e}")
        return 1

    print(f"Residents: {report.total}")
    print(f"Updated:   {report.updated}")
    print(f"Failed:    {report.failed}")
    return 0 if report.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
