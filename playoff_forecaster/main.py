"""Main CLI interface for the playoff forecaster."""

import argparse
import logging
import sys

import pandas as pd

from .data.loader import SeasonDataLoader
from .errors import PlayoffForecasterError
from .ml.models import BoostingParams
from .pipeline.playoffs import MODEL_CHOICES, PlayoffPipelineConfig, run_pipeline_to_file


def _print_evaluation(name: str, evaluation: dict) -> None:
    cm = evaluation["confusion_matrix"]
    print(f"\n--- {name.upper()} (n={evaluation['n']}) ---")
    print(f"AUC:          {evaluation['auc']:.4f}")
    print(f"Cutoff:       {evaluation['cutoff']:.4f}")
    print("Confusion matrix (rows actual, columns predicted):")
    print(f"            0      1")
    print(f"   0   {cm['tn']:5d}  {cm['fp']:5d}")
    print(f"   1   {cm['fn']:5d}  {cm['tp']:5d}")
    print(f"Accuracy:     {evaluation['accuracy']:.4f}")
    print(f"Sensitivity:  {evaluation['sensitivity']:.4f}")
    print(f"Specificity:  {evaluation['specificity']:.4f}")


def run(args):
    """Run the full pipeline and print the evaluation tables."""
    config = PlayoffPipelineConfig(
        input_csv=args.input,
        model=args.model,
        random_seed=args.seed,
        min_season=args.min_season,
        categorical_extras=() if args.no_team else ("team",),
        glm_variables=tuple(args.variables.split(",")) if args.variables else None,
        boosting=BoostingParams(
            learning_rate=args.learning_rate,
            max_depth=args.max_depth,
            num_rounds=args.rounds,
            subsample=args.subsample,
            colsample_bytree=args.colsample,
            min_child_weight=args.min_child_weight,
            seed=args.seed,
        ),
        on_empty=args.on_empty,
    )

    print(f"Running {args.model} pipeline on {args.input}...")
    try:
        result = run_pipeline_to_file(config, args.output)
    except PlayoffForecasterError as exc:
        print(f"Error: {exc}")
        return 1

    sizes = result["partition"]
    print(f"Split sizes: train={sizes['train']} valid={sizes['valid']} test={sizes['test']}")

    for name, evaluation in result["evaluation"].items():
        _print_evaluation(name, evaluation)

    print("\n--- TEST GAIN / LIFT ---")
    gains = pd.DataFrame(result["evaluation"]["test"]["gains"])
    print(gains[["decile", "n", "events", "cum_capture", "cum_lift"]].to_string(index=False))

    cutoff = result["evaluation"]["train"]["cutoff"]
    print(f"\n--- ACCURACY BY SEASON (train cutoff {cutoff:.4f}) ---")
    for row in result["season_accuracy"]:
        print(f"   {row['season']}: {row['accuracy']:.3f}")

    print(f"\n✓ Report written to {args.output}")
    return 0


def create_sample(args):
    """Create sample season data file."""
    print(f"Creating sample data at {args.output}...")
    SeasonDataLoader.create_sample_data(args.output, seed=args.seed)
    print("✓ Sample data created!")
    print(f"\nYou can now run the pipeline with:")
    print(f"  playoff-forecaster run --input {args.output}")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="NBA playoff qualification forecaster",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a synthetic season table
  playoff-forecaster sample --output sample_seasons.csv

  # Stepwise-style logistic model on a variable subset
  playoff-forecaster run --input seasons.csv --model logit --variables n_rtg,srs,age

  # Gradient-boosted trees
  playoff-forecaster run --input seasons.csv --model xgboost --rounds 200
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Fit and evaluate a model")
    run_parser.add_argument("--input", "-i", required=True, help="Team season CSV")
    run_parser.add_argument("--output", "-o", default="playoff_report.json", help="Output report JSON")
    run_parser.add_argument("--model", "-m", choices=MODEL_CHOICES, default="logit")
    run_parser.add_argument("--seed", type=int, default=123, help="Random seed (default: 123)")
    run_parser.add_argument("--min-season", type=int, default=None, help="Drop seasons before this year")
    run_parser.add_argument("--variables", default=None, help="Comma-separated GLM variable subset")
    run_parser.add_argument("--no-team", action="store_true", help="Do not use team identity as a predictor")
    run_parser.add_argument("--learning-rate", type=float, default=0.1)
    run_parser.add_argument("--max-depth", type=int, default=3)
    run_parser.add_argument("--rounds", type=int, default=100, help="Boosting rounds")
    run_parser.add_argument("--subsample", type=float, default=0.8)
    run_parser.add_argument("--colsample", type=float, default=0.8, help="Column sample fraction per tree")
    run_parser.add_argument("--min-child-weight", type=float, default=1.0)
    run_parser.add_argument(
        "--on-empty",
        choices=["raise", "nan", "skip"],
        default="raise",
        help="How to treat a season with no rows (default: raise)",
    )

    sample_parser = subparsers.add_parser("sample", help="Create sample season data")
    sample_parser.add_argument("--output", "-o", default="sample_seasons.csv", help="Output CSV")
    sample_parser.add_argument("--seed", type=int, default=123, help="Random seed")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        return run(args)
    elif args.command == "sample":
        return create_sample(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
