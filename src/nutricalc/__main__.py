from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .core import run_recipe
from .ec import EC_STRATEGIES
from .solver import solve_recipe


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--out",
        help="Optional: write the JSON result to this file",
        default=None,
    )
    parser.add_argument(
        "--pretty",
        help="Indent the JSON output",
        action="store_true",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        help="Log warnings and diagnostics to stderr",
        action="store_true",
    )


def main(argv: list[str] | None = None) -> None:
    args_list = list(argv) if argv is not None else None
    if args_list is None:
        import sys

        args_list = sys.argv[1:]

    if args_list and args_list[0] == "solve":
        parser = argparse.ArgumentParser(
            prog="nutricalc solve",
            description="Nutricalc solver – target profile to substance weights",
        )
        parser.add_argument(
            "recipe",
            help="Path to a solver recipe (YAML), e.g. recipes/solve_example.yml",
        )
        _add_output_args(parser)
        args = parser.parse_args(args_list[1:])
        _configure_logging(args.verbose)
        recipe_path = Path(args.recipe).expanduser().resolve()
        result = solve_recipe(recipe_path).to_dict()
    else:
        parser = argparse.ArgumentParser(
            prog="nutricalc",
            description="Nutricalc – substance weights to nutrient solution and EC",
        )
        parser.add_argument(
            "recipe",
            help="Path to a recipe (YAML), e.g. recipes/example.yml",
        )
        parser.add_argument(
            "--strategy",
            help="EC model (overrides ec_strategy in the recipe)",
            choices=sorted(EC_STRATEGIES),
            default=None,
        )
        _add_output_args(parser)
        args = parser.parse_args(args_list)
        _configure_logging(args.verbose)
        recipe_path = Path(args.recipe).expanduser().resolve()
        result = run_recipe(recipe_path, strategy=args.strategy)

    if args.pretty:
        text = json.dumps(result, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(result, ensure_ascii=False)

    print(text)

    if args.out:
        out_path = Path(args.out).expanduser().resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text + "\n", encoding="utf-8")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    main()
