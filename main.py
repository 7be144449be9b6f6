"""
RCMIGA Optimizer - Command Line Entry Point

This module configures observability through Logfire and runs a registered
benchmark problem with options taken from the command line, the environment
and an optional JSON configuration file.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
import logfire
from pydantic import ValidationError

from src.core.config import settings
from src.rcmiga.core.config import RCMIGAConfig
from src.rcmiga.core.engine import RCMIGAEngine
from src.rcmiga.core.exceptions import RCMIGAError
from src.rcmiga.problems import get_problem, list_problems


logger = logging.getLogger("rcmiga.cli")


def configure_observability() -> None:
    """Load the environment and configure Logfire and stdlib logging."""
    load_dotenv()
    logfire.configure(**settings.get_logfire_settings())
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rcmiga",
        description="Run the real-coded mixed-integer genetic algorithm on a benchmark problem."
    )
    parser.add_argument("problem", nargs="?", help="Name of a registered problem")
    parser.add_argument("--list", action="store_true", help="List registered problems and exit")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--population-size", type=int)
    parser.add_argument("--elite-count", type=int)
    parser.add_argument("--max-generations", type=int)
    parser.add_argument("--max-time", type=float)
    parser.add_argument("--seed", help="Seed string of the random stream")
    parser.add_argument("--display", choices=["iter", "final", "off"])
    parser.add_argument("--parallel", action="store_true", help="Evaluate with a worker pool")
    parser.add_argument("--backend", choices=["thread", "process"], default="thread")
    parser.add_argument("--workers", type=int)
    parser.add_argument("--vectorized", action="store_true",
                        help="Evaluate each generation with one function call")
    parser.add_argument("--json", action="store_true", help="Print the solution as JSON")
    return parser


def build_config(args: argparse.Namespace) -> RCMIGAConfig:
    """
    Merge configuration sources.

    The JSON file (or the environment, when no file is given) provides the
    base; the problem's bounds fill in missing bounds; command line flags win.
    """
    benchmark = get_problem(args.problem)
    base = RCMIGAConfig.load(args.config) if args.config else RCMIGAConfig.from_env()

    data = base.to_dict()
    if not base.bounds.bounded and benchmark.lb is not None:
        data["bounds"]["lb"] = list(benchmark.lb)
        data["bounds"]["ub"] = list(benchmark.ub)

    if args.population_size is not None:
        data["evolution"]["population_size"] = args.population_size
    if args.elite_count is not None:
        data["evolution"]["elite_count"] = args.elite_count
    if args.max_generations is not None:
        data["stopping"]["max_generations"] = args.max_generations
    if args.max_time is not None:
        data["stopping"]["max_time"] = args.max_time
    if args.seed is not None:
        data["random_seed"] = args.seed
    if args.display is not None:
        data["logging"]["display"] = args.display
    if args.parallel:
        data["parallelization"]["use_parallel"] = True
        data["parallelization"]["backend"] = args.backend
    if args.workers is not None:
        data["parallelization"]["num_workers"] = args.workers
    if args.vectorized:
        data["parallelization"]["use_vectorized"] = True

    return RCMIGAConfig(**data)


async def run_problem(args: argparse.Namespace) -> dict:
    benchmark = get_problem(args.problem)
    config = build_config(args)

    engine = RCMIGAEngine(benchmark.problem, config)
    solution = await engine.run()

    result = solution.to_dict()
    result["problem"] = benchmark.name
    result["total_evaluations"] = engine.total_evaluations
    return result


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        for name in list_problems():
            print(f"{name:<26} {get_problem(name).description}")
        return 0

    if not args.problem:
        parser.error("a problem name is required (see --list)")

    configure_observability()

    try:
        result = asyncio.run(run_problem(args))
    except KeyError as e:
        logger.error(e.args[0])
        return 2
    except RCMIGAError as e:
        logger.error(f"Optimization failed: {e}")
        return 1
    except ValidationError as e:
        logger.error(f"Invalid options: {e}")
        return 2

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        x = ", ".join(f"{v:.6g}" for v in result["x"])
        print(f"problem:      {result['problem']}")
        print(f"x:            [{x}]")
        print(f"fval:         {result['fval']:.6g}")
        print(f"feasible:     {result['feasible']}")
        print(f"generations:  {result['generations']}")
        print(f"stop code:    {result['stopping_criteria']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
