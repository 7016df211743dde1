#!/usr/bin/env python3
"""CLI for the lattice parameter explorer."""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from .atlas import ArtifactWriteError, atlas_path, encode_atlas, save_histogram_plot
from .automaton import LatticeAutomaton
from .explorer import Explorer, ExplorerConfig
from .judge import DEFAULT_BURSTS, DEFAULT_BURST_LENGTH, classify
from .parameters import ParameterError, ParameterVector, format_parameters
from .periodicity import DEFAULT_GENERATIONS, DEFAULT_STRIDE, score_periodicity


def setup_logging(quiet: bool = False, log_file: str = None):
    """Console handler with bare messages, plus an optional timestamped file log."""
    root = logging.getLogger("lattice_explorer")
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.WARNING if quiet else logging.INFO)
    console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
        root.addHandler(file_handler)
    return root


def _parameters(args) -> ParameterVector:
    try:
        return ParameterVector.from_list(args.parameters)
    except ParameterError as e:
        print(f"Error parsing parameters {' '.join(args.parameters)}: {e}")
        sys.exit(1)


def _engine(args) -> LatticeAutomaton:
    return LatticeAutomaton(
        width=args.size,
        height=args.size,
        density=args.density,
        rng=np.random.default_rng(args.seed),
    )


def cmd_explore(args):
    """Walk the parameter space from the given vector."""
    parameters = _parameters(args)
    config = ExplorerConfig(
        bursts=args.bursts,
        burst_length=args.burst_length,
        generations=args.generations,
        stride=args.stride,
        output_dir=args.output,
        direction=-1 if args.backward else 1,
        min_score=args.min_score,
        plot=args.plot,
        seed=args.seed,
    )

    print(f"Exploring from {parameters.to_string()}")
    print(f"  Lattice: {args.size}x{args.size}")
    print(f"  Direction: {'backward' if args.backward else 'forward'}")
    print(f"  Rounds: {args.rounds if args.rounds else 'until interrupted'}")
    print()

    explorer = Explorer(_engine(args), parameters, config)
    results = explorer.run(args.rounds)

    interesting = [r for r in results if r.score is not None]
    print(f"\nEvaluated {len(results)} vectors, {len(interesting)} interesting")
    print(f"Next vector: {parameters.to_string()}")
    if explorer.best is not None:
        print(f"Best: {format_parameters(explorer.best.parameters)} score {explorer.best.score:.2f}")


def cmd_classify(args):
    """Judge a single vector and show its density history."""
    parameters = _parameters(args)
    result = classify(_engine(args), parameters, args.bursts, args.burst_length)

    print(f"Parameters: {parameters.to_string()}")
    print(f"Judgement:  {result.judgement.value}")
    print(f"Bursts:     {result.bursts}")
    print("Densities:  " + " ".join(f"{d:.5f}" for d in result.densities))


def cmd_score(args):
    """Score a single vector and write its atlas, regardless of its judgement."""
    parameters = _parameters(args)
    engine = _engine(args)
    engine.advance(parameters, args.warmup, reset=True)
    result = score_periodicity(engine, parameters, args.generations, args.stride)

    histogram = result.histogram
    print(f"Parameters: {parameters.to_string()}")
    print(f"Score:      {result.score:.2f}")
    print(f"Occupancy:  {histogram.occupancy:.4f}")
    for period, density in enumerate(histogram.densities):
        if density > 0:
            print(f"  period {period:3d}: {density:.4f}")

    path = atlas_path(args.output, f"d{parameters.divisor}", result.score, parameters.values)
    try:
        written = encode_atlas(result, path, np.random.default_rng(args.seed))
        if written and args.plot:
            save_histogram_plot(histogram, path.with_suffix(".png"), title=parameters.to_string())
    except ArtifactWriteError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if written:
        print(f"\nSaved atlas to: {written}")


def cmd_step(args):
    """Print the odometer sequence starting at the given vector."""
    parameters = _parameters(args)
    direction = -1 if args.backward else 1
    d = parameters.divisor
    for _ in range(args.count):
        parameters.step(direction)
        print(" ".join(str(v) for v in parameters.values[:d + 1]))


def _add_engine_args(parser):
    parser.add_argument("parameters", nargs="+", help="Parameter vector, divisor first (e.g. 3 0 1 2)")
    parser.add_argument("--size", type=int, default=256, help="Lattice side length")
    parser.add_argument("--density", type=float, default=0.3, help="Initial occupied fraction")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Lattice Explorer - enumerate automaton parameters and keep the interesting ones"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print warnings")
    parser.add_argument("--log-file", type=str, default=None, help="Also log to this file")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Explore command
    explore_parser = subparsers.add_parser("explore", help="Walk the parameter space")
    _add_engine_args(explore_parser)
    explore_parser.add_argument("-n", "--rounds", type=int, default=None, help="Stop after this many vectors")
    explore_parser.add_argument("-b", "--backward", action="store_true", help="Decrement instead of increment")
    explore_parser.add_argument("--bursts", type=int, default=DEFAULT_BURSTS, help="Classification bursts")
    explore_parser.add_argument("--burst-length", type=int, default=DEFAULT_BURST_LENGTH, help="Generations per burst")
    explore_parser.add_argument("--generations", type=int, default=DEFAULT_GENERATIONS, help="Generations per scoring pass")
    explore_parser.add_argument("--stride", type=int, default=DEFAULT_STRIDE, help="Cell stride for period sampling")
    explore_parser.add_argument("--min-score", type=float, default=None, help="Skip atlases below this score")
    explore_parser.add_argument("--plot", action="store_true", help="Also save a histogram chart")
    explore_parser.add_argument("-o", "--output", type=str, default="captures", help="Output directory")
    explore_parser.set_defaults(func=cmd_explore)

    # Classify command
    classify_parser = subparsers.add_parser("classify", help="Judge one parameter vector")
    _add_engine_args(classify_parser)
    classify_parser.add_argument("--bursts", type=int, default=DEFAULT_BURSTS, help="Classification bursts")
    classify_parser.add_argument("--burst-length", type=int, default=DEFAULT_BURST_LENGTH, help="Generations per burst")
    classify_parser.set_defaults(func=cmd_classify)

    # Score command
    score_parser = subparsers.add_parser("score", help="Score one parameter vector and write its atlas")
    _add_engine_args(score_parser)
    score_parser.add_argument("--warmup", type=int, default=80, help="Generations to run before scoring")
    score_parser.add_argument("--generations", type=int, default=DEFAULT_GENERATIONS, help="Generations per scoring pass")
    score_parser.add_argument("--stride", type=int, default=DEFAULT_STRIDE, help="Cell stride for period sampling")
    score_parser.add_argument("--plot", action="store_true", help="Also save a histogram chart")
    score_parser.add_argument("-o", "--output", type=str, default="captures", help="Output directory")
    score_parser.set_defaults(func=cmd_score)

    # Step command
    step_parser = subparsers.add_parser("step", help="Print the odometer sequence")
    step_parser.add_argument("parameters", nargs="+", help="Parameter vector, divisor first")
    step_parser.add_argument("-c", "--count", type=int, default=10, help="Number of steps")
    step_parser.add_argument("-b", "--backward", action="store_true", help="Decrement instead of increment")
    step_parser.set_defaults(func=cmd_step)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.quiet, args.log_file)
    args.func(args)


if __name__ == "__main__":
    main()
