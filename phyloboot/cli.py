"""Command line interface: ``phyloboot [OPTIONS] <model.mod>|<alignment>``.

A ``.mod`` input selects the parametric bootstrap (replicates simulated
from the model); any other file is read as an alignment and resampled.
With ``--read-mods`` the input is ignored and models fitted elsewhere are
summarized instead.

The report goes to stdout; progress messages go to stderr through
logging.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

from phyloboot import __version__
from phyloboot.bootstrap import bootstrap
from phyloboot.core.exceptions import ConfigurationError, PhyloBootError
from phyloboot.logging_conf import configure_logging
from phyloboot.phylo.alignment import FORMATS, format_from_name, read_alignment
from phyloboot.phylo.model import read_model
from phyloboot.phylo.tree import read_tree

__all__ = ["build_parser", "main", "parse_model_list"]

logger = logging.getLogger(__name__)


def _bounded_int(minimum: int):
    def convert(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}") from None
        if value < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}, got {value}")
        return value
    return convert


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phyloboot",
        description=(
            "Estimate errors in model parameters using parametric or "
            "non-parametric bootstrapping. The tree topology is not "
            "inferred; estimated errors are conditional on the given topology."
        ),
    )
    parser.add_argument("input", nargs="?", help="model (.mod) or alignment file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    boot = parser.add_argument_group("bootstrapping options")
    boot.add_argument("-L", "--nsites", type=_bounded_int(10),
                      help="sites per sampled alignment (default: alignment length, or 1000)")
    boot.add_argument("-n", "--nreps", type=_bounded_int(1),
                      help="number of replicates (default 100)")
    boot.add_argument("-i", "--msa-format", default="FASTA", metavar="|".join(FORMATS),
                      help="alignment format, non-parametric case only (default FASTA)")
    boot.add_argument("-d", "--dump-mods", metavar="ROOT",
                      help="dump the estimated model of each replicate to ROOT.<i>.mod")
    boot.add_argument("-m", "--dump-samples", metavar="ROOT",
                      help="dump each sampled alignment to ROOT.<i>.ss")
    boot.add_argument("-x", "--no-estimates", dest="estimate", action="store_false",
                      help="don't estimate parameters or report statistics")
    boot.add_argument("-R", "--read-mods", metavar="LIST",
                      help="comma-separated model files, or *FILE listing one per line")
    boot.add_argument("-A", "--output-average", metavar="FILE",
                      help="write the average of all estimated models to FILE")
    boot.add_argument("-q", "--quiet", action="store_true", help="proceed quietly")
    boot.add_argument("-v", "--verbose", action="store_true", help="debug output")
    boot.add_argument("--seed", type=_bounded_int(0),
                      help="random seed (default: fresh OS entropy)")

    fit = parser.add_argument_group("tree-building options")
    fit.add_argument("-t", "--tree", help="topology file or Newick string")
    fit.add_argument("-s", "--subst-mod", default="REV",
                     help="JC69|F81|HKY85|REV|UNREST (default REV)")
    fit.add_argument("-k", "--nrates", type=_bounded_int(1), default=1,
                     help="number of discrete-gamma rate categories (default 1)")
    fit.add_argument("-E", "--EM", dest="em", action="store_true",
                     help="fit by EM instead of BFGS")
    fit.add_argument("-p", "--precision", default="HIGH",
                     help="LOW|MED|HIGH (default HIGH)")
    fit.add_argument("-M", "--init-model", metavar="FILE",
                     help="initialize fits from this model")
    fit.add_argument("-r", "--init-random", action="store_true",
                     help="initialize fits with random parameters")
    return parser


def parse_model_list(text: str) -> list[str]:
    """Expand a --read-mods argument into file names.

    ``a.mod,b.mod`` is split on commas; ``*names.txt`` reads the names
    (whitespace separated) from names.txt.
    """
    if text.startswith("*"):
        path = Path(text[1:])
        try:
            return path.read_text().split()
        except OSError as e:
            raise ConfigurationError(f"read_mods: cannot read {path}: {e}") from e
    return [name for name in text.split(",") if name]


def run(args: argparse.Namespace) -> None:
    if args.read_mods is not None:
        if args.nreps is not None:
            raise ConfigurationError("can't use --nreps with --read-mods")
        if not args.estimate:
            raise ConfigurationError("can't use --no-estimates with --read-mods")
        sol = bootstrap(parse_model_list(args.read_mods))
    else:
        if args.input is None:
            raise ConfigurationError("input filename required")
        common = dict(
            n_reps=args.nreps,
            n_sites=args.nsites,
            subst_model=args.subst_mod,
            n_rate_cats=args.nrates,
            algorithm="em" if args.em else "bfgs",
            precision=args.precision,
            init_random=args.init_random,
            init_model=read_model(args.init_model) if args.init_model else None,
            estimate=args.estimate,
            dump_models=args.dump_mods,
            dump_samples=args.dump_samples,
            seed=args.seed,
        )
        if args.input.endswith(".mod"):
            sol = bootstrap(read_model(args.input), **common)
        else:
            fmt = format_from_name(args.msa_format)
            tree = read_tree(args.tree) if args.tree else None
            sol = bootstrap(read_alignment(args.input, fmt), tree=tree, **common)

    if sol.estimated:
        sys.stdout.write(sol.summary())
        if args.output_average is not None:
            logger.info("Writing average model to %s...", args.output_average)
            sol.average_model.write(args.output_average)


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    configure_logging(level)

    try:
        run(args)
    except PhyloBootError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    logger.info("Done.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
