"""Command line interface for id_generator.

Usage:
    python -m id_generator generate --samples samples.txt --output ids.csv
    python -m id_generator report --output-ids ids.csv report.csv
"""

import argparse
import getpass
import logging
import os
import sys
from pathlib import Path

from id_generator import __version__
from id_generator.anonymizer import PatientAnonymizer
from id_generator.config import PASSWORD_ENV_VAR, setup_logging
from id_generator.errors import AnonymizationError
from id_generator.samples import build_batch, read_alias_map, read_sample_ids
from id_generator.storage import read_output, write_output, write_superseded_report

logger = logging.getLogger(__name__)


def resolve_password(cli_value) -> str:
    """Return the password from the CLI, the environment, or a prompt."""
    if cli_value:
        return cli_value
    env_value = os.environ.get(PASSWORD_ENV_VAR)
    if env_value:
        return env_value
    return getpass.getpass("Password: ")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_generate(args) -> int:
    anonymizer = PatientAnonymizer(resolve_password(args.password))

    aliases = read_alias_map(args.aliases) if args.aliases else {}
    batch = build_batch(read_sample_ids(args.samples), aliases)

    prior_path = args.prior if args.prior else args.output
    prior = read_output(prior_path)

    output = anonymizer.anonymize(batch, prior)
    write_output(output, args.output)
    if args.report:
        write_superseded_report(output, args.report)
    return 0


def cmd_report(args) -> int:
    if not args.output_ids.exists():
        raise FileNotFoundError(f"Output file does not exist: {args.output_ids}")
    output = read_output(args.output_ids)
    write_superseded_report(output, args.report)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="id_generator",
        description="Assign stable anonymised ids to patients across runs.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Anonymise the patients of a sample batch")
    gen.add_argument("--samples", type=Path, required=True,
                     help="File with one sample id per line")
    gen.add_argument("--aliases", type=Path,
                     help="CSV with patient_id,canonical_patient_id columns")
    gen.add_argument("--output", type=Path, required=True,
                     help="Output CSV to write")
    gen.add_argument("--prior", type=Path,
                     help="Previous output CSV (defaults to --output)")
    gen.add_argument("--report", type=Path,
                     help="Write the superseded-alias report to this CSV")
    gen.add_argument("--password",
                     help=f"Hash password (default: ${PASSWORD_ENV_VAR} or prompt)")
    gen.set_defaults(func=cmd_generate)

    rep = sub.add_parser(
        "report", help="Write the superseded-alias report of an existing output"
    )
    rep.add_argument("--output-ids", type=Path, required=True,
                     help="Output CSV from the generate command")
    rep.add_argument("report", type=Path, help="Report CSV to write")
    rep.set_defaults(func=cmd_report)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        return args.func(args)
    except (AnonymizationError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
