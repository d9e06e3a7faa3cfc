"""
slurp.cli
---------

Command-line entry point.

Run examples:
    # Buckets derived from domains
    slurp domain -t example1.com,example2.com

    # Buckets derived from keywords, 20 probes in flight, debug output
    slurp keyword -t acme,acme-corp -c 20 -d

    # Custom permutation templates
    python -m slurp domain -t example.com -p ./permutations.json

Exit codes:
    0  run finished (or no subcommand given - help is printed)
    1  no valid targets, or a fatal configuration problem
    130 interrupted
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from slurp import __version__
from slurp.util.config import load_config
from slurp.util.errors import SlurpError
from slurp.util.log import setup_logging
from slurp.scanner.normalization import InputNormalizer, build_extractor
from slurp.scanner.runner import ScanRunner

logger = logging.getLogger(__name__)


def _split_csv(value: str) -> List[str]:
    return value.split(",")


def _add_common_flags(parser: argparse.ArgumentParser, target_help: str):
    parser.add_argument(
        "-t", "--target",
        dest="targets",
        action="extend",
        type=_split_csv,
        default=[],
        help=target_help,
    )
    parser.add_argument(
        "-p", "--permutations",
        default=None,
        help="Permutations file location (default: bundled permutations.json).",
    )
    parser.add_argument(
        "-c", "--concurrency",
        type=int,
        default=None,
        help="Connection concurrency; default is the system CPU count.",
    )
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        default=None,
        help="Debug output.",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Give up on a bucket name after this many retries (0 = never give up).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log output to this file.",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Read settings from this .env file (default: ./.env).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slurp",
        description="Enumerate S3 buckets derived from domains or keywords.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="action")

    domain = subparsers.add_parser("domain", help="Uses a list of domains to enumerate s3 buckets")
    _add_common_flags(domain, "Domains to enumerate s3 buckets; format: example1.com,example2.com,example3.com")

    keyword = subparsers.add_parser("keyword", help="Uses a list of keywords to enumerate s3 buckets")
    _add_common_flags(keyword, "List of keywords to enumerate s3; format: keyword1,keyword2,keyword3")

    return parser


def run_cli(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run the requested mode, return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.action:
        parser.print_help()
        return 0

    try:
        config = load_config(
            env_file=args.env_file,
            concurrency=args.concurrency,
            permutations_file=args.permutations,
            max_retries=args.max_retries,
            log_file=args.log_file,
            debug=args.debug,
        )
    except SlurpError as e:
        setup_logging()
        logger.critical(str(e))
        return 1

    setup_logging(
        log_file=config.log_file,
        level=logging.DEBUG if config.debug else logging.INFO,
    )

    try:
        runner = ScanRunner(config)
    except SlurpError as e:
        logger.critical(str(e))
        return 1

    if args.action == "domain":
        normalizer = InputNormalizer(build_extractor(config.tld_cache_dir, config.offline_suffix_list))
        targets = normalizer.normalize_domains(args.targets)
        if not targets:
            logger.error("No valid domains to enumerate")
            return 1
        coro = runner.run_domains(targets)
    else:
        keywords = InputNormalizer.normalize_keywords(args.targets)
        if not keywords:
            logger.error("No keywords to enumerate")
            return 1
        coro = runner.run_keywords(keywords)

    try:
        stats = asyncio.run(coro)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130

    for line in stats.report(verbose=config.debug):
        logger.info(line)
    logger.debug(f"Raw stats: {stats.to_dict()}")
    return 0


def main():
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
