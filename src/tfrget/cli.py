# src/tfrget/cli.py

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tfrget import log_utils
from tfrget.config import load_config, options_from_config
from tfrget.constants import OPENTOFU_IMPL
from tfrget.exceptions import TfrGetError
from tfrget.registry import GetterClient, RegistryGetter, RegistryOptions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="tfrget - download modules from Terraform and OpenTofu registries"
    )
    parser.add_argument(
        "--log-level",
        help="Console log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--config",
        help="Path to a tfrget.yaml configuration file",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser(
        "get", help="Download a module from a tfr:// source into a directory"
    )
    get_parser.add_argument("source", help="Module source, e.g. tfr:///ns/name/system?version=1.0.0")
    get_parser.add_argument("destination", help="Directory to download the module into")

    resolve_parser = subparsers.add_parser(
        "resolve", help="Print where a tfr:// source downloads from without fetching it"
    )
    resolve_parser.add_argument("source", help="Module source, e.g. tfr:///ns/name/system?version=1.0.0")

    for sub in (get_parser, resolve_parser):
        sub.add_argument(
            "--opentofu",
            action="store_true",
            help="Use the OpenTofu registry as the default registry host",
        )
        sub.add_argument(
            "--timeout",
            type=float,
            help="Seconds allowed for each registry request",
        )

    return parser


def _build_options(args: argparse.Namespace, config: Optional[Dict[str, Any]]) -> RegistryOptions:
    """
    Merge file configuration with command-line overrides.

    Returns:
        RegistryOptions: Options with --opentofu and --timeout applied on top of the configuration.
    """
    options = options_from_config(config)
    if args.opentofu:
        options.terraform_implementation = OPENTOFU_IMPL
    if args.timeout is not None:
        options.request_timeout = args.timeout
    return options


def _configure_logging(args: argparse.Namespace, config: Optional[Dict[str, Any]]) -> None:
    config = config or {}
    level = args.log_level or config.get("LOG_LEVEL")
    if level:
        log_utils.set_log_level(str(level))
    log_dir = config.get("LOG_DIR")
    if log_dir:
        log_utils.add_file_logging(Path(log_dir).expanduser(), str(level or "INFO"))


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the tfrget command-line interface.

    Dispatches the `get` and `resolve` subcommands. Exits with status 1 when a
    tfrget error is raised; the error is logged first.
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        _configure_logging(args, config)
        options = _build_options(args, config)

        getter = RegistryGetter(options=options)
        getter.set_client(GetterClient(options={"timeout": options.request_timeout}))

        if args.command == "get":
            getter.get(args.destination, args.source)
            log_utils.logger.info(f"Downloaded {args.source} to {args.destination}")
        elif args.command == "resolve":
            resolved = getter.resolve(args.source)
            print(resolved.absolute_url)
            if resolved.subdir:
                print(f"subdir: {resolved.subdir}")
    except TfrGetError as e:
        log_utils.logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
