"""
Command-line interface for the DoH probe.

This module provides the main CLI entry point with commands for:
- doh: Compare a target DoH endpoint with the reference resolvers
- ech: Check whether a domain publishes an ECH configuration
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .checker import TARGET_KEY, check_a_records, check_ech
from .config import (
    DEFAULT_CONFIG_PATH,
    ProbeConfig,
    load_config_from_env,
    load_config_from_file,
    resolve_timeout,
    save_config_to_file,
)
from .enums import CheckStatus
from .exceptions import DohProbeError
from .i18n import get_message
from .models import ProviderEndpoint, ProviderResult


def load_config(args: argparse.Namespace) -> Optional[ProbeConfig]:
    """Load the configuration from --config, or else from the environment."""
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        config = load_config_from_env()

    if getattr(args, "language", None):
        config.language = args.language
    if getattr(args, "timeout_ms", None) is not None:
        config.timeout_ms = resolve_timeout(args.timeout_ms)
    return config


def create_logger(config: ProbeConfig, verbose: bool) -> Optional[AuditLogger]:
    if not verbose:
        return None
    return AuditLogger(
        output_format=config.logging.output_format,
        min_level=config.logging.log_level,
    )


def _print_provider(name: str, result: ProviderResult, language: str) -> None:
    if result.succeeded:
        print("  " + get_message(
            "cli.provider_ok",
            language,
            provider=name,
            values=", ".join(result.extracted_values),
            latency=result.latency_ms,
            encodings="/".join(item.value for item in result.attempted_encodings),
        ))
    else:
        print("  " + get_message("cli.provider_failed", language, provider=name, error=result.error))


async def run_doh_check(
    target_url: str,
    domain: str,
    config: ProbeConfig,
    include_ech: bool = True,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """
    Run an A-record comparison and print the report.

    Returns:
        Exit code (0 for success, 1 otherwise)
    """
    language = config.language
    logger = create_logger(config, verbose)

    if not as_json:
        print(get_message("cli.checking_target", language, target=target_url, domain=domain))

    report = await check_a_records(
        ProviderEndpoint(key=TARGET_KEY, url=target_url),
        config.references,
        domain,
        config.timeout_ms,
        logger=logger,
        language=language,
        include_ech=include_ech,
    )

    if as_json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str))
    else:
        status_text = get_message(f"status.{report.status.value}", language)
        print(get_message("cli.result", language, status=status_text))
        print(f"  {report.message}")
        names = {ref.key: ref.display_name for ref in config.references}
        for key, result in report.details.items():
            _print_provider(names.get(key, key), result, language)
        if report.ech_comparison is not None:
            for note in report.ech_comparison.notes:
                print(f"  - {note}")

    return 0 if report.status == CheckStatus.SUCCESS else 1


async def run_ech_check(
    domain: str,
    config: ProbeConfig,
    as_json: bool = False,
    verbose: bool = False,
) -> int:
    """
    Run an ECH check against the reference resolvers and print the report.

    Returns:
        Exit code (0 if ECH is enabled, 1 otherwise)
    """
    language = config.language
    logger = create_logger(config, verbose)

    if not as_json:
        print(get_message("cli.checking_ech", language, domain=domain))

    report = await check_ech(
        config.references,
        domain,
        config.timeout_ms,
        logger=logger,
        language=language,
    )

    if as_json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str))
    else:
        print(get_message("cli.ech_enabled", language, value=report.ech_enabled))
        print(f"  {report.message}")
        names = {ref.key: ref.display_name for ref in config.references}
        for key, result in report.providers.items():
            _print_provider(names.get(key, key), result, language)

    return 0 if report.ech_enabled else 1


def cmd_doh(args: argparse.Namespace) -> int:
    """Handle the 'doh' command."""
    config = load_config(args)
    if config is None:
        return 1

    try:
        return asyncio.run(run_doh_check(
            target_url=args.target_url,
            domain=args.domain or config.default_test_domain,
            config=config,
            include_ech=not args.no_ech,
            as_json=args.json,
            verbose=args.verbose,
        ))
    except DohProbeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def cmd_ech(args: argparse.Namespace) -> int:
    """Handle the 'ech' command."""
    config = load_config(args)
    if config is None:
        return 1

    try:
        return asyncio.run(run_ech_check(
            domain=args.domain,
            config=config,
            as_json=args.json,
            verbose=args.verbose,
        ))
    except DohProbeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Language: {config.language}")
        print(f"  Timeout: {config.timeout_ms} ms")
        print(f"  Default test domain: {config.default_test_domain}")
        for ref in config.references:
            print(f"  Reference {ref.display_name}: {ref.url}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Log format: {config.logging.output_format}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = ProbeConfig(language=args.language or "en")
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    return 1


def _add_common_options(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    subparser.add_argument(
        "--language", "-l",
        choices=["en", "zh"],
        default=None,
        help="Output language (default: en)",
    )
    subparser.add_argument(
        "--timeout-ms",
        type=float,
        default=None,
        help="Per-request timeout in milliseconds (default: 5000)",
    )
    subparser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )
    subparser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every attempt to stderr",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="doh-probe",
        description="DNS-over-HTTPS diagnostic probe",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'doh' command
    doh_parser = subparsers.add_parser(
        "doh",
        help="Compare a DoH endpoint's A answers with the reference resolvers",
    )
    doh_parser.add_argument(
        "target_url",
        help="DoH endpoint to test (e.g., https://dns.example/dns-query)",
    )
    doh_parser.add_argument(
        "--domain", "-d",
        help="Domain to resolve (default: linux.do)",
    )
    doh_parser.add_argument(
        "--no-ech",
        action="store_true",
        help="Skip the ECH comparison",
    )
    _add_common_options(doh_parser)
    doh_parser.set_defaults(func=cmd_doh)

    # 'ech' command
    ech_parser = subparsers.add_parser(
        "ech",
        help="Check whether a domain publishes an ECH configuration",
    )
    ech_parser.add_argument(
        "domain",
        help="Domain to check (e.g., cloudflare-ech.com)",
    )
    _add_common_options(ech_parser)
    ech_parser.set_defaults(func=cmd_ech)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--language", "-l",
        choices=["en", "zh"],
        default=None,
        help="Default language for new configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
