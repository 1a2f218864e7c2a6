"""Command-line entry point: ``claude-usage <command>``."""

import argparse
import logging
import sys

import formatters
import notify
import protection
from collectors.proxy import ProxyError
from config import Config, load_config, with_live_rate
from state import load_state, refresh


def setup_logging(verbose: bool = False) -> None:
    # stdout carries command output; logs go to stderr
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def cmd_check(config: Config, args: argparse.Namespace) -> int:
    try:
        state = refresh(config)
    except ProxyError as exc:
        msg = str(exc)
        print(f"❌ Check failed: {msg}", file=sys.stderr)
        if notify.should_notify(msg):
            notify.send_error_alert(config, msg)
        return 1
    print(state.model_dump_json(by_alias=True, indent=2))
    return 0


def cmd_week(config: Config, args: argparse.Namespace) -> int:
    print(formatters.format_week_summary(load_state(config.state_file), config))
    return 0


def cmd_daily(config: Config, args: argparse.Namespace) -> int:
    print(formatters.format_daily_breakdown(load_state(config.state_file), config))
    return 0


def cmd_protection(config: Config, args: argparse.Namespace) -> int:
    if args.enable:
        protection.enable_protection(config.state_file)
        print("🛡️  Protection mode ENABLED")
        return 0
    if args.disable:
        protection.disable_protection(config.state_file)
        print("✅ Protection mode DISABLED")
        return 0
    status = protection.get_protection_status(config, load_state(config.state_file))
    print(formatters.format_protection_status(status, config))
    return 0


def cmd_report(config: Config, args: argparse.Namespace) -> int:
    print(formatters.format_report(load_state(config.state_file), config, args.format))
    return 0


def cmd_detail(config: Config, args: argparse.Namespace) -> int:
    print(formatters.format_seven_days_detail(load_state(config.state_file), config))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claude-usage",
        description="Claude API usage monitoring and cost tracking",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="Fetch latest costs from the proxy and update state").set_defaults(func=cmd_check)
    sub.add_parser("week", help="Show current week stats").set_defaults(func=cmd_week)

    daily = sub.add_parser("daily", help="Show daily breakdown")
    daily.set_defaults(func=cmd_daily)

    prot = sub.add_parser("protection", help="Show or toggle protection mode")
    toggle = prot.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Manually enable protection mode")
    toggle.add_argument("--disable", action="store_true", help="Manually disable protection mode")
    prot.set_defaults(func=cmd_protection)

    report = sub.add_parser("report", help="Generate formatted usage report")
    report.add_argument("-f", "--format", choices=["text", "json", "html"], default="text")
    report.set_defaults(func=cmd_report)

    sub.add_parser("detail", help="Show 7-day detail with tokens and cost").set_defaults(func=cmd_detail)
    return parser


def main(argv: list[str] | None = None, config: Config | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = config or with_live_rate(load_config())
    return args.func(config, args)


if __name__ == "__main__":
    sys.exit(main())
