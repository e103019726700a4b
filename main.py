from __future__ import annotations

import argparse
import logging
import sys

from jetemail_relay import config
from jetemail_relay.mailer import JetEmailMailer, RelayError
from jetemail_relay.models import OutboundMessage
from jetemail_relay.release_checker import ReleaseChecker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="JetEmail relay and release checker.")
    sub = parser.add_subparsers(dest="command", required=True)

    send = sub.add_parser("send", help="Relay one message through the JetEmail API.")
    send.add_argument("--to", action="append", required=True, help="Recipient address (repeatable).")
    send.add_argument("--subject", required=True)
    send.add_argument("--body", required=True)
    send.add_argument("--html", action="store_true", help="Send the body as HTML.")
    send.add_argument("--from-email", default="")
    send.add_argument("--from-name", default="")

    check = sub.add_parser("check", help="Check GitHub for a newer release.")
    check.add_argument("--current-version", default=None)

    sub.add_parser("info", help="Show plugin information built from the repository.")
    return parser


def _send(settings: config.Settings, args: argparse.Namespace) -> int:
    message = OutboundMessage(
        from_address=args.from_email,
        from_name=args.from_name,
        to=tuple(args.to),
        subject=args.subject,
        body=args.body,
        is_html=args.html,
    )
    mailer = JetEmailMailer(settings.credentials(), api_base=settings.mail_api_base)
    try:
        mailer.send(message)
    except RelayError as exc:
        logging.error("Relay failed: %s", exc)
        return 1
    finally:
        mailer.close()
    return 0


def _check(settings: config.Settings, args: argparse.Namespace) -> int:
    checker = ReleaseChecker(settings)
    try:
        current = args.current_version or settings.current_version
        result = checker.check_update(current)
    finally:
        checker.close()
    if result.available_version == current:
        print(f"Up to date: {current}")
    else:
        print(f"Update available: {current} -> {result.available_version}")
        print(f"Download: {result.download_url}")
    return 0


def _info(settings: config.Settings) -> int:
    checker = ReleaseChecker(settings)
    try:
        info = checker.plugin_info(settings.plugin_slug)
    finally:
        checker.close()
    if info is None:
        logging.error("Plugin information is not available.")
        return 1
    print(f"{info.name} {info.version or '(unknown version)'}")
    print(f"Last updated: {info.last_updated or '-'}")
    print(f"Download: {info.download_link or '-'}")
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    settings = config.Settings.from_env()

    if args.command == "send":
        return _send(settings, args)
    if args.command == "check":
        return _check(settings, args)
    return _info(settings)


if __name__ == "__main__":
    sys.exit(main())
