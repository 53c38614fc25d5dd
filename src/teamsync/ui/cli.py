# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
import threading
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from teamsync.app import check_records, default_identity_oracle, sync_providers
from teamsync.config import (
    EMAIL_KEY_ENV,
    ConfigurationError,
    configure_logging,
    default_data_dir,
    get_email_key,
)
from teamsync.domain.email_encryption import decrypt, encrypt
from teamsync.domain.errors import ConfigError, EncryptionError
from teamsync.domain.validation import check_names

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PROVIDER_FAILURE = 1
# argparse exits with 2 on usage errors.
EXIT_BAD_INPUT = 3

_cancel = threading.Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--data-dir",
        default=default_data_dir(),
        help="Directory holding config.toml, people/, teams/ and repos/ (default: %(default)s)",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(description="Keep team membership in sync")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", parents=[common], help="Validate the records")
    check.add_argument(
        "--strict",
        action="store_true",
        help="Fail when platform identities cannot be confirmed",
    )
    check.add_argument(
        "--skip",
        nargs="+",
        default=[],
        metavar="NAME",
        help=f"Checks to skip; one of: {', '.join(check_names())}",
    )

    sync = subparsers.add_parser("sync", parents=[common], help="Synchronise the providers")
    sync.add_argument(
        "--commit",
        action="store_true",
        help="Apply the changes instead of only printing the plan",
    )
    sync.add_argument(
        "--only",
        nargs="+",
        metavar="NAME",
        help="Restrict the run to these providers",
    )
    sync.add_argument(
        "--timeout",
        type=float,
        help="Stop dispatching new actions after this many seconds",
    )
    sync.add_argument("--json", action="store_true", help="Print the report as JSON")

    encrypt_email = subparsers.add_parser(
        "encrypt-email", parents=[common], help="Encrypt an email address"
    )
    encrypt_email.add_argument(
        "address", nargs="?", help="Address to encrypt (prompted if omitted)"
    )
    encrypt_email.add_argument(
        "--key-env",
        default=EMAIL_KEY_ENV,
        help="Environment variable holding the key (default: %(default)s)",
    )

    decrypt_email = subparsers.add_parser(
        "decrypt-email", parents=[common], help="Decrypt an encrypted email address"
    )
    decrypt_email.add_argument("token", nargs="?", help="Token to decrypt (prompted if omitted)")
    decrypt_email.add_argument(
        "--key-env",
        default=EMAIL_KEY_ENV,
        help="Environment variable holding the key (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def _run_check(args: argparse.Namespace) -> int:
    result = check_records(
        args.data_dir,
        strict=args.strict,
        skip=args.skip,
        identity_oracle=default_identity_oracle(),
    )
    for diagnostic in result.report.diagnostics:
        print(diagnostic)
    return EXIT_OK if result.ok else EXIT_BAD_INPUT


def _run_sync(args: argparse.Namespace) -> int:
    result = sync_providers(
        args.data_dir,
        commit=args.commit,
        only=args.only,
        timeout=args.timeout,
        cancel=_cancel,
    )
    if result.report is None:
        for diagnostic in result.check.report.fatal:
            print(diagnostic, file=sys.stderr)
        return EXIT_BAD_INPUT
    print(result.report.to_json() if args.json else result.report.render())
    return EXIT_PROVIDER_FAILURE if result.report.has_failures else EXIT_OK


def _run_encrypt(args: argparse.Namespace) -> int:
    key = get_email_key(args.key_env)
    address = args.address or input("Email address: ").strip()
    print(encrypt(address, key))
    return EXIT_OK


def _run_decrypt(args: argparse.Namespace) -> int:
    key = get_email_key(args.key_env)
    token = args.token or input("Encrypted address: ").strip()
    print(decrypt(token, key))
    return EXIT_OK


_COMMANDS = {
    "check": _run_check,
    "sync": _run_sync,
    "encrypt-email": _run_encrypt,
    "decrypt-email": _run_decrypt,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main application entry point; returns the process exit code."""
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO, force=True)

    try:
        return _COMMANDS[args.command](args)
    except (ConfigError, ConfigurationError, EncryptionError, ValueError) as exc:
        log.error(f"{type(exc).__name__}: {exc}")  # noqa: TRY400
        for note in getattr(exc, "__notes__", ()):
            log.error(note)  # noqa: TRY400
        return EXIT_BAD_INPUT
    except Exception:
        log.exception("Fatal error")
        return EXIT_PROVIDER_FAILURE


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Stop dispatching provider actions on the first Ctrl+C, exit on the second."""
    if _cancel.is_set():
        log.info("Closed by user (Ctrl+C)")
        sys.exit(EXIT_PROVIDER_FAILURE)
    log.warning("Interrupted; finishing in-flight actions (press Ctrl+C again to quit)")
    _cancel.set()


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    sys.exit(main())


if __name__ == "__main__":
    run()
