"""Check that a ``.env`` file is enough to run the Salesforce login.

Loads the file into the environment, builds ``AppSettings`` from it, and
reports missing Connected App settings before anyone hits the login button::

    python -m scripts.check_env --env-file /opt/leadflow/.env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from leadflow.core.config import AppSettings
from leadflow.core.errors import ConfigurationError

EXIT_OK = 0
EXIT_INVALID_SETTINGS = 2
EXIT_MISSING_FILE = 5


def load_settings(env_file: Path) -> AppSettings:
    """Build settings from ``env_file``; variables already exported win."""
    if not env_file.is_file():
        raise FileNotFoundError(f"No environment file at {env_file}")
    load_dotenv(env_file, override=False)
    return AppSettings()


def check_settings(settings: AppSettings) -> list[str]:
    """Return warnings, raising ``ConfigurationError`` if login cannot work."""
    missing = settings.salesforce.missing_required()
    if missing:
        raise ConfigurationError(
            f"Missing required settings: {', '.join(missing)}",
            details={"missing": missing},
        )
    warnings = []
    if not settings.session.secret:
        warnings.append(
            "SESSION_SECRET is not set; sessions will not survive a restart."
        )
    return warnings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Check the Salesforce login settings in a .env file."
    )
    parser.add_argument("--env-file", type=Path, default=Path(".env"))
    args = parser.parse_args(argv)

    try:
        warnings = check_settings(load_settings(args.env_file))
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        return EXIT_MISSING_FILE
    except ValidationError as exc:
        print(f"Malformed settings:\n{exc}", file=sys.stderr)
        return EXIT_INVALID_SETTINGS
    except ConfigurationError as exc:
        print(exc.message, file=sys.stderr)
        return EXIT_INVALID_SETTINGS

    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    print(f"{args.env_file}: Salesforce login settings OK.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
