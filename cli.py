"""
Command Line Interface for AuthGate
===================================

Usage:
------
    # Run the API server (settings from environment / .env)
    authgate serve

    # Override bind address and enable auto-reload for development
    authgate serve --host 127.0.0.1 --port 8080 --reload

    # Create a user directly in the database (requires DATABASE_URL)
    authgate create-user jane@example.com

    # Print a credential hash for a password (e.g. to seed a database)
    authgate hash-password

CLI Design Principles:
---------------------
1. Sensible defaults (works out of the box)
2. Clear help messages
3. Exit codes for scripting
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from api.models.requests import RegisterRequest
from config import get_settings
from core.password_hasher import hash_password
from core.user_store import create_user_store
from core.users_service import UsersService
from exceptions import ConfigurationError, ServiceError


# ANSI colors for terminal output
class Colors:
    """ANSI color codes for pretty terminal output."""
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'


def colorize(text: str, color: str) -> str:
    """Add color to text if terminal supports it."""
    if sys.stdout.isatty():
        return f"{color}{text}{Colors.ENDC}"
    return text


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all CLI options."""
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Credential and session issuance service",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug output"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only show warnings and errors"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, help="Port (default: PORT setting)")
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (development only)"
    )

    create_user = subparsers.add_parser("create-user", help="Create a user in the configured store")
    create_user.add_argument("email", help="Email address of the new user")
    create_user.add_argument(
        "--password",
        help="Password (prompted for when omitted)"
    )

    subparsers.add_parser("hash-password", help="Print the credential hash of a password")

    return parser


def setup_logging_for_cli(verbose: bool, quiet: bool) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
    )


def _read_password(prompt: str = "Password: ") -> str:
    password = getpass.getpass(prompt)
    if password != getpass.getpass("Repeat password: "):
        raise ValueError("Passwords do not match")
    return password


def run_server(host: Optional[str], port: Optional[int], reload: bool) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.effective_log_level.lower(),
    )
    return 0


def run_create_user(email: str, password: Optional[str]) -> int:
    """
    Create a user in the configured database.

    Input is checked with the same rules as the registration endpoint, so
    every user created here can log in through the API.
    """
    settings = get_settings()
    if not settings.database_url:
        raise ConfigurationError(
            "DATABASE_URL", "create-user needs a database, in-memory users are lost on exit"
        )

    request = RegisterRequest(email=email, password=password or _read_password())
    users = UsersService(create_user_store(settings.database_url))
    user = users.create_user(request.email, request.password)
    print(colorize(f"Created user {user.email} ({user.id})", Colors.GREEN))
    return 0


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    setup_logging_for_cli(parsed_args.verbose, parsed_args.quiet)

    try:
        if parsed_args.command == "serve":
            return run_server(parsed_args.host, parsed_args.port, parsed_args.reload)
        if parsed_args.command == "create-user":
            return run_create_user(parsed_args.email, parsed_args.password)
        if parsed_args.command == "hash-password":
            print(hash_password(_read_password()))
            return 0
        parser.error(f"Unknown command: {parsed_args.command}")

    except ServiceError as e:
        print(colorize(f"Error: {e.message}", Colors.RED))
        return 1

    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(colorize(f"Error: {field}: {error['msg']}", Colors.RED))
        return 1

    except (ConfigurationError, ValueError) as e:
        print(colorize(f"Error: {e}", Colors.RED))
        return 1

    except KeyboardInterrupt:
        print(colorize("\nInterrupted by user", Colors.YELLOW))
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
