"""Startup for the Protonmail MCP server.

The server talks to its client over stdio, so all logging goes to stderr.
Missing credentials or an SMTP server that cannot be reached stop the
process before any request is accepted.
"""

import logging
import sys
import threading

import anyio

from mcp_protonmail.common.config import settings
from mcp_protonmail.common.exceptions import ConnectivityError

logger = logging.getLogger("mcp_protonmail")


def configure_logging(debug: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    # The event loop reports failed tasks and callbacks on the asyncio logger.
    loop_logger = logging.getLogger("asyncio")
    loop_logger.handlers[:] = [handler]
    loop_logger.setLevel(logging.WARNING)
    loop_logger.propagate = False


def install_exception_hooks() -> None:
    """Log uncaught errors instead of letting them vanish."""

    def _log_exception(exc_type, exc_value, exc_traceback):
        logger.error(
            f"Uncaught exception: {exc_value}",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    def _log_thread_exception(args: threading.ExceptHookArgs):
        logger.error(
            f"Uncaught exception in thread {args.thread.name if args.thread else '?'}: {args.exc_value}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    sys.excepthook = _log_exception
    threading.excepthook = _log_thread_exception


def main() -> None:
    """Run the Protonmail MCP server over stdio."""
    configure_logging(settings.debug)
    install_exception_hooks()

    if not settings.has_credentials:
        logger.error(
            "Missing required environment variables: PROTONMAIL_USERNAME and PROTONMAIL_PASSWORD must be set"
        )
        sys.exit(1)

    from mcp_protonmail.email.tool import get_gateway, mcp

    logger.debug("Starting Protonmail MCP server...")
    try:
        anyio.run(get_gateway().transport.verify_connection)
    except ConnectivityError as e:
        logger.error(f"Server startup failed: {e}")
        sys.exit(1)

    logger.debug("Protonmail MCP server started successfully")
    mcp.run()


if __name__ == "__main__":
    main()
