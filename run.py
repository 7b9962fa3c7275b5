"""
Run script for starting the Live Captions relay server.

This script configures and starts the FastAPI server with WebSocket settings
suited to continuous audio streaming from capture clients.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import socket
import sys

import uvicorn

from livecaptions.config import get_config
from livecaptions.config.env_loader import load_env_file
from livecaptions.config.logging_config import configure_logging

load_env_file()

logger = configure_logging("run")


def parse_args(argv=None):
    """Parse command line arguments."""
    server = get_config().server
    parser = argparse.ArgumentParser(description="Start the Live Captions relay server")
    parser.add_argument(
        "--port",
        type=int,
        default=server.port,
        help=f"Port to run the server on (default: {server.port} or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=server.host,
        help=f"Host to bind the server to (default: {server.host} or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=get_config().logging.level.value,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main():
    """Main entry point for starting the server."""
    args = parse_args()
    server = get_config().server

    logger.info("=== Server Configuration ===")
    logger.info(f"Host: {args.host}")
    logger.info(f"Port: {args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Environment: {server.environment.value}")
    logger.info("=========================")

    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        result = sock.connect_ex((args.host, args.port))
        sock.close()

        if result == 0:
            logger.error(f"Port {args.port} is already in use")
            print(f"\nError: Port {args.port} is already in use")
            print("Please choose a different port or stop the process using that port")
            sys.exit(1)

        config = uvicorn.Config(
            "livecaptions.main:app",
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
            http=server.http_protocol,
            access_log=server.access_log,
            reload=server.reload or server.environment.value == "development",
            ws_ping_interval=server.ws_ping_interval,
            ws_ping_timeout=server.ws_ping_timeout,
            ws_max_size=server.ws_max_size,
            workers=1,  # Sessions live in process memory
            loop="asyncio",
            timeout_keep_alive=server.timeout_keep_alive,
        )

        logger.info("Starting server with uvicorn...")
        uvicorn.Server(config).run()

    except Exception as e:
        logger.error(f"Failed to start server: {str(e)}")
        print(f"\nError: Failed to start server: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
