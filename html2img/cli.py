"""
Command-Line Launcher
=====================

Start the render server from the command line:

    html2img-server --port 3000 --api-key secret

Options are written into the environment before settings are loaded, so they
take precedence over .env files.
"""

import argparse
import os
import secrets
import sys
from typing import List, Optional

from html2img import __version__

ENV_PREFIX = "HTML2IMG_"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="html2img-server",
        description="Render HTML/CSS/JS fragments to PNG or JPEG screenshots over HTTP",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-p", "--port", type=int, default=3000, help="Port to run the server on")
    parser.add_argument("-H", "--host", default="localhost", help="Host to bind the server to")
    parser.add_argument(
        "-k", "--api-key", help="API key for authentication (required in production)"
    )
    parser.add_argument(
        "-r", "--rate-limit", type=int, default=60, help="Rate limit (requests per minute)"
    )
    parser.add_argument(
        "-t", "--timeout", type=int, default=30000, help="Request timeout in milliseconds"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser


def apply_options(args: argparse.Namespace) -> str:
    """
    Export CLI options as settings environment variables.

    Returns:
        The API key the server will accept

    Raises:
        SystemExit: In production when no API key is available
    """
    environment = os.environ.get(f"{ENV_PREFIX}ENVIRONMENT", "development")
    api_key = args.api_key or os.environ.get(f"{ENV_PREFIX}API_KEY")

    if not api_key:
        if environment == "production":
            print("ERROR: API key is required in production mode.", file=sys.stderr)
            print(
                f"Use --api-key or set the {ENV_PREFIX}API_KEY environment variable.",
                file=sys.stderr,
            )
            raise SystemExit(1)
        api_key = f"dev-{secrets.token_hex(6)}"
        print("WARNING: Using auto-generated API key for development.", file=sys.stderr)

    os.environ[f"{ENV_PREFIX}API_KEY"] = api_key
    os.environ[f"{ENV_PREFIX}HOST"] = args.host
    os.environ[f"{ENV_PREFIX}PORT"] = str(args.port)
    os.environ[f"{ENV_PREFIX}RATE_LIMIT_MAX"] = str(args.rate_limit)
    os.environ[f"{ENV_PREFIX}RATE_LIMIT_WINDOW"] = "60000"
    os.environ[f"{ENV_PREFIX}REQUEST_TIMEOUT"] = str(args.timeout)
    os.environ[f"{ENV_PREFIX}LOG_LEVEL"] = args.log_level
    return api_key


def usage_banner(host: str, port: int, api_key: str) -> str:
    server_url = f"http://{'localhost' if host == '0.0.0.0' else host}:{port}"
    return "\n".join(
        [
            "html2img server starting",
            f"Server URL: {server_url}",
            f"API Key:    {api_key}",
            "",
            "Example usage:",
            f'  curl -X POST "{server_url}/render?apiKey={api_key}" \\',
            '  -H "Content-Type: application/json" \\',
            '  -d \'{"html": "<div style=\\"padding: 20px\\">Hello World</div>"}\' \\',
            "  --output test.png",
        ]
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    api_key = apply_options(args)

    # Settings and logging read the environment on import
    from html2img.config.settings import reload_settings

    settings = reload_settings()
    print(usage_banner(settings.host, settings.port, api_key))

    from html2img.api.main import run_server

    run_server(settings.host, settings.port, settings.log_level)


if __name__ == "__main__":
    main()
