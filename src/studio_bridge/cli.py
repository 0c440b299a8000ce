"""Command-line entry point.

Usage:
    studio-bridge --plugin build/MCPStudioPlugin.rbxm   # install the plugin
    studio-bridge --serve                              # run the HTTP bridge
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from studio_bridge.config import Settings, configure_logging
from studio_bridge.errors import InstallError
from studio_bridge.install import PLUGIN_FILENAME, install_plugin, next_steps_message

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="studio-bridge",
        description="Bridge HTTP prompts to the Roblox Studio plugin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-s", "--serve",
        action="store_true",
        help="Run the HTTP bridge instead of installing the plugin",
    )
    parser.add_argument(
        "--host",
        help="Bind address (default: STUDIO_BRIDGE_HOST or 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Bind port (default: STUDIO_BRIDGE_PORT or 44755)",
    )
    parser.add_argument(
        "--plugin",
        type=Path,
        default=Path(PLUGIN_FILENAME),
        help=f"Plugin artifact to install (default: ./{PLUGIN_FILENAME})",
    )
    parser.add_argument(
        "--plugins-dir",
        type=Path,
        help="Override the Roblox Studio plugins directory",
    )
    return parser


def serve(settings: Settings) -> None:
    import uvicorn

    from studio_bridge.api.main import create_app

    logger.info(f"Studio bridge listening on http://{settings.host}:{settings.port}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    configure_logging(settings.log_level)

    if args.serve:
        serve(settings)
        return 0

    try:
        installed = install_plugin(args.plugin, args.plugins_dir or settings.plugins_dir)
    except InstallError as e:
        logger.error(f"Failed to install Roblox Gemini Connector: {e}")
        return 1

    print(f"Installed Roblox Studio plugin to {installed}")
    print("")
    print(next_steps_message())
    return 0


if __name__ == "__main__":
    sys.exit(main())
