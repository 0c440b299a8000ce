"""Installs the Studio plugin artifact into the local Roblox plugins folder.

The plugin (MCPStudioPlugin.rbxm) is an opaque build artifact; this module
only locates the Roblox Studio plugins directory and copies it there.
"""

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Optional

from studio_bridge.config import STUDIO_PLUGIN_PORT
from studio_bridge.errors import InstallError

logger = logging.getLogger(__name__)

PLUGIN_FILENAME = "MCPStudioPlugin.rbxm"


def find_plugins_dir() -> Path:
    """Locate the Roblox Studio plugins directory for this platform.

    Raises:
        InstallError: If the platform has no known plugins location
    """
    if sys.platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if not local_app_data:
            raise InstallError("LOCALAPPDATA is not set; cannot locate Roblox plugins folder")
        return Path(local_app_data) / "Roblox" / "Plugins"
    if sys.platform == "darwin":
        return Path.home() / "Documents" / "Roblox" / "Plugins"
    raise InstallError(
        f"Roblox Studio is not available on {sys.platform}; pass --plugins-dir explicitly"
    )


def install_plugin(plugin_path: Path, plugins_dir: Optional[Path] = None) -> Path:
    """Copy the plugin artifact into the Roblox Studio plugins directory.

    Args:
        plugin_path: Path to the built .rbxm plugin
        plugins_dir: Override for the plugins directory

    Returns:
        Path of the installed plugin file

    Raises:
        InstallError: If the artifact is missing or cannot be written
    """
    plugin_path = Path(plugin_path)
    if not plugin_path.is_file():
        raise InstallError(f"Plugin artifact not found: {plugin_path}")

    target_dir = Path(plugins_dir) if plugins_dir else find_plugins_dir()
    output_path = target_dir / PLUGIN_FILENAME

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(plugin_path, output_path)
    except OSError as e:
        raise InstallError(f"Could not write Roblox Plugin file at {output_path}: {e}") from e

    logger.info(f"Installed Roblox Studio plugin to {output_path}")
    return output_path


def next_steps_message() -> str:
    return f"""Roblox Studio Gemini Connector is installed!

Next Steps:
1. Get a Gemini API Key from Google AI Studio.
2. Set the environment variable 'GEMINI_API_KEY' to your key.
3. Run this application again with the '--serve' flag:
   studio-bridge --serve
4. Open Roblox Studio and enable the 'MCPStudioPlugin' in the Plugins tab.
5. Send prompts to the server using a tool like Postman or curl, for example:

   curl -X POST http://127.0.0.1:{STUDIO_PLUGIN_PORT}/prompt \\
     -H "Content-Type: application/json" \\
     -d '{{"prompt": "insert a red car"}}'

To uninstall, delete '{PLUGIN_FILENAME}' from your Roblox plugins directory."""
