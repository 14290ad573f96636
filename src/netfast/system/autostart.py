"""
Launch-at-login registration.

Linux uses an XDG autostart entry, macOS a per-user LaunchAgent and Windows
the HKCU Run key.
"""

import logging
import plistlib
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from .commands import CommandSpec, current_platform, run_command

logger = logging.getLogger(__name__)

APP_ID = "netfast"
LAUNCH_AGENT_LABEL = "com.netfast.agent"
WINDOWS_RUN_KEY = r"HKCU\Software\Microsoft\Windows\CurrentVersion\Run"


def agent_command() -> List[str]:
    return [sys.executable, "-m", "netfast.cli.main", "monitor"]


def _desktop_entry_path(home: Path) -> Path:
    return home / ".config" / "autostart" / f"{APP_ID}.desktop"


def _launch_agent_path(home: Path) -> Path:
    return home / "Library" / "LaunchAgents" / f"{LAUNCH_AGENT_LABEL}.plist"


def set_autostart(enabled: bool, platform: Optional[str] = None, home: Optional[Path] = None) -> None:
    """
    Register or unregister the agent to launch at login.

    Args:
        enabled: True to register, False to remove the registration
        platform: Platform key; detected when omitted
        home: User home directory; defaults to Path.home()

    Raises:
        DNSFilterError subclasses when the Windows registry command fails
    """
    platform = platform or current_platform()
    home = home or Path.home()
    command = agent_command()

    if platform == "linux":
        path = _desktop_entry_path(home)
        if enabled:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                "[Desktop Entry]\n"
                "Type=Application\n"
                "Name=NetFast\n"
                f"Exec={subprocess.list2cmdline(command)}\n"
                "X-GNOME-Autostart-enabled=true\n",
                encoding="utf-8",
            )
        else:
            path.unlink(missing_ok=True)
    elif platform == "darwin":
        path = _launch_agent_path(home)
        if enabled:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                plistlib.dump(
                    {
                        "Label": LAUNCH_AGENT_LABEL,
                        "ProgramArguments": command,
                        "RunAtLoad": True,
                    },
                    f,
                )
        else:
            path.unlink(missing_ok=True)
    elif platform == "windows":
        if enabled:
            argv = ["reg", "add", WINDOWS_RUN_KEY, "/v", "NetFast", "/t", "REG_SZ",
                    "/d", subprocess.list2cmdline(command), "/f"]
        else:
            argv = ["reg", "delete", WINDOWS_RUN_KEY, "/v", "NetFast", "/f"]
        run_command(CommandSpec(argv, description="update Run key"))
    else:
        logger.warning(f"Autostart is not supported on platform '{platform}'")
        return

    logger.info(f"Autostart {'enabled' if enabled else 'disabled'} on {platform}")
