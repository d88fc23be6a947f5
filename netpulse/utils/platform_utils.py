"""Platform detection and abstraction utilities."""
import os
import platform
import subprocess
from enum import Enum


class Platform(Enum):
    """Operating system platforms."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


class PlatformUtils:
    """Utility class for platform detection and abstraction."""

    @staticmethod
    def get_platform() -> Platform:
        """
        Detect the current operating system.

        Returns:
            Platform enum value: Platform.WINDOWS, Platform.MACOS, or Platform.LINUX
        """
        system = platform.system()
        if system == "Windows" or os.name == "nt":
            return Platform.WINDOWS
        elif system == "Darwin":
            return Platform.MACOS
        else:
            return Platform.LINUX

    @staticmethod
    def get_config_dir(app_name: str) -> str:
        """Get the per-user configuration directory for the platform."""
        plat = PlatformUtils.get_platform()
        if plat == Platform.WINDOWS:
            base = os.environ.get("LOCALAPPDATA") or os.path.expanduser("~/AppData/Local")
            return os.path.join(base, app_name)
        elif plat == Platform.MACOS:
            return os.path.join(os.path.expanduser("~/Library/Application Support"), app_name)
        return os.path.join(os.path.expanduser("~/.config"), app_name)

    @staticmethod
    def get_subprocess_flags() -> int:
        """
        Get platform-specific subprocess creation flags.

        Returns:
            CREATE_NO_WINDOW flag on Windows, 0 on other platforms
        """
        if PlatformUtils.get_platform() == Platform.WINDOWS:
            # CREATE_NO_WINDOW only exists on Windows
            return getattr(subprocess, "CREATE_NO_WINDOW", 0x08000000)
        return 0

    @staticmethod
    def get_startupinfo():
        """
        Get STARTUPINFO object for hiding subprocess windows on Windows.

        Returns:
            STARTUPINFO object with STARTF_USESHOWWINDOW on Windows, None otherwise
        """
        if PlatformUtils.get_platform() == Platform.WINDOWS:
            STARTUPINFO = getattr(subprocess, "STARTUPINFO", None)
            if STARTUPINFO:
                startupinfo = STARTUPINFO()
                startupinfo.dwFlags |= getattr(subprocess, "STARTF_USESHOWWINDOW", 0x00000001)
                startupinfo.wShowWindow = getattr(subprocess, "SW_HIDE", 0)
                return startupinfo
        return None
