import subprocess
from unittest.mock import MagicMock, patch

import pytest

from netpulse.utils.platform_utils import Platform, PlatformUtils
from netpulse.utils.process_utils import CommandResult, ProcessUtils


class TestProcessUtils:
    def test_rejects_invalid_command(self):
        with pytest.raises(ValueError):
            ProcessUtils.run_command_sync([])

    @patch("subprocess.Popen")
    @patch("netpulse.utils.platform_utils.PlatformUtils.get_subprocess_flags")
    @patch("netpulse.utils.platform_utils.PlatformUtils.get_startupinfo")
    def test_run_command_sync(self, mock_info, mock_flags, mock_popen):
        """Test synchronous command execution."""
        mock_flags.return_value = 0
        mock_info.return_value = None
        proc = MagicMock()
        proc.returncode = 0
        proc.communicate.return_value = ("output", "")
        mock_popen.return_value = proc

        result = ProcessUtils.run_command_sync(["ip", "route"], timeout=5)

        assert result == CommandResult(0, "output", "")
        proc.communicate.assert_called_once_with(timeout=5)

    @patch("subprocess.Popen")
    def test_timeout_kills_process(self, mock_popen):
        proc = MagicMock()
        proc.communicate.side_effect = [subprocess.TimeoutExpired("netsh", 5), ("", "")]
        mock_popen.return_value = proc

        assert ProcessUtils.run_command_sync(["netsh"], timeout=5) is None
        proc.kill.assert_called_once()

    @patch("subprocess.Popen", side_effect=FileNotFoundError("nmcli"))
    def test_missing_executable_propagates(self, mock_popen):
        with pytest.raises(FileNotFoundError):
            ProcessUtils.run_command_sync(["nmcli"])

    def test_output_joins_streams(self):
        assert CommandResult(1, "out", "err").output == "out\nerr"
        assert CommandResult(0, "out", "").output == "out"


class TestPlatformUtils:
    @patch("netpulse.utils.platform_utils.PlatformUtils.get_platform", return_value=Platform.LINUX)
    def test_no_window_flags_off_windows(self, mock_platform):
        assert PlatformUtils.get_subprocess_flags() == 0
        assert PlatformUtils.get_startupinfo() is None

    @patch("netpulse.utils.platform_utils.PlatformUtils.get_platform", return_value=Platform.LINUX)
    def test_config_dir_linux(self, mock_platform):
        assert PlatformUtils.get_config_dir("netpulse").endswith("/.config/netpulse")
