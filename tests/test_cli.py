from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from netpulse.cli import app
from netpulse.core.types import FailureKind, ProbeOutcome, ResolvedAddress
from netpulse.repositories.named_ap_repository import NamedAPRepository
from netpulse.services.wireless_info import WirelessQueryResult, WirelessQueryStatus, WirelessReading

runner = CliRunner()


@pytest.fixture
def repository(tmp_path):
    repo = NamedAPRepository(str(tmp_path / "known_aps.json"))
    with patch("netpulse.cli._repository", return_value=repo):
        yield repo


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("netpulse.cli._init_cli_logging"):
        yield


class TestCLI:
    def test_version(self):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "netpulse v" in result.stdout

    @patch("netpulse.cli.GatewayDiscovery")
    def test_gateway(self, mock_discovery):
        mock_discovery.return_value.return_value = "192.168.1.1"

        result = runner.invoke(app, ["gateway"])
        assert result.exit_code == 0
        assert "192.168.1.1" in result.stdout

    @patch("netpulse.cli.GatewayDiscovery")
    def test_gateway_none(self, mock_discovery):
        mock_discovery.return_value.return_value = None

        result = runner.invoke(app, ["gateway"])
        assert "none" in result.stdout

    @patch("netpulse.cli.default_wireless_source")
    def test_wifi_connected(self, mock_source, repository):
        repository.rename("aa:bb:cc:dd:ee:01", "Office")
        mock_source.return_value.query.return_value = WirelessQueryResult.ok(
            WirelessReading(bssid="aa:bb:cc:dd:ee:01", ssid="Corp", band="5 GHz", channel=36, signal_percent=80)
        )

        result = runner.invoke(app, ["wifi"])
        assert result.exit_code == 0
        assert "Office" in result.stdout
        assert "Signal: 80%" in result.stdout

    @patch("netpulse.cli.default_wireless_source")
    def test_wifi_permission_denied(self, mock_source):
        mock_source.return_value.query.return_value = WirelessQueryResult(WirelessQueryStatus.PERMISSION_DENIED)

        result = runner.invoke(app, ["wifi"])
        assert result.exit_code == 1

    @patch("netpulse.cli.ProbeEngine")
    @patch("netpulse.cli.HostResolver.resolve")
    def test_probe_success(self, mock_resolve, mock_engine):
        mock_resolve.return_value = ResolvedAddress("93.184.216.34")
        mock_engine.return_value.probe.return_value = ProbeOutcome.succeeded("93.184.216.34", 17)

        result = runner.invoke(app, ["probe", "example.com", "--timeout", "500"])
        assert result.exit_code == 0
        assert "17ms" in result.stdout
        mock_engine.return_value.probe.assert_called_once_with("93.184.216.34", 500)
        mock_engine.return_value.dispose.assert_called_once()

    @patch("netpulse.cli.ProbeEngine")
    @patch("netpulse.cli.HostResolver.resolve")
    def test_probe_failure_exit_code(self, mock_resolve, mock_engine):
        mock_resolve.return_value = ResolvedAddress("10.0.0.1")
        mock_engine.return_value.probe.return_value = ProbeOutcome.failed("10.0.0.1", FailureKind.TIMEOUT)

        result = runner.invoke(app, ["probe", "10.0.0.1"])
        assert result.exit_code == 1
        assert "timeout" in result.stdout

    def test_probe_rejects_bad_host(self):
        result = runner.invoke(app, ["probe", "bad host"])
        assert result.exit_code == 2

    def test_target_roundtrip(self, repository):
        assert "gateway" in runner.invoke(app, ["target", "show"]).stdout

        result = runner.invoke(app, ["target", "set", "example.com"])
        assert result.exit_code == 0
        assert repository.get_last_custom_target() == "example.com"
        assert "example.com" in runner.invoke(app, ["target", "show"]).stdout

        runner.invoke(app, ["target", "clear"])
        assert repository.get_last_custom_target() is None

    def test_ap_rename_and_list(self, repository):
        result = runner.invoke(app, ["ap", "rename", "AA:BB:CC:DD:EE:01", "Lobby"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["ap", "list"])
        assert "aa:bb:cc:dd:ee:01" in result.stdout
        assert "Lobby" in result.stdout

    def test_ap_list_empty(self, repository):
        result = runner.invoke(app, ["ap", "list"])
        assert "No known access points" in result.stdout

    def test_run_rejects_conflicting_options(self):
        result = runner.invoke(app, ["run", "--target", "example.com", "--gateway"])
        assert result.exit_code == 2

    @patch("netpulse.cli.shutdown_logging")
    @patch("netpulse.cli.setup_logging")
    @patch("netpulse.core.container.ApplicationContainer")
    def test_run_stops_on_interrupt(self, mock_container_cls, mock_setup, mock_shutdown):
        container = mock_container_cls.return_value
        coordinator = MagicMock()
        coordinator.start.side_effect = KeyboardInterrupt
        container.status_coordinator.return_value = coordinator

        result = runner.invoke(app, ["run", "--target", "example.com"])

        assert result.exit_code == 0
        container.named_ap_repository.return_value.set_last_custom_target.assert_called_once_with("example.com")
        coordinator.stop.assert_called_once()
        mock_shutdown.assert_called_once()
