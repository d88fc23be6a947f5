"""Dependency Injection Container for netpulse."""
from dependency_injector import containers, providers

from netpulse.core.constants import (
    BSSID_TRANSITION_WINDOW_MS,
    FAILURE_RETRY_INTERVAL_MS,
    GATEWAY_POLL_INTERVAL_MS,
    KNOWN_APS_PATH,
    LINK_WATCH_INTERVAL_MS,
    MAX_CONSECUTIVE_FAILURES,
    NETWORK_STABILIZE_DELAY_MS,
    PROBE_INTERVAL_MS,
    PROBE_TIMEOUT_MS,
    SIGNAL_CHANGE_THRESHOLD,
    TOPOLOGY_POLL_INTERVAL_MS,
)
from netpulse.core.status_coordinator import StatusCoordinator
from netpulse.repositories.named_ap_repository import NamedAPRepository
from netpulse.services.gateway_tracker import GatewayTracker
from netpulse.services.host_resolver import HostResolver
from netpulse.services.network_change_watcher import NetworkChangeWatcher
from netpulse.services.probe_engine import ProbeEngine
from netpulse.services.topology_tracker import TopologyTracker
from netpulse.services.wireless_info import default_wireless_source
from netpulse.utils.network_interface import GatewayDiscovery
from netpulse.utils.scheduler import Scheduler


class ApplicationContainer(containers.DeclarativeContainer):
    """DI Container for the monitoring engine."""

    # ═══════════════════════════════════════════════════════════
    # SINGLETONS - Process-lifetime infrastructure
    # ═══════════════════════════════════════════════════════════

    scheduler = providers.Singleton(Scheduler)

    named_ap_repository = providers.Singleton(
        NamedAPRepository,
        path=KNOWN_APS_PATH,
    )

    gateway_discovery = providers.Singleton(GatewayDiscovery)

    wireless_source = providers.Singleton(default_wireless_source)

    host_resolver = providers.Singleton(HostResolver)

    # ═══════════════════════════════════════════════════════════
    # SINGLETONS - Trackers and prober
    # ═══════════════════════════════════════════════════════════

    network_change_watcher = providers.Singleton(
        NetworkChangeWatcher,
        scheduler=scheduler,
        interval_ms=LINK_WATCH_INTERVAL_MS,
    )

    gateway_tracker = providers.Singleton(
        GatewayTracker,
        scheduler=scheduler,
        discover=gateway_discovery,
        watcher=network_change_watcher,
        poll_interval_ms=GATEWAY_POLL_INTERVAL_MS,
        stabilize_delay_ms=NETWORK_STABILIZE_DELAY_MS,
    )

    topology_tracker = providers.Singleton(
        TopologyTracker,
        wireless_source=wireless_source,
        scheduler=scheduler,
        poll_interval_ms=TOPOLOGY_POLL_INTERVAL_MS,
        signal_threshold=SIGNAL_CHANGE_THRESHOLD,
    )

    # Repeated probe failures force a gateway re-discovery
    probe_engine = providers.Singleton(
        ProbeEngine,
        gateway_refresher=gateway_tracker.provided.force_refresh,
        scheduler=scheduler,
        max_failures=MAX_CONSECUTIVE_FAILURES,
        retry_interval_ms=FAILURE_RETRY_INTERVAL_MS,
    )

    # ═══════════════════════════════════════════════════════════
    # FACTORY - Coordinator (presentation sink supplied by the caller)
    # ═══════════════════════════════════════════════════════════

    status_coordinator = providers.Factory(
        StatusCoordinator,
        gateway_tracker=gateway_tracker,
        topology_tracker=topology_tracker,
        probe_engine=probe_engine,
        resolver=host_resolver,
        ap_store=named_ap_repository,
        scheduler=scheduler,
        probe_interval_ms=PROBE_INTERVAL_MS,
        probe_timeout_ms=PROBE_TIMEOUT_MS,
        transition_window_ms=BSSID_TRANSITION_WINDOW_MS,
    )
