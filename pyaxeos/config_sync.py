"""
Configuration Synchronizer - read-modify-write of the device network settings.

Lifecycle:
    UNLOADED -> LOADING -> READY -> SAVING -> READY

    load() reads /api/system/info and /api/system/ethernet/status once and
    builds a fresh draft, replacing any unsaved edits. Edits are local only.
    Three groups are written independently on explicit request:

    - general settings (hostname, ssid, Wi-Fi password)  PATCH /api/system
    - Ethernet settings (DHCP flag, static addressing)   POST /api/system/ethernet/config
    - network mode                                       POST /api/system/network/mode

Wi-Fi password:
    The device never returns the stored password. The draft holds it as a
    Secret with three states: UNKNOWN (nothing loaded), UNCHANGED (operator
    has not typed anything) and SET(value). Only a SET secret is transmitted,
    trimmed. Mask text such as "*****" is never used as a marker.

Failures:
    A failed write returns the synchronizer to READY with the draft intact and
    dirty, so the operator can retry. Every outcome of a write is surfaced
    through the Notifier.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pyaxeos import wifi
from pyaxeos.device import AsyncDevice
from pyaxeos.exceptions import ConfigurationStateError, PyAxeOSError, PyAxeOSInvalidConfigurationParameter
from pyaxeos.models import ETHERNET_DEFAULTS, EthernetStatus, NetworkMode, StatusSnapshot, WifiChoice
from pyaxeos.notify import RESTART_NOTICE, Notifier

log = logging.getLogger(__name__)

GENERAL_FIELDS = ("hostname", "ssid", "wifi_pass")
ETHERNET_FIELDS = ("use_dhcp", "static_ip", "gateway", "subnet", "dns")


class SecretKind(str, Enum):
    UNKNOWN = "unknown"
    UNCHANGED = "unchanged"
    SET = "set"


class Secret(BaseModel):
    """Tri-state holder for a write-only credential."""
    model_config = ConfigDict(frozen=True)

    kind: SecretKind = SecretKind.UNKNOWN
    value: Optional[str] = Field(default=None, repr=False)

    @classmethod
    def unknown(cls) -> "Secret":
        return cls(kind=SecretKind.UNKNOWN)

    @classmethod
    def unchanged(cls) -> "Secret":
        return cls(kind=SecretKind.UNCHANGED)

    @classmethod
    def set(cls, value: Optional[str]) -> "Secret":
        # An empty password is a valid choice (open network)
        return cls(kind=SecretKind.SET, value=value or "")

    @property
    def is_set(self) -> bool:
        return self.kind is SecretKind.SET


class EthernetSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    use_dhcp: bool = True
    static_ip: str = ETHERNET_DEFAULTS["static_ip"]
    gateway: str = ETHERNET_DEFAULTS["gateway"]
    subnet: str = ETHERNET_DEFAULTS["subnet"]
    dns: str = ETHERNET_DEFAULTS["dns"]

    @classmethod
    def from_status(cls, status: EthernetStatus) -> "EthernetSettings":
        return cls(use_dhcp=status.use_dhcp, static_ip=status.static_ip, gateway=status.gateway,
                   subnet=status.subnet, dns=status.dns)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "ethUseDHCP": self.use_dhcp,
            "ethStaticIP": self.static_ip,
            "ethGateway": self.gateway,
            "ethSubnet": self.subnet,
            "ethDNS": self.dns,
        }


class ConfigurationDraft(BaseModel):
    """Operator-editable copy of the device network settings."""
    model_config = ConfigDict(validate_assignment=True)

    hostname: str = ""
    ssid: str = ""
    wifi_pass: Secret = Field(default_factory=Secret.unknown)
    ethernet: EthernetSettings = Field(default_factory=EthernetSettings)

    def general_patch(self) -> Dict[str, Any]:
        patch = {"hostname": self.hostname, "ssid": self.ssid.strip()}
        if self.wifi_pass.is_set:
            patch["wifiPass"] = self.wifi_pass.value.strip()
        return patch

    def ethernet_patch(self) -> Dict[str, Any]:
        return self.ethernet.to_payload()


class NetworkStatus(BaseModel):
    """Link state shown next to the form, refreshed from a live pipeline."""
    wifi_ipv4: str = ""
    wifi_status: str = ""
    wifi_rssi: int = -128
    network_mode: NetworkMode = NetworkMode.WIFI
    eth_available: bool = False
    eth_link_up: bool = False
    eth_connected: bool = False
    eth_ipv4: str = "0.0.0.0"
    eth_mac: str = "00:00:00:00:00:00"

    @classmethod
    def from_snapshot(cls, snapshot: StatusSnapshot) -> "NetworkStatus":
        return cls(
            wifi_ipv4=snapshot.ipv4 or "",
            wifi_status=snapshot.wifi_status or "",
            wifi_rssi=snapshot.wifi_rssi or -128,
            network_mode=snapshot.network_mode,
            eth_available=snapshot.eth_available,
            eth_link_up=snapshot.eth_link_up,
            eth_connected=snapshot.eth_connected,
            eth_ipv4=snapshot.eth_ipv4 or "0.0.0.0",
            eth_mac=snapshot.eth_mac or "00:00:00:00:00:00",
        )

    def is_connected_to_wifi(self) -> bool:
        # Not in AP / captive portal mode
        return (self.wifi_ipv4 not in ("", "Not connected", "0.0.0.0")
                and self.wifi_status == "Connected!")

    def is_connected_to_network(self) -> bool:
        return self.is_connected_to_wifi() or self.eth_connected


class SyncState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"


class ConfigurationSynchronizer:

    def __init__(self, device: AsyncDevice, notifier: Optional[Notifier] = None, rssi_floor: int = wifi.RSSI_FLOOR):
        self.device = device
        self.notifier = notifier or Notifier()
        self.rssi_floor = rssi_floor
        self.state = SyncState.UNLOADED
        self.draft: Optional[ConfigurationDraft] = None
        self.touched: Set[str] = set()
        self.dirty = False
        self.saved_changes = False
        self.last_error: Optional[BaseException] = None
        self.network_status = NetworkStatus()
        self.scanning = False
        self.choices: List[WifiChoice] = []
        self._status_subscription = None
        # Bumped by close(); results arriving for an older session are dropped
        self._session = 0

    @property
    def network_mode(self) -> NetworkMode:
        return self.network_status.network_mode

    def is_connected_to_wifi(self) -> bool:
        return self.network_status.is_connected_to_wifi()

    def is_connected_to_network(self) -> bool:
        return self.network_status.is_connected_to_network()

    # Load

    async def load(self) -> Optional[ConfigurationDraft]:
        """Read the device settings into a fresh draft, discarding unsaved edits."""
        if self.state is SyncState.SAVING:
            raise ConfigurationStateError("Cannot load while a save is in progress")
        session = self._session
        self.state = SyncState.LOADING
        try:
            info = await self.device.get_info()
        except (PyAxeOSError, ValidationError) as e:
            if self._session != session:
                raise
            self.state = SyncState.UNLOADED
            self.last_error = e
            self.notifier.error(f"Could not load network settings. {e}")
            raise
        # Best-effort, falls back to defaults
        ethernet = await self.device.get_ethernet_status()
        if self._session != session:
            log.debug(f"Discarding network settings from {self.device.host}, view was closed")
            return None

        self.draft = ConfigurationDraft(
            hostname=info.hostname,
            ssid=info.ssid,
            wifi_pass=Secret.unchanged(),
            ethernet=EthernetSettings.from_status(ethernet),
        )
        self.network_status = NetworkStatus.from_snapshot(info)
        self.touched = set()
        self.dirty = False
        self.saved_changes = False
        self.last_error = None
        self.state = SyncState.READY
        log.debug(f"Loaded network settings from {self.device.host}")
        return self.draft

    # Edits

    def edit(self, **changes):
        """Change general fields (hostname, ssid) in the draft."""
        self._require_ready()
        for name, value in changes.items():
            if name not in ("hostname", "ssid"):
                raise PyAxeOSInvalidConfigurationParameter(f"Unknown general setting: {name}")
            setattr(self.draft, name, value)
            self._touch(name)

    def edit_ethernet(self, **changes):
        self._require_ready()
        for name, value in changes.items():
            if name not in ETHERNET_FIELDS:
                raise PyAxeOSInvalidConfigurationParameter(f"Unknown Ethernet setting: {name}")
            setattr(self.draft.ethernet, name, value)
            self._touch(name)

    def set_wifi_password(self, value: Optional[str]):
        self._require_ready()
        self.draft.wifi_pass = Secret.set(value)
        self._touch("wifi_pass")

    def select_network(self, choice: Union[WifiChoice, str]):
        """Merge a scan selection into the draft ssid."""
        value = choice.value if isinstance(choice, WifiChoice) else choice
        if value:
            self.edit(ssid=value)

    # Writes

    async def save_general(self) -> bool:
        self._require_ready()
        patch = self.draft.general_patch()
        session = self._session
        saved = await self._write(
            lambda: self.device.update_system(patch),
            success="Saved network settings",
            failure="Could not save.",
            warning=RESTART_NOTICE,
            fields=GENERAL_FIELDS,
        )
        if saved and self._session == session and self.draft.wifi_pass.is_set:
            # The device holds it now; do not send it again
            self.draft.wifi_pass = Secret.unchanged()
        return saved

    async def save_ethernet(self) -> bool:
        self._require_ready()
        payload = self.draft.ethernet_patch()
        return await self._write(
            lambda: self.device.set_ethernet_config(payload),
            success="Ethernet configuration saved",
            failure="Could not save Ethernet config.",
            warning="Restart required for changes to take effect",
            fields=ETHERNET_FIELDS,
        )

    async def switch_network_mode(self, mode: Union[NetworkMode, str]) -> bool:
        """Ask the device to switch transport. The displayed mode follows only on success."""
        try:
            mode = NetworkMode(mode)
        except ValueError:
            raise PyAxeOSInvalidConfigurationParameter(f"Invalid network mode: {mode}")
        self._require_idle()
        session = self._session
        switched = await self._write(
            lambda: self.device.set_network_mode(mode),
            success=f"Switched to {mode.value.upper()} mode",
            failure="Could not switch network mode.",
            warning="Restart required for network mode change",
        )
        if switched and self._session == session:
            self.network_status = self.network_status.model_copy(update={"network_mode": mode})
        return switched

    async def restart(self) -> bool:
        self._require_idle()
        return await self._write(
            self.device.restart,
            success="Device restarted",
            failure="Could not restart.",
        )

    async def _write(self, request, success: str, failure: str, warning: Optional[str] = None,
                     fields=()) -> bool:
        previous = self.state
        session = self._session
        self.state = SyncState.SAVING
        try:
            await request()
        except PyAxeOSError as e:
            if self._session != session:
                log.debug(f"{failure} {e} (view already closed)")
                return False
            self.state = previous
            self.last_error = e
            if fields:
                self.dirty = True
                self.saved_changes = False
            self.notifier.error(f"{failure} {e}")
            return False
        if self._session != session:
            log.debug(f"{success} (view already closed)")
            return True
        self.state = previous
        self.last_error = None
        if fields:
            self.touched.difference_update(fields)
            self.dirty = bool(self.touched)
            self.saved_changes = True
        if warning:
            self.notifier.warning(warning)
        self.notifier.success(success)
        return True

    # Wi-Fi scan

    async def scan_wifi(self) -> List[WifiChoice]:
        self.scanning = True
        try:
            self.choices = await wifi.scan(self.device, self.rssi_floor)
        except (PyAxeOSError, ValidationError) as e:
            log.debug(f"Wi-Fi scan on {self.device.host} failed: {e}")
            self.choices = []
            self.notifier.error("Failed to scan Wi-Fi networks")
        finally:
            self.scanning = False
        return self.choices

    # Live status

    def attach(self, pipeline):
        """Follow a live status pipeline for the network status view."""
        self.detach()
        self._status_subscription = pipeline.subscribe(self.apply_status)
        return self._status_subscription

    def detach(self):
        if self._status_subscription is not None:
            self._status_subscription.unsubscribe()
            self._status_subscription = None

    def apply_status(self, snapshot: StatusSnapshot):
        # Never touches the draft
        self.network_status = NetworkStatus.from_snapshot(snapshot)

    def close(self):
        """Discard the draft. A write still in flight completes without touching this view."""
        self._session += 1
        self.detach()
        self.draft = None
        self.touched = set()
        self.dirty = False
        self.state = SyncState.UNLOADED

    # Helpers

    def _touch(self, name: str):
        self.touched.add(name)
        self.dirty = True

    def _require_ready(self):
        if self.state is not SyncState.READY or self.draft is None:
            raise ConfigurationStateError(f"Configuration is {self.state.value}, not ready")

    def _require_idle(self):
        if self.state in (SyncState.LOADING, SyncState.SAVING):
            raise ConfigurationStateError(f"Configuration is {self.state.value}")
