"""Pydantic models for device data and console events.

Device JSON uses camelCase keys (``networkMode``, ``wifiRSSI``, ...). Models
declare snake_case fields with the device key as alias and accept either.

Data Categories:

    Live Status (StatusSnapshot):
        - Network mode and per-transport link flags (Wi-Fi, Ethernet)
        - IP / MAC addresses, Wi-Fi signal strength
        - Memory and version information
        - A few mining telemetry values the device computes

    Static Descriptor (AsicDescriptor):
        - ASIC model, count, frequency / voltage options

    Ethernet Settings (EthernetStatus):
        - DHCP flag and static addressing as stored on the device

    Wi-Fi Scan (ScanCandidate, WifiChoice):
        - Raw scan entries and the reduced, selectable list

    Upload Events (UploadProgress, UploadComplete, UploadFailed):
        - Emitted by the upload streamer, exactly one terminal event per upload
"""
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class NetworkMode(str, Enum):
    WIFI = "wifi"
    ETHERNET = "ethernet"


class UploadTarget(str, Enum):
    """Upload destinations. Both share the same streaming semantics."""
    FIRMWARE = "firmware"
    WWW = "www"

    @property
    def api(self) -> str:
        return UPLOAD_APIS[self]


UPLOAD_APIS = {
    UploadTarget.FIRMWARE: "/api/system/OTA",
    UploadTarget.WWW: "/api/system/OTAWWW",
}


class StatusSnapshot(BaseModel):
    """One immutable read of /api/system/info.

    Superseded entirely by the next snapshot; never partially merged. Keys the
    model does not declare are kept as extras so nothing the device reports
    is lost.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    # Network
    network_mode: NetworkMode = Field(default=NetworkMode.WIFI, alias="networkMode")
    hostname: str = ""
    ssid: str = ""
    mac_addr: str = Field(default="", alias="macAddr")
    ipv4: str = ""
    ipv6: str = ""
    wifi_status: str = Field(default="", alias="wifiStatus")
    wifi_rssi: int = Field(default=-128, alias="wifiRSSI")
    ap_enabled: bool = Field(default=False, alias="apEnabled")
    eth_available: bool = Field(default=False, alias="ethAvailable")
    eth_link_up: bool = Field(default=False, alias="ethLinkUp")
    eth_connected: bool = Field(default=False, alias="ethConnected")
    eth_ipv4: str = Field(default="0.0.0.0", alias="ethIPv4")
    eth_mac: str = Field(default="00:00:00:00:00:00", alias="ethMac")

    # Memory and versions
    free_heap: Optional[int] = Field(default=None, alias="freeHeap")
    free_heap_internal: Optional[int] = Field(default=None, alias="freeHeapInternal")
    free_heap_spiram: Optional[int] = Field(default=None, alias="freeHeapSpiram")
    version: Optional[str] = None
    axe_os_version: Optional[str] = Field(default=None, alias="axeOSVersion")
    idf_version: Optional[str] = Field(default=None, alias="idfVersion")
    board_version: Optional[str] = Field(default=None, alias="boardVersion")
    uptime_seconds: Optional[int] = Field(default=None, alias="uptimeSeconds")

    # Telemetry (computed by the device, displayed as-is)
    hash_rate: Optional[float] = Field(default=None, alias="hashRate")
    power: Optional[float] = None
    temp: Optional[float] = None
    vr_temp: Optional[float] = Field(default=None, alias="vrTemp")
    asic_model: Optional[str] = Field(default=None, alias="ASICModel")

    timestamp: float = Field(default_factory=time.time)


class AsicDescriptor(BaseModel):
    """Low-churn static descriptor from /api/system/asic."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    asic_model: str = Field(default="", alias="ASICModel")
    device_model: str = Field(default="Other", alias="deviceModel")
    swarm_color: Optional[str] = Field(default=None, alias="swarmColor")
    asic_count: int = Field(default=1, alias="asicCount")
    default_frequency: Optional[int] = Field(default=None, alias="defaultFrequency")
    frequency_options: List[int] = Field(default_factory=list, alias="frequencyOptions")
    default_voltage: Optional[int] = Field(default=None, alias="defaultVoltage")
    voltage_options: List[int] = Field(default_factory=list, alias="voltageOptions")


# Substituted whenever /api/system/ethernet/status is unreachable or empty
ETHERNET_DEFAULTS = {
    "static_ip": "192.168.1.121",
    "gateway": "192.168.1.1",
    "subnet": "255.255.255.0",
    "dns": "8.8.8.8",
}


class EthernetStatus(BaseModel):
    """Ethernet status and stored configuration from /api/system/ethernet/status."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    network_mode: NetworkMode = Field(default=NetworkMode.WIFI, alias="networkMode")
    eth_available: bool = Field(default=False, alias="ethAvailable")
    eth_link_up: bool = Field(default=False, alias="ethLinkUp")
    eth_connected: bool = Field(default=False, alias="ethConnected")
    eth_ipv4: str = Field(default="0.0.0.0", alias="ethIPv4")
    eth_mac: str = Field(default="00:00:00:00:00:00", alias="ethMac")
    use_dhcp: bool = Field(default=True, alias="ethUseDHCP")
    static_ip: str = Field(default=ETHERNET_DEFAULTS["static_ip"], alias="ethStaticIP")
    gateway: str = Field(default=ETHERNET_DEFAULTS["gateway"], alias="ethGateway")
    subnet: str = Field(default=ETHERNET_DEFAULTS["subnet"], alias="ethSubnet")
    dns: str = Field(default=ETHERNET_DEFAULTS["dns"], alias="ethDNS")

    @classmethod
    def defaults(cls) -> "EthernetStatus":
        return cls()

    @classmethod
    def from_device(cls, payload: Dict[str, Any]) -> "EthernetStatus":
        """Parse a device payload, replacing empty address fields with the defaults."""
        status = cls.model_validate(payload or {})
        updates = {name: value for name, value in ETHERNET_DEFAULTS.items() if not getattr(status, name)}
        if updates:
            status = status.model_copy(update=updates)
        return status


class CombinedSnapshot(BaseModel):
    """Pairing of the newest value seen from each aggregated source."""
    model_config = ConfigDict(frozen=True)

    parts: Dict[str, Any]
    timestamp: float = Field(default_factory=time.time)

    def __getitem__(self, name: str) -> Any:
        return self.parts[name]

    def __getattr__(self, name: str) -> Any:
        parts = self.__dict__.get("parts")
        if parts is not None and name in parts:
            return parts[name]
        return super().__getattr__(name)


class ScanCandidate(BaseModel):
    ssid: str
    rssi: int
    authmode: int = 0


class WifiChoice(BaseModel):
    """Presentation tuple for one selectable network."""
    model_config = ConfigDict(frozen=True)

    label: str
    rssi: int
    value: str

    def as_tuple(self):
        return self.label, self.rssi, self.value


class UploadProgress(BaseModel):
    percent: int
    sent: int
    total: int


class UploadComplete(BaseModel):
    message: str = ""


class UploadFailed(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: str
    exception: Optional[BaseException] = Field(default=None, exclude=True)


UploadEvent = Union[UploadProgress, UploadComplete, UploadFailed]
