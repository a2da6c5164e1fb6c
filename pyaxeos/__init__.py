# pyAxeOS Module
# -*- coding: utf-8 -*-
"""
 Python module to monitor and configure AxeOS (Bitaxe) mining devices

 For more information see README.md

 Features
    * Works with network-attached devices running AxeOS / ESP-Miner
    * Live status polling with latest-wins delivery (stale responses never overwrite newer ones)
    * Combines live status and the static ASIC descriptor into one shared stream
    * Wi-Fi scan with filtering of weak networks and duplicate SSIDs
    * Read-modify-write of network settings that never sends the masked Wi-Fi password
    * Firmware (OTA) and web UI (OTAWWW) uploads with progress events
    * Will re-use http connections to the device for reduced load and faster response times

 Classes
    AxeOS(host, timeout, poolmaxsize, upload_timeout)

 Parameters
    host                      # Hostname or IP of the device (e.g. 192.168.1.50 or bitaxe.local)
    timeout = 10              # Timeout for HTTP calls in seconds
    poolmaxsize = 10          # Pool max size for http connection re-use (persistent
                                connections disabled if zero)
    upload_timeout = 300      # Timeout for firmware / www uploads in seconds

 Functions
    poll(api, params)         # Return data from the device api
    post(api, payload)        # Send payload to the device api
    info(jsonformat)          # Return live status (/api/system/info)
    asic(jsonformat)          # Return ASIC descriptor (/api/system/asic)
    ethernet_status()         # Return Ethernet status and settings (defaults if unavailable)
    statistics(columns)       # Return statistics rows (hashrate and power always included)
    scan_wifi(floor)          # Scan for Wi-Fi networks, strongest first
    update_system(patch)      # PATCH general settings
    set_ethernet_config(...)  # Save Ethernet DHCP / static settings
    set_network_mode(mode)    # Switch network mode: wifi or ethernet
    restart()                 # Restart the device
    upload(payload, target, progress)  # Upload firmware or www image
    version(int_value)        # Return firmware version
    hostname()                # Return device hostname
    is_connected()            # Returns True if the device answers

 Async Classes
    AsyncDevice               # asyncio access through a thread pool (pyaxeos.device)
    LiveStatusPipeline        # recurring polling (pyaxeos.pipeline)
    StatusAggregator          # combine-latest of several pipelines (pyaxeos.aggregator)
    ConfigurationSynchronizer # network settings editor (pyaxeos.config_sync)
    UploadStreamer            # upload with progress events (pyaxeos.upload)

 Requirements
    This module requires the following modules: requests, pydantic, pydantic-settings
    pip install requests pydantic pydantic-settings
"""
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Union

version_tuple = (0, 1, 0)
version = __version__ = '%d.%d.%d' % version_tuple

# noinspection PyPackageRequirements
import urllib3

from pyaxeos.regex import HOST_REGEX, IPV4_6_REGEX
from pyaxeos.exceptions import (PyAxeOSError, PyAxeOSInvalidConfigurationParameter, DeviceRequestError,
                                DeviceTimeoutError, DeviceConnectionError, ConfigurationStateError,
                                UploadAbandonedError)
from pyaxeos.models import (NetworkMode, UploadTarget, StatusSnapshot, AsicDescriptor, EthernetStatus,
                            CombinedSnapshot, ScanCandidate, WifiChoice, UploadProgress, UploadComplete, UploadFailed)
from pyaxeos.local.pyaxeos_local import PyAxeOSLocal
from pyaxeos.pyaxeos_base import parse_version, PyAxeOSBase, ProgressCallback
from pyaxeos.device import AsyncDevice
from pyaxeos.pipeline import LiveStatusPipeline, Publisher, Subscription
from pyaxeos.aggregator import StatusAggregator
from pyaxeos.wifi import reduce_scan, rssi_quality
from pyaxeos.config_sync import ConfigurationSynchronizer, Secret
from pyaxeos.upload import UploadStreamer, read_payload

urllib3.disable_warnings()  # Disable SSL warnings

log = logging.getLogger(__name__)
log.debug('%s version %s', __name__, __version__)
log.debug('Python %s on %s', sys.version, sys.platform)


def set_debug(toggle=True, color=True):
    """Enable verbose logging"""
    if toggle:
        if color:
            logging.basicConfig(format='\x1b[31;1m%(levelname)s:%(message)s\x1b[0m', level=logging.DEBUG)
        else:
            logging.basicConfig(format='%(levelname)s:%(message)s', level=logging.DEBUG)
        log.setLevel(logging.DEBUG)
        log.debug("%s [%s]\n" % (__name__, __version__))
    else:
        log.setLevel(logging.NOTSET)


class AxeOS(object):
    def __init__(self, host="", timeout=10, poolmaxsize=10, upload_timeout=300):
        """
        Represents one AxeOS device (blocking API).

        Args:
            host           = Hostname or IP address of the device (e.g. 192.168.1.50)
            timeout        = Seconds for the timeout on http requests
            poolmaxsize    = Pool max size for http connection re-use (persistent connections disabled if zero)
            upload_timeout = Seconds for the timeout on firmware / www uploads
        """
        self.host = host
        self.timeout = timeout
        self.poolmaxsize = poolmaxsize
        self.upload_timeout = upload_timeout
        self.client: PyAxeOSBase

        # Validate provided parameters
        self._validate_init_configuration()

        self.client = PyAxeOSLocal(self.host, self.timeout, self.poolmaxsize, self.upload_timeout)
        self.client.authenticate()

    def is_connected(self) -> bool:
        """
        Return True if the device answers its status API
        """
        # noinspection PyBroadException
        try:
            return isinstance(self.client.info(), dict)
        except Exception:
            return False

    def poll(self, api='/api/system/info', params: Optional[dict] = None, jsonformat=False):
        """
        Query the device for API Response

        Args:
            api         = URI
            params      = Optional query string parameters
            jsonformat  = If True, return JSON format otherwise return Python Dictionary
        """
        payload = self.client.poll(api, params)
        if jsonformat:
            return json.dumps(payload)
        return payload

    def post(self, api: str, payload: Optional[dict], jsonformat=False):
        """
        Send a command to the device

        Args:
            api         = URI
            payload     = Payload to send
            jsonformat  = If True, return JSON format otherwise return Python Dictionary
        """
        response = self.client.post(api, payload)
        if jsonformat:
            return json.dumps(response)
        return response

    def info(self, jsonformat=False) -> Union[dict, str]:
        """ Live status of the device """
        payload = self.client.info()
        if jsonformat:
            return json.dumps(payload, indent=4, sort_keys=True)
        return payload

    def asic(self, jsonformat=False) -> Union[dict, str]:
        """ Static ASIC descriptor """
        payload = self.client.asic()
        if jsonformat:
            return json.dumps(payload, indent=4, sort_keys=True)
        return payload

    def ethernet_status(self) -> EthernetStatus:
        """ Ethernet status and stored settings, defaults if the device does not report them """
        # noinspection PyBroadException
        try:
            payload = self.client.ethernet_status()
            return EthernetStatus.from_device(payload if isinstance(payload, dict) else {})
        except Exception as exc:
            log.debug(f"Ethernet status not available: {exc} - using defaults")
            return EthernetStatus.defaults()

    def statistics(self, columns: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Recorded statistics, one dictionary per sample

        Args:
            columns = Additional columns to request (e.g. ['asicTemp', 'vrTemp']);
                      hashrate and power are always included
        """
        return self.client.statistics(columns)

    def scan_wifi(self, floor: int = -80) -> List[WifiChoice]:
        """ Scan for Wi-Fi networks - weak and duplicate entries removed, strongest first """
        networks = self.client.wifi_scan()
        return reduce_scan([ScanCandidate.model_validate(n) for n in networks], floor)

    def update_system(self, patch: dict):
        """ Send a partial settings update (PATCH /api/system) """
        return self.client.update_system(patch)

    def set_ethernet_config(self, use_dhcp: bool = True, static_ip: Optional[str] = None,
                            gateway: Optional[str] = None, subnet: Optional[str] = None,
                            dns: Optional[str] = None):
        """
        Save Ethernet settings, unspecified fields keep their current value

        Args:
            use_dhcp    = If True, obtain the address by DHCP
            static_ip   = Static IPv4 address
            gateway     = Default gateway
            subnet      = Subnet mask
            dns         = DNS server
        """
        current = self.ethernet_status()
        config = {
            'ethUseDHCP': bool(use_dhcp),
            'ethStaticIP': static_ip or current.static_ip,
            'ethGateway': gateway or current.gateway,
            'ethSubnet': subnet or current.subnet,
            'ethDNS': dns or current.dns,
        }
        return self.client.set_ethernet_config(config)

    def set_network_mode(self, mode: Union[NetworkMode, str]):
        """ Switch network mode: 'wifi' or 'ethernet' (restart required) """
        try:
            mode = NetworkMode(mode.lower() if isinstance(mode, str) else mode)
        except ValueError:
            raise PyAxeOSInvalidConfigurationParameter(f"Invalid network mode: '{mode}'. "
                                                       f"Must be one of: wifi, ethernet")
        return self.client.set_network_mode(mode.value)

    def restart(self):
        """ Restart the device """
        return self.client.restart()

    def upload(self, payload, target: Union[UploadTarget, str] = UploadTarget.FIRMWARE,
               progress: Optional[ProgressCallback] = None) -> str:
        """
        Upload a firmware or www image

        Args:
            payload     = bytes, file path or binary file object
            target      = 'firmware' (/api/system/OTA) or 'www' (/api/system/OTAWWW)
            progress    = Optional callback(sent, total) called as the body is transmitted
        """
        target = UploadTarget(target)
        return self.client.upload(target.api, read_payload(payload), progress)

    def version(self, int_value=False) -> Union[int, str, None]:
        """ Firmware Version """
        payload = self.client.info()
        value = payload.get('version') if isinstance(payload, dict) else None
        if not int_value:
            return value
        # Convert version to integer
        return parse_version(value)

    def hostname(self) -> Optional[str]:
        """ Device hostname """
        payload = self.client.info()
        return payload.get('hostname') if isinstance(payload, dict) else None

    def device(self) -> AsyncDevice:
        """ Asyncio access sharing this client's connection pool """
        return AsyncDevice(self.client, timeout=self.timeout, upload_timeout=self.upload_timeout)

    def close(self):
        self.client.close_session()

    def _validate_init_configuration(self):

        # Check for valid hostname/IP address
        if (not self.host or
                not isinstance(self.host, str) or
                (not IPV4_6_REGEX.match(self.host) and not HOST_REGEX.match(self.host))):
            raise PyAxeOSInvalidConfigurationParameter(f"Invalid device host: '{self.host}'. Must be in the "
                                                       f"form of IP address or a valid form of a hostname or FQDN.")
        if not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise PyAxeOSInvalidConfigurationParameter(f"Invalid timeout: '{self.timeout}'")
