import abc
import logging
from typing import Any, Callable, Dict, List, Optional, Union

log = logging.getLogger(__name__)

# Device endpoints
API_INFO = '/api/system/info'
API_ASIC = '/api/system/asic'
API_STATISTICS = '/api/system/statistics'
API_ETHERNET_STATUS = '/api/system/ethernet/status'
API_ETHERNET_CONFIG = '/api/system/ethernet/config'
API_NETWORK_MODE = '/api/system/network/mode'
API_WIFI_SCAN = '/api/system/wifi/scan'
API_SYSTEM = '/api/system'
API_RESTART = '/api/system/restart'

# Columns the statistics endpoint always returns first
STATISTICS_BASE_COLUMNS = ['hashrate', 'power']

ProgressCallback = Callable[[int, int], None]


def parse_version(version: str) -> Optional[int]:
    if version is None or not isinstance(version, str):
        return None

    val = version.split(" ")[0]
    val = ''.join(i for i in val if i.isdigit() or i in './\\')
    while len(val.split('.')) < 3:
        val = val + ".0"
    line = [int(x, 10) for x in val.split('.')[:3]]
    line.reverse()
    vint = sum(x * (100 ** i) for i, x in enumerate(line))
    return vint


class PyAxeOSBase:
    """Single-shot access to the device REST API.

    Implementations issue exactly one request per call and raise
    DeviceRequestError on failure. There is no caching and no retry here;
    recurring polling and latest-wins discipline live in the pipeline.
    """

    def __init__(self, host: str):
        super().__init__()
        self.host = host

    @abc.abstractmethod
    def close_session(self):
        raise NotImplementedError

    @abc.abstractmethod
    def poll(self, api: str, params: Optional[dict] = None) -> Optional[Union[dict, list, str]]:
        raise NotImplementedError

    @abc.abstractmethod
    def post(self, api: str, payload: Optional[dict]) -> Optional[Union[dict, list, str]]:
        raise NotImplementedError

    @abc.abstractmethod
    def patch(self, api: str, payload: dict) -> Optional[Union[dict, list, str]]:
        raise NotImplementedError

    @abc.abstractmethod
    def upload(self, api: str, data: bytes, progress: Optional[ProgressCallback] = None) -> str:
        raise NotImplementedError

    # Reads

    def info(self) -> dict:
        return self.poll(API_INFO)

    def asic(self) -> dict:
        return self.poll(API_ASIC)

    def ethernet_status(self) -> dict:
        return self.poll(API_ETHERNET_STATUS)

    def wifi_scan(self) -> List[dict]:
        payload = self.poll(API_WIFI_SCAN)
        if isinstance(payload, dict):
            return payload.get('networks') or []
        log.debug(f"ERROR unexpected wifi scan payload '{payload}'")
        return []

    def statistics(self, columns: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Return statistics rows keyed by column label."""
        column_list = list(STATISTICS_BASE_COLUMNS)
        for column in columns or []:
            if column not in column_list:
                column_list.append(column)
        payload = self.poll(API_STATISTICS, params={'columns': ','.join(column_list)})
        if not isinstance(payload, dict):
            return []
        labels = payload.get('labels') or column_list + ['timestamp']
        return [dict(zip(labels, row)) for row in payload.get('statistics') or []]

    # Writes

    def update_system(self, patch: dict):
        return self.patch(API_SYSTEM, patch)

    def set_ethernet_config(self, config: dict):
        return self.post(API_ETHERNET_CONFIG, config)

    def set_network_mode(self, mode: str):
        return self.post(API_NETWORK_MODE, {'networkMode': mode})

    def restart(self) -> str:
        return self.post(API_RESTART, {})
