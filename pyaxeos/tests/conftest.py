"""Pytest configuration and fixtures."""
import asyncio

import pytest

from pyaxeos.device import AsyncDevice
from pyaxeos.pyaxeos_base import (API_ASIC, API_ETHERNET_STATUS, API_INFO, API_STATISTICS, API_WIFI_SCAN,
                                  PyAxeOSBase)

INFO = {
    'hostname': 'bitaxe',
    'ssid': 'home',
    'wifiPass': 'do-not-echo',
    'ipv4': '192.168.1.50',
    'wifiStatus': 'Connected!',
    'wifiRSSI': -52,
    'networkMode': 'wifi',
    'ethAvailable': 1,
    'ethLinkUp': 0,
    'ethConnected': 0,
    'ethIPv4': '0.0.0.0',
    'version': 'v2.9.0',
    'ASICModel': 'BM1370',
    'hashRate': 1043.7,
    'power': 18.2,
    'temp': 58.5,
    'uptimeSeconds': 3600,
}

ASIC = {
    'ASICModel': 'BM1370',
    'deviceModel': 'Gamma',
    'asicCount': 1,
    'defaultFrequency': 525,
    'frequencyOptions': [400, 490, 525, 575],
    'defaultVoltage': 1150,
    'voltageOptions': [1000, 1100, 1150, 1200],
}

ETHERNET = {
    'networkMode': 'wifi',
    'ethAvailable': 1,
    'ethUseDHCP': 0,
    'ethStaticIP': '10.0.0.20',
    'ethGateway': '10.0.0.1',
    'ethSubnet': '255.255.255.0',
    'ethDNS': '',
}

NETWORKS = {
    'networks': [
        {'ssid': 'home', 'rssi': -45, 'authmode': 3},
        {'ssid': 'neighbour', 'rssi': -85, 'authmode': 3},
        {'ssid': 'home', 'rssi': -70, 'authmode': 3},
        {'ssid': 'garage', 'rssi': -61, 'authmode': 0},
    ]
}


class StubClient(PyAxeOSBase):
    def __init__(self):
        super().__init__('192.168.1.50')
        self.calls = []
        self.closed = False
        # api -> exception raised instead of answering
        self.fail = {}
        self._poll_map = {
            API_INFO: dict(INFO),
            API_ASIC: dict(ASIC),
            API_ETHERNET_STATUS: dict(ETHERNET),
            API_WIFI_SCAN: NETWORKS,
            API_STATISTICS: {
                'labels': ['hashrate', 'power', 'asicTemp', 'timestamp'],
                'statistics': [[1010.5, 18.1, 57, 1000], [1020.0, 18.3, 58, 2000]],
            },
        }
        self.upload_chunk = 256

    def close_session(self):
        self.closed = True

    def poll(self, api, params=None):
        self.calls.append(('poll', api, params))
        if api in self.fail:
            raise self.fail[api]
        return self._poll_map.get(api)

    def post(self, api, payload):
        self.calls.append(('post', api, payload))
        if api in self.fail:
            raise self.fail[api]
        return None

    def patch(self, api, payload):
        self.calls.append(('patch', api, payload))
        if api in self.fail:
            raise self.fail[api]
        return None

    def upload(self, api, data, progress=None):
        self.calls.append(('upload', api, len(data)))
        total = len(data)
        sent = 0
        while sent < total:
            sent = min(total, sent + self.upload_chunk)
            if progress:
                progress(sent, total)
                # transports may report the same position twice
                progress(sent, total)
            if api in self.fail and sent >= total // 2:
                raise self.fail[api]
        return "Firmware update complete, rebooting now\n"


class ControlledFetch:
    """Async fetch whose calls complete only when the test resolves them.

    With ignore_cancel the call keeps waiting after being cancelled, like a
    blocking request that is already on the wire.
    """

    def __init__(self, ignore_cancel=False):
        self.ignore_cancel = ignore_cancel
        self.pending = []

    async def __call__(self):
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        if not self.ignore_cancel:
            return await future
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            return await future

    def resolve(self, index, value):
        self.pending[index].set_result(value)

    def fail(self, index, exc):
        self.pending[index].set_exception(exc)


async def settle(rounds=10):
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def stub():
    return StubClient()


@pytest.fixture
def device(stub):
    dev = AsyncDevice(stub, timeout=2.0, upload_timeout=5.0)
    yield dev
    dev.close()
