"""Tests for the requests based device client."""
from unittest.mock import Mock

import pytest
import requests

from pyaxeos.exceptions import DeviceConnectionError, DeviceRequestError, DeviceTimeoutError
from pyaxeos.local.pyaxeos_local import ProgressReader, PyAxeOSLocal


def response(status_code=200, text='', content_type='application/json', reason='OK'):
    r = Mock()
    r.status_code = status_code
    r.text = text
    r.reason = reason
    r.headers = {'Content-Type': content_type}
    r.url = 'http://192.168.1.50'
    return r


@pytest.fixture
def client():
    c = PyAxeOSLocal('192.168.1.50', timeout=7)
    c.session = Mock()
    return c


def test_poll_decodes_json(client):
    client.session.request.return_value = response(text='{"hostname": "bitaxe"}')
    assert client.info() == {'hostname': 'bitaxe'}
    client.session.request.assert_called_once_with(
        'GET', 'http://192.168.1.50/api/system/info', timeout=7, params=None)


def test_plain_text_response(client):
    client.session.request.return_value = response(text='Device restarting', content_type='text/plain')
    assert client.restart() == 'Device restarting'
    args, kwargs = client.session.request.call_args
    assert args == ('POST', 'http://192.168.1.50/api/system/restart')
    assert kwargs['json'] == {}


def test_patch_system(client):
    client.session.request.return_value = response(text='')
    assert client.update_system({'hostname': 'x'}) is None
    args, kwargs = client.session.request.call_args
    assert args == ('PATCH', 'http://192.168.1.50/api/system')
    assert kwargs['json'] == {'hostname': 'x'}


def test_explicit_scheme_is_kept():
    c = PyAxeOSLocal('http://bitaxe.local/')
    assert c._url('/api/system/info') == 'http://bitaxe.local/api/system/info'


def test_http_error_carries_device_message(client):
    client.session.request.return_value = response(
        status_code=500, text='Failed to save settings', content_type='text/plain',
        reason='Internal Server Error')
    with pytest.raises(DeviceRequestError) as exc_info:
        client.update_system({'hostname': 'x'})
    err = exc_info.value
    assert err.status_code == 500
    assert err.url == 'http://192.168.1.50/api/system'
    assert str(err) == ('Http failure response for http://192.168.1.50/api/system: '
                        '500 Internal Server Error - Failed to save settings')


def test_timeout_is_mapped(client):
    client.session.request.side_effect = requests.exceptions.Timeout()
    with pytest.raises(DeviceTimeoutError):
        client.info()


def test_connection_error_is_mapped(client):
    client.session.request.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(DeviceConnectionError):
        client.info()


def test_wifi_scan_returns_networks(client):
    client.session.request.return_value = response(
        text='{"networks": [{"ssid": "home", "rssi": -50, "authmode": 3}]}')
    assert client.wifi_scan() == [{'ssid': 'home', 'rssi': -50, 'authmode': 3}]


def test_statistics_always_requests_hashrate_and_power(client):
    client.session.request.return_value = response(
        text='{"labels": ["hashrate", "power", "asicTemp", "timestamp"], '
             '"statistics": [[1000.5, 18.0, 55, 1000]]}')
    rows = client.statistics(['asicTemp', 'power'])
    assert rows == [{'hashrate': 1000.5, 'power': 18.0, 'asicTemp': 55, 'timestamp': 1000}]
    _, kwargs = client.session.request.call_args
    assert kwargs['params'] == {'columns': 'hashrate,power,asicTemp'}


def test_upload_streams_body_with_progress(client):
    seen = []

    def send(method, url, **kwargs):
        body = kwargs['data']
        assert len(body) == 20000
        while body.read(8192):
            pass
        return response(text='Firmware update complete, rebooting now', content_type='text/plain')

    client.session.request.side_effect = send
    result = client.upload('/api/system/OTA', b'\x00' * 20000, lambda sent, total: seen.append((sent, total)))

    assert result == 'Firmware update complete, rebooting now'
    assert seen == [(8192, 20000), (16384, 20000), (20000, 20000)]
    _, kwargs = client.session.request.call_args
    assert kwargs['headers'] == {'Content-Type': 'application/octet-stream'}
    assert kwargs['timeout'] == client.upload_timeout


def test_progress_reader_reads_everything_by_default():
    seen = []
    reader = ProgressReader(b'abc', lambda sent, total: seen.append(sent))
    assert reader.read() == b'abc'
    assert reader.read() == b''
    assert seen == [3]


def test_authenticate_creates_pooled_session():
    c = PyAxeOSLocal('192.168.1.50', poolmaxsize=4)
    c.authenticate()
    assert isinstance(c.session, requests.Session)
    c.close_session()
    assert c.session is None
