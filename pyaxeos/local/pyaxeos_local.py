import json
import logging
from typing import Optional, Tuple, Union

import requests
from requests import Response

from pyaxeos.exceptions import DeviceConnectionError, DeviceRequestError, DeviceTimeoutError
from pyaxeos.pyaxeos_base import ProgressCallback, PyAxeOSBase

log = logging.getLogger(__name__)


class ProgressReader:
    """In-memory body that counts bytes as the HTTP stack reads them.

    Progress therefore reflects what the transport has consumed, not how the
    payload was loaded.
    """

    def __init__(self, data: bytes, progress: Optional[ProgressCallback] = None):
        self._data = data
        self._offset = 0
        self._progress = progress

    def __len__(self):
        return len(self._data)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self._offset
        chunk = self._data[self._offset:self._offset + size]
        self._offset += len(chunk)
        if chunk and self._progress:
            self._progress(self._offset, len(self._data))
        return chunk


class PyAxeOSLocal(PyAxeOSBase):

    def __init__(self, host: str, timeout: Union[int, float, Tuple[int, int]] = 10, poolmaxsize: int = 10,
                 upload_timeout: Union[int, float] = 300):
        super().__init__(host)
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.poolmaxsize = poolmaxsize  # pool max size for http connection re-use
        self.session = None

    def authenticate(self):
        log.debug('AxeOS local mode enabled')
        if self.poolmaxsize > 0:
            # Create session object for http connection re-use
            self.session = requests.Session()
            # noinspection PyUnresolvedReferences
            a = requests.adapters.HTTPAdapter(pool_maxsize=self.poolmaxsize)
            self.session.mount('http://', a)
        else:
            # Disable http persistent connections
            self.session = requests

    def close_session(self):
        if isinstance(self.session, requests.Session):
            self.session.close()
        self.session = None

    def _url(self, api: str) -> str:
        host = self.host.rstrip('/')
        if not host.startswith('http://') and not host.startswith('https://'):
            host = "http://%s" % host
        return "%s%s" % (host, api)

    def _request(self, method: str, api: str, timeout=None, **kwargs) -> Response:
        if self.session is None:
            self.authenticate()
        url = self._url(api)
        log.debug(' -- local: %s %s' % (method, url))
        try:
            r: Response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            log.debug('ERROR Timeout waiting for AxeOS API %s' % url)
            raise DeviceTimeoutError(f"Timeout waiting for {url}", url=url) from exc
        except requests.exceptions.ConnectionError as exc:
            log.debug('ERROR Unable to connect to AxeOS at %s' % url)
            raise DeviceConnectionError(f"Unable to connect to {url}: {exc}", url=url) from exc
        except requests.exceptions.RequestException as exc:
            log.debug(f'ERROR Unknown error connecting to AxeOS at {url}: {exc}')
            raise DeviceRequestError(f"Request to {url} failed: {exc}", url=url) from exc

        if r.status_code == 401:
            log.error('401 Unauthorized by AxeOS API at %s - client network not allowed' % url)
        elif r.status_code == 404:
            log.error('404 AxeOS API not found at %s' % url)
        elif r.status_code >= 500:
            log.error('Server-side problem at AxeOS API (status code %s) at %s' % (r.status_code, url))
        if r.status_code >= 400:
            detail = (r.text or r.reason or '').strip()
            message = f"Http failure response for {url}: {r.status_code} {r.reason or ''}".rstrip()
            if detail and detail != r.reason:
                message = f"{message} - {detail}"
            raise DeviceRequestError(message, status_code=r.status_code, url=url)
        return r

    @staticmethod
    def _decode(r: Response) -> Optional[Union[dict, list, str]]:
        payload = r.text
        if not payload:
            return None
        if 'application/json' in (r.headers.get('Content-Type') or '') or payload.lstrip()[:1] in ('{', '['):
            try:
                return json.loads(payload)
            except ValueError:
                log.debug(f"Non-json response from AxeOS at {r.url}: '{payload}', serving as is.")
        return payload

    def poll(self, api: str, params: Optional[dict] = None) -> Optional[Union[dict, list, str]]:
        r = self._request('GET', api, params=params)
        return self._decode(r)

    def post(self, api: str, payload: Optional[dict]) -> Optional[Union[dict, list, str]]:
        r = self._request('POST', api, json=payload)
        return self._decode(r)

    def patch(self, api: str, payload: dict) -> Optional[Union[dict, list, str]]:
        r = self._request('PATCH', api, json=payload)
        return self._decode(r)

    def upload(self, api: str, data: bytes, progress: Optional[ProgressCallback] = None) -> str:
        body = ProgressReader(data, progress)
        headers = {'Content-Type': 'application/octet-stream'}
        r = self._request('POST', api, data=body, headers=headers, timeout=self.upload_timeout)
        return r.text
