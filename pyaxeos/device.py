"""
Async Device - Non-blocking access to one AxeOS device.

Wraps a blocking PyAxeOSBase client (requests based) so it can be used from an
asyncio event loop: every call runs in a dedicated thread pool and is bounded
by asyncio.wait_for. Results are converted into the pydantic models in
pyaxeos.models.

Error Handling:
    - Every call raises DeviceRequestError (or a subclass) on failure
    - asyncio timeouts surface as DeviceTimeoutError
    - get_ethernet_status() is best-effort: any failure yields the documented
      default Ethernet configuration instead of an error
    - Nothing is retried here; callers decide whether a failure is swallowed
      (polling) or surfaced (operator writes)
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional

from pyaxeos.exceptions import DeviceRequestError, DeviceTimeoutError
from pyaxeos.models import (AsicDescriptor, EthernetStatus, NetworkMode, ScanCandidate, StatusSnapshot,
                            UploadTarget)
from pyaxeos.pyaxeos_base import ProgressCallback, PyAxeOSBase

log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = object()


class AsyncDevice:
    """Asyncio facade over a blocking device client."""

    def __init__(self, client: PyAxeOSBase, timeout: float = 10.0, upload_timeout: Optional[float] = 300.0,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.client = client
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self._own_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="pyaxeos")

    @property
    def host(self) -> str:
        return self.client.host

    async def call(self, method: str, *args, timeout: Any = _DEFAULT_TIMEOUT, **kwargs) -> Any:
        """Run a client method in the executor with timeout protection.

        Args:
            method: Method name on the client (e.g. 'info', 'update_system')
            timeout: Seconds to wait, defaults to self.timeout. None disables the bound.

        Raises:
            DeviceTimeoutError: the call did not finish in time
            DeviceRequestError: the client reported a failure
        """
        method_func = getattr(self.client, method)
        loop = asyncio.get_running_loop()
        bound = self.timeout if timeout is _DEFAULT_TIMEOUT else timeout
        log.debug(f"[{self.host}] call({method}) starting (timeout={bound}s)")
        try:
            result = await asyncio.wait_for(
                loop.run_in_executor(self._executor, lambda: method_func(*args, **kwargs)),
                timeout=bound
            )
        except asyncio.TimeoutError:
            log.debug(f"[{self.host}] call({method}) timeout after {bound}s")
            raise DeviceTimeoutError(f"Timeout after {bound}s calling {method} on {self.host}")
        log.debug(f"[{self.host}] call({method}) completed successfully")
        return result

    async def run(self, func, *args) -> Any:
        """Run a blocking helper (e.g. reading an upload file) in the device thread pool, unbounded."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    # Reads

    async def get_info(self) -> StatusSnapshot:
        payload = await self.call('info')
        if not isinstance(payload, dict):
            raise DeviceRequestError(f"Unexpected status payload from {self.host}: {payload!r}")
        return StatusSnapshot.model_validate(payload)

    async def get_asic(self) -> AsicDescriptor:
        payload = await self.call('asic')
        if not isinstance(payload, dict):
            raise DeviceRequestError(f"Unexpected ASIC payload from {self.host}: {payload!r}")
        return AsicDescriptor.model_validate(payload)

    async def get_ethernet_status(self) -> EthernetStatus:
        try:
            payload = await self.call('ethernet_status')
            return EthernetStatus.from_device(payload if isinstance(payload, dict) else {})
        except Exception as e:
            log.debug(f"Ethernet status not available for {self.host}: {e} - using defaults")
            return EthernetStatus.defaults()

    async def scan_wifi(self) -> List[ScanCandidate]:
        # The device blocks while scanning; allow more than the regular timeout
        networks = await self.call('wifi_scan', timeout=max(self.timeout, 30.0))
        return [ScanCandidate.model_validate(n) for n in networks]

    async def get_statistics(self, columns: Optional[List[str]] = None):
        return await self.call('statistics', columns)

    # Writes

    async def update_system(self, patch: dict):
        return await self.call('update_system', patch)

    async def set_ethernet_config(self, config: dict):
        return await self.call('set_ethernet_config', config)

    async def set_network_mode(self, mode: NetworkMode):
        return await self.call('set_network_mode', NetworkMode(mode).value)

    async def restart(self):
        return await self.call('restart')

    async def upload(self, target: UploadTarget, data: bytes, progress: Optional[ProgressCallback] = None) -> str:
        """Send an upload body, bounded by upload_timeout.

        A timeout only stops the wait; the executor thread keeps sending until
        the transport gives up or the progress callback raises.
        """
        return await self.call('upload', UploadTarget(target).api, data, progress, timeout=self.upload_timeout)

    def close(self):
        if self._own_executor:
            self._executor.shutdown(wait=False)
        self.client.close_session()
