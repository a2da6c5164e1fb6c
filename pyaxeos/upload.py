"""
Upload Streamer - firmware and web UI uploads with progress events.

    streamer = UploadStreamer(device)
    async for event in streamer.firmware("esp-miner.bin"):
        if isinstance(event, UploadProgress):
            print(f"{event.percent}%")

The payload is read fully into memory and sent as one
application/octet-stream body. Progress is reported from the bytes the HTTP
stack has actually read from the body, and percentages never go down. Every
upload ends with exactly one UploadComplete or UploadFailed; there is no
retry and no resume.

Once the terminal event is out (or the consumer stops iterating) the body
reader raises UploadAbandonedError, so a request left running in the thread
pool after a timeout stops sending.
"""
import asyncio
import logging
import os
import threading
from typing import AsyncIterator, BinaryIO, Union

from pyaxeos.device import AsyncDevice
from pyaxeos.exceptions import PyAxeOSInvalidConfigurationParameter, UploadAbandonedError
from pyaxeos.models import UploadComplete, UploadEvent, UploadFailed, UploadProgress, UploadTarget

log = logging.getLogger(__name__)

_DONE = object()

Payload = Union[bytes, bytearray, str, os.PathLike, BinaryIO]


def read_payload(payload: Payload) -> bytes:
    """Load an upload payload (bytes, file path or binary file object) into memory."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, (str, os.PathLike)):
        with open(payload, "rb") as f:
            return f.read()
    if hasattr(payload, "read"):
        data = payload.read()
        if not isinstance(data, (bytes, bytearray)):
            raise PyAxeOSInvalidConfigurationParameter("Upload file must be opened in binary mode")
        return bytes(data)
    raise PyAxeOSInvalidConfigurationParameter(f"Unsupported upload payload: {type(payload).__name__}")


class UploadStreamer:

    def __init__(self, device: AsyncDevice):
        self.device = device

    def firmware(self, payload: Payload) -> AsyncIterator[UploadEvent]:
        return self.upload(payload, UploadTarget.FIRMWARE)

    def www(self, payload: Payload) -> AsyncIterator[UploadEvent]:
        return self.upload(payload, UploadTarget.WWW)

    async def upload(self, payload: Payload, target: Union[UploadTarget, str] = UploadTarget.FIRMWARE
                     ) -> AsyncIterator[UploadEvent]:
        try:
            target = UploadTarget(target)
            data = await self.device.run(read_payload, payload)
        except (OSError, ValueError, PyAxeOSInvalidConfigurationParameter) as e:
            log.error(f"Upload to {self.device.host} not started: {e}")
            yield UploadFailed(error=str(e), exception=e)
            return

        log.debug(f"Uploading {len(data)} bytes to {self.device.host}{target.api}")
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        abandoned = threading.Event()

        def on_progress(sent: int, total: int):
            # Runs in the executor thread
            if abandoned.is_set():
                raise UploadAbandonedError(f"Upload to {self.device.host}{target.api} abandoned")
            loop.call_soon_threadsafe(queue.put_nowait, (sent, total))

        task = asyncio.ensure_future(self.device.upload(target, data, on_progress))
        task.add_done_callback(lambda _: queue.put_nowait(_DONE))

        last_percent = -1
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                sent, total = item
                percent = min(100, sent * 100 // total) if total else 100
                if percent > last_percent:
                    last_percent = percent
                    yield UploadProgress(percent=percent, sent=sent, total=total)
            abandoned.set()
            try:
                response = task.result()
            except Exception as e:
                log.error(f"Upload to {self.device.host}{target.api} failed: {e}")
                yield UploadFailed(error=str(e), exception=e)
                return
            log.info(f"Upload to {self.device.host}{target.api} complete")
            yield UploadComplete(message=(response or "").strip())
        finally:
            abandoned.set()
            if not task.done():
                task.cancel()
