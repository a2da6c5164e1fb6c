from typing import Optional


class PyAxeOSError(Exception):
    """Base class for all pyaxeos errors"""


class PyAxeOSInvalidConfigurationParameter(PyAxeOSError):
    pass


class DeviceRequestError(PyAxeOSError):
    """A single request to the device failed.

    Carries the transport message so it can be surfaced to the operator as-is.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.url = url


class DeviceTimeoutError(DeviceRequestError):
    pass


class DeviceConnectionError(DeviceRequestError):
    pass


class ConfigurationStateError(PyAxeOSError):
    """Raised when the configuration synchronizer is asked to do something its state does not allow"""


class UploadAbandonedError(PyAxeOSError):
    """Raised from the upload body once the caller has stopped waiting for the upload"""
