"""
Configuration Management for pyaxeos

Settings come from environment variables or an optional .env file in the
working directory.

Environment Variables:

    Connection:
        AXE_HOST             - Device hostname or IP address (default: none, e.g. 192.168.1.50)
        AXE_TIMEOUT          - Request timeout in seconds (default: 10)
        AXE_UPLOAD_TIMEOUT   - Firmware / www upload timeout in seconds (default: 300)
        AXE_POOL_MAXSIZE     - Connection pool size, 0 disables keep-alive (default: 10)

    Polling:
        AXE_INFO_INTERVAL    - Live status cadence for the system view in seconds (default: 5)
        AXE_NETWORK_INTERVAL - Live status cadence for the network view in seconds (default: 3)

    Wi-Fi:
        AXE_RSSI_FLOOR       - Weakest signal (dBm) offered after a scan (default: -80)

    Logging:
        AXE_DEBUG            - Enable debug logging (default: no)

Example .env:
    AXE_HOST=bitaxe.local
    AXE_INFO_INTERVAL=2
    AXE_DEBUG=yes

Accessing Configuration:
    from pyaxeos.config import settings
    host = settings.host
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Console settings, loaded from AXE_* environment variables."""

    host: Optional[str] = Field(default=None, alias="AXE_HOST")
    timeout: float = Field(default=10, alias="AXE_TIMEOUT")
    upload_timeout: float = Field(default=300, alias="AXE_UPLOAD_TIMEOUT")
    pool_maxsize: int = Field(default=10, alias="AXE_POOL_MAXSIZE")

    info_interval: float = Field(default=5, alias="AXE_INFO_INTERVAL")
    network_interval: float = Field(default=3, alias="AXE_NETWORK_INTERVAL")

    rssi_floor: int = Field(default=-80, alias="AXE_RSSI_FLOOR")

    debug: bool = Field(default=False, alias="AXE_DEBUG")

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }


settings = Settings()
