import logging
from typing import Dict, Iterable, List

from pyaxeos.models import ScanCandidate, WifiChoice

log = logging.getLogger(__name__)

# Networks weaker than this (dBm) are not offered; the floor itself is kept
RSSI_FLOOR = -80


def reduce_scan(candidates: Iterable[ScanCandidate], floor: int = RSSI_FLOOR) -> List[WifiChoice]:
    """Reduce raw scan results to a list of selectable networks.

    Weak entries below ``floor`` are dropped, duplicate SSIDs collapse to the
    strongest entry (first seen wins a tie) and the result is ordered by
    signal strength, strongest first, with SSID as the tie-breaker so the
    output does not depend on input order.
    """
    strongest: Dict[str, ScanCandidate] = {}
    for candidate in candidates:
        if candidate.rssi < floor:
            continue
        current = strongest.get(candidate.ssid)
        if current is None or current.rssi < candidate.rssi:
            strongest[candidate.ssid] = candidate
    ordered = sorted(strongest.values(), key=lambda c: (-c.rssi, c.ssid))
    return [WifiChoice(label=c.ssid, rssi=c.rssi, value=c.ssid) for c in ordered]


def rssi_quality(rssi: int) -> str:
    if rssi > -50:
        return "Excellent"
    if rssi > -60:
        return "Good"
    if rssi > -70:
        return "Fair"
    return "Weak"


async def scan(device, floor: int = RSSI_FLOOR) -> List[WifiChoice]:
    """Ask the device to scan and return the reduced list."""
    candidates = await device.scan_wifi()
    choices = reduce_scan(candidates, floor)
    log.debug(f"Wi-Fi scan: {len(candidates)} networks found, {len(choices)} offered")
    return choices
