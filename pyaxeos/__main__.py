# pyAxeOS Module - Command Line
# -*- coding: utf-8 -*-
"""
 Python module to monitor and configure AxeOS (Bitaxe) mining devices

 Command Line:
    python -m pyaxeos <get|watch|scan|mode|restart|ota|version> [-host HOST]

 The device host defaults to AXE_HOST (environment or .env file).
"""

import argparse
import asyncio
import json
import sys

# Modules
from pyaxeos import version, set_debug
from pyaxeos.config import settings

# Global Variables
host = settings.host or ""
interval = settings.info_interval
floor = settings.rssi_floor

# Setup parser and groups
p = argparse.ArgumentParser(prog="PyAxeOS", description=f"PyAxeOS Module v{version}")
subparsers = p.add_subparsers(dest="command", title='commands (run <command> -h to see usage information)',
                              required=True)

get_args = subparsers.add_parser("get", help='Get device status and settings')
get_args.add_argument("-host", type=str, default=host, help="IP address or hostname of the device")
get_args.add_argument("-format", type=str, default="text", help="Output format: text, json, csv")

watch_args = subparsers.add_parser("watch", help='Watch live status and ASIC information')
watch_args.add_argument("-host", type=str, default=host, help="IP address or hostname of the device")
watch_args.add_argument("-interval", type=float, default=interval,
                        help=f"Seconds between status polls [Default={interval}]")
watch_args.add_argument("-count", type=int, default=0, help="Stop after this many updates [Default=forever]")

scan_args = subparsers.add_parser("scan", help='Scan for Wi-Fi networks visible to the device')
scan_args.add_argument("-host", type=str, default=host, help="IP address or hostname of the device")
scan_args.add_argument("-floor", type=int, default=floor, help=f"Weakest signal to list in dBm [Default={floor}]")

mode_args = subparsers.add_parser("mode", help='Show or switch network mode')
mode_args.add_argument("-host", type=str, default=host, help="IP address or hostname of the device")
mode_args.add_argument("-set", type=str, default=None, help="Network mode: wifi or ethernet")

restart_args = subparsers.add_parser("restart", help='Restart the device')
restart_args.add_argument("-host", type=str, default=host, help="IP address or hostname of the device")

ota_args = subparsers.add_parser("ota", help='Upload firmware or web UI image')
ota_args.add_argument("-host", type=str, default=host, help="IP address or hostname of the device")
ota_args.add_argument("-file", type=str, required=True, help="Path to esp-miner.bin or www.bin")
ota_args.add_argument("-www", action="store_true", default=False, help="Upload web UI image (OTAWWW)")

version_args = subparsers.add_parser("version", help='Print version information')

# Add a global debug flag
p.add_argument("-debug", action="store_true", default=settings.debug, help="Enable debug output")

if len(sys.argv) == 1:
    p.print_help(sys.stderr)
    sys.exit(1)

# parse args
args = p.parse_args()
command = args.command

# Set Debug Mode
if args.debug:
    set_debug(True)


def connect(device_host):
    import pyaxeos
    if not device_host:
        print("ERROR: No device host. Set -host or AXE_HOST.")
        sys.exit(1)
    try:
        axe = pyaxeos.AxeOS(device_host, timeout=settings.timeout, poolmaxsize=settings.pool_maxsize,
                            upload_timeout=settings.upload_timeout)
    except pyaxeos.PyAxeOSInvalidConfigurationParameter as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    if not axe.is_connected():
        print(f"ERROR: Unable to connect to {device_host}")
        sys.exit(1)
    return axe


async def watch(axe, poll_interval, count):
    from pyaxeos import LiveStatusPipeline, StatusAggregator

    device = axe.device()
    info = LiveStatusPipeline(device.get_info, poll_interval, name="info")
    asic = LiveStatusPipeline(device.get_asic, None, name="asic")
    combined = StatusAggregator.combine(info, asic)
    seen = 0
    try:
        async for snapshot in combined.stream():
            status = snapshot.info
            print("  {:<16}{:<12}{:>10} GH/s {:>8} W {:>6} C   RSSI {} dBm".format(
                status.hostname, snapshot.asic.asic_model or "-",
                "%.1f" % (status.hash_rate or 0), "%.1f" % (status.power or 0),
                "%.1f" % (status.temp or 0), status.wifi_rssi))
            seen += 1
            if count and seen >= count:
                break
    finally:
        device.close()


# Get Device Status
if command == 'get':
    axe = connect(args.host)
    if args.format == 'text':
        print(f"pyAxeOS [{version}] - Get device status from {args.host}\n")
    info = axe.info()
    ethernet = axe.ethernet_status()
    output = {
        'hostname': info.get('hostname'),
        'version': info.get('version'),
        'asic_model': info.get('ASICModel'),
        'network_mode': info.get('networkMode', 'wifi'),
        'ssid': info.get('ssid'),
        'wifi_status': info.get('wifiStatus'),
        'wifi_rssi': info.get('wifiRSSI'),
        'ipv4': info.get('ipv4'),
        'eth_connected': bool(info.get('ethConnected')),
        'eth_dhcp': ethernet.use_dhcp,
        'hash_rate': info.get('hashRate'),
        'power': info.get('power'),
        'temp': info.get('temp'),
        'uptime_seconds': info.get('uptimeSeconds'),
    }
    if args.format == 'json':
        print(json.dumps(output, indent=2))
    elif args.format == 'csv':
        # create a csv header from keys
        header = ",".join(output.keys())
        print(header)
        values = ",".join(str(value) for value in output.values())
        print(values)
    else:
        # Table Output
        for item in output:
            name = item.replace("_", " ").title()
            print("  {:<18}{}".format(name, output[item]))
        print("")

# Watch Live Status
elif command == 'watch':
    axe = connect(args.host)
    print(f"pyAxeOS [{version}] - Watching {args.host} every {args.interval}s (Ctrl-C to stop)\n")
    try:
        asyncio.run(watch(axe, args.interval, args.count))
    except KeyboardInterrupt:
        print("")

# Scan Wi-Fi Networks
elif command == 'scan':
    from pyaxeos import rssi_quality

    axe = connect(args.host)
    print(f"pyAxeOS [{version}] - Wi-Fi scan from {args.host}\n")
    choices = axe.scan_wifi(args.floor)
    if not choices:
        print("  No networks found")
    for choice in choices:
        print("  {:<32}{:>5} dBm  {}".format(choice.label, choice.rssi, rssi_quality(choice.rssi)))
    print("")

# Show or Set Network Mode
elif command == 'mode':
    from pyaxeos import PyAxeOSError, PyAxeOSInvalidConfigurationParameter

    axe = connect(args.host)
    if not args.set:
        print("Network mode: %s" % axe.info().get('networkMode', 'wifi'))
        sys.exit(0)
    try:
        axe.set_network_mode(args.set)
    except PyAxeOSInvalidConfigurationParameter as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    except PyAxeOSError as exc:
        print(f"ERROR: Could not switch network mode. {exc}")
        sys.exit(1)
    print(f"Switched to {args.set.upper()} mode - restart required for network mode change")

# Restart Device
elif command == 'restart':
    from pyaxeos import PyAxeOSError

    axe = connect(args.host)
    try:
        axe.restart()
    except PyAxeOSError as exc:
        print(f"ERROR: Could not restart. {exc}")
        sys.exit(1)
    print("Device restarted")

# Upload Firmware or Web UI
elif command == 'ota':
    from pyaxeos import PyAxeOSError

    axe = connect(args.host)
    target = 'www' if args.www else 'firmware'
    print(f"pyAxeOS [{version}] - Uploading {args.file} ({target}) to {args.host}\n")
    last = [-1]

    def progress(sent, total):
        percent = sent * 100 // total if total else 100
        if percent > last[0]:
            last[0] = percent
            print(f"\r  {percent:3d}% ({sent}/{total} bytes)", end="", flush=True)

    try:
        axe.upload(args.file, target, progress)
    except (PyAxeOSError, OSError) as exc:
        print(f"\nERROR: Upload failed. {exc}")
        sys.exit(1)
    print("\nUpload complete")

# Print Version
elif command == 'version':
    print("pyAxeOS [%s]" % version)
# Print Usage
else:
    p.print_help()
