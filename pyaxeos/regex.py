import re

# Dotted-quad IPv4 or bracket-less IPv6, optionally followed by a port
IPV4_6_REGEX = re.compile(
    r'^((25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)(\.(25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)){3}|[0-9a-fA-F:]+:[0-9a-fA-F:.]*)'
    r'(:\d{1,5})?$'
)

# Hostname, FQDN or mDNS name (bitaxe.local), optionally with scheme and port
HOST_REGEX = re.compile(
    r'^(https?://)?(?=.{1,253}(:\d{1,5})?$)([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)'
    r'(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\.?(:\d{1,5})?$'
)
