DOMAIN = "sonoff_diy"

CONF_HOST = "host"
CONF_PORT = "port"
CONF_NAME = "name"
DEFAULT_NAME = "Sonoff DIY"
DEFAULT_PORT = 8081

MANUFACTURER = "Sonoff"
MODEL = "DIY mode switch"

PLATFORMS = ["switch"]

SCAN_INTERVAL_SECONDS = 5

# Device API endpoints
PATH_SWITCH = "/zeroconf/switch"
PATH_INFO = "/zeroconf/info"

# Command pacing
DISPATCH_FREQUENCY_HZ = 2           # one dispatch check every 500 ms
DISPATCH_COOLDOWN_SECONDS = 0.1     # idle gap after every device call
REQUEST_TIMEOUT_SECONDS = 8.0
