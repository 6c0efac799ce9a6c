"""Constants for the Govee LAN Sync integration."""

DOMAIN = "govee_lan_sync"

# UDP Ports
PORT_SCAN = 4001
PORT_LISTEN = 4002
PORT_CONTROL = 4003

# Multicast address for discovery
MULTICAST_ADDRESS = "239.255.255.250"
BROADCAST_ADDRESS = "255.255.255.255"

# Wire commands
CMD_SCAN = "scan"
CMD_STATUS = "devStatus"
CMD_TURN = "turn"
CMD_BRIGHTNESS = "brightness"
CMD_COLORWC = "colorwc"

# Timeouts (seconds)
TIMEOUT_DISCOVERY = 5.0
TIMEOUT_STATUS = 2.0

# Polling interval (seconds)
POLL_INTERVAL = 30

# Retry settings
MAX_RETRIES = 3
RETRY_DELAY = 0.5

# Minimum spacing between sends of one batch (seconds)
PACING_DELAY = 0.05

# Color temperature range (Kelvin)
MIN_COLOR_TEMP_KELVIN = 2000
MAX_COLOR_TEMP_KELVIN = 9000
DEFAULT_COLOR_TEMP_KELVIN = 5000

# Brightness range
MIN_BRIGHTNESS_GOVEE = 0
MAX_BRIGHTNESS_GOVEE = 100

# Sync defaults
DEFAULT_SAMPLE_RATE = 30.0
DEFAULT_SMOOTHING = 0.3
DEFAULT_LATENCY_COMPENSATION = 0.05
DEFAULT_ZONE_COUNT = 4

EXTRACTION_DOMINANT = "dominant"
EXTRACTION_AVERAGE = "average"
EXTRACTION_ZONES = "zones"
EXTRACTION_MODES = [EXTRACTION_DOMINANT, EXTRACTION_AVERAGE, EXTRACTION_ZONES]
DEFAULT_EXTRACTION_MODE = EXTRACTION_ZONES

# Scene playback
SCENE_FRAME_RATE = 10.0

# Option keys
CONF_TIMEOUT = "timeout"
CONF_MULTICAST_GROUP = "multicast_group"
CONF_DISCOVERY_PORT = "discovery_port"
CONF_RESPONSE_PORT = "response_port"
CONF_BROADCAST = "broadcast"
CONF_EXPECTED_DEVICES = "expected_devices"
CONF_SAMPLE_RATE = "sample_rate"
CONF_EXTRACTION_MODE = "extraction_mode"
CONF_ZONE_COUNT = "zone_count"
CONF_SMOOTHING = "smoothing"
CONF_LATENCY_COMPENSATION = "latency_compensation"
CONF_BRIGHTNESS_BOOST = "brightness_boost"
CONF_SATURATION_BOOST = "saturation_boost"
CONF_BEAT_REACTIVE = "beat_reactive"
CONF_DEVICE_IDS = "device_ids"
