# const.py
DOMAIN = "led_controller"

CONF_HOST = "host"
CONF_PORT = "port"
CONF_NAME = "name"
CONF_INTERVAL = "interval"
CONF_TIMEOUT = "timeout"
CONF_WEBSOCKET = "websocket"
CONF_SECTIONS = "sections"

DEFAULT_PORT = 80
DEFAULT_INTERVAL = 30
DEFAULT_TIMEOUT = 5
DEFAULT_WEBSOCKET = False

# delays in seconds
INITIAL_DISCOVERY_DELAY = 2
RETRY_DELAY = 30
WS_READ_INTERVAL = 1

STATE_INITIALIZING = "initializing"
STATE_ACTIVE = "active"
STATE_ERROR = "error"

WS_CONNECTING = "connecting"
WS_CONNECTED = "connected"
WS_DISCONNECTED = "disconnected"
WS_FAILED = "failed"

SERVICE_REFRESH = "refresh"
SERVICE_SEND_COMMAND = "send_command"
SERVICE_GET = "get"

PLATFORMS = ["sensor", "switch", "number", "select", "text", "button"]


def signal_schema(entry_id: str) -> str:
    return f"{DOMAIN}_{entry_id}_schema"


def signal_readings(entry_id: str) -> str:
    return f"{DOMAIN}_{entry_id}_readings"


def signal_state(entry_id: str) -> str:
    return f"{DOMAIN}_{entry_id}_state"


def parse_sections(value: str | None) -> list[str] | None:
    """``"main, effects"`` -> ``["main", "effects"]``; empty means all sections."""

    if not value:
        return None
    sections = [part.strip() for part in str(value).split(",") if part.strip()]
    return sections or None
