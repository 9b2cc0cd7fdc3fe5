"""Constants for connman."""

from logging import Logger, getLogger

LOGGER: Logger = getLogger(__package__)

DOMAIN = "connman"
MANUFACTURER = "ConnMan"

DATA_HUB = "hub"
DATA_COORDINATOR = "coordinator"

CONF_SERVICE_TYPES = "service_types"
CONF_ROUTING_TABLES = "routing_tables"
CONF_CALL_TIMEOUT = "call_timeout"

SERVICE_TYPE_WIFI = "wifi"
SERVICE_TYPE_ETHERNET = "ethernet"
SERVICE_TYPE_P2P = "p2p"
SERVICE_TYPES = [SERVICE_TYPE_WIFI, SERVICE_TYPE_ETHERNET, SERVICE_TYPE_P2P]
DEFAULT_SERVICE_TYPES = [SERVICE_TYPE_WIFI, SERVICE_TYPE_ETHERNET]

DEFAULT_CALL_TIMEOUT = 120.0
READY_TIMEOUT = 30.0

EVENT_P2P_REQUEST = "connman_p2p_request"
