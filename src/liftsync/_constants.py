"""Internal constants shared across the library."""

DEFAULT_BASE_URL = "http://localhost:8080"
USER_AGENT = "liftsync"

# ------------------------------------------------------------------
# Pub/sub destinations
# ------------------------------------------------------------------

FLEET_TOPIC = "topic/elevators"
CALL_TOPIC = "app/elevator/call"
GOTO_TOPIC = "app/elevator/goto"

# ------------------------------------------------------------------
# Mode-control endpoints (request/response)
# ------------------------------------------------------------------

CONTROL_ENDPOINT_PREFIX = "/api/elevator/"

# ------------------------------------------------------------------
# Timing and building defaults
# ------------------------------------------------------------------

RECONNECT_DELAY_SECONDS = 5.0
MQTT_KEEPALIVE_SECONDS = 60
TOTAL_FLOORS = 10

MQTT_PORT = 1883
MQTTS_PORT = 8883
WS_PORT = 80
WSS_PORT = 443
