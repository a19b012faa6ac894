"""Internal constants shared across the library."""

API_URL = "https://api.yosmart.com/open/yolink/v2/api"
TOKEN_URL = "https://api.yosmart.com/open/yolink/token"
MQTT_PORT = 8003

#: Default number of seconds cached device data is trusted.
REFRESH_INTERVAL = 3600

SUCCESS_CODE = "000000"

# Codes the user should see as warnings; anything else is logged as an error.
DEVICE_UNREACHABLE_CODE = "000201"
RATE_LIMIT_CODE = "010301"
DEVICE_BUSY_CODE = "020104"
WARNING_CODES: frozenset[str] = frozenset({DEVICE_UNREACHABLE_CODE, RATE_LIMIT_CODE, DEVICE_BUSY_CODE})

# Token invalid / token expired.
AUTH_ERROR_CODES: frozenset[str] = frozenset({"000103", "010104"})

# Access token lifecycle, as fractions of ``expires_in``.  The heartbeat must
# fire after the refresh deadline so it always finds the token due.
TOKEN_REFRESH_AT = 0.90
TOKEN_HEARTBEAT_AT = 0.95

#: Pause after every set command so a device is not flooded.
SET_COOLDOWN_SECONDS = 0.25

#: Delay before restarting the push channel after an error.
PUSH_RESTART_DELAY_SECONDS = 5.0

#: Refresh timers never fire more often than this.
MIN_REFRESH_TIMER_SECONDS = 60

#: A device id missing from the device list is looked up again at most this often.
UNKNOWN_DEVICE_REPOLL_SECONDS = 300

GARAGE_DOOR_TIMEOUT = 45

# Push events that carry no device state (lock users, reminders, schedules).
NON_STATE_EVENTS: frozenset[str] = frozenset(
    {
        "getUsers",
        "addPassword",
        "delPassword",
        "updatePassword",
        "clearPassword",
        "addTemporaryPWD",
        "setOpenRemind",
        "setDelay",
        "getSchedules",
        "setSchedules",
        "setSchedule",
        "setInitState",
        "setTimeZone",
        "setDeviceAttributes",
        "setOption",
        "HourlyUsageReport",
        "getValveSchedules",
        "DataRecord",
    }
)
