# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Constants shared across the claw router."""

# Parameter types
PARAM_EMPTY = "empty"
PARAM_STRING = "string"
PARAM_REGEX = "regex"
PARAM_NUMERIC = "numeric"
PARAM_RANGE = "range"
PARAM_LIST = "list"
PARAM_CUSTOM = "custom"

RANGE_SEPARATOR = ":"
LIST_SEPARATOR = "|"
PERCENT_SUFFIX = "%"

# Vocabulary document fields
FIELD_COMMANDS = "commands"
FIELD_DESCRIPTION = "description"
FIELD_PARAMETERS = "parameters"
FIELD_NAME = "name"
FIELD_TYPE = "type"
FIELD_VALIDATION = "validation"
FIELD_OPTIONAL = "optional"

# Listener types
LISTENER_LIRC_SOCKET = "lircsocket"
LISTENER_LIRC_TCP = "lirctcp"

# Target types
TARGET_ONKYO = "onkyo"
TARGET_PLEX = "plex"
TARGET_LINUX = "linux"

# LIRC
DEFAULT_LIRC_SOCKET = "/var/run/lirc/lircd"
DEFAULT_LIRC_PORT = 8765
LIRC_FIELD_COUNT = 4
LIRC_REPEAT_BASE = 16

# Listener backoff (seconds)
RECONNECT_DELAY = 1.0
RETRY_DELAY = 3.0

# Routing
ROUTE_ANY_SOURCE = "*"

# Configuration
DEFAULT_CONFIG_PATH = "/etc/claw/claw.yaml"
