# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Controllable devices and their command vocabularies."""

from .base import Target
from .commands import (
    Command,
    CommandParameter,
    dump_json_commands,
    new_command,
    parse_json_commands,
)
from .registry import TargetFactory, TargetRegistry, default_target_registry
from .validation import (
    ParameterValidator,
    validate_list,
    validate_numeric,
    validate_range,
    validate_regex,
    validate_string,
)

__all__ = [
    "Target",
    "TargetFactory",
    "TargetRegistry",
    "default_target_registry",
    # Descriptors
    "Command",
    "CommandParameter",
    "new_command",
    "parse_json_commands",
    "dump_json_commands",
    # Validators
    "ParameterValidator",
    "validate_string",
    "validate_regex",
    "validate_numeric",
    "validate_range",
    "validate_list",
]
