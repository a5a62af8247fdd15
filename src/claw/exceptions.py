# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exception types raised by the claw router."""


class ClawError(Exception):
    """Base class for all router errors."""


class ConfigurationError(ClawError):
    """A listener, target or configuration file could not be set up."""


class CommandDocumentError(ConfigurationError):
    """A command vocabulary document is malformed."""


class TargetError(ClawError):
    """A target failed to perform a command."""


class UnknownCommandError(TargetError):
    """The target does not know the requested command."""

    def __init__(self, target: str, command: str):
        super().__init__(f"could not send command `{command}` on `{target}`")
        self.target = target
        self.command = command


class TargetUnavailableError(TargetError):
    """The target's device is not reachable (yet)."""
