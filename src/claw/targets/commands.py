# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Command descriptors used by targets to document their vocabulary.

A target exposes a mapping of command name to Command. Each Command lists
the CommandParameters it accepts, and each parameter knows how to validate
and normalize a raw argument value.

Example:
    cmds = {
        "Volume": Command(
            "Volume",
            "Sets the volume",
            [CommandParameter("level", "The volume level").set_range(0, 77)],
        ),
    }
    args, error = cmds["Volume"].validate(["50%"])
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from ..const import (
    FIELD_COMMANDS,
    FIELD_DESCRIPTION,
    FIELD_NAME,
    FIELD_OPTIONAL,
    FIELD_PARAMETERS,
    FIELD_TYPE,
    FIELD_VALIDATION,
    LIST_SEPARATOR,
    PARAM_CUSTOM,
    PARAM_EMPTY,
    PARAM_LIST,
    PARAM_NUMERIC,
    PARAM_RANGE,
    PARAM_REGEX,
    PARAM_STRING,
    RANGE_SEPARATOR,
)
from ..exceptions import CommandDocumentError
from .validation import (
    ParameterValidator,
    ValidationResult,
    get_validator,
    validate_list,
    validate_numeric,
    validate_range,
    validate_regex,
    validate_string,
)


@dataclass
class CommandParameter:
    """A parameter that can be passed to a Command.

    ``type``, ``validation`` and the bound validator are only ever changed
    together through the ``set_*`` methods.
    """

    name: str
    description: str = ""
    type: str = PARAM_EMPTY
    validation: str = ""
    optional: bool = False
    _validator: Optional[ParameterValidator] = field(
        default=None, init=False, repr=False, compare=False
    )

    def _configure(
        self, param_type: str, validation: str, validator: Optional[ParameterValidator]
    ) -> "CommandParameter":
        self.type = param_type
        self.validation = validation
        self._validator = validator
        return self

    def set_string(self) -> "CommandParameter":
        """Accept any string value."""
        return self._configure(PARAM_STRING, "", validate_string)

    def set_numeric(self, base: int = 0) -> "CommandParameter":
        """Accept an integer, in hex (0x..), octal (0..) or decimal notation.

        A non-zero base forces that base instead.
        """
        return self._configure(
            PARAM_NUMERIC, str(base) if base else "", validate_numeric
        )

    def set_regex(self, pattern: str) -> "CommandParameter":
        """Accept a string fully matching ``pattern``."""
        return self._configure(PARAM_REGEX, pattern, validate_regex)

    def set_range(
        self, start: Optional[int] = None, end: Optional[int] = None
    ) -> "CommandParameter":
        """Accept an integer (or percentage) within an inclusive range."""
        lower = "" if start is None else str(start)
        upper = "" if end is None else str(end)
        return self._configure(
            PARAM_RANGE, f"{lower}{RANGE_SEPARATOR}{upper}", validate_range
        )

    def set_list(self, *values: str) -> "CommandParameter":
        """Accept one of ``values``, case-insensitively."""
        return self._configure(PARAM_LIST, LIST_SEPARATOR.join(values), validate_list)

    def set_custom(
        self, validation: str, validator: ParameterValidator
    ) -> "CommandParameter":
        """Validate with a custom function."""
        if validator is None:
            raise ValueError(
                f"custom parameter '{self.name}' needs a validator function"
            )
        return self._configure(PARAM_CUSTOM, validation, validator)

    def set_optional(self, optional: bool = True) -> "CommandParameter":
        self.optional = optional
        return self

    def validate(self, value: str) -> ValidationResult:
        """Validate and normalize a raw argument value."""
        validator = self._validator
        if validator is None:
            if self.type == PARAM_CUSTOM:
                return None, (
                    f"internal error: custom parameter '{self.name}' "
                    "defined but no function specified"
                )
            validator = get_validator(self.type)
            if validator is None:
                return value, None
        return validator(value, self.validation)

    def to_dict(self) -> dict[str, Any]:
        return {
            FIELD_NAME: self.name,
            FIELD_DESCRIPTION: self.description,
            FIELD_TYPE: self.type,
            FIELD_VALIDATION: self.validation,
            FIELD_OPTIONAL: self.optional,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommandParameter":
        """Create from a vocabulary document entry.

        Raises:
            CommandDocumentError: If the entry is malformed.
        """
        if not isinstance(data, dict):
            raise CommandDocumentError(f"parameter must be an object, got {data!r}")
        param = cls(
            name=_get_str(data, FIELD_NAME),
            description=_get_str(data, FIELD_DESCRIPTION),
            type=_get_str(data, FIELD_TYPE) or PARAM_EMPTY,
            validation=_get_str(data, FIELD_VALIDATION),
        )
        optional = data.get(FIELD_OPTIONAL, False)
        if not isinstance(optional, bool):
            raise CommandDocumentError(
                f"'{FIELD_OPTIONAL}' of parameter '{param.name}' must be a boolean"
            )
        param.optional = optional
        return param


@dataclass
class Command:
    """A target command and the parameters it accepts."""

    name: str
    description: str = ""
    parameters: list[CommandParameter] = field(default_factory=list)

    def validate(self, args) -> tuple[list[str], Optional[str]]:
        """Validate positional arguments against the parameters.

        Returns:
            (normalized_args, error_message) - error_message is None on success
        """
        args = list(args)
        if len(args) > len(self.parameters):
            return [], (
                f"command '{self.name}' takes at most {len(self.parameters)} "
                f"argument(s), got {len(args)}"
            )

        normalized = []
        for index, param in enumerate(self.parameters):
            if index >= len(args):
                if not param.optional:
                    return [], (
                        f"command '{self.name}' is missing required "
                        f"parameter '{param.name}'"
                    )
                break
            value, error = param.validate(args[index])
            if error:
                return [], f"parameter '{param.name}' of '{self.name}': {error}"
            normalized.append(value)
        return normalized, None

    def to_dict(self) -> dict[str, Any]:
        return {
            FIELD_DESCRIPTION: self.description,
            FIELD_PARAMETERS: [p.to_dict() for p in self.parameters],
        }


def new_command(description: str, *parameters: CommandParameter, name: str = "") -> Command:
    """Build a Command whose name is assigned later by its mapping key."""
    return Command(name=name, description=description, parameters=list(parameters))


def parse_json_commands(text: str) -> dict[str, Command]:
    """Parse a vocabulary document into a name -> Command mapping.

    The document has the shape::

        {"commands": {"<name>": {"description": "...", "parameters": [...]}}}

    Each Command's name is taken from its key. Any malformed part fails the
    whole load.

    Raises:
        CommandDocumentError: If the document is malformed.
    """
    try:
        document = json.loads(text)
    except (TypeError, ValueError) as e:
        raise CommandDocumentError(f"invalid command document: {e}") from e

    if not isinstance(document, dict) or not isinstance(
        document.get(FIELD_COMMANDS), dict
    ):
        raise CommandDocumentError(
            f"command document must contain a '{FIELD_COMMANDS}' object"
        )

    commands: dict[str, Command] = {}
    for name, entry in document[FIELD_COMMANDS].items():
        if not isinstance(entry, dict):
            raise CommandDocumentError(f"command '{name}' must be an object")
        params = entry.get(FIELD_PARAMETERS)
        if params is None:
            params = []
        elif not isinstance(params, list):
            raise CommandDocumentError(
                f"'{FIELD_PARAMETERS}' of command '{name}' must be a list"
            )
        commands[name] = Command(
            name=name,
            description=_get_str(entry, FIELD_DESCRIPTION),
            parameters=[CommandParameter.from_dict(p) for p in params],
        )
    return commands


def dump_json_commands(commands: dict[str, Command], indent: Optional[int] = 2) -> str:
    """Serialize a name -> Command mapping into a vocabulary document."""
    return json.dumps(
        {FIELD_COMMANDS: {name: cmd.to_dict() for name, cmd in commands.items()}},
        indent=indent,
    )


def _get_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CommandDocumentError(f"'{key}' must be a string, got {value!r}")
    return value
