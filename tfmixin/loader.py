"""Payload reading and strict step validation."""

import logging
from typing import Any, Dict, IO, List, Optional, Tuple
import yaml

from tfmixin.config import MixinConfig
from tfmixin.exceptions import PayloadError, StepValidationError, ValidationError
from tfmixin.model import Action, ActionPayload, Output, Step

logger = logging.getLogger(__name__)

MIXIN_KEY = "terraform"


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps 'on'/'off' as strings instead of booleans."""
    pass


# Terraform vars such as `enabled: on` must reach terraform verbatim
PreservingLoader.yaml_implicit_resolvers = dict(PreservingLoader.yaml_implicit_resolvers)
for _first in ('o', 'O'):
    if _first in PreservingLoader.yaml_implicit_resolvers:
        PreservingLoader.yaml_implicit_resolvers[_first] = [
            (tag, regexp) for tag, regexp in PreservingLoader.yaml_implicit_resolvers[_first]
            if tag != 'tag:yaml.org,2002:bool'
        ]


def read_payload(stream: IO) -> bytes:
    """
    Read the whole payload from the input stream.

    Raises:
        PayloadError: if the stream cannot be fully read
    """
    source = getattr(stream, "buffer", stream)
    try:
        data = source.read()
    except (OSError, ValueError) as e:
        raise PayloadError(f"could not read the payload from STDIN: {e}") from e

    if isinstance(data, str):
        data = data.encode("utf-8")
    logger.debug(f"Read {len(data)} bytes of payload")
    return data


class StepLoader:
    """Parses and validates a step payload for one action."""

    STEP_FIELDS = {
        'description', 'logLevel', 'workingDir', 'input', 'backendConfig',
        'vars', 'arguments', 'flags', 'outputs',
    }
    INVOKE_ONLY_FIELDS = {'arguments', 'flags'}

    def __init__(self):
        self.errors: List[ValidationError] = []

    def parse(self, data: bytes) -> Dict[str, Any]:
        """Parse raw payload bytes into a YAML document."""
        try:
            document = yaml.load(data, Loader=PreservingLoader)
        except yaml.YAMLError as e:
            self._add_error(f"Failed to parse payload: {e}")
            self._raise_validation_errors()

        if document is None or not isinstance(document, dict):
            self._add_error("Payload must be a YAML object/dictionary")
            self._raise_validation_errors()

        return document

    def load_config(self, document: Dict[str, Any]) -> MixinConfig:
        """Read the optional top-level `config:` block."""
        try:
            return MixinConfig.from_dict(document.get('config'))
        except ValueError as e:
            self._add_error(str(e), "config")
            self._raise_validation_errors()

    def load(self, data: bytes, action: str) -> ActionPayload:
        """
        Parse and validate the steps for `action`.

        Args:
            data: Raw payload bytes
            action: Action name (install, upgrade, uninstall or a custom action)

        Returns:
            ActionPayload with frozen steps in declaration order
        """
        document = self.parse(data)
        return self.load_document(document, action)

    def load_document(self, document: Dict[str, Any], action: str) -> ActionPayload:
        entries = document.get(action)
        if entries is None:
            self._add_error(f"Payload has no '{action}' action")
            self._raise_validation_errors()

        if not isinstance(entries, list) or not entries:
            self._add_error(f"'{action}' must be a non-empty list of steps", action)
            self._raise_validation_errors()

        is_invoke = action not in {Action.INSTALL.value, Action.UPGRADE.value, Action.UNINSTALL.value}

        steps = []
        for i, entry in enumerate(entries):
            path = f"{action}[{i}]"
            if not isinstance(entry, dict) or MIXIN_KEY not in entry:
                self._add_error(f"Step must be wrapped in a '{MIXIN_KEY}' key", path)
                continue
            extra = set(entry.keys()) - {MIXIN_KEY}
            if extra:
                self._add_error(f"Unknown keys beside '{MIXIN_KEY}': {sorted(extra)}", path)
            step = self._validate_step(entry[MIXIN_KEY], f"{path}.{MIXIN_KEY}", is_invoke)
            if step is not None:
                steps.append(step)

        if self.errors:
            self._raise_validation_errors()

        return ActionPayload(action=action, steps=tuple(steps))

    def _validate_step(self, raw: Any, path: str, is_invoke: bool) -> Optional[Step]:
        if not isinstance(raw, dict):
            self._add_error("Step must be a dictionary", path)
            return None

        error_count = len(self.errors)

        for key in raw.keys():
            if key not in self.STEP_FIELDS:
                self._add_error(f"Unknown field '{key}'", path)
            elif key in self.INVOKE_ONLY_FIELDS and not is_invoke:
                self._add_error(f"'{key}' is only allowed on custom actions", path)

        description = self._optional_string(raw, 'description', path)
        log_level = self._optional_string(raw, 'logLevel', path)
        working_dir = self._optional_string(raw, 'workingDir', path) or None

        input_flag = raw.get('input', False)
        if not isinstance(input_flag, bool):
            self._add_error("'input' must be a boolean", path)
            input_flag = False

        backend_config = self._string_mapping(raw, 'backendConfig', path)
        variables = self._string_mapping(raw, 'vars', path)
        flags = self._flag_mapping(raw, path)
        arguments = self._arguments(raw, path)
        outputs = self._outputs(raw.get('outputs'), path)

        if len(self.errors) != error_count:
            return None

        return Step(
            description=description,
            log_level=log_level,
            backend_config=backend_config,
            working_dir=working_dir,
            input=input_flag,
            vars=variables,
            arguments=arguments,
            flags=flags,
            outputs=outputs,
        )

    def _optional_string(self, raw: Dict[str, Any], key: str, path: str) -> str:
        value = raw.get(key)
        if value is None:
            return ""
        if not isinstance(value, str):
            self._add_error(f"'{key}' must be a string, got {type(value).__name__}", path)
            return ""
        if "\x00" in value:
            self._add_error(f"'{key}' must not contain NUL bytes", path)
            return ""
        return value

    def _string_mapping(self, raw: Dict[str, Any], key: str, path: str) -> Dict[str, str]:
        value = raw.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            self._add_error(f"'{key}' must be a dictionary", path)
            return {}

        result = {}
        for name, item in value.items():
            if isinstance(item, (dict, list)) or item is None:
                self._add_error(f"'{key}.{name}' must be a scalar value", path)
                continue
            if _has_nul(name, item):
                self._add_error(f"'{key}' entries must not contain NUL bytes", path)
                continue
            result[str(name)] = _scalar_to_string(item)
        return result

    def _flag_mapping(self, raw: Dict[str, Any], path: str) -> Dict[str, Optional[str]]:
        value = raw.get('flags')
        if value is None:
            return {}
        if not isinstance(value, dict):
            self._add_error("'flags' must be a dictionary", path)
            return {}

        flags = {}
        for name, item in value.items():
            if _has_nul(name, item):
                self._add_error("'flags' entries must not contain NUL bytes", path)
                continue
            # A null value renders a bare -flag
            flags[str(name)] = None if item is None else _scalar_to_string(item)
        return flags

    def _arguments(self, raw: Dict[str, Any], path: str) -> Tuple[str, ...]:
        value = raw.get('arguments')
        if value is None:
            return ()
        if not isinstance(value, list):
            self._add_error("'arguments' must be a list", path)
            return ()
        arguments = []
        for i, item in enumerate(value):
            if isinstance(item, (dict, list)) or item is None:
                self._add_error(f"'arguments[{i}]' must be a scalar value", path)
                continue
            if _has_nul(item):
                self._add_error(f"'arguments[{i}]' must not contain NUL bytes", path)
                continue
            arguments.append(_scalar_to_string(item))
        return tuple(arguments)

    def _outputs(self, value: Any, path: str) -> Tuple[Output, ...]:
        if value is None:
            return ()
        if not isinstance(value, list):
            self._add_error("'outputs' must be a list", path)
            return ()

        outputs = []
        seen = set()
        for i, item in enumerate(value):
            item_path = f"{path}.outputs[{i}]"
            if not isinstance(item, dict):
                self._add_error("Output must be a dictionary", item_path)
                continue
            unknown = set(item.keys()) - {'name'}
            if unknown:
                self._add_error(f"Unknown output fields: {sorted(unknown)}", item_path)
            name = item.get('name')
            if not isinstance(name, str) or not name:
                self._add_error("Output 'name' is required and must be a non-empty string", item_path)
                continue
            if _has_nul(name):
                self._add_error("Output name must not contain NUL bytes", item_path)
                continue
            if '/' in name or name in ('.', '..'):
                self._add_error(f"Output name '{name}' must not contain path separators", item_path)
                continue
            if name in seen:
                self._add_error(f"Duplicate output name '{name}'", item_path)
                continue
            seen.add(name)
            outputs.append(Output(name=name))
        return tuple(outputs)

    def _add_error(self, message: str, path: str = ""):
        self.errors.append(ValidationError(message=message, path=path))

    def _raise_validation_errors(self):
        errors = self.errors
        self.errors = []
        raise StepValidationError(errors)


def _scalar_to_string(value: Any) -> str:
    # Terraform expects HCL-style booleans
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _has_nul(*values: Any) -> bool:
    # NUL cannot appear in a process argument or a file name
    return any(isinstance(value, str) and "\x00" in value for value in values)
