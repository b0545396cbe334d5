"""Process-wide mixin configuration."""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

# Default working directory for Terraform files inside the bundle
DEFAULT_WORKING_DIR = "terraform"

# Default version of the terraform CLI installed by `build`
DEFAULT_CLIENT_VERSION = "1.0.4"

# Default file used to initialize terraform providers during build
DEFAULT_INIT_FILE = ""

# Where the host orchestrator collects step outputs from
DEFAULT_OUTPUTS_DIR = "/cnab/app/porter/outputs"

_CONFIG_KEYS = {
    "workingDir": "working_dir",
    "clientVersion": "client_version",
    "initFile": "init_file",
    "outputsDir": "outputs_dir",
}


@dataclass(frozen=True)
class MixinConfig:
    """Defaults shared by every step of an invocation."""
    working_dir: str = DEFAULT_WORKING_DIR
    client_version: str = DEFAULT_CLIENT_VERSION
    init_file: str = DEFAULT_INIT_FILE
    outputs_dir: str = DEFAULT_OUTPUTS_DIR

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MixinConfig":
        """Build config from the host's camelCase `config:` block.

        Raises:
            ValueError: on unknown keys or non-string values
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"'config' must be a dictionary, got {type(data).__name__}")

        kwargs = {}
        for key, value in data.items():
            if key not in _CONFIG_KEYS:
                raise ValueError(f"Unknown config field '{key}'")
            # Unquoted versions such as 1.10 would otherwise load as floats
            if not isinstance(value, str):
                raise ValueError(
                    f"Config field '{key}' must be a string, got {type(value).__name__} (quote the value)"
                )
            kwargs[_CONFIG_KEYS[key]] = value
        return cls(**kwargs)

    def with_overrides(self, **overrides: Optional[str]) -> "MixinConfig":
        """Return a copy with every non-empty override applied."""
        changes = {k: v for k, v in overrides.items() if v}
        return replace(self, **changes) if changes else self
