"""
Execution context threaded through a mixin invocation.

Environment variables and the working directory are fields here rather
than process globals, so pre-run setup can be exercised in tests without
touching os.environ or calling os.chdir.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, IO


@dataclass
class ExecutionContext:
    """Mutable per-invocation state: child env, cwd and streams."""
    env: Dict[str, str] = field(default_factory=lambda: os.environ.copy())
    cwd: Path = field(default_factory=Path.cwd)
    stdin: IO = field(default_factory=lambda: sys.stdin)
    stdout: IO = field(default_factory=lambda: sys.stdout)
    stderr: IO = field(default_factory=lambda: sys.stderr)
    debug: bool = False

    def setenv(self, key: str, value: str) -> None:
        self.env[key] = value

    def chdir(self, path: str) -> Path:
        """Change the context's working directory; relative paths resolve against cwd."""
        target = Path(path)
        if not target.is_absolute():
            target = self.cwd / target
        self.cwd = target.resolve()
        return self.cwd

    def getwd(self) -> Path:
        return self.cwd
