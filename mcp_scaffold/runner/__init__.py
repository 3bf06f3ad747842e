"""mcp-scaffold external command layer.

Key classes:
    ProcessRunner  - launches a command, relays selected output, maps exit codes
    CommandSpec    - command line plus output routing and remediation hints
    SystemChecker  - pre-flight checks for Node.js, the package manager and Git
"""

from .process import (
    CommandSpec,
    ProcessOutcome,
    ProcessRunner,
    git_init_spec,
    npm_install_spec,
    resolve_executable,
)
from .system_check import SystemChecker, SystemCheckResult

__all__ = [
    "CommandSpec",
    "ProcessOutcome",
    "ProcessRunner",
    "git_init_spec",
    "npm_install_spec",
    "resolve_executable",
    "SystemChecker",
    "SystemCheckResult",
]
