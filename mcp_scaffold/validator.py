"""Input validation for the values that make up a ``GenerationConfig``.

Validators return a ``ValidationResult`` instead of raising, so interactive
prompts can show the error (or a non-blocking warning) and ask again.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import BaseModel

from mcp_scaffold.config import Transport

_NPM_NAME_RE = re.compile(r"^[a-z0-9]([a-z0-9\-_.])*[a-z0-9]$|^[a-z0-9]$", re.IGNORECASE)

RESERVED_NAMES: frozenset[str] = frozenset(
    {"node_modules", "favicon.ico", "con", "prn", "aux", "nul"}
    | {f"com{i}" for i in range(1, 10)}
    | {f"lpt{i}" for i in range(1, 10)}
)

COMMON_PORTS: dict[int, str] = {
    80: "HTTP",
    443: "HTTPS",
    3000: "React/Node.js dev servers",
    5000: "Flask",
    8000: "Django dev server",
    8080: "HTTP proxies/Tomcat",
    9000: "SonarQube",
}


class ValidationResult(BaseModel):
    is_valid: bool
    error: str | None = None
    warning: str | None = None
    suggestion: str | None = None


def validate_project_name(project_name: str) -> ValidationResult:
    """Check *project_name* against npm package naming rules."""
    name = (project_name or "").strip()
    if not name:
        return ValidationResult(is_valid=False, error="Project name cannot be empty")
    if len(name) < 2:
        return ValidationResult(is_valid=False, error="Project name needs at least 2 characters")
    if len(name) > 214:
        return ValidationResult(is_valid=False, error="Project name cannot exceed 214 characters")

    if " " in name:
        return ValidationResult(
            is_valid=False,
            error="Project name cannot contain spaces",
            suggestion="Use hyphens (-) instead of spaces",
        )
    if not _NPM_NAME_RE.match(name):
        return ValidationResult(
            is_valid=False,
            error="Project name may only contain letters, digits, '-', '_' and '.'",
            suggestion="Use kebab-case, e.g. my-awesome-project",
        )
    if name.lower() in RESERVED_NAMES:
        return ValidationResult(
            is_valid=False, error=f'"{name}" is a reserved name, please choose another one'
        )

    if re.search(r"[-_.]{2,}", name):
        return ValidationResult(
            is_valid=True, warning="Project name contains consecutive special characters"
        )
    if re.search(r"[A-Z]", name):
        return ValidationResult(
            is_valid=True,
            warning="npm package names should be lowercase",
            suggestion=f"Consider: {name.lower()}",
        )
    return ValidationResult(is_valid=True)


def validate_port(port: str) -> ValidationResult:
    """Check that *port* is a decimal TCP port number, warning on risky choices."""
    value = (port or "").strip()
    if not value:
        return ValidationResult(is_valid=False, error="Port cannot be empty")
    if not re.fullmatch(r"[0-9]+", value) or str(int(value)) != value:
        return ValidationResult(is_valid=False, error="Port must be a valid number")

    number = int(value)
    if number < 1 or number > 65535:
        return ValidationResult(is_valid=False, error="Port must be between 1 and 65535")
    if number <= 1023:
        return ValidationResult(
            is_valid=True,
            warning="Ports 1-1023 are reserved and may require administrator rights",
            suggestion="Use a port in the 3000-9999 range",
        )
    if number in COMMON_PORTS:
        return ValidationResult(
            is_valid=True,
            warning=f"Port {number} is commonly used by {COMMON_PORTS[number]}",
            suggestion="Pick another port if this one is already taken",
        )
    return ValidationResult(is_valid=True)


def validate_transport(
    transport: str, valid_transports: Iterable[str] | None = None
) -> ValidationResult:
    valid = list(valid_transports or (t.value for t in Transport))
    if not (transport or "").strip():
        return ValidationResult(is_valid=False, error="Transport cannot be empty")
    if transport not in valid:
        return ValidationResult(
            is_valid=False,
            error=f"Invalid transport: {transport}",
            suggestion=f"Valid transports: {', '.join(valid)}",
        )
    return ValidationResult(is_valid=True)


def format_project_name_suggestion(project_name: str) -> str:
    """Turn free text into a plausible project name (``"My App!"`` -> ``"my-app"``)."""
    name = project_name.strip().lower()
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"[^a-z0-9\-_.]", "", name)
    name = re.sub(r"[-_.]+", "-", name)
    return re.sub(r"^[-_.]+|[-_.]+$", "", name)
