"""Marker-syntax template rendering for project scaffolding.

Template files use two constructs:

* ``{{identifier}}`` -- replaced with the string form of ``context[identifier]``.
* ``{{#if identifier}} ... {{/if}}`` -- keeps the inner block when
  ``context[identifier]`` is truthy, drops it otherwise.

Conditionals are resolved first because their markers would otherwise be
picked up by the variable pass.  Conditionals do not nest: a block ends at the
first ``{{/if}}`` after its opening marker.

A variable that is missing (or ``None``) in the context is left in the output
verbatim and reported as a warning, so unresolved template variables stay
visible in the generated project instead of silently becoming empty strings.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from mcp_scaffold.config import GenerationConfig
from mcp_scaffold.errors import TemplateNotFoundError
from mcp_scaffold.utils import print_warning

_CONDITIONAL_RE = re.compile(r"\{\{#if\s+(\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL | re.ASCII)
_VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}", re.ASCII)


# ---------------------------------------------------------------------------
# Context building
# ---------------------------------------------------------------------------


def build_context(config: GenerationConfig, now: datetime | None = None) -> dict[str, Any]:
    """Build the template context for one generation run.

    Keys use the camelCase identifiers that appear in the template files.
    """
    now = now or datetime.now(timezone.utc)
    transport = config.transport
    return {
        "projectName": config.project_name,
        "transport": transport.value,
        "port": config.port,
        "description": config.description,
        "initGit": config.init_git,
        "isStdio": transport.value == "stdio",
        "isHttpStream": transport.value == "httpStream",
        "isSse": transport.value == "sse",
        "hasPort": config.has_port,
        "transportDisplay": transport.display_name,
        "year": now.year,
        "timestamp": now.isoformat(),
    }


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders template text against a context dictionary.

    ``template_dir`` is only needed for :meth:`render_file`; :meth:`render`
    works on in-memory strings.
    """

    def __init__(self, template_dir: str | Path | None = None, encoding: str = "utf-8") -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else None
        self.encoding = encoding

    def render(self, content: str, context: dict[str, Any]) -> str:
        """Render *content*: conditional blocks first, then variables."""
        rendered = self._process_conditionals(content, context)
        return self._process_variables(rendered, context)

    def render_file(self, template_path: str | Path, context: dict[str, Any]) -> str:
        """Load a template relative to ``template_dir`` and render it.

        Raises:
            TemplateNotFoundError: If the file does not exist.
        """
        base = self.template_dir or Path.cwd()
        full_path = base / template_path
        if not full_path.is_file():
            raise TemplateNotFoundError(full_path)
        return self.render(full_path.read_text(encoding=self.encoding), context)

    @staticmethod
    def missing_variables(content: str, context: dict[str, Any]) -> list[str]:
        """Return the variable names *content* would leave unresolved, in order."""
        stripped = TemplateRenderer._process_conditionals(content, context)
        missing: list[str] = []
        for match in _VARIABLE_RE.finditer(stripped):
            name = match.group(1)
            if context.get(name) is None and name not in missing:
                missing.append(name)
        return missing

    # -- Passes ------------------------------------------------------------

    @staticmethod
    def _process_conditionals(content: str, context: dict[str, Any]) -> str:
        def _replace(match: re.Match[str]) -> str:
            return match.group(2) if context.get(match.group(1)) else ""

        return _CONDITIONAL_RE.sub(_replace, content)

    @staticmethod
    def _process_variables(content: str, context: dict[str, Any]) -> str:
        def _replace(match: re.Match[str]) -> str:
            value = context.get(match.group(1))
            if value is None:
                print_warning(f"Template variable not defined: {match.group(1)}")
                return match.group(0)
            return _to_text(value)

        return _VARIABLE_RE.sub(_replace, content)


def _to_text(value: Any) -> str:
    """Stringify a context value; booleans use the lowercase JSON/TS spelling."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
