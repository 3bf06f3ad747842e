"""mcp-scaffold scaffolder -- turns a template tree into a ready project.

Quick usage::

    from mcp_scaffold.config import GenerationConfig, Transport
    from mcp_scaffold.scaffolder import ProjectGenerator

    config = GenerationConfig(project_name="demo-app", transport=Transport.SSE, port="8080")
    generator = ProjectGenerator(on_progress=print)
    result = await generator.generate(config)
"""

from mcp_scaffold.scaffolder.generator import (
    GenerationResult,
    GenerationStep,
    ProgressEvent,
    ProjectGenerator,
)
from mcp_scaffold.scaffolder.materializer import ProcessReport, copy_template_tree, process_tree
from mcp_scaffold.scaffolder.templates import TemplateRenderer, build_context

__all__ = [
    "GenerationResult",
    "GenerationStep",
    "ProgressEvent",
    "ProjectGenerator",
    "ProcessReport",
    "copy_template_tree",
    "process_tree",
    "TemplateRenderer",
    "build_context",
]
