"""Copy a template tree onto disk and rewrite its text files in place.

Copying and rendering are two separate passes so that a copy failure and a
render failure can be told apart:

* :func:`copy_template_tree` clones the tree byte for byte (hidden files
  included, permission bits preserved), renaming ``*.gitignore.template`` to
  ``.gitignore`` on the way.
* :func:`process_tree` renders every allow-listed text file through the
  :class:`~mcp_scaffold.scaffolder.templates.TemplateRenderer`.  A file that
  fails to render is reported as a warning and left as copied.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mcp_scaffold.errors import TemplateCopyError, TemplateNotFoundError
from mcp_scaffold.utils import print_warning

from .templates import TemplateRenderer

GITIGNORE_TEMPLATE_SUFFIX = ".gitignore.template"

TEXT_FILE_EXTENSIONS: frozenset[str] = frozenset(
    {".ts", ".js", ".json", ".md", ".txt", ".yml", ".yaml"}
)

SKIP_DIRECTORIES: frozenset[str] = frozenset({"node_modules", ".git", "dist", ".vscode"})


@dataclass
class ProcessReport:
    """Outcome of a :func:`process_tree` pass."""

    rendered: list[Path] = field(default_factory=list)
    failed: dict[Path, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


# ---------------------------------------------------------------------------
# Copy pass
# ---------------------------------------------------------------------------


async def copy_template_tree(src_dir: str | Path, dest_dir: str | Path) -> None:
    """Recursively copy *src_dir* into *dest_dir*.

    Raises:
        TemplateNotFoundError: If *src_dir* does not exist.
        TemplateCopyError: If reading the template or writing the copy fails.
    """
    src = Path(src_dir)
    if not src.is_dir():
        raise TemplateNotFoundError(src)
    dest = Path(dest_dir)
    try:
        await asyncio.to_thread(_copy_tree, src, dest)
    except OSError as exc:
        raise TemplateCopyError(dest, exc.strerror or str(exc)) from exc


def target_name(entry_name: str) -> str:
    """Destination file name for a template entry."""
    if entry_name.endswith(GITIGNORE_TEMPLATE_SUFFIX):
        return ".gitignore"
    return entry_name


def _copy_tree(src: Path, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    with os.scandir(src) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        src_path = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            _copy_tree(src_path, dest / entry.name)
        elif entry.is_file(follow_symlinks=False):
            dest_path = dest / target_name(entry.name)
            shutil.copyfile(src_path, dest_path)
            shutil.copymode(src_path, dest_path)


# ---------------------------------------------------------------------------
# Render pass
# ---------------------------------------------------------------------------


def should_process_file(name: str) -> bool:
    return Path(name).suffix.lower() in TEXT_FILE_EXTENSIONS


def should_skip_directory(name: str) -> bool:
    return name in SKIP_DIRECTORIES


async def process_tree(
    root_dir: str | Path,
    context: dict[str, Any],
    renderer: TemplateRenderer,
) -> ProcessReport:
    """Render every allow-listed text file under *root_dir* in place."""
    report = ProcessReport()
    await _process_directory(Path(root_dir), context, renderer, report)
    return report


async def _process_directory(
    directory: Path,
    context: dict[str, Any],
    renderer: TemplateRenderer,
    report: ProcessReport,
) -> None:
    entries = await asyncio.to_thread(_list_directory, directory)
    for path, is_dir, is_file in entries:
        if is_dir:
            if should_skip_directory(path.name):
                continue
            await _process_directory(path, context, renderer, report)
        elif is_file and should_process_file(path.name):
            await _process_file(path, context, renderer, report)


def _list_directory(directory: Path) -> list[tuple[Path, bool, bool]]:
    """Sorted ``(path, is_dir, is_file)`` entries of *directory*."""
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    return [(Path(e.path), e.is_dir(), e.is_file()) for e in entries]


async def _process_file(
    path: Path,
    context: dict[str, Any],
    renderer: TemplateRenderer,
    report: ProcessReport,
) -> None:
    try:
        # bytes in and out so line endings survive untouched
        raw = await asyncio.to_thread(path.read_bytes)
        rendered = renderer.render(raw.decode("utf-8"), context)
        await asyncio.to_thread(path.write_bytes, rendered.encode("utf-8"))
    except Exception as exc:
        report.failed[path] = str(exc)
        print_warning(f"Could not render {path}: {exc}")
        return
    report.rendered.append(path)
