"""Workspace path containment and directory serialization."""

import asyncio
import logging
import os
import stat
from pathlib import Path

import pathspec

from glpub.errors import ContainmentError, InputError
from glpub.models import SerializedFile

logger = logging.getLogger(__name__)

_ALWAYS_SKIPPED = {".git"}


def resolve_safe_child_path(base: str | Path, child: str) -> Path:
    """Join child onto base, refusing anything that resolves outside base.

    Symlinks are resolved before the check, so a link pointing out of the
    workspace is rejected too.
    """
    base_resolved = Path(base).resolve()
    target = (base_resolved / child).resolve()
    if not target.is_relative_to(base_resolved):
        raise ContainmentError(f"Relative path is not allowed to refer to a directory outside its parent: {child!r}")
    return target


def _load_gitignore(directory: Path) -> pathspec.GitIgnoreSpec | None:
    gitignore = directory / ".gitignore"
    if not gitignore.is_file():
        return None
    return pathspec.GitIgnoreSpec.from_lines(gitignore.read_text(encoding="utf-8", errors="replace").splitlines())


def _is_ignored(rel: str, is_dir: bool, specs: list[tuple[str, pathspec.GitIgnoreSpec]]) -> bool:
    # specs run outermost first; a deeper .gitignore that decides overrides its parents,
    # so "!keep.md" in sub/.gitignore re-includes a file the root ignores
    ignored = False
    for prefix, spec in specs:
        if prefix and not rel.startswith(f"{prefix}/"):
            continue
        local = rel[len(prefix) + 1 :] if prefix else rel
        result = spec.check_file(f"{local}/" if is_dir else local)
        if result.include is not None:
            ignored = result.include
    return ignored


def _walk(root: Path, gitignore: bool) -> list[SerializedFile]:
    result: list[SerializedFile] = []
    specs: list[tuple[str, pathspec.GitIgnoreSpec]] = []

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir

        if gitignore:
            spec = _load_gitignore(current)
            if spec is not None:
                specs.append((rel_dir, spec))

        def _rel(name: str) -> str:
            return f"{rel_dir}/{name}" if rel_dir else name

        # Pruning in place stops os.walk from descending into ignored directories
        dirnames[:] = [
            d
            for d in dirnames
            if d not in _ALWAYS_SKIPPED and not (gitignore and _is_ignored(_rel(d), True, specs))
        ]

        for name in filenames:
            rel = _rel(name)
            if gitignore and _is_ignored(rel, False, specs):
                logger.debug("Skipping ignored file %s", rel)
                continue
            path = current / name
            if path.is_symlink() and not path.resolve().is_relative_to(root):
                logger.warning("Skipping symlink %s pointing outside %s", rel, root)
                continue
            if not path.is_file():
                continue
            mode = path.stat().st_mode
            result.append(
                SerializedFile(
                    path=rel,
                    content=path.read_bytes(),
                    executable=bool(mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)),
                )
            )
    return result


async def serialize_directory_contents(root: str | Path, *, gitignore: bool = True) -> list[SerializedFile]:
    """Read every file below root into memory.

    Paths in the result are POSIX paths relative to root, in walk order.
    """
    root_path = Path(root).resolve()
    if not root_path.is_dir():
        raise InputError(f"Target path {str(root)!r} is not a directory in the workspace")
    return await asyncio.to_thread(_walk, root_path, gitignore)
