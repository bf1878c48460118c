"""Tests for glpub.files — containment and directory serialization."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from glpub.errors import ContainmentError, InputError
from glpub.files import resolve_safe_child_path, serialize_directory_contents


class TestResolveSafeChildPath:
    def test_child_inside_base(self, tmp_path: Path) -> None:
        assert resolve_safe_child_path(tmp_path, "docs") == (tmp_path / "docs").resolve()

    def test_dot_is_base(self, tmp_path: Path) -> None:
        assert resolve_safe_child_path(tmp_path, ".") == tmp_path.resolve()

    @pytest.mark.parametrize("child", ["../../etc", "..", "docs/../../x", "/etc"])
    def test_escape_raises(self, tmp_path: Path, child: str) -> None:
        with pytest.raises(ContainmentError):
            resolve_safe_child_path(tmp_path / "ws", child)

    def test_symlink_escape_raises(self, tmp_path: Path) -> None:
        ws = tmp_path / "ws"
        ws.mkdir()
        (ws / "out").symlink_to(tmp_path)
        with pytest.raises(ContainmentError):
            resolve_safe_child_path(ws, "out/..")

    def test_sibling_prefix_is_not_inside(self, tmp_path: Path) -> None:
        (tmp_path / "ws").mkdir()
        (tmp_path / "ws-other").mkdir()
        with pytest.raises(ContainmentError):
            resolve_safe_child_path(tmp_path / "ws", "../ws-other")


class TestSerializeDirectoryContents:
    @pytest.mark.asyncio
    async def test_reads_files_relative_to_root(self, tmp_path: Path) -> None:
        (tmp_path / "a.md").write_bytes(b"X")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.md").write_bytes(b"Y")

        files = await serialize_directory_contents(tmp_path)

        by_path = {f.path: f.content for f in files}
        assert by_path == {"a.md": b"X", "sub/b.md": b"Y"}

    @pytest.mark.asyncio
    async def test_gitignore_respected(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*.log\nbuild/\n")
        (tmp_path / "keep.md").write_text("keep")
        (tmp_path / "debug.log").write_text("noise")
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "out.md").write_text("built")

        paths = {f.path for f in await serialize_directory_contents(tmp_path, gitignore=True)}

        assert "keep.md" in paths
        assert "debug.log" not in paths
        assert "build/out.md" not in paths

    @pytest.mark.asyncio
    async def test_nested_gitignore_scoped_to_its_directory(self, tmp_path: Path) -> None:
        (tmp_path / "secret.txt").write_text("top")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / ".gitignore").write_text("secret.txt\n")
        (tmp_path / "sub" / "secret.txt").write_text("nested")

        paths = {f.path for f in await serialize_directory_contents(tmp_path)}

        assert "secret.txt" in paths
        assert "sub/secret.txt" not in paths

    @pytest.mark.asyncio
    async def test_nested_negation_reincludes_file(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*.md\n")
        (tmp_path / "top.md").write_text("top")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / ".gitignore").write_text("!keep.md\n")
        (tmp_path / "sub" / "keep.md").write_text("kept")
        (tmp_path / "sub" / "other.md").write_text("other")

        paths = {f.path for f in await serialize_directory_contents(tmp_path)}

        assert "sub/keep.md" in paths
        assert "sub/other.md" not in paths
        assert "top.md" not in paths

    @pytest.mark.asyncio
    async def test_gitignore_disabled(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*.log\n")
        (tmp_path / "debug.log").write_text("noise")

        paths = {f.path for f in await serialize_directory_contents(tmp_path, gitignore=False)}

        assert "debug.log" in paths

    @pytest.mark.asyncio
    async def test_git_directory_skipped(self, tmp_path: Path) -> None:
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main")
        (tmp_path / "a.md").write_text("a")

        paths = {f.path for f in await serialize_directory_contents(tmp_path)}

        assert paths == {"a.md"}

    @pytest.mark.asyncio
    async def test_executable_bit_recorded(self, tmp_path: Path) -> None:
        script = tmp_path / "run.sh"
        script.write_text("#!/bin/sh\n")
        os.chmod(script, 0o755)
        (tmp_path / "plain.md").write_text("x")

        files = {f.path: f for f in await serialize_directory_contents(tmp_path)}

        assert files["run.sh"].executable is True
        assert files["plain.md"].executable is False

    @pytest.mark.asyncio
    async def test_symlink_outside_root_skipped(self, tmp_path: Path) -> None:
        outside = tmp_path / "outside.txt"
        outside.write_text("secret")
        root = tmp_path / "root"
        root.mkdir()
        (root / "link.txt").symlink_to(outside)
        (root / "a.md").write_text("a")

        paths = {f.path for f in await serialize_directory_contents(root)}

        assert paths == {"a.md"}

    @pytest.mark.asyncio
    async def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="not a directory"):
            await serialize_directory_contents(tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_empty_directory(self, tmp_path: Path) -> None:
        assert await serialize_directory_contents(tmp_path) == []

    def test_containment_checked_before_any_read(self, tmp_path: Path) -> None:
        with patch("pathlib.Path.read_bytes") as read_bytes:
            with pytest.raises(ContainmentError):
                resolve_safe_child_path(tmp_path, "../../etc")
        read_bytes.assert_not_called()
