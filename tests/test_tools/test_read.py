from pathlib import Path

import pytest

from autocoder.tools.read import ReadFileTool


@pytest.mark.asyncio
async def test_read_file_returns_content_verbatim(tmp_path: Path):
    (tmp_path / "sample.txt").write_bytes(b"line1\nline2\n")

    result = await ReadFileTool().execute(path="sample.txt", _runtime_base_path=tmp_path)

    assert result.success is True
    assert result.content == "line1\nline2\n"


@pytest.mark.asyncio
async def test_read_file_missing_is_error(tmp_path: Path):
    result = await ReadFileTool().execute(path="nope.txt", _runtime_base_path=tmp_path)

    assert result.success is False
    assert "File not found" in result.error


@pytest.mark.asyncio
async def test_read_file_directory_is_error(tmp_path: Path):
    (tmp_path / "pkg").mkdir()

    result = await ReadFileTool().execute(path="pkg", _runtime_base_path=tmp_path)

    assert result.success is False
    assert "Not a file" in result.error


@pytest.mark.asyncio
async def test_read_file_rejects_absolute_path(tmp_path: Path):
    target = tmp_path / "secret.txt"
    target.write_text("secret", encoding="utf-8")

    result = await ReadFileTool().execute(path=str(target), _runtime_base_path=tmp_path)

    assert result.success is False
    assert "absolute" in result.error


@pytest.mark.asyncio
async def test_read_file_undecodable_is_error(tmp_path: Path):
    (tmp_path / "blob.bin").write_bytes(b"\xff\xfe\x00\x80")

    result = await ReadFileTool().execute(path="blob.bin", _runtime_base_path=tmp_path)

    assert result.success is False
