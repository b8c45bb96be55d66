from pathlib import Path

import pytest

from autocoder.tools.update import UpdateFileTool, choose_mode, substitute


def test_choose_mode_auto_prefers_regex_when_pattern_compiles():
    assert choose_mode(r"def \w+", "auto") == "regex"


def test_choose_mode_auto_falls_back_to_literal_for_invalid_pattern():
    assert choose_mode("print(", "auto") == "literal"


def test_choose_mode_explicit_modes_are_kept():
    assert choose_mode("print(", "regex") == "regex"
    assert choose_mode(r"\d+", "literal") == "literal"


def test_choose_mode_rejects_unknown_mode():
    with pytest.raises(ValueError):
        choose_mode("x", "fuzzy")


def test_substitute_regex_replaces_all_matches_with_groups():
    outcome = substitute("a1 b22 c333", r"(\d+)", r"<\1>", "regex")

    assert outcome.text == "a<1> b<22> c<333>"
    assert outcome.count == 3
    assert outcome.mode == "regex"


def test_substitute_literal_treats_metacharacters_verbatim():
    outcome = substitute("x.y x.y xzy", "x.y", "Q", "literal")

    assert outcome.text == "Q Q xzy"
    assert outcome.count == 2


@pytest.mark.asyncio
async def test_update_file_auto_regex_mode(tmp_path: Path):
    (tmp_path / "m.py").write_text("value = 1\nvalue = 2\n", encoding="utf-8")

    result = await UpdateFileTool().execute(
        path="m.py", find=r"value = \d", replace="value = 0", _runtime_base_path=tmp_path
    )

    assert result.success is True
    assert result.noop is False
    assert "2 replacement(s)" in result.content
    assert "regex mode" in result.content
    assert (tmp_path / "m.py").read_text(encoding="utf-8") == "value = 0\nvalue = 0\n"


@pytest.mark.asyncio
async def test_update_file_auto_literal_fallback_for_invalid_pattern(tmp_path: Path):
    (tmp_path / "m.py").write_text("print(1)\nprint(2)\n", encoding="utf-8")

    result = await UpdateFileTool().execute(
        path="m.py", find="print(", replace="log(", _runtime_base_path=tmp_path
    )

    assert result.success is True
    assert "literal mode" in result.content
    assert (tmp_path / "m.py").read_text(encoding="utf-8") == "log(1)\nlog(2)\n"


@pytest.mark.asyncio
async def test_update_file_no_match_is_noop_and_leaves_bytes(tmp_path: Path):
    target = tmp_path / "m.py"
    original = b"alpha\r\nbeta\n"
    target.write_bytes(original)
    mtime = target.stat().st_mtime_ns

    result = await UpdateFileTool().execute(
        path="m.py", find="gamma", replace="delta", _runtime_base_path=tmp_path
    )

    assert result.success is True
    assert result.noop is True
    assert "No change" in result.content
    assert target.read_bytes() == original
    assert target.stat().st_mtime_ns == mtime


@pytest.mark.asyncio
async def test_update_file_missing_file_is_error(tmp_path: Path):
    result = await UpdateFileTool().execute(
        path="missing.py", find="a", replace="b", _runtime_base_path=tmp_path
    )

    assert result.success is False
    assert "File not found" in result.error


@pytest.mark.asyncio
async def test_update_file_explicit_regex_with_invalid_pattern_is_error(tmp_path: Path):
    (tmp_path / "m.py").write_text("print(1)\n", encoding="utf-8")

    result = await UpdateFileTool().execute(
        path="m.py", find="print(", replace="x", mode="regex", _runtime_base_path=tmp_path
    )

    assert result.success is False
    assert "Cannot apply substitution" in result.error
    assert (tmp_path / "m.py").read_text(encoding="utf-8") == "print(1)\n"


@pytest.mark.asyncio
async def test_update_file_explicit_literal_mode(tmp_path: Path):
    (tmp_path / "m.txt").write_text("a.c abc", encoding="utf-8")

    result = await UpdateFileTool().execute(
        path="m.txt", find="a.c", replace="X", mode="literal", _runtime_base_path=tmp_path
    )

    assert result.success is True
    assert (tmp_path / "m.txt").read_text(encoding="utf-8") == "X abc"


def test_substitute_auto_mode_inserts_replacement_verbatim():
    outcome = substitute("a1 b2", r"\d", r"\1\n", "auto")

    assert outcome.mode == "regex"
    assert outcome.text == "a\\1\\n b\\1\\n"
    assert outcome.count == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "find, replace",
    [
        ("msg = 'hi'", "msg = 'hi\\n'"),
        ("PAT = None", "PAT = r'\\d+'"),
    ],
)
async def test_update_file_auto_mode_keeps_backslashes_in_replacement(tmp_path: Path, find: str, replace: str):
    (tmp_path / "m.py").write_text(f"{find}\n", encoding="utf-8")

    result = await UpdateFileTool().execute(
        path="m.py", find=find, replace=replace, _runtime_base_path=tmp_path
    )

    assert result.success is True
    assert "regex mode" in result.content
    assert (tmp_path / "m.py").read_text(encoding="utf-8") == f"{replace}\n"
