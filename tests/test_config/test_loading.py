from pathlib import Path

import pytest
import yaml

import autocoder.config as config_module
from autocoder.config import Config
from autocoder.exceptions import ConfigurationError


def test_load_prefers_local_config_yaml(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)

    home_cfg = tmp_path / "home_config.yaml"
    home_cfg.write_text("model:\n  model: gpt-4o\n", encoding="utf-8")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", home_cfg)

    local_cfg = tmp_path / "autocoder.yaml"
    local_cfg.write_text(
        (
            "model:\n"
            "  model: gpt-4o-mini\n"
            "agent:\n"
            "  max_turns: 3\n"
            "workspace:\n"
            "  test_command: make test\n"
        ),
        encoding="utf-8",
    )

    cfg = Config.load()

    assert cfg.model.model == "gpt-4o-mini"
    assert cfg.agent.max_turns == 3
    assert cfg.workspace.test_command == "make test"
    assert cfg.workspace.tests_dir == "tests"


def test_load_falls_back_to_default_path_when_no_local(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)

    home_cfg = tmp_path / "home_config.yaml"
    home_cfg.write_text("agent:\n  max_tool_hops: 4\n", encoding="utf-8")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", home_cfg)

    cfg = Config.load()

    assert cfg.agent.max_tool_hops == 4


def test_load_without_any_file_uses_defaults(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

    cfg = Config.load()

    assert cfg.model.provider == "openai"
    assert cfg.model.model == "gpt-4o"
    assert cfg.model.temperature == 0.2
    assert cfg.agent.max_turns == 10
    assert cfg.agent.max_tool_hops == 10
    assert cfg.workspace.path == "./project"
    assert cfg.workspace.test_command == "pytest --maxfail=1 --disable-warnings -q"


def test_env_vars_override_defaults(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
    monkeypatch.setenv("AUTOCODER_MODEL__MODEL", "gpt-4.1")
    monkeypatch.setenv("AUTOCODER_AGENT__MAX_TURNS", "2")

    cfg = Config.load()

    assert cfg.model.model == "gpt-4.1"
    assert cfg.agent.max_turns == 2


def test_resolved_api_key_prefers_config_then_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")

    cfg = Config()
    assert cfg.resolved_api_key() == "env-key"

    cfg.model.api_key = "configured-key"
    assert cfg.resolved_api_key() == "configured-key"


def test_resolved_api_key_is_empty_without_credential(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AUTOCODER_MODEL__API_KEY", raising=False)

    assert Config().resolved_api_key() == ""


def test_resolved_workspace_path_anchors_relative_to_runtime_base(tmp_path: Path):
    cfg = Config()
    resolved = cfg.resolved_workspace_path(tmp_path)
    assert resolved == (tmp_path / "project").resolve()


def test_resolved_workspace_path_keeps_absolute_paths(tmp_path: Path):
    cfg = Config()
    cfg.workspace.path = str(tmp_path / "elsewhere")
    assert cfg.resolved_workspace_path(Path("/unused")) == (tmp_path / "elsewhere").resolve()


def test_save_never_persists_api_key(tmp_path: Path):
    cfg = Config()
    cfg.model.api_key = "secret"
    target = tmp_path / "nested" / "config.yaml"

    cfg.save(target)

    data = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert "api_key" not in data["model"]
    assert data["model"]["model"] == "gpt-4o"
    assert Config.from_yaml(target).model.api_key == ""


def test_env_vars_override_yaml_values_and_keep_the_rest(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "autocoder.yaml").write_text(
        "model:\n  model: gpt-4o-mini\n  temperature: 0.5\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("AUTOCODER_MODEL__MODEL", "gpt-4.1")

    cfg = Config.load()

    assert cfg.model.model == "gpt-4.1"
    assert cfg.model.temperature == 0.5


def test_dotenv_overrides_yaml_values(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "autocoder.yaml").write_text("agent:\n  max_turns: 3\n", encoding="utf-8")
    (tmp_path / ".env").write_text("AUTOCODER_AGENT__MAX_TURNS=7\n", encoding="utf-8")

    cfg = Config.load()

    assert cfg.agent.max_turns == 7


@pytest.mark.parametrize(
    "content",
    [
        "model: [unclosed\n",
        "- just\n- a list\n",
        "agent:\n  max_turns: 0\n",
    ],
)
def test_from_yaml_rejects_invalid_files(tmp_path: Path, content: str):
    cfg_file = tmp_path / "broken.yaml"
    cfg_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError, match="broken.yaml"):
        Config.from_yaml(cfg_file)
