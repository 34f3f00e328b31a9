import os
import pytest
import json, toml
from strata import Castable, Reference
from strata.loader import collect_env_args, load_env_file, load_preset_file

@pytest.fixture
def json_preset(tmp_path):
    data = {"name": "run", "model": {"hidden": 16, "dropout": 0.1}}
    path = tmp_path / "preset.json"
    path.write_text(json.dumps(data))
    return str(path)

@pytest.fixture
def toml_preset(tmp_path):
    data = {"name": "run", "model": {"hidden": 16, "dropout": 0.1}}
    path = tmp_path / "preset.toml"
    path.write_text(toml.dumps(data))
    return str(path)

def test_load_json(json_preset):
    args = load_preset_file(json_preset)
    assert args == {"name": "run", "model.hidden": 16, "model.dropout": 0.1}

def test_load_toml(toml_preset):
    args = load_preset_file(toml_preset)
    assert args == {"name": "run", "model.hidden": 16, "model.dropout": 0.1}

def test_reference_keys(tmp_path):
    path = tmp_path / "refs.toml"
    path.write_text('[eval]\n"lr@" = "train.lr"\n')
    assert load_preset_file(str(path)) == {"eval.lr": Reference("train.lr")}

def test_wildcard_keys_kept(tmp_path):
    path = tmp_path / "wild.json"
    path.write_text(json.dumps({"...lr": 0.5}))
    assert load_preset_file(str(path)) == {"...lr": 0.5}

def test_user_path_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("PRESET_DIR", str(tmp_path))
    (tmp_path / "p.json").write_text("{}")
    assert load_preset_file("$PRESET_DIR/p.json") == {}

def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_preset_file(str(tmp_path / "absent.toml"))

def test_unsupported_extension(tmp_path):
    path = tmp_path / "preset.yaml"
    path.write_text("name: run")
    with pytest.raises(RuntimeError, match="Unsupported"):
        load_preset_file(str(path))

def test_malformed_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(RuntimeError):
        load_preset_file(str(path))

def test_env_args(monkeypatch):
    monkeypatch.setenv("LDR_TEST_NAME", "run")
    monkeypatch.setenv("LDR_TEST_MODEL__HIDDEN_SIZE", "32")
    args = collect_env_args("LDR_TEST", load_dotenv_file=False)
    assert args == {"name": Castable("run"), "model.hidden_size": Castable("32")}

def test_env_prefix_trailing_underscore(monkeypatch):
    monkeypatch.setenv("LDR_TEST_NAME", "run")
    assert collect_env_args("LDR_TEST_", load_dotenv_file=False) == {"name": Castable("run")}

def test_env_empty_key_ignored(monkeypatch):
    monkeypatch.setenv("LDR_TEST_MODEL__", "x")
    assert collect_env_args("LDR_TEST", load_dotenv_file=False) == {}

def test_dotenv(tmp_path, monkeypatch):
    # registered with monkeypatch so the loaded variable is removed afterwards
    monkeypatch.setenv("LDR_DOT_NAME", "placeholder")
    monkeypatch.delenv("LDR_DOT_NAME")
    env_file = tmp_path / ".env"
    env_file.write_text("LDR_DOT_NAME=from-dotenv\n")
    args = collect_env_args("LDR_DOT", dotenv_path=str(env_file))
    assert args == {"name": Castable("from-dotenv")}

def test_dotenv_does_not_override(tmp_path, monkeypatch):
    monkeypatch.setenv("LDR_DOT_NAME", "from-env")
    env_file = tmp_path / ".env"
    env_file.write_text("LDR_DOT_NAME=from-dotenv\n")
    load_env_file(str(env_file))
    assert os.environ["LDR_DOT_NAME"] == "from-env"

def test_dotenv_absent(tmp_path):
    assert load_env_file(str(tmp_path / "nope.env")) is False
