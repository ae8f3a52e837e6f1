import pytest

from shelfrank.config import Config, ConfigModel, RankingConfig, load_config, save_config


def _write(path, text: str):
    path.write_text(text)
    return path


def test_load_config_with_defaults(tmp_path) -> None:
    config = load_config(_write(tmp_path / "config.yaml", "default_user: reader\n"))

    assert config.default_user == "reader"
    assert config.log_level == "INFO"
    assert config.postgres.database == "shelfrank"
    assert config.ranking.extension_step == 0.1
    assert config.ranking.redistribute_on_remove


def test_empty_file_is_default_config(tmp_path) -> None:
    assert load_config(_write(tmp_path / "config.yaml", "")) == ConfigModel()


def test_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "log_level: LOUD\n",
        "ranking:\n  extension_step: 0.12345\n",
        "ranking:\n  extension_step: 2.0\n",
        "ranking: [unclosed\n",
    ],
)
def test_invalid_config_raises_value_error(tmp_path, text) -> None:
    with pytest.raises(ValueError):
        load_config(_write(tmp_path / "config.yaml", text))


def test_log_level_is_normalized() -> None:
    assert ConfigModel(log_level="debug").log_level == "DEBUG"


def test_step_precision_follows_configured_precision() -> None:
    assert RankingConfig(score_precision=2, extension_step=0.25).extension_step == 0.25
    with pytest.raises(ValueError):
        RankingConfig(score_precision=2, extension_step=0.125)


@pytest.mark.parametrize("precision", [0, 4, 6])
def test_precision_limited_to_stored_decimals(precision) -> None:
    with pytest.raises(ValueError):
        RankingConfig(score_precision=precision)


def test_save_and_reload(tmp_path) -> None:
    path = tmp_path / "nested" / "config.yaml"
    save_config(ConfigModel(default_user="reader"), path)

    assert load_config(path).default_user == "reader"


def test_password_from_environment(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path / "config.yaml", "postgres:\n  password_env: SHELF_TEST_PW\n")
    monkeypatch.setenv("SHELF_TEST_PW", "secret")

    assert Config(path).get_db_config()["password"] == "secret"


def test_config_path_from_environment(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path / "other.yaml", "default_user: someone\n")
    monkeypatch.setenv("SHELFRANK_CONFIG", str(path))

    assert Config().config_path == path


def test_resolve_user(tmp_path) -> None:
    config = Config(_write(tmp_path / "config.yaml", "default_user: reader\n"))

    assert config.resolve_user(None) == "reader"
    assert config.resolve_user("other") == "other"

    empty = Config(_write(tmp_path / "empty.yaml", ""))
    with pytest.raises(ValueError):
        empty.resolve_user(None)
