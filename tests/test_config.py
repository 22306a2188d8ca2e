import pytest

from workbench.config import DEFAULT_HOST, DEFAULT_PORT, ConfigError, load_config


def _clear_env(monkeypatch):
    for key in (
        "WORKBENCH_ROOT",
        "WORKBENCH_SEARCH_WORKERS",
        "WORKBENCH_SEARCH_TIMEOUT_SECONDS",
        "WORKBENCH_FORMAT_CODE",
        "WORKBENCH_SERVICE_TOKEN",
        "WORKBENCH_HOST",
        "WORKBENCH_PORT",
    ):
        monkeypatch.delenv(key, raising=False)


def test_load_config_requires_root(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert "WORKBENCH_ROOT" in str(excinfo.value)


def test_load_config_reads_env(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WORKBENCH_ROOT", str(tmp_path))

    config = load_config()

    assert config.workspace_root == tmp_path.resolve()
    assert config.search_workers is None
    assert config.search_timeout_seconds is None
    assert config.format_code is True
    assert config.service_token is None
    assert config.host == DEFAULT_HOST
    assert config.port == DEFAULT_PORT


def test_load_config_reads_dotenv(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    (tmp_path / ".env").write_text(
        "\n".join(
            [
                "# local settings",
                f'export WORKBENCH_ROOT="{workspace}"',
                "WORKBENCH_SEARCH_WORKERS=3",
                "WORKBENCH_FORMAT_CODE=off",
                "WORKBENCH_SERVICE_TOKEN='secret'",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    config = load_config()

    assert config.workspace_root == workspace.resolve()
    assert config.search_workers == 3
    assert config.format_code is False
    assert config.service_token == "secret"


def test_environment_takes_precedence_over_dotenv(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(
        "WORKBENCH_ROOT=/does/not/matter\nWORKBENCH_PORT=9000\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("WORKBENCH_ROOT", str(tmp_path))
    monkeypatch.setenv("WORKBENCH_PORT", "9100")

    config = load_config()

    assert config.workspace_root == tmp_path.resolve()
    assert config.port == 9100


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("WORKBENCH_SEARCH_WORKERS", "0"),
        ("WORKBENCH_SEARCH_WORKERS", "many"),
        ("WORKBENCH_SEARCH_TIMEOUT_SECONDS", "-1"),
        ("WORKBENCH_FORMAT_CODE", "maybe"),
        ("WORKBENCH_PORT", "http"),
    ],
)
def test_load_config_rejects_invalid_values(monkeypatch, tmp_path, key, value):
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WORKBENCH_ROOT", str(tmp_path))
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert key in str(excinfo.value)
