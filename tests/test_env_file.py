import os

import webagent


def test_env_file_sets_missing_keys_only(monkeypatch, tmp_path):
    env = tmp_path / "custom.env"
    env.write_text(
        "# comment\n"
        "WEBAGENT_T_NEW='quoted value'\n"
        "export WEBAGENT_T_EXPORTED=1\n"
        "WEBAGENT_T_SET=from-file\n"
        "not a pair\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("WEBAGENT_T_SET", "from-env")
    # Registered first so teardown removes whatever the loader exports
    for key in ("WEBAGENT_T_NEW", "WEBAGENT_T_EXPORTED"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.setenv(webagent.ENV_FILE_VAR, str(env))

    assert webagent.load_env_file() == 2
    assert os.environ["WEBAGENT_T_NEW"] == "quoted value"
    assert os.environ["WEBAGENT_T_EXPORTED"] == "1"
    assert os.environ["WEBAGENT_T_SET"] == "from-env"


def test_missing_env_file_is_ignored(tmp_path):
    assert webagent.load_env_file(tmp_path / "absent.env") == 0
