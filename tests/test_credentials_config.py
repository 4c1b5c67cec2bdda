from pathlib import Path

import pytest

from richy.config import (
    CredentialsConfig,
    load_credentials_config,
    parse_credentials_config,
    save_credentials_config,
)


def test_parse_skips_comments_blank_and_malformed_lines() -> None:
    cfg = parse_credentials_config(
        """# richy configuration file

host: https://api.kraken.com
api_key:my-key
this line has no separator
colour:blue
api_secret: a2V5
"""
    )
    assert cfg.host == "https://api.kraken.com"
    assert cfg.api_key == "my-key"
    assert cfg.api_secret == "a2V5"
    assert cfg.base_url() == "https://api.kraken.com"


def test_defaults_when_keys_missing() -> None:
    cfg = parse_credentials_config("")
    assert cfg == CredentialsConfig(host="localhost", api_key="", api_secret="")
    assert cfg.base_url() == "https://localhost"


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "conf" / "richy.conf"
    cfg = CredentialsConfig(host="api.demo.kraken.com", api_key="k", api_secret="c2VjcmV0+/==")
    save_credentials_config(cfg, path)

    text = path.read_text(encoding="utf-8")
    assert text.startswith("# ")
    assert "api_secret:c2VjcmV0+/==\n" in text
    assert load_credentials_config(path) == cfg


def test_load_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_credentials_config(tmp_path / "absent.conf")


def test_multiline_values_rejected() -> None:
    with pytest.raises(ValueError):
        CredentialsConfig(api_key="k\nhost:evil")
