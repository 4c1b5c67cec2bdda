from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, field_validator

from richy.settings import normalize_host

CONF_FILE = Path("richy.conf")

_KEYS = ("host", "api_key", "api_secret")


class CredentialsConfig(BaseModel):
    host: str = "localhost"
    api_key: str = ""
    api_secret: str = ""

    @field_validator("host", "api_key", "api_secret")
    @classmethod
    def _single_line(cls, value: str) -> str:
        if "\n" in value or "\r" in value:
            raise ValueError("value must fit on a single line")
        return value

    def base_url(self) -> str:
        return normalize_host(self.host)


def parse_credentials_config(text: str) -> CredentialsConfig:
    """Parse ``name:value`` lines; blank lines, ``#`` comments, malformed lines
    and unknown names are skipped."""
    raw: dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue
        name = name.strip()
        if name in _KEYS:
            raw[name] = value.strip()
    return CredentialsConfig.model_validate(raw)


def load_credentials_config(path: Path = CONF_FILE) -> CredentialsConfig:
    return parse_credentials_config(path.read_text(encoding="utf-8"))


def save_credentials_config(cfg: CredentialsConfig, path: Path = CONF_FILE) -> None:
    lines = [
        "# richy configuration file",
        "# This file is automatically generated",
        "",
        f"host:{cfg.host}",
        f"api_key:{cfg.api_key}",
        f"api_secret:{cfg.api_secret}",
    ]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
