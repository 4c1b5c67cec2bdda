__all__ = [
    "CONF_FILE",
    "CredentialsConfig",
    "load_credentials_config",
    "parse_credentials_config",
    "save_credentials_config",
]

from richy.config.credentials import (
    CONF_FILE,
    CredentialsConfig,
    load_credentials_config,
    parse_credentials_config,
    save_credentials_config,
)
