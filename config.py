import json
import logging
import os
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent

_CONFIG_PATH = APP_ROOT / "cms.config.json"
_DEFAULTS = {
    "host": "0.0.0.0",
    "port": 4567,
    "secret_key": None,
    "data_root": str(APP_ROOT / "data"),
    "ledger_path": str(APP_ROOT / "users.yml"),
    "require_signin_to_view": False,
    "bcrypt_rounds": 12,
    "max_upload_bytes": 16 * 1024 * 1024,
    "log_level": "INFO",
}


def data_root_for(env: str | None) -> str:
    if env == "test":
        return str(APP_ROOT / "test" / "data")
    return _DEFAULTS["data_root"]


def load_config(path: Path | str | None = None, overrides: dict | None = None) -> dict:
    """
    Defaults, then the JSON config file, then environment, then ``overrides``.

    ``CMS_ENV=test`` moves the data root under ``test/data`` unless the file
    or the overrides name one explicitly.
    """
    cfg = dict(_DEFAULTS)
    cfg["data_root"] = data_root_for(os.environ.get("CMS_ENV"))

    path = Path(path or os.environ.get("CMS_CONFIG") or _CONFIG_PATH)
    if path.is_file():
        try:
            with open(path) as f:
                user = json.load(f)
            cfg.update(user)
        except (OSError, ValueError) as e:
            logger.warning("could not load %s: %s", path.name, e)

    if os.environ.get("CMS_SECRET_KEY"):
        cfg["secret_key"] = os.environ["CMS_SECRET_KEY"]
    cfg.update(overrides or {})

    if not cfg["secret_key"]:
        # sessions will not survive a restart
        cfg["secret_key"] = secrets.token_hex(32)
    cfg["port"] = int(cfg["port"])
    cfg["bcrypt_rounds"] = max(4, int(cfg["bcrypt_rounds"]))
    return cfg
