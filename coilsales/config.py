from __future__ import annotations
import logging
import os
from pathlib import Path

# --- Chemins de base ---
ROOT_DIR = Path(__file__).resolve().parents[1]


def data_dir() -> Path:
    """
    Dossier des fichiers JSON :
    - variable d'env COILSALES_DATA_DIR
    - sinon <racine>/data
    """
    env = os.environ.get("COILSALES_DATA_DIR")
    if env:
        return Path(env.strip().strip('"').strip("'")).expanduser()
    return ROOT_DIR / "data"


def data_file(name: str) -> Path:
    return data_dir() / name


CLIENTS_FILE = "clients.json"
SALES_FILE = "sales.json"
INVOICES_FILE = "invoices.json"
PAYMENTS_FILE = "payments.json"
SETTINGS_FILE = "settings.json"


def configure_logging(level: str | int | None = None) -> None:
    lvl = level or os.environ.get("COILSALES_LOG_LEVEL", "INFO")
    if isinstance(lvl, str):
        lvl = logging.getLevelName(lvl.upper())
        if not isinstance(lvl, int):
            lvl = logging.INFO
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
