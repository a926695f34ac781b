from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from coilsales.config import SETTINGS_FILE, data_file
from coilsales.models.settings import AppSettings

log = logging.getLogger(__name__)


class SettingsService:
    """data/settings.json : TVA par défaut, échéance, numérotation des factures."""

    def __init__(self, path: Optional[os.PathLike | str] = None):
        self.path = Path(path) if path else data_file(SETTINGS_FILE)

    def load(self) -> AppSettings:
        if not self.path.exists():
            return AppSettings()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log.warning("settings.json illisible (%s), valeurs par défaut", e)
            return AppSettings()
        try:
            return AppSettings.model_validate(raw if isinstance(raw, dict) else {})
        except ValidationError as e:
            log.warning("settings.json invalide (%s), valeurs par défaut", e)
            return AppSettings()

    def save(self, settings: AppSettings) -> AppSettings:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(settings.model_dump(mode="json"), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        return settings

    # ----------- numérotation -----------
    def next_invoice_number(self) -> str:
        s = self.load()
        seq = s.numbering.invoice_seq
        number = f"{s.numbering.invoice_prefix}{seq:04d}"
        s.numbering.invoice_seq = seq + 1
        self.save(s)
        return number
