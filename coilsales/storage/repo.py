from __future__ import annotations
import json, logging, os, shutil, tempfile, threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel

from coilsales.errors import NotFoundError

log = logging.getLogger(__name__)

Record = Dict[str, Any]


def _json_default(o: Any):
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


class JsonRepository:
    """
    Une liste d'enregistrements JSON par fichier (clients, ventes, factures,
    paiements). Les ventes, factures et paiements ne sont jamais effacés :
    soft_delete() les archive (is_deleted / deleted_at) et restore() les
    remet en service. Avant chaque écriture, l'ancien fichier est copié en
    `<nom>.<horodatage>.bak.json` ; seules les `backup_keep` dernières copies
    sont conservées.
    """

    def __init__(self, path: Union[str, os.PathLike], entity_name: str = "entity",
                 key: str = "id", *, backup_keep: int = 5):
        self.path = Path(path)
        self.entity_name = entity_name
        self.key = key
        self.backup_keep = max(0, int(backup_keep))
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("[]", encoding="utf-8")

    # ----------- fichier -----------
    def _load(self) -> List[Record]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            aside = self.path.with_suffix(".corrupt.json")
            log.error("%s illisible, copie dans %s", self.path.name, aside.name)
            shutil.copy2(self.path, aside)
            return []
        return data if isinstance(data, list) else []

    def _backup(self) -> None:
        if self.backup_keep <= 0 or not self.path.exists():
            return
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        shutil.copy2(self.path, self.path.with_name(f"{self.path.stem}.{stamp}.bak.json"))
        backups = sorted(self.path.parent.glob(f"{self.path.stem}.*.bak.json"))
        for old in backups[:-self.backup_keep]:
            old.unlink(missing_ok=True)

    def _save(self, data: List[Record]) -> None:
        with self._lock:
            self._backup()
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, default=_json_default)
            os.replace(tmp, self.path)

    def _index_of_key(self, data: List[Record], key_value: Any) -> int:
        for i, d in enumerate(data):
            if str(d.get(self.key)) == str(key_value):
                return i
        return -1

    @staticmethod
    def _to_record(item: Union[BaseModel, Record]) -> Record:
        if isinstance(item, BaseModel):
            return item.model_dump(mode="json")
        return dict(item)

    # ----------- lecture -----------
    def list_all(self) -> List[Record]:
        return self._load()

    def list_active(self) -> List[Record]:
        return [d for d in self._load() if not d.get("is_deleted")]

    def list_deleted(self) -> List[Record]:
        return [d for d in self._load() if d.get("is_deleted")]

    def get_by_id(self, key_value: Any) -> Optional[Record]:
        data = self._load()
        idx = self._index_of_key(data, key_value)
        return data[idx] if idx >= 0 else None

    # ----------- écriture -----------
    def add(self, item: Union[BaseModel, Record]) -> Record:
        record = self._to_record(item)
        record.setdefault(self.key, None)
        if not record[self.key]:
            record[self.key] = uuid4().hex
        data = self._load()
        if self._index_of_key(data, record[self.key]) >= 0:
            raise ValueError(f"{self.entity_name} {record[self.key]!r} existe déjà")
        data.append(record)
        self._save(data)
        log.debug("%s %s ajouté", self.entity_name, record[self.key])
        return record

    def update(self, item: Union[BaseModel, Record]) -> Record:
        """Remplace l'enregistrement de même clé."""
        record = self._to_record(item)
        data = self._load()
        idx = self._index_of_key(data, record.get(self.key))
        if idx < 0:
            raise NotFoundError(self.entity_name, record.get(self.key))
        data[idx] = record
        self._save(data)
        return record

    def delete(self, key_value: Any) -> None:
        """Suppression physique (clients uniquement)."""
        data = self._load()
        idx = self._index_of_key(data, key_value)
        if idx < 0:
            raise NotFoundError(self.entity_name, key_value)
        data.pop(idx)
        self._save(data)

    # ----------- archivage -----------
    def _mark(self, key_value: Any, deleted: bool) -> Record:
        data = self._load()
        idx = self._index_of_key(data, key_value)
        if idx < 0:
            raise NotFoundError(self.entity_name, key_value)
        now = datetime.now().isoformat()
        data[idx].update(is_deleted=deleted, deleted_at=now if deleted else None, updated_at=now)
        self._save(data)
        log.info("%s %s %s", self.entity_name, key_value, "archivé" if deleted else "restauré")
        return data[idx]

    def soft_delete(self, key_value: Any) -> Record:
        return self._mark(key_value, True)

    def restore(self, key_value: Any) -> Record:
        return self._mark(key_value, False)
