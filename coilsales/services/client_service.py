from __future__ import annotations
from typing import List, Optional
import logging
import os

from pydantic import ValidationError

from coilsales.config import CLIENTS_FILE, data_file
from coilsales.models.client import Client
from coilsales.storage.repo import JsonRepository

log = logging.getLogger(__name__)


class ClientService:
    def __init__(self, path: Optional[os.PathLike | str] = None):
        self.repo = JsonRepository(path or data_file(CLIENTS_FILE), entity_name="client", key="id")

    def list_clients(self) -> List[Client]:
        items = self.repo.list_all()
        out: List[Client] = []
        for d in items:
            try:
                out.append(Client(**d))
            except ValidationError:
                # On ignore les entrées invalides pour ne pas casser les rapports
                log.warning("Client invalide ignoré: %s", d.get("id"))
                continue
        return out

    def add_client(self, client: Client) -> Client:
        self.repo.add(client)
        return client

    def update_client(self, client: Client) -> Client:
        self.repo.update(client)
        return client

    def delete_client(self, client_id: str) -> None:
        self.repo.delete(client_id)

    def get_by_id(self, client_id: str) -> Optional[Client]:
        d = self.repo.get_by_id(client_id)
        if d is None:
            return None
        try:
            return Client(**d)
        except ValidationError:
            return None
