"""Record store adapters: live full-snapshot subscriptions plus CRUD."""

import copy
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from .errors import PersistenceError, SubscriptionError

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[SubscriptionError], None]


def collection_path(app_id: str) -> str:
    """Scope key under which every record of a deployment lives."""
    return f"artifacts/{app_id}/public/data/vehicleServices"


class Subscription:
    """A live query over one scope. Errors end it."""

    def __init__(
        self,
        store: "RecordStore",
        scope_key: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.store = store
        self.scope_key = scope_key
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._subscriptions.remove(self)

    def _fail(self, error: SubscriptionError) -> None:
        logger.error("Subscription to %s failed: %s", self.scope_key, error)
        self.unsubscribe()
        if self.on_error is not None:
            self.on_error(error)


class RecordStore:
    """
    Base store. Subclasses implement `_load` and `_save` for one scope.

    Every write is followed by a full snapshot to the scope's subscribers.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def _load(self, scope_key: str) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    def _save(self, scope_key: str, docs: Dict[str, Dict[str, Any]]) -> None:
        raise NotImplementedError

    def snapshot(self, scope_key: str) -> Snapshot:
        docs = self._load(scope_key)
        return [dict(copy.deepcopy(data), id=doc_id) for doc_id, data in docs.items()]

    def _deliver(self, sub: Subscription) -> None:
        try:
            snap = self.snapshot(sub.scope_key)
        except PersistenceError as e:
            sub._fail(SubscriptionError(f"Failed to load records. {e}"))
            return
        sub.on_snapshot(snap)

    def _notify(self, scope_key: str) -> None:
        for sub in list(self._subscriptions):
            if sub.active and sub.scope_key == scope_key:
                self._deliver(sub)

    def subscribe(
        self,
        scope_key: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Start a live query; the current snapshot is delivered right away."""
        sub = Subscription(self, scope_key, on_snapshot, on_error)
        self._subscriptions.append(sub)
        self._deliver(sub)
        return sub

    def create(self, scope_key: str, data: Dict[str, Any]) -> str:
        """Add a document. The store assigns the id and creation timestamp."""
        docs = self._load(scope_key)
        doc_id = uuid.uuid4().hex
        doc = copy.deepcopy(data)
        doc.pop("id", None)
        doc["timestamp"] = datetime.now(timezone.utc)
        docs[doc_id] = doc
        self._save(scope_key, docs)
        logger.info("Created record %s in %s", doc_id, scope_key)
        self._notify(scope_key)
        return doc_id

    def update(self, scope_key: str, record_id: str, data: Dict[str, Any]) -> None:
        """Overwrite a whole document."""
        docs = self._load(scope_key)
        if record_id not in docs:
            raise PersistenceError(f"No record with id '{record_id}'")
        doc = copy.deepcopy(data)
        doc.pop("id", None)
        docs[record_id] = doc
        self._save(scope_key, docs)
        logger.info("Updated record %s in %s", record_id, scope_key)
        self._notify(scope_key)

    def delete(self, scope_key: str, record_id: str) -> None:
        docs = self._load(scope_key)
        if record_id not in docs:
            raise PersistenceError(f"No record with id '{record_id}'")
        del docs[record_id]
        self._save(scope_key, docs)
        logger.info("Deleted record %s from %s", record_id, scope_key)
        self._notify(scope_key)


class MemoryRecordStore(RecordStore):
    """Keeps documents in process memory."""

    def __init__(self):
        super().__init__()
        self._scopes: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _load(self, scope_key: str) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._scopes.get(scope_key, {}))

    def _save(self, scope_key: str, docs: Dict[str, Dict[str, Any]]) -> None:
        self._scopes[scope_key] = copy.deepcopy(docs)


class YamlRecordStore(RecordStore):
    """
    Keeps each scope in its own YAML file under `data_dir`.

    The file is a mapping of record id to document.
    """

    def __init__(self, data_dir: Union[str, Path]):
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, scope_key: str) -> Path:
        return self.data_dir / f"{scope_key}.yaml"

    def _load(self, scope_key: str) -> Dict[str, Dict[str, Any]]:
        path = self.path_for(scope_key)
        if not path.exists():
            return {}
        try:
            with open(path, "r") as fp:
                data = yaml.load(fp, Loader=yaml.SafeLoader)
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise PersistenceError(f"{path} does not hold a mapping of records")
        return {str(k): (v if isinstance(v, dict) else {}) for k, v in data.items()}

    def _save(self, scope_key: str, docs: Dict[str, Dict[str, Any]]) -> None:
        path = self.path_for(scope_key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as fp:
                yaml.dump(
                    docs,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e
