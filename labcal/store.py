"""
Tenant Store

In-memory map of tenantId -> tenant record, mirrored to a single JSON file
after every mutation.

CONCURRENCY: Mutations go through transaction(), which holds a process-wide
re-entrant lock, snapshots the map, and restores the snapshot if the
mutation or the disk write fails. The file is written to a temporary
sibling and renamed over the target, so a crash mid-write never leaves a
truncated store behind.

LIMITATION: There is no cross-process locking. Run a single worker; two
processes sharing one data file will overwrite each other (last write wins).
"""
import copy
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from labcal.config import get_settings
from labcal.core.exceptions import (
    StoreWriteError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
)
from labcal.models.tenant import Tenant
from labcal.utils.dates import utcnow
from labcal.utils.logging import get_logger

logger = get_logger(__name__)

TenantRecord = Dict[str, Any]


class TenantStore:
    """JSON-file backed tenant repository."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._tenants: Dict[str, TenantRecord] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Load the store from disk.

        - Missing file: start empty and write an empty store.
        - Unreadable file: move it aside as <name>.corrupt-<timestamp>
          and start empty. Nothing is ever silently overwritten.
        """
        with self._lock:
            if not self.path.exists():
                logger.info(f"No tenant data at {self.path}, starting with an empty store")
                self._tenants = {}
                self.save()
                return

            try:
                with self.path.open("r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            except ValueError as e:
                # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
                backup = self.path.with_name(
                    f"{self.path.name}.corrupt-{utcnow().strftime('%Y%m%d%H%M%S')}"
                )
                logger.error(f"Tenant data at {self.path} is unreadable ({e}); moved to {backup}")
                os.replace(self.path, backup)
                self._tenants = {}
                self.save()
                return

            self._tenants = data
            logger.info(f"Loaded {len(self._tenants)} tenants from {self.path}")

    def save(self) -> None:
        """Write the whole store atomically (pretty-printed, indent 2)."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(self._tenants, f, indent=2)
                    os.replace(tmp_name, self.path)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
            except OSError as e:
                logger.error(f"Failed to write tenant data to {self.path}: {e}")
                raise StoreWriteError(str(e)) from e

    @contextmanager
    def transaction(self) -> Iterator["TenantStore"]:
        """
        Serialize a mutate-then-persist sequence.

        Usage:
            with store.transaction():
                record = store.ensure_tenant("lab-a")
                record["events"].append(event)

        Any exception (including a failed write) rolls the in-memory map
        back to its state before the block.
        """
        with self._lock:
            snapshot = copy.deepcopy(self._tenants)
            try:
                yield self
                self.save()
            except BaseException:
                self._tenants = snapshot
                raise

    # ------------------------------------------------------------------
    # Reads (return copies; callers never alias stored state)
    # ------------------------------------------------------------------

    def list_tenants(self) -> List[TenantRecord]:
        with self._lock:
            return [copy.deepcopy(t) for t in self._tenants.values()]

    def get_tenant(self, tenant_id: str) -> TenantRecord:
        with self._lock:
            return copy.deepcopy(self.record(tenant_id))

    def find_tenant(self, tenant_id: str) -> Optional[TenantRecord]:
        with self._lock:
            record = self._tenants.get(tenant_id)
            return copy.deepcopy(record) if record is not None else None

    def tenant_ids(self) -> List[str]:
        with self._lock:
            return list(self._tenants)

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._tenants

    def __len__(self) -> int:
        return len(self._tenants)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(self, tenant_id: str) -> TenantRecord:
        """
        Live record for mutation. Call inside transaction().

        Raises TenantNotFoundError if the tenant does not exist.
        """
        record = self._tenants.get(tenant_id)
        if record is None:
            raise TenantNotFoundError(tenant_id)
        record.setdefault("events", [])
        record.setdefault("resources", [])
        return record

    def create_tenant(self, tenant_id: str, name: str) -> TenantRecord:
        with self.transaction():
            if tenant_id in self._tenants:
                raise TenantAlreadyExistsError(tenant_id)
            record = Tenant.new(tenant_id, name).to_record()
            self._tenants[tenant_id] = record
        logger.info(f"Tenant created: {tenant_id}", extra={"tenant_id": tenant_id})
        return copy.deepcopy(record)

    def ensure_tenant(self, tenant_id: str) -> TenantRecord:
        """
        Live record for tenant_id, provisioning it (name = id) if absent.

        Call inside transaction().
        """
        if tenant_id not in self._tenants:
            logger.info(f"Auto-creating tenant: {tenant_id}", extra={"tenant_id": tenant_id})
            self._tenants[tenant_id] = Tenant.new(tenant_id).to_record()
        return self.record(tenant_id)

    def put_tenant(self, record: TenantRecord) -> None:
        """Insert or replace a whole tenant record. Call inside transaction()."""
        self._tenants[record["id"]] = record

    def delete_tenant(self, tenant_id: str) -> None:
        with self.transaction():
            if tenant_id not in self._tenants:
                raise TenantNotFoundError(tenant_id)
            del self._tenants[tenant_id]
        logger.info(f"Tenant deleted: {tenant_id}", extra={"tenant_id": tenant_id})


@lru_cache()
def get_store() -> TenantStore:
    """
    Dependency that provides the process-wide store.

    Loaded once on first use. Tests swap it out with
    app.dependency_overrides[get_store].
    """
    settings = get_settings()
    store = TenantStore(settings.data_path)
    store.load()
    return store
