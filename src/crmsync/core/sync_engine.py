"""Reconciliation of a remote folder tree into the notes table."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from ..api_clients import BaseTreeSource, DriveItem
from ..database import RecordGateway, SyncedItem, utc_now
from ..utils.logging import get_logger, log_async_execution_time
from ..utils.media import display_label


DEFAULT_CHUNK_SIZE = 50


@dataclass
class SyncResult:
    """Result of a reconciliation run."""

    synced_count: int
    inserted: int = 0
    updated: int = 0
    duration_seconds: Optional[float] = None

    def to_response(self) -> Dict[str, Any]:
        return {"success": True, "synced": self.synced_count}


class SyncEngineError(Exception):
    """Raised when the persistence phase aborts.

    ``result`` holds the discovered item count and whatever was written
    before the failing chunk; those writes are left in place.
    """

    def __init__(self, message: str, result: SyncResult):
        super().__init__(message)
        self.result = result


class _Walk:
    """State of one tree walk: the visited ids and the flat item list."""

    def __init__(self, source: BaseTreeSource, owner: str, logger):
        self.source = source
        self.owner = owner
        self.logger = logger
        self.visited: Set[str] = set()
        self.items: List[SyncedItem] = []
        self.failed_containers = 0

    async def visit(self, container_id: Optional[str], drive_id: Optional[str], path: List[str]) -> None:
        folders_res, files_res = await asyncio.gather(
            self.source.list_folders(container_id, drive_id),
            self.source.list_files(container_id, drive_id),
            return_exceptions=True
        )
        for res in (folders_res, files_res):
            if isinstance(res, BaseException):
                if not isinstance(res, Exception):
                    raise res
                self.failed_containers += 1
                self.logger.error(
                    "Failed to list container, skipping branch",
                    container_id=container_id,
                    path="/".join(path),
                    error=str(res)
                )
                return

        for folder in folders_res:
            if folder.id in self.visited:
                continue
            self.visited.add(folder.id)

            folder_path = path + [folder.name]
            self.items.append(self._item(folder, folder_path, is_container=True))
            await self.visit(folder.id, drive_id, folder_path)

        for file in files_res:
            if file.id in self.visited:
                continue
            self.visited.add(file.id)
            self.items.append(self._item(file, path + [file.name], is_container=False))

    def _item(self, entry: DriveItem, path: List[str], is_container: bool) -> SyncedItem:
        return SyncedItem(
            external_id=entry.id,
            display_label=display_label(entry.name, entry.mime_type, is_folder=is_container),
            media_type=entry.mime_type,
            is_container=is_container,
            path=path,
            owner=self.owner
        )


class ReconciliationEngine:
    """Walks a remote folder tree and upserts every item as an owner's note.

    Items are deduplicated by ``(owner, external id)``: an item seen before is
    updated in place (label, media type, path and modification time), a new
    one is inserted. Nothing is ever deleted.
    """

    def __init__(
        self,
        tree_source: BaseTreeSource,
        gateway: RecordGateway,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        clock: Callable = utc_now
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self.tree_source = tree_source
        self.gateway = gateway
        self.chunk_size = chunk_size
        self.clock = clock
        self.logger = get_logger(self.__class__.__name__)

    async def walk(
        self,
        root_container_id: Optional[str],
        drive_id: Optional[str],
        root_label: str,
        owner: str
    ) -> List[SyncedItem]:
        """Collect the descendants of a container, depth-first and pre-order.

        The root itself is not part of the result; every path starts with
        ``root_label``.
        """
        walk = _Walk(self.tree_source, owner, self.logger)
        await walk.visit(root_container_id, drive_id, [root_label])

        self.logger.info(
            "Remote tree walked",
            root_container_id=root_container_id,
            items=len(walk.items),
            failed_containers=walk.failed_containers
        )
        return walk.items

    @log_async_execution_time
    async def reconcile(
        self,
        root_container_id: Optional[str],
        drive_id: Optional[str],
        root_label: str,
        owner: str
    ) -> SyncResult:
        """Walk the tree under ``root_container_id`` and persist every item."""
        start = time.perf_counter()
        items = await self.walk(root_container_id, drive_id, root_label, owner)
        result = SyncResult(synced_count=len(items))

        try:
            for offset in range(0, len(items), self.chunk_size):
                await self._persist_chunk(items[offset:offset + self.chunk_size], owner, result)
        except Exception as e:
            result.duration_seconds = time.perf_counter() - start
            self.logger.error(
                "Reconciliation aborted",
                owner=owner,
                synced=result.synced_count,
                inserted=result.inserted,
                updated=result.updated,
                error=str(e)
            )
            raise SyncEngineError(str(e), result) from e

        result.duration_seconds = time.perf_counter() - start
        self.logger.info(
            "Reconciliation completed",
            owner=owner,
            root_label=root_label,
            synced=result.synced_count,
            inserted=result.inserted,
            updated=result.updated,
            duration=f"{result.duration_seconds:.2f}s"
        )
        return result

    async def _persist_chunk(self, chunk: List[SyncedItem], owner: str, result: SyncResult) -> None:
        existing = await self.gateway.find_existing(owner, [item.external_id for item in chunk])

        inserts = []
        for item in chunk:
            record_id = existing.get(item.external_id)
            if record_id is None:
                inserts.append(item.to_record())
                continue
            await self.gateway.update_record(record_id, item.update_fields(self.clock()))
            result.updated += 1

        if inserts:
            await self.gateway.insert_records(inserts)
            result.inserted += len(inserts)

        self.logger.debug("Chunk persisted", size=len(chunk), inserted=len(inserts))
