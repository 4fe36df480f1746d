"""Knowledge synchronisation service.

Walks the knowledge root, ingests every text and markdown file through the
KnowledgeService, then removes items whose source file is gone and repairs
items stored without an embedding.
"""

import asyncio
import os

from services.knowledge.KnowledgeService import KnowledgeService
from shared.helper.HelperConfig import HelperConfig
from shared.models.knowledge import KnowledgeFile

SUPPORTED_EXTENSIONS = {".txt": "txt", ".md": "md"}
SHARED_DIR = "shared"
FILE_CONCURRENCY = 5    # max parallel file ingestions


class KnowledgeSyncService:
    """Orchestrates the full sync pipeline from the knowledge root to the store."""

    def __init__(self, helper_config: HelperConfig, knowledge_service: KnowledgeService) -> None:
        self.logging = helper_config.get_logger()
        self._knowledge_service = knowledge_service
        self._knowledge_root = knowledge_service.knowledge_root

    ##########################################
    ############## DISCOVERY #################
    ##########################################

    def collect_files(self) -> list[KnowledgeFile]:
        """Read all supported files below the knowledge root.

        Files below the ``shared/`` subdirectory are ingested in shared scope.
        Paths are relative to the knowledge root with forward slashes.

        Returns:
            list[KnowledgeFile]: The files to ingest, sorted by path.
        """
        if not os.path.isdir(self._knowledge_root):
            self.logging.warning("Knowledge root '%s' does not exist. Nothing to sync.", self._knowledge_root)
            return []

        files: list[KnowledgeFile] = []
        for dirpath, _, filenames in os.walk(self._knowledge_root):
            for filename in filenames:
                file_type = SUPPORTED_EXTENSIONS.get(os.path.splitext(filename)[1].lower())
                if file_type is None:
                    continue
                full_path = os.path.join(dirpath, filename)
                rel_path = os.path.relpath(full_path, self._knowledge_root).replace(os.sep, "/")
                with open(full_path, "r", encoding="utf-8", errors="replace") as handle:
                    content = handle.read()
                files.append(KnowledgeFile(
                    path=rel_path,
                    content=content,
                    type=file_type,
                    is_shared=rel_path.split("/", 1)[0] == SHARED_DIR,
                ))
        return sorted(files, key=lambda f: f.path)

    ##########################################
    ############### CORE SYNC ################
    ##########################################

    async def do_full_sync(self) -> dict[str, int]:
        """Ingest all files, then run cleanup and repair.

        Returns:
            dict[str, int]: Counters "synced", "skipped", "errors", "removed", "repaired".
        """
        self.logging.info("Starting knowledge sync from '%s'...", self._knowledge_root)
        files = self.collect_files()

        sem = asyncio.Semaphore(FILE_CONCURRENCY)
        results = await asyncio.gather(
            *[self._sync_file(file, sem) for file in files],
            return_exceptions=True,
        )

        stats = {
            "synced": sum(1 for r in results if r is True),
            "skipped": sum(1 for r in results if r is False),
            "errors": sum(1 for r in results if isinstance(r, Exception)),
        }
        self.logging.info(
            "Ingestion complete: %d synced, %d skipped, %d errors.",
            stats["synced"], stats["skipped"], stats["errors"],
        )

        stats["removed"] = await self._knowledge_service.cleanup_deleted_knowledge_files()
        stats["repaired"] = await self._knowledge_service.repair_rag_entries()
        self.logging.info("Sync complete: %d removed, %d repaired.", stats["removed"], stats["repaired"])
        return stats

    async def _sync_file(self, file: KnowledgeFile, sem: asyncio.Semaphore) -> bool:
        """Ingest a single file.

        Returns:
            bool: True if ingested, False if skipped.

        Raises:
            Exception: Propagated to gather() if embedding or storing fails.
        """
        async with sem:
            if not file.content.strip():
                self.logging.info("Skipping '%s': no content.", file.path)
                return False
            try:
                await self._knowledge_service.process_file(file)
            except Exception as exc:
                self.logging.error("Ingestion failed for '%s': %s", file.path, exc)
                raise
            return True
