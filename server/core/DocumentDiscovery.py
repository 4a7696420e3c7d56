"""Document discovery: reconstructs logical documents from the storage layout.

Storage adapters shard ids over nested directories (``ab/cdef.../``) and may
split one document into several loose files (``<id>snapshot``,
``<id>sync-state``). Discovery is best effort: any OS error while scanning
only shrinks the result.
"""

import os
from datetime import datetime, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.models.acl import DocumentSummary
from shared.stores.CredentialStore import RESERVED_FILENAMES

ARTIFACT_SUFFIXES = ("snapshot", "sync-state")


def _iso_from_ms(mtime_ms: float) -> str:
    dt = datetime.fromtimestamp(mtime_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DocumentDiscovery:
    """Read-only scan of the storage directory."""

    def __init__(self, helper_config: HelperConfig, data_dir: str) -> None:
        self.logging = helper_config.get_logger()
        self._data_dir = data_dir

    def list_documents(self) -> list[DocumentSummary]:
        """Return one summary per logical document found under the data directory."""
        by_id: dict[str, dict] = {}

        try:
            top = list(os.scandir(self._data_dir))
        except OSError as e:
            self.logging.warning("Cannot scan data dir %s: %s", self._data_dir, e)
            return []

        for entry in top:
            try:
                if entry.is_dir(follow_symlinks=False):
                    self._walk(entry.path, [entry.name], by_id)
                elif entry.is_file(follow_symlinks=False):
                    self._add_loose_file(entry, by_id)
            except OSError as e:
                self.logging.debug("Skipping %s: %s", entry.path, e)

        return [
            DocumentSummary(
                id=doc["id"],
                type=doc["type"],
                sizeBytes=doc["sizeBytes"],
                mtimeMs=doc["mtimeMs"],
                mtimeISO=_iso_from_ms(doc["mtimeMs"]),
            )
            for doc in by_id.values()
        ]

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def base_id(filename: str) -> str:
        """Strip the known artifact suffixes from a loose file name."""
        base = filename
        for suffix in ARTIFACT_SUFFIXES:
            if base.endswith(suffix):
                base = base[: -len(suffix)]
        return base

    def _add_loose_file(self, entry: os.DirEntry, by_id: dict[str, dict]) -> None:
        if entry.name in RESERVED_FILENAMES:
            return
        stat = entry.stat(follow_symlinks=False)
        doc_id = self.base_id(entry.name)
        if not doc_id:
            return
        prev = by_id.get(doc_id)
        by_id[doc_id] = {
            "id": doc_id,
            "type": "file",
            "sizeBytes": (prev["sizeBytes"] if prev else 0) + stat.st_size,
            "mtimeMs": max(prev["mtimeMs"] if prev else 0, stat.st_mtime * 1000),
        }

    def _walk(self, path: str, segments: list[str], by_id: dict[str, dict]) -> None:
        """Descend until a directory holds files or has no subdirectories.

        That node is one storage artifact. Its id is the joined path segments
        with the artifact suffixes stripped, so partitions of one document merge.
        """
        try:
            entries = list(os.scandir(path))
        except OSError:
            return
        subdirs = [e for e in entries if e.is_dir(follow_symlinks=False)]
        has_files = any(e.is_file(follow_symlinks=False) for e in entries)

        if has_files or not subdirs:
            doc_id = self.base_id("".join(segments))
            if not doc_id:
                return
            size, mtime = self.subtree_stats(path)
            prev = by_id.get(doc_id)
            by_id[doc_id] = {
                "id": doc_id,
                "type": "dir",
                "sizeBytes": (prev["sizeBytes"] if prev else 0) + size,
                "mtimeMs": max(prev["mtimeMs"] if prev else 0, mtime),
            }
            return

        for sub in subdirs:
            self._walk(sub.path, [*segments, sub.name], by_id)

    def subtree_stats(self, path: str) -> tuple[int, float]:
        """Total size in bytes and latest mtime (epoch ms) of a directory tree, the directory itself included."""
        total = 0
        latest = 0.0
        try:
            entries = list(os.scandir(path))
        except OSError:
            return total, latest
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    size, mtime = self.subtree_stats(entry.path)
                    total += size
                    latest = max(latest, mtime)
                else:
                    stat = entry.stat(follow_symlinks=False)
                    total += stat.st_size
                    latest = max(latest, stat.st_mtime * 1000)
            except OSError:
                continue
        try:
            latest = max(latest, os.stat(path).st_mtime * 1000)
        except OSError:
            pass
        return total, latest
