"""Flat-file credential store.

Each kind of record lives in its own pretty-printed JSON file directly under
the data directory. Reads never fail: a missing, unreadable or corrupt file
is treated as an empty mapping. Writes overwrite the whole file.

There is no locking between processes. Within one process, ``update()``
serialises load-modify-save cycles per kind, so two requests racing on the
same file no longer drop each other's change; two server processes sharing
one data directory still can.
"""

import json
import os
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from shared.helper.HelperConfig import HelperConfig


class StoreKind(str, Enum):
    """Credential record kinds and the file each one is persisted in."""

    PROTECTION = ".acl.json"
    LABELS = ".labels.json"
    OWNERS = ".owners.json"
    LOCKS = ".locks.json"
    IDENTITIES = ".users.json"

    @property
    def filename(self) -> str:
        return self.value


RESERVED_FILENAMES: frozenset[str] = frozenset(kind.filename for kind in StoreKind)


class CredentialStore:
    """Durable key/value mappings for protection hashes, labels, owners, locks and identities."""

    def __init__(self, helper_config: HelperConfig, data_dir: str) -> None:
        self.logging = helper_config.get_logger()
        self._data_dir = data_dir
        self._locks: dict[StoreKind, threading.Lock] = {kind: threading.Lock() for kind in StoreKind}

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_data_dir(self) -> str:
        return self._data_dir

    def get_path(self, kind: StoreKind) -> str:
        """Return the absolute path of the file backing ``kind``."""
        return os.path.join(self._data_dir, kind.filename)

    ##########################################
    ################ CORE ####################
    ##########################################

    def load(self, kind: StoreKind) -> dict:
        """Load one mapping from disk.

        Args:
            kind (StoreKind): Which mapping to load.

        Returns:
            dict: The stored mapping, or an empty dict if the file is absent,
                unreadable, not valid JSON or not a JSON object.
        """
        path = self.get_path(kind)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            self.logging.warning("Credential file %s unreadable, treating as empty: %s", path, e)
            return {}
        if not isinstance(data, dict):
            self.logging.warning("Credential file %s does not hold an object, treating as empty.", path)
            return {}
        return data

    def save(self, kind: StoreKind, mapping: dict) -> bool:
        """Overwrite one mapping on disk.

        Args:
            kind (StoreKind): Which mapping to write.
            mapping (dict): The full mapping; replaces the previous file content.

        Returns:
            bool: True on success, False if the write failed (the failure is logged).
        """
        path = self.get_path(kind)
        try:
            os.makedirs(self._data_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(mapping, fh, indent=2)
        except OSError as e:
            self.logging.error("Could not write credential file %s: %s", path, e)
            return False
        return True

    @contextmanager
    def update(self, kind: StoreKind) -> Iterator[dict]:
        """Load a mapping, hand it to the caller for mutation, then save it.

        The save is skipped if the body raises.

        Usage::

            with store.update(StoreKind.OWNERS) as owners:
                owners[doc_id] = user_id
        """
        with self._locks[kind]:
            mapping = self.load(kind)
            yield mapping
            self.save(kind, mapping)
