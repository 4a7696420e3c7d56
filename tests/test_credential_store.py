import json
import os
import threading
import time

import pytest

from shared.stores.CredentialStore import RESERVED_FILENAMES, CredentialStore, StoreKind


def test_missing_file_loads_empty(store):
    assert store.load(StoreKind.OWNERS) == {}


def test_save_then_load(store, data_dir):
    assert store.save(StoreKind.LABELS, {"doc": "My doc"})
    assert store.load(StoreKind.LABELS) == {"doc": "My doc"}
    with open(os.path.join(data_dir, ".labels.json"), encoding="utf-8") as fh:
        assert json.load(fh) == {"doc": "My doc"}


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", '"text"', ""])
def test_corrupt_file_loads_empty(store, data_dir, content):
    with open(os.path.join(data_dir, ".acl.json"), "w", encoding="utf-8") as fh:
        fh.write(content)
    assert store.load(StoreKind.PROTECTION) == {}


def test_kinds_are_independent(store):
    store.save(StoreKind.OWNERS, {"a": "u1"})
    store.save(StoreKind.LOCKS, {"a": True})
    assert store.load(StoreKind.OWNERS) == {"a": "u1"}
    assert store.load(StoreKind.LOCKS) == {"a": True}


def test_update_saves_mutation(store):
    with store.update(StoreKind.OWNERS) as owners:
        owners["doc"] = "u1"
    assert store.load(StoreKind.OWNERS) == {"doc": "u1"}


def test_update_skips_save_when_body_raises(store):
    store.save(StoreKind.OWNERS, {"doc": "u1"})
    with pytest.raises(RuntimeError):
        with store.update(StoreKind.OWNERS) as owners:
            owners["doc"] = "u2"
            raise RuntimeError("abort")
    assert store.load(StoreKind.OWNERS) == {"doc": "u1"}


def test_update_serialises_concurrent_writers(store):
    workers = 16
    barrier = threading.Barrier(workers)

    def add(n):
        barrier.wait()
        with store.update(StoreKind.OWNERS) as owners:
            time.sleep(0.005)
            owners[f"doc{n}"] = f"user{n}"

    threads = [threading.Thread(target=add, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.load(StoreKind.OWNERS) == {f"doc{n}": f"user{n}" for n in range(workers)}


def test_data_dir_created_on_first_write(helper_config, tmp_path):
    target = tmp_path / "nested" / "data"
    store = CredentialStore(helper_config=helper_config, data_dir=str(target))
    assert store.save(StoreKind.IDENTITIES, {"h": "id"})
    assert (target / ".users.json").is_file()


def test_unwritable_location_reports_failure(helper_config, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    store = CredentialStore(helper_config=helper_config, data_dir=str(blocker / "data"))
    assert store.save(StoreKind.LABELS, {"a": "b"}) is False
    assert store.load(StoreKind.LABELS) == {}


def test_reserved_filenames_cover_every_kind():
    assert RESERVED_FILENAMES == {".acl.json", ".labels.json", ".owners.json", ".locks.json", ".users.json"}
