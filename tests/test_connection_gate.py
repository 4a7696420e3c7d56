import asyncio
import time

import pytest

from server.core.ConnectionGate import POLICY_VIOLATION, ConnectionGate, frame_to_bytes
from server.core.DocumentAclService import doc_cookie_name
from server.core.SessionGate import ADMIN_COOKIE


@pytest.fixture
def gate(helper_config, session_gate, acl):
    return ConnectionGate(helper_config=helper_config, session_gate=session_gate, acl_service=acl, close_grace_ms=50)


def test_frame_to_bytes_normalises_representations():
    assert frame_to_bytes("héllo") == "héllo".encode("utf-8")
    assert frame_to_bytes(b"abc") == b"abc"
    assert frame_to_bytes(bytearray(b"abc")) == b"abc"
    assert frame_to_bytes(memoryview(b"abc")) == b"abc"
    assert frame_to_bytes([b"ab", bytearray(b"c"), "d"]) == b"abcd"
    assert frame_to_bytes(None) == b""
    assert frame_to_bytes(42) == b"42"


def test_admit_uses_admin_cookie(gate):
    assert gate.admit({ADMIN_COOKIE: "s3cret"})
    assert not gate.admit({ADMIN_COOKIE: "nope"})
    assert not gate.admit({})


def test_no_protected_documents_means_no_scan(gate):
    assert gate.find_violation(b"anything at all", {}) is None


def test_frame_mentioning_protected_doc_without_token(gate, acl):
    acl.protect("4Nq2docid", "pw")
    assert gate.find_violation(b"\x82\xa4type\xa4sync\x00" + b"4Nq2docid" + b"\x01", {}) == "4Nq2docid"
    assert gate.find_violation('{"documentId":"4Nq2docid"}', {}) == "4Nq2docid"


def test_id_split_across_fragments_is_still_found(gate, acl):
    acl.protect("4Nq2docid", "pw")
    assert gate.find_violation([b"..4Nq2", b"docid.."], {}) == "4Nq2docid"


def test_frame_without_protected_id_passes(gate, acl):
    acl.protect("4Nq2docid", "pw")
    assert gate.find_violation(b"other-document", {}) is None


def test_valid_token_lets_frame_through(gate, acl):
    acl.protect("4Nq2docid", "pw")
    token, _ = acl.document_login("4Nq2docid", "pw")
    cookies = {doc_cookie_name("4Nq2docid"): token}
    assert gate.find_violation(b"..4Nq2docid..", cookies) is None


def test_token_for_other_document_does_not_help(gate, acl):
    acl.protect("docA", "pw")
    acl.protect("docB", "pw")
    token, _ = acl.document_login("docA", "pw")
    cookies = {doc_cookie_name("docA"): token}
    assert gate.find_violation(b"docA+docB", cookies) == "docB"


def test_expired_token_is_rejected(gate, acl, codec):
    acl.protect("docA", "pw")
    stale = codec.sign({"d": "docA", "exp": 1})
    assert gate.find_violation(b"docA", {doc_cookie_name("docA"): stale}) == "docA"


def test_non_ascii_session_cookie_counts_as_missing(gate, acl):
    acl.protect("abcdef", "pw")
    assert gate.find_violation(b"..abcdef..", {doc_cookie_name("abcdef"): "aaa.b\xe9"}) == "abcdef"


class FakeSocket:
    """Records close calls; ``receive`` hands out queued messages, then blocks."""

    client = None

    def __init__(self, messages=()):
        self.closed_with = []
        self._messages = list(messages)

    async def close(self, code=1000, reason=None):
        self.closed_with.append(code)

    async def receive(self):
        if self._messages:
            return self._messages.pop(0)
        await asyncio.Event().wait()


def test_enforce_terminates_peer_that_ignores_close(gate):
    ws = FakeSocket(messages=[{"type": "websocket.receive", "bytes": b"late"}])
    started = time.monotonic()
    asyncio.run(gate.enforce(ws, "docA"))
    elapsed = time.monotonic() - started
    assert ws.closed_with == [POLICY_VIOLATION]
    assert 0.04 <= elapsed < 1.0


def test_enforce_returns_once_peer_disconnects(helper_config, session_gate, acl):
    slow = ConnectionGate(helper_config=helper_config, session_gate=session_gate, acl_service=acl, close_grace_ms=5_000)
    ws = FakeSocket(messages=[{"type": "websocket.disconnect", "code": POLICY_VIOLATION}])
    started = time.monotonic()
    asyncio.run(slow.enforce(ws, "docA"))
    assert ws.closed_with == [POLICY_VIOLATION]
    assert time.monotonic() - started < 1.0
