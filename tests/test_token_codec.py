from shared.security.TokenCodec import TokenCodec


def test_sign_and_verify_returns_payload(codec):
    token = codec.sign({"d": "abc", "exp": 5_000})
    assert codec.verify(token, at_ms=1_000) == {"d": "abc", "exp": 5_000}


def test_expiry_boundary_is_exclusive(codec):
    token = codec.sign({"d": "abc", "exp": 10_000})
    assert codec.verify(token, at_ms=9_999) is not None
    assert codec.verify(token, at_ms=10_000) is None
    assert codec.verify(token, at_ms=10_001) is None


def test_payload_without_exp_never_expires(codec):
    token = codec.sign({"d": "abc"})
    assert codec.verify(token) == {"d": "abc"}


def test_tampered_payload_is_rejected(codec):
    token = codec.sign({"d": "abc", "exp": 10_000})
    forged = TokenCodec("other").sign({"d": "xyz", "exp": 10_000})
    data, _, sig = token.partition(".")
    forged_data = forged.partition(".")[0]
    assert codec.verify(f"{forged_data}.{sig}", at_ms=0) is None
    assert codec.verify(f"{data}.{'0' * len(sig)}", at_ms=0) is None


def test_rotated_secret_invalidates_tokens(codec):
    token = codec.sign({"d": "abc", "exp": 10_000})
    assert TokenCodec("rotated").verify(token, at_ms=0) is None


def test_malformed_tokens_fail_closed(codec):
    for token in (None, "", "abc", ".", "abc.", ".sig", "!!!.deadbeef"):
        assert codec.verify(token) is None
    # valid signature over something that is not JSON
    garbage = "bm90IGpzb24"
    assert codec.verify(f"{garbage}.{codec._mac(garbage)}") is None


def test_no_secret_uses_fallback_key():
    a = TokenCodec(None)
    b = TokenCodec("")
    assert b.verify(a.sign({"d": "x"})) == {"d": "x"}


def test_password_hash_is_deterministic_and_keyed(codec):
    stored = codec.hash_password("hunter2")
    assert stored == codec.hash_password("hunter2")
    assert codec.verify_password("hunter2", stored)
    assert not codec.verify_password("hunter3", stored)
    assert TokenCodec("other").hash_password("hunter2") != stored


def test_non_ascii_signature_fails_closed(codec):
    data, _, sig = codec.sign({"d": "abc", "exp": 10_000}).partition(".")
    assert codec.verify(f"{data}.{sig[:-1]}é", at_ms=0) is None
    assert codec.verify(f"{data}.\udcff", at_ms=0) is None
    assert codec.verify(f"é.{sig}", at_ms=0) is None


def test_non_ascii_password_hash_does_not_match(codec):
    assert not codec.verify_password("hunter2", "é" * 64)
    assert codec.verify_password("pässwörd", codec.hash_password("pässwörd"))
