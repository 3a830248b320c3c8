from app.observability.redaction import redact_text, redact_url, sanitize


def test_redact_url_drops_query_and_credentials():
    url = "https://user:pw@v16-webapp.tiktokcdn.com:8443/video/abc.mp4?expire=1&signature=xyz#frag"
    out = redact_url(url)
    assert out == "https://v16-webapp.tiktokcdn.com:8443/video/abc.mp4?[REDACTED]"
    assert "signature" not in out
    assert "pw" not in out


def test_redact_url_keeps_plain_urls():
    assert redact_url("https://www.tiktok.com/@user/video/1") == "https://www.tiktok.com/@user/video/1"


def test_redact_text_redacts_embedded_urls():
    s = "Failed to reach media host: GET https://cdn.example/f.mp4?token=abc failed"
    out = redact_text(s, max_chars=10_000)
    assert "token=abc" not in out
    assert "https://cdn.example/f.mp4?[REDACTED]" in out


def test_sanitize_redacts_secret_keys_in_dict():
    payload = {
        "Cookie": "sessionid=abc",
        "api_key": "sk-abcdefghijklmnopqrstuvwxyz1234567890",
        "nested": {"Authorization": "Bearer abc.def.ghi"},
        "ok": "hello",
    }
    out = sanitize(payload, max_depth=10, max_chars=10_000)
    assert out["Cookie"] == "[REDACTED]"
    assert out["api_key"] == "[REDACTED]"
    assert out["nested"]["Authorization"] == "[REDACTED]"
    assert out["ok"] == "hello"


def test_sanitize_truncates_long_strings():
    s = "x" * 5000
    out = sanitize(s, max_depth=3, max_chars=100)
    assert isinstance(out, str)
    assert len(out) <= 120


def test_sanitize_passes_scalars_and_summarizes_bytes():
    assert sanitize(None) is None
    assert sanitize(42) == 42
    assert sanitize(b"abcd") == "<bytes:4>"
