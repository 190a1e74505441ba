"""
test_client_identity.py — Unit tests for rate-limit key resolution.
"""

from starlette.datastructures import Headers

from client_identity import resolve_client_identity


class TestHeaderPriority:
    def test_forwarded_for_takes_first_entry(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1, 10.0.0.2"}
        assert resolve_client_identity(headers) == "203.0.113.7"

    def test_forwarded_for_beats_real_ip(self):
        headers = {"x-real-ip": "198.51.100.1", "x-forwarded-for": "203.0.113.7"}
        assert resolve_client_identity(headers) == "203.0.113.7"

    def test_real_ip_used_when_no_forwarded_for(self):
        headers = {"x-real-ip": " 198.51.100.1 ", "cf-connecting-ip": "192.0.2.9"}
        assert resolve_client_identity(headers) == "198.51.100.1"

    def test_cloudflare_header(self):
        assert resolve_client_identity({"cf-connecting-ip": "192.0.2.9"}) == "192.0.2.9"

    def test_vercel_header(self):
        assert resolve_client_identity({"x-vercel-forwarded-for": "192.0.2.10"}) == "192.0.2.10"

    def test_case_insensitive_plain_dict(self):
        assert resolve_client_identity({"X-Forwarded-For": "203.0.113.7"}) == "203.0.113.7"

    def test_starlette_headers(self):
        headers = Headers({"X-Real-IP": "198.51.100.1"})
        assert resolve_client_identity(headers) == "198.51.100.1"

    def test_empty_header_value_is_skipped(self):
        headers = {"x-forwarded-for": "", "x-real-ip": "198.51.100.1"}
        assert resolve_client_identity(headers) == "198.51.100.1"


class TestFallbacks:
    def test_user_agent_fallback_is_prefixed(self):
        assert resolve_client_identity({"user-agent": "curl/8.0"}) == "unknown:curl/8.0"

    def test_user_agent_is_truncated(self):
        ua = "Mozilla/5.0 " + "x" * 200
        identity = resolve_client_identity({"user-agent": ua})
        assert identity == "unknown:" + ua[:40]
        assert len(identity) == len("unknown:") + 40

    def test_no_headers_share_constant_identity(self):
        assert resolve_client_identity({}) == "unknown:ua"
        assert resolve_client_identity({"accept": "*/*"}) == "unknown:ua"

    def test_deterministic(self):
        headers = {"user-agent": "pytest"}
        assert resolve_client_identity(headers) == resolve_client_identity(headers)
