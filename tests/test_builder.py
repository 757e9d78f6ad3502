"""Tests for building requests from block text."""

import pytest

from httpwatch.builder import FORM_CONTENT_TYPE, build_request, is_request_line
from httpwatch.errors import RequestBuildError


class TestIsRequestLine:
    @pytest.mark.parametrize(
        "line",
        ["GET /a", "POST http://e.com HTTP/1.1", "  DELETE /x", "OPTIONS * HTTP/1.1"],
    )
    def test_request_lines(self, line):
        assert is_request_line(line)

    @pytest.mark.parametrize("line", ["get /a", "GET", "HTTP/1.1 200 OK", "/a HTTP/1.1", "GETX /a"])
    def test_not_request_lines(self, line):
        assert not is_request_line(line)


class TestBuildRequest:
    def test_request_line_fields(self):
        req = build_request("GET http://e.com/a?b=1 HTTP/1.0\r\n\r\n")
        assert req.method == "GET"
        assert req.url == "http://e.com/a?b=1"
        assert req.http_version == "HTTP/1.0"
        assert req.headers == {}
        assert req.body == ""

    def test_url_defaults_to_root(self):
        req = build_request("GET HTTP/1.1\r\n\r\n")
        assert req.url == "/"

    def test_version_defaults(self):
        assert build_request("GET /a").http_version == "HTTP/1.1"

    def test_headers_split_on_first_colon(self):
        req = build_request("GET /a HTTP/1.1\r\nX-Time:  12:30:00 \r\nAccept: */*\r\n\r\n")
        assert req.headers == {"X-Time": "12:30:00", "Accept": "*/*"}

    def test_lf_line_endings(self):
        req = build_request("GET /a HTTP/1.1\nAccept: */*\n\n")
        assert req.headers == {"Accept": "*/*"}

    def test_host_header_fills_authority(self):
        req = build_request("GET /users?id=1 HTTP/1.1\r\nHost: localhost:8080\r\n\r\n")
        assert req.url == "http://localhost:8080/users?id=1"

    def test_host_header_ignored_for_absolute_url(self):
        req = build_request("GET https://a.com/x HTTP/1.1\r\nHost: b.com\r\n\r\n")
        assert req.url == "https://a.com/x"

    def test_body_verbatim_with_newlines(self):
        content = 'POST /a HTTP/1.1\r\nContent-Type: application/json\r\n\r\n{\r\n  "a": 1\r\n}\r\n\r\n'
        req = build_request(content)
        assert req.body == '{\n  "a": 1\n}'
        assert req.headers["Content-Length"] == str(len(req.body.encode("utf-8")))
        assert req.headers["Content-Type"] == "application/json"

    def test_content_length_uses_bytes(self):
        req = build_request("PATCH /a HTTP/1.1\r\n\r\nñ\r\n\r\n")
        assert req.headers["Content-Length"] == "2"
        assert "Content-Type" not in req.headers

    def test_declared_content_length_kept(self):
        req = build_request("POST /a HTTP/1.1\r\ncontent-length: 99\r\n\r\nabc")
        assert req.headers["content-length"] == "99"
        assert "Content-Length" not in req.headers

    def test_form_content_type_default_for_post_and_put(self):
        for method in ("POST", "PUT"):
            req = build_request(f"{method} /a HTTP/1.1\r\n\r\na=1&b=2\r\n\r\n")
            assert req.headers["Content-Type"] == FORM_CONTENT_TYPE

    def test_no_body_no_synthesized_headers(self):
        req = build_request("POST /a HTTP/1.1\r\n\r\n")
        assert req.headers == {}

    def test_invalid_url(self):
        with pytest.raises(RequestBuildError, match="invalid URL"):
            build_request("GET http://[::1/a HTTP/1.1\r\n\r\n")

    def test_malformed_header(self):
        with pytest.raises(RequestBuildError, match="malformed header line"):
            build_request("GET /a HTTP/1.1\r\nnot a header\r\n\r\n")

    def test_to_wire(self):
        req = build_request("POST http://e.com/a HTTP/1.1\r\nX: 1\r\n\r\nhi\r\n\r\n")
        assert req.to_wire() == (
            "POST http://e.com/a HTTP/1.1\r\n"
            "X: 1\r\n"
            "Content-Length: 2\r\n"
            f"Content-Type: {FORM_CONTENT_TYPE}\r\n"
            "\r\n"
            "hi"
        )
