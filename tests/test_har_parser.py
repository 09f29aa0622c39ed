from pathlib import Path

import pytest

from harwise.errors import CaptureLoadError
from harwise.parser.har import load_har, parse_har, parse_har_file

FIXTURES = Path(__file__).parent / "fixtures"


def _entry(url="https://host/api/items", **overrides) -> dict:
    entry = {
        "request": {"method": "GET", "url": url, "headers": []},
        "response": {
            "status": 200,
            "headers": [],
            "content": {"size": 10, "mimeType": "application/json"},
        },
        "timings": {"wait": 10},
    }
    entry.update(overrides)
    return entry


class TestParseHarFile:
    def test_drops_non_api_entries(self):
        samples = parse_har_file(FIXTURES / "users.har")
        assert len(samples) == 2
        assert all("logo" not in s.url for s in samples)

    def test_numeric_ids_collapse_to_one_key(self):
        samples = parse_har_file(FIXTURES / "users.har", include="/users/")
        assert [s.key for s in samples] == [
            "GET https://host/v1/users/{id}",
            "GET https://host/v1/users/{id}",
        ]
        assert [s.time for s in samples] == [120, 600]
        assert [s.status for s in samples] == [200, 200]

    def test_header_names_lower_cased(self):
        sample = parse_har_file(FIXTURES / "users.har")[0]
        assert sample.req_headers["authorization"] == "Bearer secret-token"
        assert sample.res_headers["content-type"] == "application/json"

    def test_response_body_copied(self):
        sample = parse_har_file(FIXTURES / "users.har")[0]
        assert sample.res_body == '{"id": 42, "name": "Ada"}'
        assert sample.req_body is None

    def test_template_disabled(self):
        samples = parse_har_file(FIXTURES / "users.har", template=False)
        assert samples[0].templated_url is None
        assert samples[0].key == "GET https://host/v1/users/42"

    def test_missing_entries_is_empty(self):
        assert parse_har_file(FIXTURES / "empty.har") == []


class TestParseHar:
    def test_not_a_capture(self):
        assert parse_har({}) == []
        assert parse_har({"log": {"entries": "nope"}}) == []
        assert parse_har([]) == []

    def test_timing_sum_ignores_non_numeric(self):
        entry = _entry(timings={"send": 1.5, "wait": 10, "receive": 2, "comment": "x", "ssl": True})
        assert parse_har({"log": {"entries": [entry]}})[0].time == 13.5

    def test_missing_content_defaults(self):
        entry = _entry(response={"status": 204, "headers": []})
        sample = parse_har({"log": {"entries": [entry]}})[0]
        assert sample.size == 0
        assert sample.mime == ""
        assert sample.res_body is None

    def test_last_duplicate_header_wins(self):
        request = {
            "method": "POST",
            "url": "https://host/api/items",
            "headers": [{"name": "X-Trace", "value": "1"}, {"name": "x-trace", "value": "2"}],
            "postData": {"mimeType": "application/json", "text": '{"a": 1}'},
        }
        sample = parse_har({"log": {"entries": [_entry(request=request)]}})[0]
        assert sample.req_headers == {"x-trace": "2"}
        assert sample.req_body == '{"a": 1}'

    def test_keeps_original_url(self):
        entry = _entry(url="https://host/api/items?b=1&a=2#frag")
        sample = parse_har({"log": {"entries": [entry]}})[0]
        assert sample.original_url == "https://host/api/items?b=1&a=2#frag"
        assert sample.url == "https://host/api/items?a=2&b=1"


class TestLoadHar:
    def test_invalid_json_is_fatal(self, tmp_path):
        bad = tmp_path / "bad.har"
        bad.write_text("{not json", encoding="utf-8")
        with pytest.raises(CaptureLoadError):
            load_har(bad)

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(CaptureLoadError):
            load_har(tmp_path / "missing.har")
