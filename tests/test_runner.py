import json
import logging
from unittest.mock import MagicMock

import pytest
import requests

from harwise.errors import ManifestError
from harwise.generator.config import merge_config
from harwise.generator.suite import SuiteGenerator
from harwise.parser.base import Sample
from harwise.runner.context import TestContext, load_variables
from harwise.runner.runner import RunState, TestResult, TestRunner, percentile


def _response(status=200, payload=None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(payload if payload is not None else {}).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    resp.encoding = "utf-8"
    return resp


def _samples():
    return [
        Sample(
            method="POST",
            url="https://api.example.com/v1/login",
            status=200,
            time=60000,
            mime="application/json",
            req_body='{"user": "ada"}',
        ),
        Sample(
            method="GET",
            url="https://api.example.com/v1/orders?token=OLD",
            status=200,
            time=60000,
            mime="application/json",
        ),
    ]


CHAIN_CONFIG = {
    "extract": [{"match": "/v1/login", "from": "$.token", "to": "token"}],
    "substitute": [{"match": "/v1/orders", "pattern": "OLD", "var": "token"}],
}


class TestPercentile:
    def test_nearest_rank(self):
        assert percentile([100, 200, 300, 400], 50) == 200
        assert percentile([100, 200, 300, 400], 95) == 400

    def test_unordered_input(self):
        assert percentile([400, 100, 300, 200], 50) == 200

    def test_single_and_empty(self):
        assert percentile([7], 95) == 7
        assert percentile([], 50) == 0


class TestTestRunner:
    def test_extract_then_substitute_across_tests(self, tmp_path):
        SuiteGenerator(merge_config(CHAIN_CONFIG)).write(_samples(), tmp_path)
        session = MagicMock()
        session.request.side_effect = [_response(payload={"token": "NEW"}), _response(payload=[])]

        runner = TestRunner(context=TestContext(environ={}), session=session)
        results = runner.run(tmp_path)

        assert [r.status for r in results] == ["pass", "pass"]
        second_url = session.request.call_args_list[1].args[1]
        assert second_url == "https://api.example.com/v1/orders?token=NEW"
        assert runner.state is RunState.DONE

    def test_extracted_vars_persisted_and_merged(self, tmp_path):
        (tmp_path / ".harwise.env.json").write_text(json.dumps({"keep": 1}), encoding="utf-8")
        SuiteGenerator(merge_config(CHAIN_CONFIG)).write(_samples(), tmp_path)
        session = MagicMock()
        session.request.side_effect = [_response(payload={"token": "NEW"}), _response()]

        TestRunner(context=TestContext(environ={}), session=session).run(tmp_path)

        assert load_variables(tmp_path / ".harwise.env.json") == {"keep": 1, "token": "NEW"}

    def test_no_vars_file_without_extractions(self, tmp_path):
        SuiteGenerator().write(_samples(), tmp_path)
        session = MagicMock()
        session.request.return_value = _response()
        TestRunner(context=TestContext(environ={}), session=session).run(tmp_path)
        assert not (tmp_path / ".harwise.env.json").exists()

    def test_failure_does_not_stop_run(self, tmp_path):
        SuiteGenerator().write(_samples(), tmp_path)
        session = MagicMock()
        session.request.side_effect = [_response(status=500), _response()]

        runner = TestRunner(context=TestContext(environ={}), session=session)
        results = runner.run(tmp_path)

        assert [r.status for r in results] == ["fail", "pass"]
        assert results[0].assertions == 0
        assert "Unexpected status 500" in results[0].error
        assert results[1].assertions == 3

    def test_transport_error_is_a_failure(self, tmp_path):
        SuiteGenerator().write(_samples()[:1], tmp_path)
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("refused")

        results = TestRunner(context=TestContext(environ={}), session=session).run(tmp_path)

        assert results[0].status == "fail"
        assert results[0].error == "refused"

    def test_broken_descriptor_is_a_failure(self, tmp_path):
        SuiteGenerator().write(_samples(), tmp_path)
        (tmp_path / "test_0.json").write_text("{", encoding="utf-8")
        session = MagicMock()
        session.request.return_value = _response()

        results = TestRunner(context=TestContext(environ={}), session=session).run(tmp_path)

        assert [r.status for r in results] == ["fail", "pass"]
        assert session.request.call_count == 1

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestError):
            TestRunner(context=TestContext(environ={})).run(tmp_path)

    def test_pass_logs_status_and_request_time(self, tmp_path, caplog):
        SuiteGenerator().write(_samples()[:1], tmp_path)
        session = MagicMock()
        session.request.return_value = _response(status=204)
        with caplog.at_level(logging.INFO, logger="harwise.runner.runner"):
            TestRunner(context=TestContext(environ={}), session=session).run(tmp_path)
        assert "PASS POST https://api.example.com/v1/login (status 204," in caplog.text

    def test_names_come_from_manifest(self, tmp_path):
        SuiteGenerator().write(_samples(), tmp_path)
        session = MagicMock()
        session.request.return_value = _response()
        results = TestRunner(context=TestContext(environ={}), session=session).run(tmp_path)
        assert [r.name for r in results] == [
            "POST https://api.example.com/v1/login",
            "GET https://api.example.com/v1/orders?token=OLD",
        ]


class TestSummary:
    def test_aggregates(self):
        runner = TestRunner(context=TestContext(environ={}), session=MagicMock())
        for name, status, elapsed in [("a", "pass", 100), ("b", "fail", 200), ("c", "pass", 300), ("d", "pass", 400)]:
            runner.results.append(
                TestResult(name=name, status=status, time=elapsed, assertions=1 if status == "pass" else 0)
            )
        summary = runner.summary()
        assert (summary.total, summary.passed, summary.failed) == (4, 3, 1)
        assert summary.total_time == 1000
        assert summary.avg_time == 250
        assert summary.p50 == 200
        assert summary.p95 == 400

    def test_empty_run(self):
        summary = TestRunner(context=TestContext(environ={}), session=MagicMock()).summary()
        assert summary.total == 0
        assert summary.avg_time == 0
        assert summary.p50 == 0
