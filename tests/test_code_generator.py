from harwise.generator.code import CodeGenerator
from harwise.generator.config import merge_config
from harwise.generator.suite import SuiteGenerator
from harwise.generator.validator import validate_python
from harwise.parser.base import Sample

CONFIG = merge_config({
    "assertions": {
        "byUrl": [{
            "match": "/v1/users",
            "jsonpath": [{"path": "$.data[*].id", "exists": True, "minLength": 2}],
        }],
    },
    "extract": [{"match": "/v1/users", "from": "$.data[0].id", "to": "first_user_id"}],
    "substitute": [{"match": "/v1/users", "pattern": "1001", "var": "account_id"}],
})


def _cases():
    samples = [
        Sample(
            method="POST",
            url="https://api.example.com/v1/users?limit=10",
            templated_url="https://api.example.com/v1/users?limit=10",
            status=201,
            time=80,
            mime="application/json",
            req_headers={"content-type": "application/json", "x-note": "it's \"quoted\""},
            req_body='{"account": "1001"}',
        ),
        Sample(method="GET", url="https://api.example.com/health", time=5, mime=""),
    ]
    return SuiteGenerator(CONFIG).generate(samples)[0]


class TestCodeGenerator:
    def test_generate_returns_file_dict(self):
        files = CodeGenerator().generate(_cases())
        assert set(files) == {"conftest.py", "test_0.py", "test_1.py"}

    def test_generated_code_is_valid_python(self):
        files = CodeGenerator().generate(_cases())
        assert validate_python(files) == {}

    def test_test_function_per_case(self):
        files = CodeGenerator().generate(_cases())
        assert "def test_0(ctx):" in files["test_0.py"]
        assert "def test_1(ctx):" in files["test_1.py"]

    def test_substitution_happens_before_request(self):
        code = CodeGenerator().generate(_cases())["test_0.py"]
        assert "ctx.get('account_id')" in code
        assert code.index("body = re.sub('1001'") < code.index("requests.request(")

    def test_assertions_and_extractions(self):
        code = CodeGenerator().generate(_cases())["test_0.py"]
        assert "'$.data[*].id should exist'" in code
        assert "'$.data[*].id should have at least 2 items'" in code
        assert "ctx.set('first_user_id', found[0].value)" in code
        assert "EXPECTED_MIME in content_type" in code

    def test_no_mime_no_rules(self):
        code = CodeGenerator().generate(_cases())["test_1.py"]
        assert "EXPECTED_MIME in content_type" not in code
        assert "ctx.get(" not in code
        assert "ctx.set(" not in code

    def test_conftest_orders_tests_and_persists_vars(self):
        conftest = CodeGenerator().generate(_cases())["conftest.py"]
        assert "def ctx():" in conftest
        assert ".harwise.env.json" in conftest
        assert "pytest_collection_modifyitems" in conftest
