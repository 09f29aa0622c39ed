"""Checks generated suite files before they are written."""

import ast
import json
import re

from pydantic import ValidationError

from harwise.generator.descriptor import MANIFEST_NAME, TestCase, TestManifest

DESCRIPTOR_NAME = re.compile(r"^test_\d+\.json$")


def validate_python(files: dict[str, str]) -> dict[str, str]:
    """Check exported pytest files for syntax errors.

    Returns dict of {filename: error_message} for files with errors.
    """
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".py") or not content.strip():
            continue
        try:
            ast.parse(content, filename=filename)
        except SyntaxError as e:
            errors[filename] = f"SyntaxError: {e.msg} (line {e.lineno})"
    return errors


def validate_json(files: dict[str, str]) -> dict[str, str]:
    """Check JSON files; descriptors and the manifest must also match their schema."""
    errors = {}
    for filename, content in files.items():
        if not filename.endswith(".json"):
            continue
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            errors[filename] = f"JSONDecodeError: {e.msg} (line {e.lineno})"
            continue

        model = None
        if filename == MANIFEST_NAME:
            model = TestManifest
        elif DESCRIPTOR_NAME.match(filename):
            model = TestCase
        if model is None:
            continue
        try:
            model.model_validate(data)
        except ValidationError as e:
            errors[filename] = f"ValidationError: {e.error_count()} field error(s)"
    return errors


def validate_files(files: dict[str, str]) -> dict[str, str]:
    """Run all checks. Returns {filename: error_message} for every bad file."""
    errors = validate_python(files)
    errors.update(validate_json(files))
    return errors
