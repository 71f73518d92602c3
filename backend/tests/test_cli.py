"""
Unit tests for the promptqa command line.
"""

import json

import pytest
from unittest.mock import patch

from promptqa.cli import load_test_case, main
from promptqa.instruction_compiler import InstructionCompiler
from promptqa.models import ActionType


@pytest.fixture
def instruction_file(tmp_path, sample_instructions):
    path = tmp_path / "login.txt"
    path.write_text(sample_instructions + "\nthis line is ignored\n", encoding="utf-8")
    return path


class TestCompileCommand:
    def test_writes_test_case(self, instruction_file, tmp_path, capsys):
        output = tmp_path / "login.json"

        with pytest.raises(SystemExit) as exc_info:
            main(["compile", str(instruction_file), "-o", str(output), "--id", "tc_cli"])

        assert exc_info.value.code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["id"] == "tc_cli"
        assert data["url"] == "https://example.com/login"
        assert len(data["actions"]) == 4
        assert "[SKIP] line 7" in capsys.readouterr().err

    def test_compiles_input_once(self, instruction_file, tmp_path):
        original = InstructionCompiler.compile_detailed
        with patch.object(InstructionCompiler, "compile_detailed", autospec=True, side_effect=original) as spy:
            with pytest.raises(SystemExit):
                main(["compile", str(instruction_file), "-o", str(tmp_path / "out.json")])

        assert spy.call_count == 1

    def test_missing_input(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["compile", str(tmp_path / "nope.txt")])

        assert exc_info.value.code == 2


class TestLoadTestCase:
    def test_instruction_file_named_after_file(self, tmp_path):
        path = tmp_path / "checkout.txt"
        path.write_text("click Checkout\n", encoding="utf-8")

        test_case = load_test_case(str(path), InstructionCompiler())

        assert test_case.name == "checkout"
        assert test_case.actions[0].type == ActionType.CLICK

    def test_json_file(self, tmp_path):
        path = tmp_path / "case.json"
        path.write_text(json.dumps({
            "id": "tc_json",
            "name": "From JSON",
            "actions": [{"type": "click", "selector": "#go", "elementType": "button"}],
        }), encoding="utf-8")

        test_case = load_test_case(str(path), InstructionCompiler())

        assert test_case.id == "tc_json"
        assert test_case.actions[0].locator_text == "#go"
