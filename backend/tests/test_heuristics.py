"""
Unit tests for the ordered heuristic rule tables.
"""

import pytest

from promptqa.heuristics import (
    SUGGESTION,
    canonical_field_id,
    classify_instruction,
    field_candidates,
    first_match,
    is_display_text_value,
)
from promptqa.models import ActionType


class TestDisplayTextValue:
    """Values that read as visible option text versus option values."""

    @pytest.mark.parametrize("value", ["Nagad", "Level-01", "Islam", "United States", "Mobile Banking"])
    def test_display_text(self, value):
        assert is_display_text_value(value) is True

    @pytest.mark.parametrize("value", ["us", "1", "20", "active", "ACTIVE", "teacher-grade", "", "   ", None])
    def test_technical_values(self, value):
        assert is_display_text_value(value) is False


class TestInstructionClassification:
    """First matching keyword wins."""

    @pytest.mark.parametrize("line,expected", [
        ("Click Login", ActionType.CLICK),
        ("click the select button", ActionType.CLICK),
        ("Type hello into the box", ActionType.FILL),
        ("Enter the password", ActionType.FILL),
        ("Input your name", ActionType.FILL),
        ("Please input john in the Username field", ActionType.FILL),
        ("Type lap and select Laptop from suggestions", SUGGESTION),
        ("Search for Dhaka and select Dhaka Division", SUGGESTION),
        ("Use autocomplete for the city", SUGGESTION),
        ("Click the first suggestion", ActionType.CLICK),
        ("Select Blue", ActionType.SELECT),
        ("Select Nagad from Mobile Banking Type dropdown", ActionType.SELECT),
        ("Wait 500", ActionType.WAIT),
        ("Check terms", ActionType.CHECK),
        ("Uncheck terms", ActionType.UNCHECK),
        ("Scroll down", ActionType.SCROLL),
        ("Hover over Menu", ActionType.HOVER),
        ("Pick a size", ActionType.SELECT),
        ("Verify the title", ActionType.VERIFY),
        ("User should see the dashboard", ActionType.VERIFY),
    ])
    def test_classify(self, line, expected):
        assert classify_instruction(line) == expected

    def test_unmatched(self):
        assert classify_instruction("open the pod bay doors") is None

    def test_suggestion_row_can_be_skipped(self):
        assert classify_instruction("Wait for suggestions", suggestions=False) == ActionType.WAIT


class TestFieldSynonyms:
    """Domain field names map to canonical ids."""

    @pytest.mark.parametrize("phrase,field_id", [
        ("Mobile Banking Type", "mobilebanking"),
        ("mobile   banking", "mobilebanking"),
        ("Teacher Grade", "teachergrade"),
        ("Religion", "religion"),
        ("blood group", "bloodgroup"),
        ("Marital Status", "maritalstatus"),
    ])
    def test_known(self, phrase, field_id):
        assert canonical_field_id(phrase) == field_id

    def test_unknown(self):
        assert canonical_field_id("favourite colour") is None

    def test_candidates_put_canonical_id_first(self):
        assert field_candidates("teachergrade", "select") == (
            '#teachergrade, #teachergradeType, '
            'select[name="teachergrade" i], select[name="teachergradeType" i]'
        )


class TestFirstMatch:
    def test_order_and_default(self):
        rules = [(lambda t: "a" in t, 1), (lambda t: True, 2)]

        assert first_match(rules, "abc") == 1
        assert first_match(rules, "xyz") == 2
        assert first_match([], "xyz", default=0) == 0
