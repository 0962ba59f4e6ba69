"""
Unit tests for validation rules.

Includes property-based testing with hypothesis for validators.
"""

from datetime import date, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from candidate_ingest.core.validators import (
    DateValidator,
    EnumValidator,
    RangeValidator,
    RegexValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)


@pytest.mark.unit
class TestRequiredFieldValidator:
    """Tests for RequiredFieldValidator"""

    def test_present_value_passes_through(self):
        validator = RequiredFieldValidator("surname")
        assert validator.validate("Okafor", {"surname": "Okafor"}) == "Okafor"

    def test_missing_column(self):
        validator = RequiredFieldValidator("surname")

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(None, {"first_name": "Ada"})

        assert exc_info.value.message == "Missing required field 'surname'"
        assert exc_info.value.field_name == "surname"

    def test_empty_cell(self):
        validator = RequiredFieldValidator("surname")

        with pytest.raises(ValidationError) as exc_info:
            validator.validate(None, {"surname": None})

        assert exc_info.value.message == "Required field 'surname' is empty"

    def test_whitespace_only(self):
        validator = RequiredFieldValidator("surname")
        with pytest.raises(ValidationError):
            validator.validate("   ", {"surname": "   "})

    @given(st.text(min_size=1).filter(lambda s: s.strip() != ""))
    def test_property_any_nonempty_string_passes(self, value):
        """Property test: any non-empty, non-whitespace string should pass"""
        validator = RequiredFieldValidator("field")
        assert validator.validate(value, {"field": value}) == value


@pytest.mark.unit
class TestTypeValidator:
    """Tests for TypeValidator"""

    def test_int_from_text(self):
        validator = TypeValidator("jamb_score", {"expected_type": "int"})
        assert validator.validate("250", {}) == 250
        assert validator.validate(" 1,250 ", {}) == 1250

    def test_int_from_integral_float(self):
        validator = TypeValidator("jamb_score", {"expected_type": "int"})
        assert validator.validate(250.0, {}) == 250

    def test_fractional_float_rejected_for_int(self):
        validator = TypeValidator("jamb_score", {"expected_type": "int"})
        with pytest.raises(ValidationError):
            validator.validate(250.5, {})

    def test_text_rejected_for_int(self):
        validator = TypeValidator("jamb_score", {"expected_type": "int"})
        with pytest.raises(ValidationError) as exc_info:
            validator.validate("two hundred", {})
        assert exc_info.value.rule_name == "type_check"

    def test_str_from_numeric_cell(self):
        validator = TypeValidator("phone", {"expected_type": "str"})
        assert validator.validate(8031234567.0, {}) == "8031234567"

    def test_none_skipped(self):
        validator = TypeValidator("jamb_score", {"expected_type": "int"})
        assert validator.validate(None, {}) is None

    def test_unsupported_type(self):
        with pytest.raises(ValueError):
            TypeValidator("x", {"expected_type": "complex"})

    @given(st.integers(min_value=-10**9, max_value=10**9))
    def test_property_int_text_round_trip(self, value):
        validator = TypeValidator("n", {"expected_type": "int"})
        assert validator.validate(str(value), {}) == value


@pytest.mark.unit
class TestRangeValidator:
    """Tests for RangeValidator"""

    def test_inclusive_bounds(self):
        validator = RangeValidator("jamb_score", {"min": 0, "max": 400})
        assert validator.validate(0, {}) == 0
        assert validator.validate(400, {}) == 400

    def test_above_max(self):
        validator = RangeValidator("jamb_score", {"min": 0, "max": 400})
        with pytest.raises(ValidationError) as exc_info:
            validator.validate(512, {})
        assert exc_info.value.message == "Value 512 exceeds maximum 400"

    def test_bool_is_not_numeric(self):
        validator = RangeValidator("jamb_score", {"min": 0})
        with pytest.raises(ValidationError):
            validator.validate(True, {})

    def test_requires_a_bound(self):
        with pytest.raises(ValueError):
            RangeValidator("jamb_score", {})

    @given(st.integers(min_value=0, max_value=100))
    def test_property_subject_scores_in_range_pass(self, value):
        validator = RangeValidator("score_1", {"min": 0, "max": 100})
        assert validator.validate(value, {}) == value

    @given(st.integers(min_value=101))
    def test_property_subject_scores_above_range_fail(self, value):
        validator = RangeValidator("score_1", {"min": 0, "max": 100})
        with pytest.raises(ValidationError):
            validator.validate(value, {})


@pytest.mark.unit
class TestRegexValidator:
    """Tests for RegexValidator"""

    def test_full_match_required(self):
        validator = RegexValidator("jamb_no", {"pattern": "[A-Z0-9]{10,15}"})
        assert validator.validate("202512345678AB", {}) == "202512345678AB"
        with pytest.raises(ValidationError):
            validator.validate("202512345678AB-extra", {})

    def test_custom_message(self):
        validator = RegexValidator("email", {"pattern": r"[^@\s]+@[^@\s]+\.[^@\s]+", "message": "Email address is not valid"})
        with pytest.raises(ValidationError) as exc_info:
            validator.validate("ada@", {})
        assert exc_info.value.message == "Email address is not valid"

    def test_ignore_case(self):
        validator = RegexValidator("jamb_no", {"pattern": "[A-Z0-9]{10,15}", "ignore_case": True})
        assert validator.validate("202512345678ab", {}) == "202512345678ab"

    def test_invalid_pattern(self):
        with pytest.raises(ValueError):
            RegexValidator("x", {"pattern": "[unclosed"})

    @given(st.from_regex(r"[A-Z0-9]{10,15}", fullmatch=True))
    def test_property_jamb_numbers_match(self, value):
        validator = RegexValidator("jamb_no", {"pattern": "^[A-Z0-9]{10,15}$"})
        assert validator.validate(value, {}) == value


@pytest.mark.unit
class TestEnumValidator:
    """Tests for EnumValidator"""

    def test_case_insensitive_canonical_spelling(self):
        validator = EnumValidator("gender", {"allowed_values": ["male", "female", "other"]})
        assert validator.validate(" Male ", {}) == "male"
        assert validator.validate("FEMALE", {}) == "female"

    def test_case_sensitive(self):
        validator = EnumValidator("mode_of_entry", {"allowed_values": ["UTME", "DE"], "case_sensitive": True})
        with pytest.raises(ValidationError):
            validator.validate("utme", {})

    def test_unknown_value(self):
        validator = EnumValidator("gender", {"allowed_values": ["male", "female"]})
        with pytest.raises(ValidationError) as exc_info:
            validator.validate("unknown", {})
        assert "must be one of: male, female" in exc_info.value.message

    def test_requires_allowed_values(self):
        with pytest.raises(ValueError):
            EnumValidator("gender", {})


@pytest.mark.unit
class TestDateValidator:
    """Tests for DateValidator"""

    def test_spreadsheet_dates_pass_through(self):
        validator = DateValidator("date_of_birth")
        assert validator.validate(date(2005, 3, 14), {}) == date(2005, 3, 14)
        assert validator.validate(datetime(2005, 3, 14, 10, 30), {}) == date(2005, 3, 14)

    @pytest.mark.parametrize("text", ["2005-03-14", "14/03/2005", "14-03-2005", "2005/03/14", "14.03.2005"])
    def test_text_formats(self, text):
        assert DateValidator("date_of_birth").validate(text, {}) == date(2005, 3, 14)

    def test_unparseable(self):
        with pytest.raises(ValidationError) as exc_info:
            DateValidator("date_of_birth").validate("March 14th", {})
        assert "not a recognised date" in exc_info.value.message

    def test_future_date_rejected(self):
        tomorrow = date.today() + timedelta(days=1)
        with pytest.raises(ValidationError) as exc_info:
            DateValidator("date_of_birth").validate(tomorrow, {})
        assert exc_info.value.message == f"Date {tomorrow.isoformat()} cannot be in the future"

    def test_future_allowed_when_disabled(self):
        tomorrow = date.today() + timedelta(days=1)
        validator = DateValidator("exam_date", {"not_in_future": False})
        assert validator.validate(tomorrow, {}) == tomorrow
