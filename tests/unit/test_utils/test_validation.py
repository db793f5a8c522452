"""Unit tests for field validation and OCR-confusion correction."""
import pytest

from tablereader.core.entities import FieldType
from tablereader.utils.validation import FieldValidator, validate_field


class TestAmounts:
    """Balance and pot amounts."""

    @pytest.mark.parametrize("raw,expected", [
        ("123b", "123 BB"),
        ("123 BB", "123 BB"),
        ("$12.5 bb", "12.5 BB"),
        ("€1,250B", "1250 BB"),
        (".5B", ".5 BB"),
        ("7.B", "7. BB"),
        ("40В", "40 BB"),       # Cyrillic Ve
        ("25 8B", "25 BB"),     # 8 misread for B
        ("O5B", "05 BB"),
        ("SOB", "50 BB"),
        ("l2GB", "126 BB"),
    ])
    def test_suffix_forms(self, raw, expected):
        assert FieldValidator.validate_amount(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("1,234", "1,234"),
        ("  42  ", "42"),
        ("BB", "BB"),
        ("abcB", "abcB"),
        ("1.2.3B", "1.2.3B"),
    ])
    def test_unrepairable_input_is_returned_trimmed(self, raw, expected):
        assert FieldValidator.validate_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank(self, raw):
        assert FieldValidator.validate_amount(raw) == ""

    def test_balance_and_pot_share_rules(self):
        assert FieldValidator.validate_balance("9b") == FieldValidator.validate_pot("9b") == "9 BB"


class TestActions:
    """Player action labels."""

    @pytest.mark.parametrize("raw,expected", [
        ("check", "Check"),
        ("FOLD", "Fold"),
        ("All In", "All In"),
        ("ALL-IN", "All In"),
        ("allin", "All In"),
        ("CHE", "Check"),
        ("BT", "Bet"),
        ("CALLED", "Call"),
        ("RAS", "Raise"),
        ("Fol", "Fold"),
        ("ALL", "All In"),
    ])
    def test_canonical_forms(self, raw, expected):
        assert FieldValidator.validate_action(raw) == expected

    def test_fragment_priority(self):
        # CHECK fragments are tried before BET fragments
        assert FieldValidator.validate_action("CHEBET") == "Check"

    def test_unknown_text_passes_through(self):
        assert FieldValidator.validate_action(" xyz ") == "xyz"
        assert FieldValidator.validate_action(None) == ""


class TestCardRank:
    """Card rank correction."""

    @pytest.mark.parametrize("raw,expected", [
        ("A", "A"),
        (" k ", "K"),
        ("Q.", "Q"),
        ("10", "T"),
        ("1 0", "T"),
        ("B", "8"),
        ("s", "5"),
        ("|", "1"),
        ("l", "1"),
        ("zz", "ZZ"),
        ("", ""),
    ])
    def test_corrections(self, raw, expected):
        assert FieldValidator.validate_card_rank(raw) == expected

    def test_is_card_rank(self):
        assert FieldValidator.is_card_rank("T")
        assert not FieldValidator.is_card_rank("10")
        assert not FieldValidator.is_card_rank("")


class TestDispatch:
    @pytest.mark.parametrize("field_type,raw,expected", [
        (FieldType.PLAYER_BET, " 12b ", "12b"),
        (FieldType.PLAYER_BALANCE, "12b", "12 BB"),
        (FieldType.TABLE_POT, "3B", "3 BB"),
        (FieldType.PLAYER_ACTION, "che", "Check"),
        (FieldType.CARD_RANK, "10", "T"),
        (FieldType.BASE, "  anything ", "anything"),
    ])
    def test_validate_field(self, field_type, raw, expected):
        assert validate_field(field_type, raw) == expected
