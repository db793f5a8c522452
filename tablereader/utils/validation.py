"""Canonicalization of raw recognizer output, one rule set per field type.

Every function here is pure and total: ``None`` or blank input gives
``""`` and nothing raises. Unrecognized input is returned trimmed so the
caller can still see what the recognizer produced.
"""
import logging
import re
from typing import Optional

from ..core.entities import FieldType

logger = logging.getLogger(__name__)


class FieldValidator:
    """Per-field validation and OCR-confusion correction."""

    CURRENCY_CHARS = ("$", "£", "€", ",", " ")
    B_LETTERS = frozenset("BВ")  # Latin B, Cyrillic Ve
    B_LIKE = frozenset("BВ8")
    NUMERIC = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")
    DIGIT_CONFUSIONS = {"O": "0", "o": "0", "I": "1", "l": "1", "S": "5", "s": "5", "G": "6"}

    ACTIONS = ("Check", "Bet", "Call", "Fold", "Raise", "All In")
    ACTION_ALIASES = {"ALL-IN": "All In", "ALLIN": "All In"}
    # Checked in order; first hit wins
    ACTION_FRAGMENTS = (
        (("CHECK", "CHE"), "Check"),
        (("BET", "BT"), "Bet"),
        (("CALL", "CAL"), "Call"),
        (("FOLD", "FOL"), "Fold"),
        (("RAISE", "RAS"), "Raise"),
        (("ALL",), "All In"),
    )

    CARD_RANKS = ("A", "K", "Q", "J", "T", "9", "8", "7", "6", "5", "4", "3", "2")
    RANK_CONFUSIONS = {"10": "T", "B": "8", "S": "5", "I": "1", "|": "1", "L": "1"}

    @staticmethod
    def _trimmed(raw: Optional[str]) -> str:
        return raw.strip() if raw else ""

    @classmethod
    def validate_bet(cls, raw: Optional[str]) -> str:
        return cls._trimmed(raw)

    @classmethod
    def _split_bb_suffix(cls, cleaned: str) -> Optional[str]:
        """Numeric part before a big-blind suffix, or None when there is no suffix."""
        upper = cleaned.upper()
        tail = upper[-2:]
        if (len(tail) == 2 and all(c in cls.B_LIKE for c in tail)
                and any(c in cls.B_LETTERS for c in tail)):
            return cleaned[:-2]
        if upper and upper[-1] in cls.B_LETTERS:
            return cleaned[:-1]
        return None

    @classmethod
    def validate_amount(cls, raw: Optional[str]) -> str:
        """Balance and pot amounts expressed in big blinds.

        ``"123b"`` -> ``"123 BB"``, ``"O5B"`` -> ``"05 BB"``. Input without a
        B suffix, or whose numeric part cannot be repaired, is returned
        trimmed.
        """
        text = cls._trimmed(raw)
        if not text:
            return ""

        cleaned = text
        for ch in cls.CURRENCY_CHARS:
            cleaned = cleaned.replace(ch, "")

        numeric = cls._split_bb_suffix(cleaned)
        if numeric is None:
            return text
        if cls.NUMERIC.match(numeric):
            return f"{numeric} BB"

        corrected = "".join(cls.DIGIT_CONFUSIONS.get(c, c) for c in numeric)
        if cls.NUMERIC.match(corrected):
            logger.debug("Corrected amount %r -> %r", numeric, corrected)
            return f"{corrected} BB"
        return text

    @classmethod
    def validate_balance(cls, raw: Optional[str]) -> str:
        return cls.validate_amount(raw)

    @classmethod
    def validate_pot(cls, raw: Optional[str]) -> str:
        return cls.validate_amount(raw)

    @classmethod
    def validate_action(cls, raw: Optional[str]) -> str:
        text = cls._trimmed(raw)
        if not text:
            return ""
        upper = text.upper()

        for action in cls.ACTIONS:
            if upper == action.upper():
                return action
        if upper in cls.ACTION_ALIASES:
            return cls.ACTION_ALIASES[upper]

        for fragments, action in cls.ACTION_FRAGMENTS:
            if any(fragment in upper for fragment in fragments):
                return action
        return text

    @classmethod
    def validate_card_rank(cls, raw: Optional[str]) -> str:
        text = cls._trimmed(raw)
        if not text:
            return ""
        cleaned = text.upper().replace(" ", "").replace(".", "").replace(",", "")
        if cleaned in cls.CARD_RANKS:
            return cleaned
        if cleaned in cls.RANK_CONFUSIONS:
            return cls.RANK_CONFUSIONS[cleaned]
        return cleaned

    @classmethod
    def is_card_rank(cls, value: str) -> bool:
        return value in cls.CARD_RANKS

    @classmethod
    def validate(cls, field_type: FieldType, raw: Optional[str]) -> str:
        """Dispatch on field type; fields without rules are trimmed."""
        if field_type == FieldType.PLAYER_BET:
            return cls.validate_bet(raw)
        if field_type in (FieldType.PLAYER_BALANCE, FieldType.TABLE_POT):
            return cls.validate_amount(raw)
        if field_type == FieldType.PLAYER_ACTION:
            return cls.validate_action(raw)
        if field_type == FieldType.CARD_RANK:
            return cls.validate_card_rank(raw)
        return cls._trimmed(raw)


def validate_field(field_type: FieldType, raw: Optional[str]) -> str:
    return FieldValidator.validate(field_type, raw)
