"""Domain entities (data-only structures) used across services."""
from __future__ import annotations
import uuid
from dataclasses import dataclass, field, fields, replace, asdict
from enum import Enum
from typing import Optional, Tuple, Any, Dict

import numpy as np

from .constants import MIN_TEMPLATE_SIGMA, TEMPLATE_VERSION

Point = Tuple[int, int]  # (x, y)
RGB = Tuple[float, float, float]  # components in [0, 1]


class FieldType(Enum):
    BASE = "base"
    PLAYER_BET = "player_bet"
    PLAYER_BALANCE = "player_balance"
    PLAYER_ACTION = "player_action"
    TABLE_POT = "table_pot"
    CARD_RANK = "card_rank"
    CARD_TEMPLATE = "card_template"


class ColorFilterMode(Enum):
    NONE = "None"
    HSV_FILTER = "HSV Filter"
    COLOR_DISTANCE = "Color Distance"
    WHITE_ISOLATION = "White Isolation"
    MULTI_CHANNEL = "Multi-Channel"


class MorphologyMode(Enum):
    NONE = "None"
    OPENING = "Opening"
    CLOSING = "Closing"
    TOP_HAT = "Top Hat"
    BLACK_HAT = "Black Hat"


class Suit(Enum):
    HEARTS = "h"
    DIAMONDS = "d"
    CLUBS = "c"
    SPADES = "s"


def _coerce_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if value == member.value:
            return member
        if isinstance(value, str) and value.upper() == member.name:
            return member
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}")


@dataclass(slots=True)
class Region:
    """Rectangle in source-image pixels; owned by the caller."""
    name: str
    x: int
    y: int
    width: int
    height: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def area(self) -> int:
        return max(self.width, 0) * max(self.height, 0)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Region:
        kwargs = dict(
            name=str(data.get("name", "")),
            x=int(data["x"]),
            y=int(data["y"]),
            width=int(data["width"]),
            height=int(data["height"]),
        )
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs)


@dataclass(frozen=True, slots=True)
class PreprocessParameters:
    """Full parameter set of the preprocessing pipeline.

    Every field has a default so a pipeline run is always total.
    """
    scale: float = 4.0
    sharpness: float = 0.4
    contrast: float = 1.6
    brightness: float = 0.3
    saturation: float = 0.0
    blur_radius: float = 0.5
    threshold: float = 0.25
    morph_radius: float = 0.10

    color_filter_mode: ColorFilterMode = ColorFilterMode.NONE
    hsv_hue_min: float = 60.0
    hsv_hue_max: float = 180.0
    hsv_sat_min: float = 0.3
    hsv_sat_max: float = 1.0
    color_distance_threshold: float = 0.3
    white_brightness_threshold: float = 0.7
    white_saturation_max: float = 0.2

    use_adaptive_threshold: bool = False
    adaptive_block_size: int = 11
    adaptive_c: float = 2.0

    use_background_subtraction: bool = False
    background_blur_radius: float = 20.0

    use_bilateral_filter: bool = False
    bilateral_sigma_color: float = 75.0
    bilateral_sigma_space: float = 75.0

    morphology_mode: MorphologyMode = MorphologyMode.NONE
    morphology_size: float = 1.0

    def replace(self, **changes) -> PreprocessParameters:
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any],
                  base: Optional[PreprocessParameters] = None) -> PreprocessParameters:
        """Build from a dict; unknown keys are ignored, missing keys come from `base`."""
        base = base or cls()
        changes = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "color_filter_mode":
                value = _coerce_enum(ColorFilterMode, value)
            elif f.name == "morphology_mode":
                value = _coerce_enum(MorphologyMode, value)
            elif f.name == "adaptive_block_size":
                value = int(value)
            elif f.name in ("use_adaptive_threshold", "use_background_subtraction",
                            "use_bilateral_filter"):
                value = bool(value)
            else:
                value = float(value)
            changes[f.name] = value
        return replace(base, **changes)


@dataclass(slots=True)
class Template:
    """Zero-mean grayscale template plus its statistics."""
    id: str
    label: str
    width: int
    height: int
    zero_mean: np.ndarray  # float32, shape (height, width)
    sigma: float
    threshold: float
    version: str = TEMPLATE_VERSION
    notes: Optional[str] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Template {self.id} has invalid size {self.width}x{self.height}")
        pixels = np.asarray(self.zero_mean, dtype=np.float32)
        if pixels.size != self.width * self.height:
            raise ValueError(
                f"Template {self.id}: {pixels.size} values for {self.width}x{self.height}")
        self.zero_mean = pixels.reshape(self.height, self.width)
        if not self.sigma > MIN_TEMPLATE_SIGMA:
            raise ValueError(f"Template {self.id}: sigma {self.sigma} is too small")

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(slots=True)
class MatchResult:
    label: str
    template_id: str
    point: Point  # top-left in ROI coordinates
    score: float


@dataclass(slots=True)
class RecognitionResult:
    text: Optional[str]
    confidence: float
    field_type: FieldType = FieldType.BASE


@dataclass(slots=True)
class ColorTarget:
    name: str
    rgb: RGB

    @classmethod
    def from_rgb255(cls, name: str, r: int, g: int, b: int) -> ColorTarget:
        return cls(name, (r / 255.0, g / 255.0, b / 255.0))


def _rgb255(r: int, g: int, b: int) -> RGB:
    return (r / 255.0, g / 255.0, b / 255.0)


def _default_suit_colors() -> Dict[Suit, RGB]:
    return {
        Suit.HEARTS: _rgb255(153, 71, 73),
        Suit.DIAMONDS: _rgb255(72, 118, 155),
        Suit.CLUBS: _rgb255(79, 151, 86),
        Suit.SPADES: _rgb255(102, 102, 102),
    }


@dataclass(slots=True)
class ColorTargets:
    """Reference colours for presence checks, all RGB in [0, 1]."""
    dealer_button: RGB = _rgb255(233, 242, 237)
    card_back: RGB = _rgb255(34, 73, 134)
    suits: Dict[Suit, RGB] = field(default_factory=_default_suit_colors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dealer_button": list(self.dealer_button),
            "card_back": list(self.card_back),
            "suits": {suit.value: list(rgb) for suit, rgb in self.suits.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ColorTargets:
        targets = cls()
        if "dealer_button" in data:
            targets.dealer_button = _parse_rgb(data["dealer_button"])
        if "card_back" in data:
            targets.card_back = _parse_rgb(data["card_back"])
        for key, rgb in (data.get("suits") or {}).items():
            targets.suits[_coerce_enum(Suit, key)] = _parse_rgb(rgb)
        return targets


def _parse_rgb(value: Any) -> RGB:
    if isinstance(value, dict):
        value = (value["r"], value["g"], value["b"])
    r, g, b = (float(c) for c in value)
    return (r, g, b)


@dataclass(frozen=True, slots=True)
class Card:
    rank: str
    suit: str

    @classmethod
    def parse(cls, label: Optional[str]) -> Optional[Card]:
        """Parse a classifier label such as ``"Th"`` or ``"10s"``.

        Blank labels, ``"empty"`` (any case) and labels shorter than two
        characters give ``None``.
        """
        if label is None:
            return None
        text = label.strip()
        if not text or text.lower() == "empty" or len(text) < 2:
            return None
        suit = text[-1].lower()
        rank = text[:-1]
        if rank == "10":
            rank = "T"
        return cls(rank=rank, suit=suit)

    @property
    def suit_enum(self) -> Optional[Suit]:
        try:
            return Suit(self.suit)
        except ValueError:
            return None

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"


@dataclass(slots=True)
class FieldReading:
    """Delivered result of one recognition request."""
    field_type: FieldType
    region_id: str
    value: str
    raw: RecognitionResult
    preview: Any = None  # numpy ndarray (BGR)
    archived: bool = False
    match: Optional[MatchResult] = None
    card: Optional[Card] = None

    @property
    def confidence(self) -> float:
        return self.raw.confidence
