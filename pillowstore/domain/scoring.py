"""
Fitness Scoring

Pure functions deriving sleep, comfort and posture scores from a neck
measurement. The thresholds are fixed and must be reproduced exactly so
stored scores stay comparable across clients.

Two formulas exist on purpose:

- calculate_scores: the authenticated measurement path, persisted with the
  measurement and copied onto the user profile.
- calculate_preview_score: the looser single-score preview shown to guests
  before they sign in.

They are not meant to agree.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Union

from pillowstore.domain.entities import Firmness, SleepPosition

PositionLike = Union[SleepPosition, str]

SCORE_MIN = 0
SCORE_MAX = 100


@dataclass(frozen=True)
class FitnessScores:
    """Derived scores for one measurement, each an integer in [0, 100]"""
    sleep_score: int
    comfort_score: int
    posture_score: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class PillowProfile:
    """Pillow shape suggested for a measurement"""
    loft: str  # low | medium | high
    firmness: Firmness
    height: str
    material: str


def _clamp(score: float) -> int:
    return int(max(SCORE_MIN, min(SCORE_MAX, score)))


def _position(value: PositionLike) -> SleepPosition:
    return value if isinstance(value, SleepPosition) else SleepPosition(value)


def calculate_scores(
    neck_length: float,
    neck_width: float,
    sleep_position: PositionLike,
) -> FitnessScores:
    """
    Compute the three fitness scores for an authenticated measurement.

    Args:
        neck_length: Neck length in inches
        neck_width: Neck width in inches
        sleep_position: back, side or stomach

    Returns:
        FitnessScores with every score clamped to [0, 100]
    """
    position = _position(sleep_position)

    sleep = 70
    comfort = 65
    posture = 75

    # Sleep score: all three inputs
    if 4 <= neck_length <= 6:
        sleep += 10
    elif neck_length < 4:
        sleep -= 5
    else:
        sleep -= 8

    if 6 <= neck_width <= 8:
        sleep += 10
    elif neck_width < 6:
        sleep -= 5
    else:
        sleep -= 8

    if position is SleepPosition.BACK:
        sleep += 8
    elif position is SleepPosition.SIDE:
        sleep += 5
    else:
        sleep -= 3

    # Comfort score: width and position
    if 5.5 <= neck_width <= 8.5:
        comfort += 15
    elif neck_width < 5.5:
        comfort -= 10
    else:
        comfort -= 5

    if position is SleepPosition.SIDE:
        comfort += 10
    elif position is SleepPosition.BACK:
        comfort += 5

    # Posture score: length and position
    if 4 <= neck_length <= 6.5:
        posture += 12
    else:
        posture -= 8

    if position is SleepPosition.BACK:
        posture += 10
    elif position is SleepPosition.SIDE:
        posture += 5
    else:
        posture -= 10

    return FitnessScores(
        sleep_score=_clamp(sleep),
        comfort_score=_clamp(comfort),
        posture_score=_clamp(posture),
    )


def calculate_preview_score(
    neck_length: float,
    neck_width: float,
    sleep_position: PositionLike,
) -> int:
    """Single-score guest preview. Looser than calculate_scores."""
    position = _position(sleep_position)

    score = 70
    score += 10 if 4 <= neck_length <= 6 else -5
    score += 10 if 6 <= neck_width <= 8 else -5
    if position is SleepPosition.BACK:
        score += 5
    elif position is SleepPosition.SIDE:
        score += 3

    return _clamp(score)


def recommend_pillow_profile(
    neck_length: float,
    neck_width: float,
    sleep_position: PositionLike,
) -> PillowProfile:
    """Suggest pillow loft and firmness from a weighted height score"""
    position = _position(sleep_position)

    height_score = neck_length * 0.7 + neck_width * 0.3
    if position is SleepPosition.SIDE:
        height_score += 1
    elif position is SleepPosition.STOMACH:
        height_score -= 1.5

    if height_score < 4:
        return PillowProfile(
            loft="low",
            firmness=Firmness.SOFT if position is SleepPosition.STOMACH else Firmness.MEDIUM_SOFT,
            height='2-3"',
            material="Down or Memory Foam",
        )
    if height_score < 6:
        return PillowProfile(
            loft="medium",
            firmness=Firmness.MEDIUM,
            height='3-5"',
            material="Memory Foam or Hybrid",
        )
    return PillowProfile(
        loft="high",
        firmness=Firmness.FIRM if position is SleepPosition.SIDE else Firmness.MEDIUM_FIRM,
        height='5-7"',
        material="Latex or Dense Memory Foam",
    )
