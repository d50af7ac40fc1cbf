"""Macro-energy consistency check."""

import logging
import math

from food_enrichment.domain.enrichment import Nutrients

ENERGY_TOLERANCE = 0.08

_logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up, as JavaScript Math.round does."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def macro_calories(nutrients: Nutrients) -> float:
    """Return calories implied by macros (4/4/9 kcal per gram)."""
    return 4 * nutrients.protein + 4 * nutrients.carbs + 9 * nutrients.fat


def validate_energy(nutrients: Nutrients) -> Nutrients:
    """Clamp calories to the macro-derived value when they disagree by >8%."""
    calculated = macro_calories(nutrients)
    if calculated > 0:
        deviation = abs(nutrients.calories - calculated) / calculated
        if deviation <= ENERGY_TOLERANCE:
            return nutrients
    elif nutrients.calories == 0:
        return nutrients
    _logger.info(
        "Energy check failed: reported=%s calculated=%.1f, clamping",
        nutrients.calories,
        calculated,
    )
    return nutrients.model_copy(update={"calories": round_half_up(calculated)})
