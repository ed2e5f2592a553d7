"""Credit-unit arithmetic for carbon savings and completion payouts.

Balances and payouts are int (credit units). Carbon amounts are float kg CO2e
kept to two decimals; conversion to credits goes through Decimal so that
half-way values round up (0.5 -> 1) regardless of binary float error.
"""

from decimal import ROUND_HALF_UP, Decimal

CREDITS_PER_KG = 10
VERIFICATION_BONUS = 5
WASTE_FLOOR_KG_PER_SERVING = 0.8


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, 0.5 -> 1)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_kg(value: float) -> float:
    """Round a kg CO2e amount to two decimals, ties up."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def calculate_carbon_saved(
    servings: int,
    declared_baseline_kg: float | None,
    chosen_action_kg: float,
) -> float:
    """carbon_saved = max(0, max(baseline, 0.8 kg * servings) - chosen_action).

    The estimator may report no waste-case emission at all; the per-serving
    floor keeps the baseline non-trivial whenever disposal is avoided.
    """
    floor = WASTE_FLOOR_KG_PER_SERVING * servings
    baseline = max(declared_baseline_kg or 0.0, floor)
    return round_kg(max(0.0, baseline - chosen_action_kg))


def calculate_payout(carbon_saved_kg: float) -> tuple[int, int]:
    """Return (total, split) for a verified pickup.

    total = round_half_up(carbon_saved * 10) + 5
    split = total // 2, credited to each party; total % 2 is forfeited.
    """
    total = round_half_up(Decimal(str(carbon_saved_kg)) * CREDITS_PER_KG) + VERIFICATION_BONUS
    return total, total // 2


def credits_to_display(units: int) -> str:
    """1234 -> '1,234 cr', -20 -> '-20 cr'."""
    return f"{units:,} cr"
