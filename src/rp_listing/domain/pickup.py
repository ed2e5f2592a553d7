"""Pickup carbon trade-off calculator.

Pure functions: nothing here reads or writes state, so a receiver can compare
transport modes as often as they like before confirming a claim.
"""

import re
from dataclasses import dataclass

from src.rp_common.enums import TransportMode

# kg CO2e per km travelled
EMISSION_FACTORS: dict[TransportMode, float] = {
    TransportMode.WALK: 0.0,
    TransportMode.BIKE: 0.0,
    TransportMode.TRANSIT: 0.105,
    TransportMode.CAR: 0.192,
}

DEFAULT_DISTANCE_KM = 1.0

_DISTANCE_RE = re.compile(r"(\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class PickupAnalysis:
    mode: TransportMode
    travel_emissions: float   # kg CO2e for the round trip
    net_impact: float         # carbon_saved - travel_emissions
    is_worth_it: bool         # strictly positive net impact


def analyze(carbon_saved: float, distance_km: float, mode: TransportMode) -> PickupAnalysis:
    """Round trip is 2 x distance; break-even (net == 0) is not worth it."""
    round_trip = 2 * distance_km
    travel_emissions = round_trip * EMISSION_FACTORS[TransportMode(mode)]
    net_impact = carbon_saved - travel_emissions
    return PickupAnalysis(
        mode=TransportMode(mode),
        travel_emissions=travel_emissions,
        net_impact=net_impact,
        is_worth_it=net_impact > 0,
    )


def compare_modes(carbon_saved: float, distance_km: float) -> list[PickupAnalysis]:
    return [analyze(carbon_saved, distance_km, mode) for mode in TransportMode]


def parse_distance_km(declared: str | None) -> float:
    """'0.5km' -> 0.5, '2 KM' -> 2.0; anything unparseable -> 1.0 km."""
    if not declared:
        return DEFAULT_DISTANCE_KM
    match = _DISTANCE_RE.search(declared)
    if match is None:
        return DEFAULT_DISTANCE_KM
    distance = float(match.group(1))
    return distance if distance > 0 else DEFAULT_DISTANCE_KM
