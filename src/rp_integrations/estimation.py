"""Client for the external carbon estimation service.

The service turns a dish name, serving count and locality into a set of
disposal/redistribution scenarios with kg CO2e figures, and predicts
ingredients and calories from a dish name. Its numbers are advisory: every
failure degrades to an empty result and listings fall back to the
per-serving waste floor.
"""


import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

WASTE_ICON = "trash"


@dataclass(frozen=True)
class CarbonScenario:
    action: str
    co2e: float
    description: str = ""
    icon: str = ""
    is_recommended: bool = False


@dataclass(frozen=True)
class CarbonAnalysis:
    dish_name: str
    quantity: int
    scenarios: list[CarbonScenario] = field(default_factory=list)
    recommendation: str = ""

    @property
    def waste_baseline_kg(self) -> float | None:
        """co2e of the landfill scenario, if the service reported one."""
        for scenario in self.scenarios:
            if scenario.icon == WASTE_ICON:
                return scenario.co2e
        return None


@dataclass(frozen=True)
class IngredientRefinement:
    target_ingredient: str
    options: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DishPrediction:
    ingredients: list[str] = field(default_factory=list)
    calories: int = 0
    refinements: list[IngredientRefinement] = field(default_factory=list)


class EstimationClient(Protocol):
    async def analyze(self, dish_name: str, quantity: int, locality: str) -> CarbonAnalysis: ...

    async def predict(self, dish_name: str) -> DishPrediction: ...


class HttpEstimationClient:
    """httpx-backed EstimationClient. Never raises on upstream failure."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.ESTIMATION_SERVICE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.ESTIMATION_TIMEOUT_SECONDS
        self._transport = transport

    async def analyze(self, dish_name: str, quantity: int, locality: str) -> CarbonAnalysis:
        empty = CarbonAnalysis(dish_name=dish_name, quantity=quantity)
        data = await self._post(
            "/analyze", {"dish_name": dish_name, "quantity": quantity, "locality": locality}
        )
        if data is None:
            return empty
        try:
            scenarios = [
                CarbonScenario(
                    action=str(s["action"]),
                    co2e=max(0.0, float(s["co2e"])),
                    description=str(s.get("description", "")),
                    icon=str(s.get("icon", "")),
                    is_recommended=bool(s.get("is_recommended", False)),
                )
                for s in data.get("scenarios", [])
            ]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed analysis from estimation service: %s", exc)
            return empty
        return CarbonAnalysis(
            dish_name=str(data.get("dish_name") or dish_name),
            quantity=quantity,
            scenarios=scenarios,
            recommendation=str(data.get("recommendation", "")),
        )

    async def predict(self, dish_name: str) -> DishPrediction:
        data = await self._post("/predict", {"dish_name": dish_name})
        if data is None:
            return DishPrediction()
        try:
            return DishPrediction(
                ingredients=[str(i) for i in data.get("ingredients", [])],
                calories=max(0, int(data.get("calories", 0))),
                refinements=[
                    IngredientRefinement(
                        target_ingredient=str(r["target_ingredient"]),
                        options=[str(o) for o in r.get("options", [])],
                    )
                    for r in data.get("refinements", [])
                ],
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed prediction from estimation service: %s", exc)
            return DishPrediction()

    async def _post(self, path: str, payload: dict) -> dict | None:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(path, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Estimation service %s failed: %s", path, exc)
            return None
        except ValueError as exc:
            logger.warning("Estimation service %s returned invalid JSON: %s", path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Estimation service %s returned %s, expected object", path, type(data).__name__)
            return None
        return data
