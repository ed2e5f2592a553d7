"""Pydantic schemas for the estimation and lookup endpoints."""

from pydantic import BaseModel, Field

from src.rp_common.credits import WASTE_FLOOR_KG_PER_SERVING, round_kg
from src.rp_integrations.address_lookup import PostalPlace
from src.rp_integrations.estimation import CarbonAnalysis, DishPrediction


class AnalyzeRequest(BaseModel):
    dish_name: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    locality: str = Field(..., min_length=1, max_length=255)


class PredictRequest(BaseModel):
    dish_name: str = Field(..., min_length=1, max_length=200)


class ScenarioItem(BaseModel):
    action: str
    co2e: float
    description: str
    icon: str
    is_recommended: bool


class AnalysisResponse(BaseModel):
    dish_name: str
    quantity: int
    scenarios: list[ScenarioItem]
    recommendation: str
    waste_baseline_kg: float | None
    effective_baseline_kg: float  # what a listing posted from this analysis is measured against

    @classmethod
    def from_domain(cls, analysis: CarbonAnalysis) -> "AnalysisResponse":
        floor = WASTE_FLOOR_KG_PER_SERVING * analysis.quantity
        return cls(
            dish_name=analysis.dish_name,
            quantity=analysis.quantity,
            scenarios=[
                ScenarioItem(
                    action=s.action,
                    co2e=s.co2e,
                    description=s.description,
                    icon=s.icon,
                    is_recommended=s.is_recommended,
                )
                for s in analysis.scenarios
            ],
            recommendation=analysis.recommendation,
            waste_baseline_kg=analysis.waste_baseline_kg,
            effective_baseline_kg=round_kg(max(analysis.waste_baseline_kg or 0.0, floor)),
        )


class RefinementItem(BaseModel):
    target_ingredient: str
    options: list[str]


class PredictionResponse(BaseModel):
    ingredients: list[str]
    calories: int
    refinements: list[RefinementItem]

    @classmethod
    def from_domain(cls, prediction: DishPrediction) -> "PredictionResponse":
        return cls(
            ingredients=prediction.ingredients,
            calories=prediction.calories,
            refinements=[
                RefinementItem(target_ingredient=r.target_ingredient, options=r.options)
                for r in prediction.refinements
            ],
        )


class PostalResponse(BaseModel):
    code: str
    found: bool
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @classmethod
    def from_place(cls, code: str, place: PostalPlace | None) -> "PostalResponse":
        if place is None:
            return cls(code=code, found=False)
        return cls(code=code, found=True, city=place.city, state=place.state, country=place.country)
