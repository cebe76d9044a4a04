"""Non-generative meal construction used when providers fail.

Two strategies are available: proportional scaling of an existing meal, and
a stochastic local search that picks gram amounts for candidate ingredients
given their per-100g nutrient densities. Nothing here performs I/O.
"""

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass

from nutriplan.domain.meals import Ingredient, MacroTotals, Meal, NutrientDensity
from nutriplan.domain.targets import MacroTargets, MealTarget
from nutriplan.services.plans import ingredient_totals, recompute_meal

OPTIMAL = "Optimal"
NEAR_OPTIMAL = "Near Optimal"

# Relative tolerance for "Optimal" on provider and scaled meals.
MACRO_TOLERANCE = 0.05

SEARCH_ITERATIONS = 1000
SEARCH_TOLERANCE = 1.0
DEFAULT_PORTION_GRAMS = 100.0
MIN_PORTION_GRAMS = 1.0

# Share of a candidate's energy above which it counts as a source of that
# macro. Low-energy foods (vegetables) are sized by calories instead.
PROTEIN_SOURCE_SHARE = 0.3
CARB_SOURCE_SHARE = 0.5
FAT_SOURCE_SHARE = 0.5
FILLER_MAX_KCAL_PER_100G = 50.0

# Weighted deviation: one kcal counts once, one gram of a macro counts at
# its energy value.
DEVIATION_WEIGHTS = MacroTotals(calories=1, protein=4, carbs=4, fat=9)

PANTRY: dict[str, NutrientDensity] = {
    "Chicken breast": NutrientDensity(calories=165, protein=31, carbs=0, fat=3.6),
    "Salmon": NutrientDensity(calories=208, protein=25, carbs=0, fat=12),
    "Firm tofu": NutrientDensity(calories=144, protein=15.8, carbs=4.3, fat=8.7),
    "Egg whites": NutrientDensity(calories=52, protein=10.9, carbs=0.7, fat=0.2),
    "Greek yogurt (non-fat)": NutrientDensity(
        calories=59, protein=10, carbs=3.6, fat=0.4
    ),
    "Cottage cheese (low-fat)": NutrientDensity(
        calories=72, protein=12.4, carbs=4.3, fat=1.0
    ),
    "Rolled oats": NutrientDensity(calories=389, protein=16.9, carbs=66.3, fat=6.9),
    "Brown rice (raw)": NutrientDensity(calories=370, protein=7.9, carbs=77, fat=2.9),
    "Quinoa (raw)": NutrientDensity(calories=368, protein=14.1, carbs=64.2, fat=6.1),
    "Whole wheat bread": NutrientDensity(calories=247, protein=13, carbs=41, fat=4.2),
    "Sweet potato": NutrientDensity(calories=86, protein=1.6, carbs=20.1, fat=0.1),
    "Banana": NutrientDensity(calories=89, protein=1.1, carbs=22.8, fat=0.3),
    "Mixed berries": NutrientDensity(calories=57, protein=0.7, carbs=14.5, fat=0.3),
    "Apple": NutrientDensity(calories=52, protein=0.3, carbs=13.8, fat=0.2),
    "Broccoli": NutrientDensity(calories=34, protein=2.8, carbs=7, fat=0.4),
    "Spinach": NutrientDensity(calories=23, protein=2.9, carbs=3.6, fat=0.4),
    "Olive oil": NutrientDensity(calories=884, protein=0, carbs=0, fat=100),
    "Avocado": NutrientDensity(calories=160, protein=2, carbs=8.5, fat=14.7),
    "Almonds": NutrientDensity(calories=579, protein=21.2, carbs=21.6, fat=49.9),
    "Walnuts": NutrientDensity(calories=654, protein=15.2, carbs=13.7, fat=65.2),
}

# Recipes per meal slot as (title, pantry ingredient names).
SLOT_RECIPES: dict[str, tuple[tuple[str, tuple[str, ...]], ...]] = {
    "breakfast": (
        (
            "Oats with Greek Yogurt and Berries",
            ("Rolled oats", "Greek yogurt (non-fat)", "Mixed berries", "Almonds"),
        ),
        (
            "Egg White Toast with Avocado",
            ("Egg whites", "Whole wheat bread", "Avocado", "Spinach"),
        ),
    ),
    "morning snack": (
        ("Yogurt with Banana", ("Greek yogurt (non-fat)", "Banana", "Almonds")),
        (
            "Apple with Cottage Cheese",
            ("Cottage cheese (low-fat)", "Apple", "Walnuts"),
        ),
    ),
    "lunch": (
        (
            "Chicken, Brown Rice and Broccoli",
            ("Chicken breast", "Brown rice (raw)", "Broccoli", "Olive oil"),
        ),
        (
            "Tofu Quinoa Bowl",
            ("Firm tofu", "Quinoa (raw)", "Spinach", "Avocado"),
        ),
    ),
    "afternoon snack": (
        (
            "Cottage Cheese with Berries",
            ("Cottage cheese (low-fat)", "Mixed berries", "Walnuts"),
        ),
        (
            "Yogurt with Apple and Almonds",
            ("Greek yogurt (non-fat)", "Apple", "Almonds"),
        ),
    ),
    "dinner": (
        (
            "Salmon with Sweet Potato and Spinach",
            ("Salmon", "Sweet potato", "Spinach", "Olive oil"),
        ),
        (
            "Chicken with Quinoa and Broccoli",
            ("Chicken breast", "Quinoa (raw)", "Broccoli", "Olive oil"),
        ),
    ),
    "evening snack": (
        ("Cottage Cheese with Walnuts", ("Cottage cheese (low-fat)", "Walnuts")),
        ("Greek Yogurt with Berries", ("Greek yogurt (non-fat)", "Mixed berries")),
    ),
}
DEFAULT_RECIPES = SLOT_RECIPES["lunch"]


@dataclass(frozen=True)
class CandidateFood:
    """Ingredient available to the search, described per 100 g."""

    name: str
    density: NutrientDensity


@dataclass(frozen=True)
class SearchResult:
    """Best gram amounts found by the randomized search."""

    amounts: list[float]
    achieved: MacroTotals
    deviation: float
    status: str
    iterations: int


@dataclass(frozen=True)
class FallbackResult:
    """Meal produced without a generative provider."""

    meal: Meal
    status: str
    deviation: float
    scale_factor: float | None = None


def ingredient_from_density(
    name: str, density: NutrientDensity, grams: float
) -> Ingredient:
    """Convert a per-100g density and an amount into absolute values."""
    grams = round(max(0.0, grams), 1)
    return Ingredient(
        name=name,
        quantity=grams,
        unit="g",
        calories=round(density.calories * grams / 100),
        protein=round(density.protein * grams / 100, 1),
        carbs=round(density.carbs * grams / 100, 1),
        fat=round(density.fat * grams / 100, 1),
    )


def density_from_ingredient(ingredient: Ingredient) -> NutrientDensity | None:
    """Derive per-100g density from a gram-measured ingredient.

    Returns None when the quantity is zero or not expressed in grams.
    """
    unit = ingredient.unit.strip().lower()
    if ingredient.quantity <= 0 or unit not in ("g", "gram", "grams"):
        return None
    factor = 100 / ingredient.quantity
    return NutrientDensity(
        calories=ingredient.calories * factor,
        protein=ingredient.protein * factor,
        carbs=ingredient.carbs * factor,
        fat=ingredient.fat * factor,
    )


def weighted_deviation(
    achieved: MacroTotals, target: MacroTargets | MealTarget
) -> float:
    """Energy-weighted absolute distance between achieved and target macros."""
    return (
        abs(achieved.calories - target.calories) * DEVIATION_WEIGHTS.calories
        + abs(achieved.protein - target.protein) * DEVIATION_WEIGHTS.protein
        + abs(achieved.carbs - target.carbs) * DEVIATION_WEIGHTS.carbs
        + abs(achieved.fat - target.fat) * DEVIATION_WEIGHTS.fat
    )


def macro_status(achieved: MacroTotals, target: MacroTargets | MealTarget) -> str:
    """Return "Optimal" when every macro is within 5% of its target."""
    for actual, wanted in (
        (achieved.calories, target.calories),
        (achieved.protein, target.protein),
        (achieved.carbs, target.carbs),
        (achieved.fat, target.fat),
    ):
        if abs(actual - wanted) > wanted * MACRO_TOLERANCE + 1e-9:
            return NEAR_OPTIMAL
    return OPTIMAL


def scale_meal_to_target(
    meal: Meal, target: MacroTargets | MealTarget
) -> FallbackResult:
    """Scale every ingredient by target calories over current calories.

    Totals are re-summed from the scaled ingredients, never set to the target.
    """
    current = sum(ingredient.calories for ingredient in meal.ingredients)
    factor = target.calories / current if current > 0 else 1.0
    if factor == 1.0:
        ingredients = list(meal.ingredients)
    else:
        ingredients = [
            Ingredient(
                name=ingredient.name,
                quantity=round(ingredient.quantity * factor, 1),
                unit=ingredient.unit,
                calories=round(ingredient.calories * factor),
                protein=round(ingredient.protein * factor, 1),
                carbs=round(ingredient.carbs * factor, 1),
                fat=round(ingredient.fat * factor, 1),
            )
            for ingredient in meal.ingredients
        ]
    scaled = recompute_meal(
        Meal(name=meal.name, custom_name=meal.custom_name, ingredients=ingredients)
    )
    return FallbackResult(
        meal=scaled,
        status=macro_status(scaled.totals, target),
        deviation=weighted_deviation(scaled.totals, target),
        scale_factor=factor,
    )


def search_ingredient_amounts(
    candidates: Sequence[CandidateFood],
    target: MacroTargets | MealTarget,
    *,
    iterations: int = SEARCH_ITERATIONS,
    tolerance: float = SEARCH_TOLERANCE,
    rng: random.Random | None = None,
) -> SearchResult:
    """Randomized local search for gram amounts that approach the target.

    Each candidate gets a base amount from the macro it mainly supplies; every
    iteration jitters all amounts by a factor in [0.5, 1.5) and the lowest
    weighted deviation wins. This is a stochastic heuristic, not an exact
    solver: results are reproducible only for a seeded ``rng``.
    """
    if not candidates:
        return SearchResult(
            amounts=[],
            achieved=MacroTotals(),
            deviation=weighted_deviation(MacroTotals(), target),
            status=NEAR_OPTIMAL,
            iterations=0,
        )
    rng = rng or random.Random()
    base_amounts = _base_amounts(candidates, target)
    best_amounts = list(base_amounts)
    best_achieved = _achieved(candidates, best_amounts)
    best_deviation = weighted_deviation(best_achieved, target)
    performed = 0
    for _ in range(max(0, iterations)):
        performed += 1
        amounts = [max(0.0, base * (0.5 + rng.random())) for base in base_amounts]
        achieved = _achieved(candidates, amounts)
        deviation = weighted_deviation(achieved, target)
        if deviation < best_deviation:
            best_amounts, best_achieved, best_deviation = amounts, achieved, deviation
            if deviation < tolerance:
                break
    return SearchResult(
        amounts=best_amounts,
        achieved=best_achieved,
        deviation=best_deviation,
        status=OPTIMAL if best_deviation < tolerance * 5 else NEAR_OPTIMAL,
        iterations=performed,
    )


def build_meal_from_candidates(
    meal_name: str,
    title: str,
    candidates: Sequence[CandidateFood],
    target: MacroTargets | MealTarget,
    rng: random.Random | None = None,
) -> FallbackResult:
    """Run the search and convert the amounts into a canonical meal."""
    search = search_ingredient_amounts(candidates, target, rng=rng)
    ingredients = [
        ingredient_from_density(candidate.name, candidate.density, grams)
        for candidate, grams in zip(candidates, search.amounts, strict=True)
        if grams >= MIN_PORTION_GRAMS
    ]
    meal = recompute_meal(
        Meal(name=meal_name, custom_name=title, ingredients=ingredients)
    )
    achieved = ingredient_totals(meal.ingredients)
    return FallbackResult(
        meal=meal,
        status=search.status,
        deviation=weighted_deviation(achieved, target),
    )


def fallback_meal_for_slot(
    meal_name: str, target: MacroTargets | MealTarget, *, seed: int | str
) -> FallbackResult:
    """Build a meal for a slot from the built-in pantry.

    The same slot, target and seed always produce the same meal.
    """
    rng = random.Random(f"{seed}")
    recipes = SLOT_RECIPES.get(meal_name.strip().lower(), DEFAULT_RECIPES)
    title, names = recipes[rng.randrange(len(recipes))]
    candidates = [CandidateFood(name=name, density=PANTRY[name]) for name in names]
    return build_meal_from_candidates(meal_name, title, candidates, target, rng)


def _base_amounts(
    candidates: Sequence[CandidateFood], target: MacroTargets | MealTarget
) -> list[float]:
    roles = [_role(candidate.density) for candidate in candidates]
    amounts = []
    for candidate, role in zip(candidates, roles, strict=True):
        per_gram = getattr(candidate.density, role) / 100
        sharing = roles.count(role)
        if role == "calories":
            # Items that are not a macro source get a small share of energy.
            sharing = len(candidates) * 4
        wanted = getattr(target, role)
        if per_gram <= 0 or not math.isfinite(per_gram):
            amounts.append(DEFAULT_PORTION_GRAMS if wanted > 0 else 0.0)
            continue
        amounts.append(max(0.0, wanted / (per_gram * sharing)))
    return amounts


def _role(density: NutrientDensity) -> str:
    """Name the target field that sizes a candidate."""
    if density.calories < FILLER_MAX_KCAL_PER_100G:
        return "calories"
    energy = density.calories
    if density.protein * 4 / energy >= PROTEIN_SOURCE_SHARE:
        return "protein"
    if density.carbs * 4 / energy >= CARB_SOURCE_SHARE:
        return "carbs"
    if density.fat * 9 / energy >= FAT_SOURCE_SHARE:
        return "fat"
    return "calories"


def _achieved(
    candidates: Sequence[CandidateFood], amounts: Sequence[float]
) -> MacroTotals:
    total = MacroTotals()
    for candidate, grams in zip(candidates, amounts, strict=True):
        total = total + MacroTotals(
            calories=candidate.density.calories * grams / 100,
            protein=candidate.density.protein * grams / 100,
            carbs=candidate.density.carbs * grams / 100,
            fat=candidate.density.fat * grams / 100,
        )
    return total
