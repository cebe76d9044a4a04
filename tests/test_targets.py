"""Tests for daily target calculation."""

import math

from nutriplan.domain.profile import UserProfile
from nutriplan.domain.targets import CustomTargets, DailyTargets
from nutriplan.services.targets import (
    apply_custom_targets,
    calculate_bmr,
    calculate_daily_targets,
    calculate_tdee,
    macro_calories,
    missing_profile_fields,
)


def _profile(**overrides: object) -> UserProfile:
    values: dict[str, object] = {
        "age": 30,
        "biological_sex": "male",
        "height_cm": 180,
        "current_weight_kg": 80,
        "activity_level": "moderate",
        "primary_diet_goal": "fat_loss",
    }
    values.update(overrides)
    return UserProfile(**values)  # type: ignore[arg-type]


def test_bmr_uses_mifflin_st_jeor() -> None:
    assert calculate_bmr("male", 80, 180, 30) == 1780
    assert calculate_bmr("female", 80, 180, 30) == 1614
    assert calculate_bmr("other", 80, 180, 30) == 1697


def test_tdee_defaults_to_sedentary_for_unknown_level() -> None:
    assert calculate_tdee(1780, "moderate") == 2759
    assert calculate_tdee(1780, "couch") == round(1780 * 1.2)
    assert calculate_tdee(1780, None) == round(1780 * 1.2)


def test_fat_loss_targets() -> None:
    targets = calculate_daily_targets(_profile())

    assert targets is not None
    assert targets.bmr == 1780
    assert targets.tdee == 2759
    assert targets.calories == 2259
    assert targets.protein_g == 169
    assert targets.carbs_g == 226
    assert targets.fat_g == 75


def test_macro_grams_match_calories() -> None:
    for goal in ("fat_loss", "muscle_gain", "recomp", "maintenance"):
        targets = calculate_daily_targets(_profile(primary_diet_goal=goal))
        assert targets is not None
        implied = macro_calories(targets.protein_g, targets.carbs_g, targets.fat_g)
        assert abs(implied - targets.calories) <= targets.calories * 0.02


def test_goal_adjustments() -> None:
    gain = calculate_daily_targets(_profile(primary_diet_goal="muscle_gain"))
    recomp = calculate_daily_targets(_profile(primary_diet_goal="recomp"))
    keep = calculate_daily_targets(_profile(primary_diet_goal="maintenance"))

    assert gain is not None and gain.calories == 3059
    assert recomp is not None and recomp.calories == 2559
    assert keep is not None and keep.calories == 2759


def test_targets_are_deterministic() -> None:
    assert calculate_daily_targets(_profile()) == calculate_daily_targets(_profile())


def test_missing_fields_return_none() -> None:
    profile = _profile(age=None, activity_level="")

    assert calculate_daily_targets(profile) is None
    assert missing_profile_fields(profile) == ["age", "activity_level"]


def test_out_of_range_values_count_as_missing() -> None:
    profile = _profile(height_cm=10, current_weight_kg=1000)

    assert missing_profile_fields(profile) == ["height_cm", "current_weight_kg"]
    assert calculate_daily_targets(profile) is None


def test_custom_targets_override_per_field() -> None:
    base = calculate_daily_targets(_profile())

    merged = apply_custom_targets(base, CustomTargets(calories=2000, fat_g=60))

    assert merged is not None
    assert merged.calories == 2000
    assert merged.fat_g == 60
    assert base is not None
    assert merged.protein_g == base.protein_g
    assert merged.carbs_g == base.carbs_g


def test_custom_targets_without_base_need_every_field() -> None:
    assert apply_custom_targets(None, CustomTargets(calories=2000)) is None

    complete = apply_custom_targets(
        None, CustomTargets(calories=2000, protein_g=150, carbs_g=200, fat_g=70)
    )

    assert complete == DailyTargets(
        calories=2000, protein_g=150, carbs_g=200, fat_g=70
    )


def test_negative_override_is_ignored() -> None:
    base = DailyTargets(calories=2000, protein_g=150, carbs_g=200, fat_g=70)

    merged = apply_custom_targets(base, CustomTargets(calories=-5))

    assert merged is not None
    assert merged.calories == 2000


def test_non_finite_override_is_ignored() -> None:
    base = DailyTargets(calories=2000, protein_g=150, carbs_g=200, fat_g=70)

    merged = apply_custom_targets(
        base, CustomTargets(calories=math.inf, protein_g=math.nan, fat_g=60)
    )

    assert merged == DailyTargets(calories=2000, protein_g=150, carbs_g=200, fat_g=60)
    unusable = CustomTargets(calories=math.inf, protein_g=150, carbs_g=200, fat_g=70)
    assert apply_custom_targets(None, unusable) is None
