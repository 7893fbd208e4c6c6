import math
from typing import Dict

from app.schemas.goal import ActivityLevel, Gender, GoalCalculationInput, HealthGoal, NutritionGoals


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class NutritionCalculator:
    ACTIVITY_MULTIPLIERS = {
        ActivityLevel.sedentary: 1.2,
        ActivityLevel.lightly_active: 1.375,
        ActivityLevel.moderately_active: 1.55,
        ActivityLevel.very_active: 1.725,
        ActivityLevel.super_active: 1.9
    }

    GOAL_ADJUSTMENTS = {
        HealthGoal.lose: 0.85,   # дефицит 15%
        HealthGoal.maintain: 1.0,
        HealthGoal.gain: 1.15    # профицит 15%
    }

    MACRO_RATIOS = {
        HealthGoal.maintain: {"protein": 0.25, "carbs": 0.45, "fat": 0.30},
        HealthGoal.lose: {"protein": 0.35, "carbs": 0.30, "fat": 0.35},
        HealthGoal.gain: {"protein": 0.30, "carbs": 0.50, "fat": 0.20}
    }

    # ккал на грамм
    PROTEIN_KCAL = 4
    CARBS_KCAL = 4
    FAT_KCAL = 9

    @classmethod
    def calculate_bmr(cls, weight: float, height: float, age: int, gender: Gender) -> float:
        """Формула Миффлина–Сан Жеора"""
        base = 10 * weight + 6.25 * height - 5 * age
        if gender == Gender.female:
            return base - 161
        return base + 5

    @classmethod
    def calculate_total_calories(cls, data: GoalCalculationInput) -> int:
        bmr = cls.calculate_bmr(data.weight, data.height, data.age, data.gender)
        tdee = bmr * cls.ACTIVITY_MULTIPLIERS[data.activity_level]
        return round_half_up(tdee * cls.GOAL_ADJUSTMENTS[data.health_goal])

    @classmethod
    def calculate_macros(cls, calories: int, goal: HealthGoal = HealthGoal.maintain) -> Dict[str, int]:
        ratios = cls.MACRO_RATIOS[goal]

        return {
            "protein": round_half_up(calories * ratios["protein"] / cls.PROTEIN_KCAL),
            "carbs": round_half_up(calories * ratios["carbs"] / cls.CARBS_KCAL),
            "fat": round_half_up(calories * ratios["fat"] / cls.FAT_KCAL)
        }

    @classmethod
    def calculate_goals(cls, data: GoalCalculationInput) -> NutritionGoals:
        """Дневные цели из антропометрии. Чистая функция, без I/O"""
        calories = cls.calculate_total_calories(data)
        macros = cls.calculate_macros(calories, data.health_goal)

        return NutritionGoals(
            daily_calories=calories,
            daily_protein=macros["protein"],
            daily_carbs=macros["carbs"],
            daily_fat=macros["fat"]
        )
