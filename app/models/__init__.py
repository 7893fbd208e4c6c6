from app.models.user import User
from app.models.progress import DailyProgress
from app.models.goal import NutritionGoal, GoalSourceEnum
from app.models.analysis import NutritionAnalysisRecord, MealTypeEnum
from app.models.notification import NotificationSetting, NotificationHistory

__all__ = [
    "User",
    "DailyProgress",
    "NutritionGoal", "GoalSourceEnum",
    "NutritionAnalysisRecord", "MealTypeEnum",
    "NotificationSetting", "NotificationHistory"
]
