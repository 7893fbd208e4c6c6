from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.analysis import NutritionAnalysisRecord, MealTypeEnum
from app.schemas.analysis import NutritionAnalysis


class AnalysisRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_record(
            self,
            user_id: str,
            day: date,
            analysis: NutritionAnalysis,
            meal_type: MealTypeEnum
    ) -> NutritionAnalysisRecord:
        delta = analysis.to_delta()
        record = NutritionAnalysisRecord(
            user_id=user_id,
            date=day,
            analysis_type=analysis.analysis_type,
            meal_type=meal_type,
            food_name=analysis.basic_info.food_name,
            calories=delta.calories,
            protein=delta.protein,
            carbs=delta.carbs,
            fat=delta.fat,
            analysis_data=analysis.model_dump(mode="json"),
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return record
