"""
Разбор ответа языковой модели для анализа питания.

Модель возвращает свободный текст, внутри которого должен быть один JSON-объект.
Берём первый сбалансированный объект (скобки внутри строк не считаются),
затем валидируем его схемой NutritionAnalysis. Результат — ParseResult:
либо analysis, либо error, частично заполненных объектов не бывает.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.core.exceptions import MalformedAIResponseError
from app.schemas.analysis import NutritionAnalysis


@dataclass(frozen=True)
class ParseResult:
    analysis: Optional[NutritionAnalysis] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.analysis is not None


def extract_first_json_object(text: str) -> Optional[str]:
    """Вернуть подстроку первого сбалансированного {...} или None"""
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            char = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:idx + 1]
        # Незакрытый объект — пробуем следующую открывающую скобку
        start = text.find("{", start + 1)
    return None


def validate_analysis(data: Any) -> ParseResult:
    if not isinstance(data, dict):
        return ParseResult(error="Ответ модели не является JSON-объектом")
    try:
        return ParseResult(analysis=NutritionAnalysis.model_validate(data))
    except ValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        return ParseResult(error=f"Ответ модели не прошёл валидацию схемы: {', '.join(missing)}")


def try_parse_analysis(text: str) -> ParseResult:
    json_str = extract_first_json_object(text)
    if json_str is None:
        return ParseResult(error="No JSON found in response")

    try:
        data: Dict[str, Any] = json.loads(json_str)
    except json.JSONDecodeError as e:
        return ParseResult(error=f"Невалидный JSON в ответе модели: {e.msg}")

    return validate_analysis(data)


def parse_analysis(text: str) -> NutritionAnalysis:
    result = try_parse_analysis(text)
    if not result.ok:
        raise MalformedAIResponseError(f"Failed to parse AI response: {result.error}", raw_response=text)
    return result.analysis
