class NutritionServiceError(Exception):
    """Базовая ошибка сервиса питания"""


class UnauthenticatedError(NutritionServiceError):
    """Нет идентификатора пользователя — клиент должен заново авторизоваться"""

    def __init__(self, message: str = "User ID is required"):
        super().__init__(message)


class LLMServiceError(NutritionServiceError):
    """Языковая модель недоступна или вернула ошибку HTTP"""


class MalformedAIResponseError(NutritionServiceError):
    """Ответ модели не содержит JSON или не проходит валидацию схемы"""

    def __init__(self, message: str, raw_response: str = None):
        super().__init__(message)
        self.raw_response = raw_response


class ProgressUpdateError(NutritionServiceError):
    """Не удалось записать дневной прогресс в основное хранилище"""


class DeviceNotRegisteredError(NutritionServiceError):
    """У пользователя нет сохранённого push-токена"""


def require_user_id(user_id) -> str:
    if not user_id:
        raise UnauthenticatedError()
    return str(user_id)
