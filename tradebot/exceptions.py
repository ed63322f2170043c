from typing import Optional


class BotError(Exception):
    """Базовое исключение для бота"""
    pass

class AuthenticationError(BotError):
    """Ошибка авторизации в веб-сессии Steam (nonce, рукопожатие)"""
    pass

class RemoteCallError(BotError):
    """Ошибка при обращении к удаленным сервисам Steam"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class ClassificationError(BotError):
    """Описание предмета отсутствует или повреждено"""
    pass

class ProxyError(BotError):
    """Ошибка прокси"""
    pass
