# white_elephant/utils.py
# Вспомогательные функции: коды игр и время

import random
from datetime import datetime, timezone

from white_elephant.errors import ErrorKind, GameRuleError

# без похожих символов (0/O, 1/I)
GAME_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GAME_CODE_LENGTH = 6
GAME_CODE_ATTEMPTS = 10


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo (так его хранит БД)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_game_code(exists, length: int = GAME_CODE_LENGTH,
                       attempts: int = GAME_CODE_ATTEMPTS, rng=None) -> str:
    """Генерирует уникальный код игры; exists(code) сообщает о коллизии."""
    rng = rng or random
    for _ in range(attempts):
        code = "".join(rng.choices(GAME_CODE_ALPHABET, k=length))
        if not exists(code):
            return code
    raise GameRuleError(ErrorKind.CODE_GENERATION_EXHAUSTED)


def parse_deadline(value):
    """Принимает datetime или ISO-строку, возвращает naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise GameRuleError(ErrorKind.INVALID_INPUT)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
