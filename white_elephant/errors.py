# white_elephant/errors.py
# Виды ошибок и внутреннее исключение для отката транзакции

from enum import Enum


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    NOT_YOUR_TURN = "not_your_turn"
    GAME_NOT_ACTIVE = "game_not_active"
    GAME_ENDED = "game_ended"
    ALREADY_STARTED = "already_started"
    ALREADY_ENDED = "already_ended"
    PRECONDITION_FAILED = "precondition_failed"
    NOT_READY = "not_ready"
    ALREADY_REVEALED = "already_revealed"
    CANNOT_REVEAL_OWN_GIFT = "cannot_reveal_own_gift"
    ALREADY_OWNS_GIFT = "already_owns_gift"
    MUST_REVEAL_FIRST = "must_reveal_first"
    CANNOT_STEAL = "cannot_steal"
    INVALID_INPUT = "invalid_input"
    INVALID_GAME_CODE = "invalid_game_code"
    ALREADY_PARTICIPANT = "already_participant"
    DEADLINE_PASSED = "deadline_passed"
    CODE_GENERATION_EXHAUSTED = "code_generation_exhausted"

    @property
    def message(self) -> str:
        return MESSAGES[self]


MESSAGES = {
    ErrorKind.NOT_FOUND: "❌ Не найдено",
    ErrorKind.FORBIDDEN: "👑 Недостаточно прав",
    ErrorKind.UNAUTHORIZED: "🔒 Требуется авторизация",
    ErrorKind.NOT_YOUR_TURN: "⏳ Сейчас не ваш ход",
    ErrorKind.GAME_NOT_ACTIVE: "⏳ Игра не активна",
    ErrorKind.GAME_ENDED: "🏁 Игра уже завершена",
    ErrorKind.ALREADY_STARTED: "⏳ Игра уже началась",
    ErrorKind.ALREADY_ENDED: "🏁 Игра уже завершена",
    ErrorKind.PRECONDITION_FAILED: "🎁 Нужно минимум 2 участника, и каждый должен принести подарок",
    ErrorKind.NOT_READY: "⏳ Игру пока нельзя завершить",
    ErrorKind.ALREADY_REVEALED: "🎁 Подарок уже открыт",
    ErrorKind.CANNOT_REVEAL_OWN_GIFT: "🙅 Нельзя открыть свой собственный подарок",
    ErrorKind.ALREADY_OWNS_GIFT: "🎁 У вас уже есть подарок, украдите, чтобы обменяться",
    ErrorKind.MUST_REVEAL_FIRST: "🎁 Ваш подарок украли, сначала откройте новый",
    ErrorKind.CANNOT_STEAL: "🚫 Этот подарок нельзя украсть",
    ErrorKind.INVALID_INPUT: "❌ Некорректные данные",
    ErrorKind.INVALID_GAME_CODE: "❌ Неверный код игры",
    ErrorKind.ALREADY_PARTICIPANT: "🎅 Вы уже участвуете в этой игре",
    ErrorKind.DEADLINE_PASSED: "⌛ Срок приёма подарков истёк",
    ErrorKind.CODE_GENERATION_EXHAUSTED: "❌ Не удалось создать код игры, попробуйте ещё раз",
}


class GameRuleError(Exception):
    """Отклонённый запрос. Выбрасывается внутри транзакции, чтобы откатить её."""

    def __init__(self, kind: ErrorKind):
        self.kind = kind
        super().__init__(kind.value)
