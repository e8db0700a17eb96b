# white_elephant/__init__.py
# Игра «Белый слон»: обмен подарками с раскрытием и кражей по очереди

from white_elephant.errors import ErrorKind, GameRuleError
from white_elephant.rules import GameRules

__all__ = ["ErrorKind", "GameRuleError", "GameRules"]
