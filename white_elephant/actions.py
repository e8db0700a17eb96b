# white_elephant/actions.py
# Ходы игроков: раскрыть подарок или украсть. Проверка, изменение владельцев, журнал, очередь.

import logging

from white_elephant.errors import ErrorKind, GameRuleError
from white_elephant.models import ACTIVE, ENDED, REVEAL, STEAL
from white_elephant.rules import (
    GameRules, all_revealed, can_reveal, can_steal, must_reveal_before_steal, only_own_gift_remains
)
from white_elephant.turns import FIRST_PLAYER, advance_turn, is_makeup_turn
from white_elephant.utils import utcnow

logger = logging.getLogger(__name__)


class ActionProcessor:

    def __init__(self, store):
        self.store = store

    def reveal(self, game_id: str, actor_id: str, gift_id: str):
        """Открывает закрытый подарок и отдаёт его игроку, чей сейчас ход."""
        try:
            with self.store.game_scope(game_id) as db:
                result = self._reveal(db, game_id, actor_id, gift_id)

            logger.info("gift_revealed: game=%s user=%s gift=%s next_turn=%s",
                        game_id, actor_id, gift_id, result["current_turn"])
            return True, result

        except GameRuleError as e:
            logger.info("reveal_rejected: game=%s user=%s gift=%s reason=%s",
                        game_id, actor_id, gift_id, e.kind.value)
            return False, e.kind
        except Exception as e:
            logger.exception("Error reveal: %s", e)
            raise

    def steal(self, game_id: str, actor_id: str, gift_id: str):
        """Крадёт открытый подарок; если у вора уже есть подарок, меняет их местами."""
        try:
            with self.store.game_scope(game_id) as db:
                result = self._steal(db, game_id, actor_id, gift_id)

            logger.info("gift_stolen: game=%s user=%s gift=%s from=%s next_turn=%s",
                        game_id, actor_id, gift_id, result["previous_owner_id"], result["current_turn"])
            if result["game_ended"]:
                logger.info("game_auto_ended: game=%s", game_id)
            return True, result

        except GameRuleError as e:
            logger.info("steal_rejected: game=%s user=%s gift=%s reason=%s",
                        game_id, actor_id, gift_id, e.kind.value)
            return False, e.kind
        except Exception as e:
            logger.exception("Error steal: %s", e)
            raise

    # -------------------- Раскрытие --------------------

    def _reveal(self, db, game_id, actor_id, gift_id):
        game = self.store.get_game(db, game_id, for_update=True)
        if game is None:
            raise GameRuleError(ErrorKind.NOT_FOUND)
        if game.status != ACTIVE:
            raise GameRuleError(ErrorKind.GAME_NOT_ACTIVE)

        participant = self._require_turn(db, game, actor_id)

        gifts = self.store.gifts(db, game_id)
        gift = _find(gifts, gift_id)
        if gift is None:
            raise GameRuleError(ErrorKind.NOT_FOUND)
        if gift.is_revealed:
            raise GameRuleError(ErrorKind.ALREADY_REVEALED)

        unrevealed = [g for g in gifts if not g.is_revealed]
        own_last_gift = only_own_gift_remains(unrevealed, actor_id)

        if not can_reveal(gift, actor_id, unrevealed):
            raise GameRuleError(ErrorKind.CANNOT_REVEAL_OWN_GIFT)

        holds_other = any(g.current_owner_id == actor_id and g.id != gift.id for g in gifts)
        if holds_other and not own_last_gift:
            raise GameRuleError(ErrorKind.ALREADY_OWNS_GIFT)

        # смотрим журнал до записи текущего хода
        last = self.store.last_action(db, game_id)
        makeup = is_makeup_turn(last, actor_id)

        gift.is_revealed = True
        gift.current_owner_id = actor_id
        self.store.append_action(db, game_id, actor_id, REVEAL, gift.id)

        done = all_revealed(gifts)
        new_turn = advance_turn(
            GameRules.from_game(game),
            game.turn_order,
            self._player_numbers(db, game_id),
            actor_id,
            participant.player_number,
            done,
            last_action=last,
        )
        if new_turn is not None:
            game.current_turn = new_turn
        db.flush()

        return {
            "gift": gift.to_dict(),
            "current_turn": game.current_turn,
            "all_revealed": done,
            "makeup_turn": makeup,
        }

    # -------------------- Кража --------------------

    def _steal(self, db, game_id, actor_id, gift_id):
        game = self.store.get_game(db, game_id, for_update=True)
        if game is None:
            raise GameRuleError(ErrorKind.NOT_FOUND)
        if game.status == ENDED:
            raise GameRuleError(ErrorKind.GAME_ENDED)
        if game.status != ACTIVE:
            raise GameRuleError(ErrorKind.GAME_NOT_ACTIVE)

        participant = self._require_turn(db, game, actor_id)

        gifts = self.store.gifts(db, game_id)
        unrevealed_count = sum(1 for g in gifts if not g.is_revealed)
        if must_reveal_before_steal(actor_id, gifts, unrevealed_count):
            raise GameRuleError(ErrorKind.MUST_REVEAL_FIRST)

        gift = _find(gifts, gift_id)
        if gift is None:
            raise GameRuleError(ErrorKind.NOT_FOUND)

        rules = GameRules.from_game(game)
        if not can_steal(gift, actor_id, rules):
            raise GameRuleError(ErrorKind.CANNOT_STEAL)

        previous_owner_id = gift.current_owner_id

        # обмен: свой подарок вор отдаёт тому, у кого крадёт
        exchanged = None
        held = next((g for g in gifts if g.current_owner_id == actor_id and g.id != gift.id), None)
        if held is not None and previous_owner_id is not None:
            held.current_owner_id = previous_owner_id
            held.previous_owner_id = actor_id
            exchanged = held

        gift.current_owner_id = actor_id
        gift.previous_owner_id = previous_owner_id
        gift.steal_count += 1

        self.store.append_action(db, game_id, actor_id, STEAL, gift.id, previous_owner_id)

        done = all_revealed(gifts)
        numbers = self._player_numbers(db, game_id)

        if previous_owner_id is not None and not _holds_any(gifts, previous_owner_id):
            # у ограбленного ничего нет: он ходит сразу, чтобы открыть новый
            pinned = numbers.get(previous_owner_id)
            if pinned is not None:
                game.current_turn = pinned
        elif previous_owner_id is not None:
            self._advance(game, rules, numbers, actor_id, participant.player_number, done)
        else:
            # у открытого подарка всегда есть владелец; сюда попадаем только при рассогласовании данных
            logger.warning("steal_without_previous_owner: game=%s gift=%s", game_id, gift.id)
            self._advance(game, rules, numbers, actor_id, participant.player_number, done)

        game_ended = False
        if done and participant.player_number == FIRST_PLAYER:
            game.status = ENDED
            game.ended_at = utcnow()
            game_ended = True
        db.flush()

        return {
            "gift": gift.to_dict(),
            "previous_owner_id": previous_owner_id,
            "exchanged_gift_id": exchanged.id if exchanged is not None else None,
            "current_turn": game.current_turn,
            "all_revealed": done,
            "game_ended": game_ended,
        }

    # -------------------- Вспомогательные --------------------

    def _require_turn(self, db, game, actor_id):
        participant = self.store.participant(db, game.id, actor_id)
        if participant is None or participant.player_number != game.current_turn:
            raise GameRuleError(ErrorKind.NOT_YOUR_TURN)
        return participant

    def _player_numbers(self, db, game_id):
        return {p.user_id: p.player_number for p in self.store.participants(db, game_id)}

    @staticmethod
    def _advance(game, rules, numbers, actor_id, actor_number, done):
        new_turn = advance_turn(rules, game.turn_order, numbers, actor_id, actor_number, done)
        if new_turn is not None:
            game.current_turn = new_turn


def _find(gifts, gift_id):
    return next((g for g in gifts if g.id == gift_id), None)


def _holds_any(gifts, user_id):
    return any(g.current_owner_id == user_id for g in gifts)
