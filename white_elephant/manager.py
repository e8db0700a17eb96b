# white_elephant/manager.py
# Логика управления играми: создание, присоединение, подарки, старт, завершение, просмотр

import logging
import random

from sqlalchemy import or_

from white_elephant.errors import ErrorKind, GameRuleError
from white_elephant.models import Game, Participant, Gift, ACTIVE, ENDED, WAITING
from white_elephant.rules import DEFAULT_MAX_STEALS, GameRules, all_revealed, can_steal
from white_elephant.turns import FIRST_PLAYER
from white_elephant.utils import generate_game_code, parse_deadline, utcnow

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2


def ready_to_end(game, gifts, player_one_id, last_action) -> bool:
    """Можно ли завершить игру вручную. Ничего не меняет, можно опрашивать сколько угодно.

    Игра готова, когда все подарки открыты и игрок 1 уже получил своё последнее слово:
    либо он сделал последний ход, либо очередь дошла до него, а сделать ему нечего.
    """
    if game.status != ACTIVE:
        return False
    if not all_revealed(gifts):
        return False
    if player_one_id is None:
        return False

    if last_action is not None and last_action.user_id == player_one_id:
        return True

    if game.current_turn != FIRST_PLAYER:
        return False

    rules = GameRules.from_game(game)
    if not rules.final_steal_round:
        return True

    # финальный раунд: ждём игрока 1, пока ему есть что украсть
    return not any(can_steal(g, player_one_id, rules) for g in gifts if g.is_revealed)


class GameManager:

    def __init__(self, store, rng=None):
        self.store = store
        self.rng = rng or random.Random()

    # -------------------- Создание и присоединение --------------------

    def create_game(self, organizer_id: str, name: str, description: str | None = None,
                    deadline=None, max_steals_per_gift: int = DEFAULT_MAX_STEALS,
                    allow_immediate_steal_back: bool = True, final_steal_round: bool = False):
        """Создаёт новую игру и добавляет организатора как участника."""
        try:
            if not name or not str(name).strip():
                raise GameRuleError(ErrorKind.INVALID_INPUT)
            if isinstance(max_steals_per_gift, bool) or not isinstance(max_steals_per_gift, int) \
                    or max_steals_per_gift < 1:
                raise GameRuleError(ErrorKind.INVALID_INPUT)
            deadline = parse_deadline(deadline)

            with self.store.session() as db:
                code = generate_game_code(lambda c: self.store.code_exists(db, c), rng=self.rng)
                game = Game(
                    organizer_id=organizer_id,
                    name=str(name).strip(),
                    description=description,
                    status=WAITING,
                    game_code=code,
                    max_steals_per_gift=max_steals_per_gift,
                    allow_immediate_steal_back=bool(allow_immediate_steal_back),
                    final_steal_round=bool(final_steal_round),
                    deadline=deadline,
                    created_at=utcnow()
                )
                db.add(game)
                db.flush()

                db.add(Participant(game_id=game.id, user_id=organizer_id, joined_at=utcnow()))
                db.flush()
                data = game.to_dict()

            logger.info("game_created: %s code=%s by %s", data["id"], data["game_code"], organizer_id)
            return True, data

        except GameRuleError as e:
            logger.info("create_game_rejected: user=%s reason=%s", organizer_id, e.kind.value)
            return False, e.kind
        except Exception as e:
            logger.exception("Error create_game: %s", e)
            raise

    def join_game(self, game_id: str, user_id: str, game_code: str):
        """Присоединяет пользователя к игре по коду."""
        def join(db):
            game = self._require_game(db, game_id)
            if (game_code or "").strip().upper() != game.game_code:
                raise GameRuleError(ErrorKind.INVALID_GAME_CODE)
            if game.status != WAITING:
                raise GameRuleError(ErrorKind.ALREADY_STARTED)
            if self.store.participant(db, game_id, user_id) is not None:
                raise GameRuleError(ErrorKind.ALREADY_PARTICIPANT)

            participant = Participant(game_id=game_id, user_id=user_id, joined_at=utcnow())
            db.add(participant)
            db.flush()
            return participant.to_dict()

        ok, result = self._in_game("join_game", game_id, user_id, join)
        if ok:
            logger.info("player_joined: game=%s user=%s", game_id, user_id)
        return ok, result

    def find_game_by_code(self, game_code: str):
        """Ищет игру по коду приглашения (регистр не важен)."""
        code = (game_code or "").strip().upper()
        with self.store.session() as db:
            game = self.store.get_game_by_code(db, code) if code else None
            if game is None:
                return False, ErrorKind.NOT_FOUND
            return True, game.to_dict()

    def list_games(self, user_id: str):
        """Игры, где пользователь организатор или участник, новые первыми."""
        with self.store.session() as db:
            joined = db.query(Participant.game_id).filter(Participant.user_id == user_id)
            games = db.query(Game).filter(
                or_(Game.organizer_id == user_id, Game.id.in_(joined))
            ).order_by(Game.created_at.desc()).all()
            return [g.to_dict() for g in games]

    # -------------------- Подарки --------------------

    def submit_gift(self, game_id: str, user_id: str, url: str, title: str | None = None,
                    description: str | None = None, image_url: str | None = None):
        """Участник приносит подарок, пока игра не началась и срок не истёк."""
        def submit(db):
            game = self._require_game(db, game_id)
            if not url or not str(url).strip():
                raise GameRuleError(ErrorKind.INVALID_INPUT)
            if game.status != WAITING:
                raise GameRuleError(ErrorKind.ALREADY_STARTED)
            if self.store.participant(db, game_id, user_id) is None:
                raise GameRuleError(ErrorKind.FORBIDDEN)
            if game.deadline is not None and utcnow() > game.deadline:
                raise GameRuleError(ErrorKind.DEADLINE_PASSED)

            gift = Gift(
                game_id=game_id,
                submitter_id=user_id,
                url=str(url).strip(),
                title=title,
                description=description,
                image_url=image_url,
                created_at=utcnow()
            )
            db.add(gift)
            db.flush()
            return gift.to_dict()

        ok, result = self._in_game("submit_gift", game_id, user_id, submit)
        if ok:
            logger.info("gift_submitted: game=%s user=%s gift=%s", game_id, user_id, result["id"])
        return ok, result

    def get_gift(self, gift_id: str, user_id: str):
        """Подарок целиком виден только тому, кто его принёс."""
        with self.store.session() as db:
            gift = db.query(Gift).filter(Gift.id == gift_id).first()
            if gift is None:
                return False, ErrorKind.NOT_FOUND
            if gift.submitter_id != user_id:
                return False, ErrorKind.FORBIDDEN
            return True, gift.to_dict()

    def update_gift(self, gift_id: str, user_id: str, url: str, title: str | None = None,
                    description: str | None = None, image_url: str | None = None):
        def update(db, gift):
            if not url or not str(url).strip():
                raise GameRuleError(ErrorKind.INVALID_INPUT)
            gift.url = str(url).strip()
            gift.title = title
            gift.description = description
            gift.image_url = image_url
            db.flush()
            return gift.to_dict()

        return self._edit_gift("update_gift", gift_id, user_id, update)

    def delete_gift(self, gift_id: str, user_id: str):
        def delete(db, gift):
            db.delete(gift)
            db.flush()
            return {"id": gift_id}

        return self._edit_gift("delete_gift", gift_id, user_id, delete)

    def _edit_gift(self, op, gift_id, user_id, func):
        with self.store.session() as db:
            game_id = db.query(Gift.game_id).filter(Gift.id == gift_id).scalar()
        if game_id is None:
            return False, ErrorKind.NOT_FOUND

        def edit(db):
            game = self._require_game(db, game_id)
            gift = self.store.gift(db, game_id, gift_id)
            if gift is None:
                raise GameRuleError(ErrorKind.NOT_FOUND)
            if gift.submitter_id != user_id:
                raise GameRuleError(ErrorKind.FORBIDDEN)
            if game.status != WAITING:
                raise GameRuleError(ErrorKind.ALREADY_STARTED)
            return func(db, gift)

        ok, result = self._in_game(op, game_id, user_id, edit)
        if ok:
            logger.info("%s: game=%s user=%s gift=%s", op, game_id, user_id, gift_id)
        return ok, result

    # -------------------- Старт и завершение --------------------

    def start_game(self, game_id: str, actor_id: str):
        """Случайный порядок ходов, номера игроков 1..N, статус active."""
        def start(db):
            game = self._require_game(db, game_id, for_update=True)
            if game.organizer_id != actor_id:
                raise GameRuleError(ErrorKind.FORBIDDEN)
            if game.status != WAITING:
                raise GameRuleError(ErrorKind.ALREADY_STARTED)

            participants = db.query(Participant).filter(
                Participant.game_id == game_id
            ).order_by(Participant.joined_at, Participant.id).all()
            if len(participants) < MIN_PARTICIPANTS:
                raise GameRuleError(ErrorKind.PRECONDITION_FAILED)

            submitters = {g.submitter_id for g in self.store.gifts(db, game_id)}
            missing = [p.user_id for p in participants if p.user_id not in submitters]
            if missing:
                logger.info("start_game: game=%s missing gifts from %s", game_id, missing)
                raise GameRuleError(ErrorKind.PRECONDITION_FAILED)

            # перемешиваем порядок присоединения
            turn_order = [p.user_id for p in participants]
            self.rng.shuffle(turn_order)

            by_user = {p.user_id: p for p in participants}
            for number, user_id in enumerate(turn_order, start=1):
                by_user[user_id].player_number = number

            game.turn_order = turn_order
            game.current_turn = FIRST_PLAYER
            game.status = ACTIVE
            game.started_at = utcnow()
            db.flush()
            return game.to_dict()

        ok, result = self._in_game("start_game", game_id, actor_id, start)
        if ok:
            logger.info("game_started: %s order=%s", game_id, result["turn_order"])
        return ok, result

    def end_game(self, game_id: str, actor_id: str):
        """Организатор завершает игру, когда она готова к завершению."""
        def end(db):
            game = self._require_game(db, game_id, for_update=True)
            if game.organizer_id != actor_id:
                raise GameRuleError(ErrorKind.FORBIDDEN)
            if game.status == ENDED:
                raise GameRuleError(ErrorKind.ALREADY_ENDED)
            if not self._ready_to_end(db, game):
                raise GameRuleError(ErrorKind.NOT_READY)

            game.status = ENDED
            game.ended_at = utcnow()
            db.flush()
            return game.to_dict()

        ok, result = self._in_game("end_game", game_id, actor_id, end)
        if ok:
            logger.info("game_ended: %s", game_id)
        return ok, result

    def ready_to_end(self, game_id: str) -> bool:
        with self.store.session() as db:
            game = self.store.get_game(db, game_id)
            if game is None:
                return False
            return self._ready_to_end(db, game)

    def _ready_to_end(self, db, game) -> bool:
        player_one = self.store.participant_by_number(db, game.id, FIRST_PLAYER)
        return ready_to_end(
            game,
            self.store.gifts(db, game.id),
            player_one.user_id if player_one else None,
            self.store.last_action(db, game.id),
        )

    # -------------------- Просмотр --------------------

    def get_game_view(self, game_id: str, user_id: str):
        """Снимок игры для организатора или участника."""
        with self.store.session() as db:
            game = self.store.get_game(db, game_id)
            if game is None:
                return False, ErrorKind.NOT_FOUND

            me = self.store.participant(db, game_id, user_id)
            is_organizer = game.organizer_id == user_id
            if not is_organizer and me is None:
                return False, ErrorKind.FORBIDDEN

            gifts = self.store.gifts(db, game_id)
            last = self.store.last_action(db, game_id)
            player_one = self.store.participant_by_number(db, game_id, FIRST_PLAYER)

            return True, {
                "game": game.to_dict(),
                "participants": [p.to_dict() for p in self.store.participants(db, game_id)],
                "gifts": [
                    g.to_dict(hide_contents=not g.is_revealed and g.submitter_id != user_id)
                    for g in gifts
                ],
                "turn_order": list(game.turn_order or []),
                "rules": GameRules.from_game(game).to_dict(),
                "ready_to_end": ready_to_end(
                    game, gifts, player_one.user_id if player_one else None, last
                ),
                "is_organizer": is_organizer,
                "current_player_number": me.player_number if me else None,
                "last_action": last.to_dict() if last else None,
            }

    # -------------------- Вспомогательные --------------------

    def _require_game(self, db, game_id, for_update=False):
        game = self.store.get_game(db, game_id, for_update=for_update)
        if game is None:
            raise GameRuleError(ErrorKind.NOT_FOUND)
        return game

    def _in_game(self, op, game_id, user_id, func):
        """Выполняет func(db) под блокировкой игры; отказ по правилам откатывает всё."""
        try:
            with self.store.game_scope(game_id) as db:
                result = func(db)
            return True, result
        except GameRuleError as e:
            logger.info("%s_rejected: game=%s user=%s reason=%s", op, game_id, user_id, e.kind.value)
            return False, e.kind
        except Exception as e:
            logger.exception("Error %s: %s", op, e)
            raise
