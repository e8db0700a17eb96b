# white_elephant/store.py
# Хранилище сущностей: сессии SQLAlchemy, транзакции на игру и типовые запросы

import logging
from contextlib import contextmanager

from white_elephant.locks import GameLocks
from white_elephant.models import Game, Participant, Gift, Action

logger = logging.getLogger(__name__)


class EntityStore:
    """Передаётся в сервисы явно; глобального состояния нет."""

    def __init__(self, session_factory, locks: GameLocks | None = None):
        self.session_factory = session_factory
        self.locks = locks if locks is not None else GameLocks()

    # -------------------- Сессии --------------------

    @contextmanager
    def session(self):
        """Сессия без блокировки игры: создание игр и чтение."""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def game_scope(self, game_id: str):
        """Блокировка игры + одна транзакция на весь запрос.

        Любое исключение (в том числе отказ по правилам) откатывает все изменения.
        """
        with self.locks.hold(game_id):
            db = self.session_factory()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    # -------------------- Игры --------------------

    @staticmethod
    def get_game(db, game_id: str, for_update: bool = False):
        query = db.query(Game).filter(Game.id == game_id)
        if for_update:
            # на PostgreSQL дополнительно блокирует строку; SQLite игнорирует
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_game_by_code(db, game_code: str):
        return db.query(Game).filter(Game.game_code == game_code).first()

    @staticmethod
    def code_exists(db, game_code: str) -> bool:
        return db.query(Game.id).filter(Game.game_code == game_code).first() is not None

    # -------------------- Участники --------------------

    @staticmethod
    def participants(db, game_id: str):
        return db.query(Participant).filter(
            Participant.game_id == game_id
        ).order_by(Participant.player_number, Participant.joined_at, Participant.id).all()

    @staticmethod
    def participant(db, game_id: str, user_id: str):
        return db.query(Participant).filter(
            Participant.game_id == game_id,
            Participant.user_id == user_id
        ).first()

    @staticmethod
    def participant_by_number(db, game_id: str, player_number: int):
        return db.query(Participant).filter(
            Participant.game_id == game_id,
            Participant.player_number == player_number
        ).first()

    # -------------------- Подарки --------------------

    @staticmethod
    def gifts(db, game_id: str):
        return db.query(Gift).filter(
            Gift.game_id == game_id
        ).order_by(Gift.created_at, Gift.id).all()

    @staticmethod
    def gift(db, game_id: str, gift_id: str):
        return db.query(Gift).filter(
            Gift.id == gift_id,
            Gift.game_id == game_id
        ).first()

    # -------------------- Журнал ходов --------------------

    @staticmethod
    def last_action(db, game_id: str):
        return db.query(Action).filter(
            Action.game_id == game_id
        ).order_by(Action.seq.desc()).first()

    @staticmethod
    def append_action(db, game_id: str, user_id: str, action_type: str,
                      gift_id: str, previous_owner_id: str | None = None):
        action = Action(
            game_id=game_id,
            user_id=user_id,
            action_type=action_type,
            gift_id=gift_id,
            previous_owner_id=previous_owner_id
        )
        db.add(action)
        db.flush()
        return action
