# white_elephant/models.py
# SQLAlchemy модели: Game, Participant, Gift, Action

import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from white_elephant.database import Base
from white_elephant.utils import utcnow

# статусы игры
WAITING = "waiting"
ACTIVE = "active"
ENDED = "ended"

# типы ходов
REVEAL = "reveal"
STEAL = "steal"


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True, default=_new_id)
    organizer_id = Column(String(64), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(String(16), nullable=False, default=WAITING)

    # порядок ходов: список user_id, задаётся один раз при старте
    turn_order = Column(JSON, nullable=True)
    # номер игрока (с 1), чей сейчас ход
    current_turn = Column(Integer, nullable=True)

    game_code = Column(String(16), nullable=False, unique=True, index=True)

    # правила
    max_steals_per_gift = Column(Integer, nullable=False, default=3)
    allow_immediate_steal_back = Column(Boolean, nullable=False, default=True)
    final_steal_round = Column(Boolean, nullable=False, default=False)

    deadline = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)

    participants = relationship(
        "Participant",
        back_populates="game",
        cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organizer_id": self.organizer_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "turn_order": list(self.turn_order or []),
            "current_turn": self.current_turn,
            "game_code": self.game_code,
            "max_steals_per_gift": self.max_steals_per_gift,
            "allow_immediate_steal_back": bool(self.allow_immediate_steal_back),
            "final_steal_round": bool(self.final_steal_round),
            "deadline": _iso(self.deadline),
            "created_at": _iso(self.created_at),
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
        }


class Participant(Base):
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("game_id", "user_id", name="uq_participant_game_user"),
    )

    id = Column(Integer, primary_key=True)

    game_id = Column(String(36), ForeignKey("games.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    # номер игрока 1..N, назначается только при старте
    player_number = Column(Integer, nullable=True)

    joined_at = Column(DateTime, default=utcnow)

    game = relationship("Game", back_populates="participants")

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "player_number": self.player_number,
            "joined_at": _iso(self.joined_at),
        }


class Gift(Base):
    __tablename__ = "gifts"

    id = Column(String(36), primary_key=True, default=_new_id)

    game_id = Column(String(36), ForeignKey("games.id"), nullable=False, index=True)
    # кто принёс подарок
    submitter_id = Column(String(64), nullable=False, index=True)

    url = Column(Text, nullable=False)
    title = Column(String(300), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)

    is_revealed = Column(Boolean, nullable=False, default=False)
    current_owner_id = Column(String(64), nullable=True, index=True)
    # владелец до последней кражи
    previous_owner_id = Column(String(64), nullable=True)
    steal_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow)

    def to_dict(self, hide_contents: bool = False):
        data = {
            "id": self.id,
            "game_id": self.game_id,
            "submitter_id": self.submitter_id,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "is_revealed": bool(self.is_revealed),
            "current_owner_id": self.current_owner_id,
            "previous_owner_id": self.previous_owner_id,
            "steal_count": self.steal_count,
            "created_at": _iso(self.created_at),
        }
        if hide_contents:
            for key in ("url", "title", "description", "image_url"):
                data[key] = None
        return data


class Action(Base):
    __tablename__ = "actions"

    # автоинкремент задаёт порядок журнала
    seq = Column(Integer, primary_key=True, autoincrement=True)

    game_id = Column(String(36), ForeignKey("games.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    action_type = Column(String(16), nullable=False)
    gift_id = Column(String(36), ForeignKey("gifts.id"), nullable=True)
    previous_owner_id = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "seq": self.seq,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "gift_id": self.gift_id,
            "previous_owner_id": self.previous_owner_id,
            "created_at": _iso(self.created_at),
        }
