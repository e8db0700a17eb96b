# white_elephant/rules.py
# Правила: можно ли украсть/открыть подарок. Чистые функции без доступа к БД.

from dataclasses import dataclass

DEFAULT_MAX_STEALS = 3


@dataclass(frozen=True)
class GameRules:
    max_steals_per_gift: int = DEFAULT_MAX_STEALS
    allow_immediate_steal_back: bool = True
    final_steal_round: bool = False

    @classmethod
    def from_game(cls, game) -> "GameRules":
        return cls(
            max_steals_per_gift=game.max_steals_per_gift or DEFAULT_MAX_STEALS,
            allow_immediate_steal_back=bool(game.allow_immediate_steal_back),
            final_steal_round=bool(game.final_steal_round),
        )

    def to_dict(self):
        return {
            "max_steals_per_gift": self.max_steals_per_gift,
            "allow_immediate_steal_back": self.allow_immediate_steal_back,
            "final_steal_round": self.final_steal_round,
        }


def can_steal(gift, actor_id: str, rules: GameRules) -> bool:
    """Красть нельзя свой текущий подарок, закрытый подарок и подарок на лимите краж.

    Подарок, который игрок сам принёс, украсть можно, если сейчас он у другого.
    """
    if gift.current_owner_id == actor_id:
        return False
    if gift.steal_count >= rules.max_steals_per_gift:
        return False
    if not gift.is_revealed:
        return False
    return True


def all_revealed(gifts) -> bool:
    return not any(not g.is_revealed for g in gifts)


def only_own_gift_remains(unrevealed_gifts, actor_id: str) -> bool:
    """Единственное исключение: остался один закрытый подарок, и он принесён самим игроком."""
    return len(unrevealed_gifts) == 1 and unrevealed_gifts[0].submitter_id == actor_id


def can_reveal(gift, actor_id: str, unrevealed_gifts) -> bool:
    if gift.submitter_id != actor_id:
        return True
    return only_own_gift_remains(unrevealed_gifts, actor_id)


def must_reveal_before_steal(actor_id: str, gifts, unrevealed_count: int) -> bool:
    """У игрока украли подарок, на руках ничего, а закрытые ещё есть: сначала открыть."""
    owns_gift = any(g.current_owner_id == actor_id for g in gifts)
    was_robbed = any(g.previous_owner_id == actor_id for g in gifts)
    return not owns_gift and was_robbed and unrevealed_count > 0
