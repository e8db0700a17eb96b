# white_elephant/turns.py
# Очерёдность ходов: кто ходит следующим после раскрытия или кражи

from white_elephant.models import STEAL

FIRST_PLAYER = 1


def next_in_order(turn_order, user_id: str) -> str:
    """Следующий по кругу после user_id."""
    index = turn_order.index(user_id)
    return turn_order[(index + 1) % len(turn_order)]


def is_makeup_turn(last_action, actor_id: str) -> bool:
    """Ход «взамен»: последним ходом у игрока украли подарок, и он ничего не держит."""
    return (
        last_action is not None
        and last_action.action_type == STEAL
        and last_action.previous_owner_id == actor_id
    )


def advance_turn(rules, turn_order, player_numbers, actor_id: str,
                 actor_number: int, all_revealed: bool, last_action=None):
    """Возвращает новый current_turn или None, если указатель менять не нужно.

    player_numbers: {user_id: номер игрока}.
    last_action: ход, предшествовавший текущему (для хода «взамен»).
    """
    if not all_revealed:
        if is_makeup_turn(last_action, actor_id):
            # после хода «взамен» очередь идёт от того, кто украл
            next_user = next_in_order(turn_order, last_action.user_id)
        else:
            next_user = next_in_order(turn_order, actor_id)
        return player_numbers[next_user]

    # все подарки открыты: последнее слово за игроком 1
    if rules.final_steal_round:
        return FIRST_PLAYER
    if actor_number != FIRST_PLAYER:
        return FIRST_PLAYER
    return None
