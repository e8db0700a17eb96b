# white_elephant/locks.py
# Блокировки на уровне игры: запросы к одной игре выполняются по одному

from contextlib import contextmanager
from threading import Lock


class GameLocks:
    """Реестр блокировок. Запись живёт, пока её кто-то держит или ждёт."""

    def __init__(self):
        # game_id -> [Lock, сколько запросов держат или ждут]
        self._locks = {}
        self._registry_lock = Lock()

    def __len__(self):
        with self._registry_lock:
            return len(self._locks)

    def __contains__(self, game_id):
        with self._registry_lock:
            return game_id in self._locks

    @contextmanager
    def hold(self, game_id: str):
        with self._registry_lock:
            entry = self._locks.get(game_id)
            if entry is None:
                entry = [Lock(), 0]
                self._locks[game_id] = entry
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._registry_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[game_id]
