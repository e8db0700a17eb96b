# white_elephant/web.py
# Flask-приложение: JSON-обёртка над GameManager и ActionProcessor

import os
import logging
from flask import Flask, request, jsonify

from white_elephant.actions import ActionProcessor
from white_elephant.database import init_db, make_engine, make_session_factory
from white_elephant.errors import ErrorKind
from white_elephant.manager import GameManager
from white_elephant.models import Game, ACTIVE, ENDED, WAITING
from white_elephant.store import EntityStore

logger = logging.getLogger(__name__)

# заголовок с id пользователя, который проставляет внешний слой авторизации
USER_HEADER = "X-User-Id"

HTTP_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_YOUR_TURN: 403,
    ErrorKind.GAME_NOT_ACTIVE: 409,
    ErrorKind.GAME_ENDED: 409,
    ErrorKind.ALREADY_STARTED: 409,
    ErrorKind.ALREADY_ENDED: 409,
    ErrorKind.PRECONDITION_FAILED: 409,
    ErrorKind.NOT_READY: 409,
    ErrorKind.ALREADY_REVEALED: 409,
    ErrorKind.CANNOT_REVEAL_OWN_GIFT: 400,
    ErrorKind.ALREADY_OWNS_GIFT: 400,
    ErrorKind.MUST_REVEAL_FIRST: 400,
    ErrorKind.CANNOT_STEAL: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INVALID_GAME_CODE: 400,
    ErrorKind.ALREADY_PARTICIPANT: 409,
    ErrorKind.DEADLINE_PASSED: 400,
    ErrorKind.CODE_GENERATION_EXHAUSTED: 503,
}


def error_response(kind: ErrorKind):
    return jsonify({"error": kind.value, "message": kind.message}), HTTP_STATUS.get(kind, 400)


def respond(ok, payload, status: int = 200):
    if not ok:
        return error_response(payload)
    return jsonify(payload), status


def create_app(store: EntityStore | None = None, rng=None) -> Flask:
    """Собирает приложение. Без store создаёт БД по DATABASE_URL."""
    if store is None:
        engine = make_engine()
        init_db(engine)
        store = EntityStore(make_session_factory(engine))

    manager = GameManager(store, rng=rng)
    processor = ActionProcessor(store)

    app = Flask(__name__)
    app.config["STORE"] = store

    def current_user():
        user_id = (request.headers.get(USER_HEADER) or "").strip()
        return user_id or None

    def body():
        return request.get_json(silent=True) or {}

    @app.before_request
    def require_user():
        # неизвестный маршрут: пусть Flask ответит 404
        if request.endpoint is None or request.endpoint in ("status", "game_by_code"):
            return None
        if current_user() is None:
            return error_response(ErrorKind.UNAUTHORIZED)
        return None

    # ---------------------------------------------------------
    # ИГРЫ
    # ---------------------------------------------------------

    @app.route("/games", methods=["POST"])
    def create_game():
        data = body()
        max_steals = data.get("max_steals_per_gift")
        ok, payload = manager.create_game(
            current_user(),
            data.get("name"),
            description=data.get("description"),
            deadline=data.get("deadline"),
            max_steals_per_gift=3 if max_steals is None else max_steals,
            allow_immediate_steal_back=data.get("allow_immediate_steal_back", True),
            final_steal_round=data.get("final_steal_round", False),
        )
        return respond(ok, {"game": payload} if ok else payload, status=201)

    @app.route("/games", methods=["GET"])
    def list_games():
        return jsonify({"games": manager.list_games(current_user())})

    @app.route("/games/by-code/<game_code>", methods=["GET"])
    def game_by_code(game_code):
        ok, payload = manager.find_game_by_code(game_code)
        return respond(ok, {"game": payload} if ok else payload)

    @app.route("/games/<game_id>", methods=["GET"])
    def game_view(game_id):
        return respond(*manager.get_game_view(game_id, current_user()))

    @app.route("/games/<game_id>/join", methods=["POST"])
    def join_game(game_id):
        return respond(*manager.join_game(game_id, current_user(), body().get("game_code")))

    @app.route("/games/<game_id>/start", methods=["POST"])
    def start_game(game_id):
        return respond(*manager.start_game(game_id, current_user()))

    @app.route("/games/<game_id>/end", methods=["POST"])
    def end_game(game_id):
        return respond(*manager.end_game(game_id, current_user()))

    @app.route("/games/<game_id>/reveal", methods=["POST"])
    def reveal(game_id):
        gift_id = body().get("gift_id")
        if not gift_id:
            return error_response(ErrorKind.INVALID_INPUT)
        return respond(*processor.reveal(game_id, current_user(), gift_id))

    @app.route("/games/<game_id>/steal", methods=["POST"])
    def steal(game_id):
        gift_id = body().get("gift_id")
        if not gift_id:
            return error_response(ErrorKind.INVALID_INPUT)
        return respond(*processor.steal(game_id, current_user(), gift_id))

    # ---------------------------------------------------------
    # ПОДАРКИ
    # ---------------------------------------------------------

    @app.route("/gifts", methods=["POST"])
    def submit_gift():
        data = body()
        if not data.get("game_id"):
            return error_response(ErrorKind.INVALID_INPUT)
        ok, payload = manager.submit_gift(
            data["game_id"],
            current_user(),
            data.get("url"),
            title=data.get("title"),
            description=data.get("description"),
            image_url=data.get("image_url"),
        )
        return respond(ok, payload, status=201)

    @app.route("/gifts/<gift_id>", methods=["GET"])
    def get_gift(gift_id):
        return respond(*manager.get_gift(gift_id, current_user()))

    @app.route("/gifts/<gift_id>", methods=["PUT"])
    def update_gift(gift_id):
        data = body()
        return respond(*manager.update_gift(
            gift_id,
            current_user(),
            data.get("url"),
            title=data.get("title"),
            description=data.get("description"),
            image_url=data.get("image_url"),
        ))

    @app.route("/gifts/<gift_id>", methods=["DELETE"])
    def delete_gift(gift_id):
        return respond(*manager.delete_gift(gift_id, current_user()))

    # ---------------------------------------------------------
    # СЕРВИСНЫЕ ЭНДПОЙНТЫ
    # ---------------------------------------------------------

    @app.route("/status")
    def status():
        with store.session() as db:
            return jsonify({
                "service": "White Elephant",
                "status": "online",
                "total_games": db.query(Game).count(),
                "waiting_games": db.query(Game).filter(Game.status == WAITING).count(),
                "active_games": db.query(Game).filter(Game.status == ACTIVE).count(),
                "finished_games": db.query(Game).filter(Game.status == ENDED).count(),
            })

    return app


# ---------------------------------------------------------
# ЗАПУСК (локально)
# ---------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    port = int(os.environ.get("PORT", 5000))
    logger.info("Starting Flask app on port %s", port)
    create_app().run(host="0.0.0.0", port=port)
