import logging
import os

from flask import Flask, jsonify, request
from flask_socketio import SocketIO, join_room, leave_room

from dispatcher import Dispatcher
from registry import RoomRegistry
from settings import (
    JOIN_GAME_EVENT,
    READY_EVENT,
    RESTART_EVENT,
    SET_SPEED_EVENT,
    TURN_EVENT,
    GameConfig,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*")


def _socket_room(room_id):
    # Keeps room ids from colliding with per-connection sid rooms.
    return f"room:{room_id}"


class SocketIOTransport:
    def __init__(self, server):
        self.server = server

    def send(self, sid, event, payload):
        self.server.emit(event, payload, to=sid)

    def broadcast(self, room_id, event, payload):
        self.server.emit(event, payload, to=_socket_room(room_id))

    def subscribe(self, sid, room_id):
        join_room(_socket_room(room_id), sid=sid)

    def unsubscribe(self, sid, room_id):
        leave_room(_socket_room(room_id), sid=sid)


def build_dispatcher(config, scheduler=socketio):
    transport = SocketIOTransport(socketio)
    registry = RoomRegistry(config, scheduler, broadcaster=transport.broadcast)
    return Dispatcher(registry, transport)


dispatcher = build_dispatcher(GameConfig.from_env())


@socketio.on("connect")
def handle_connect():
    logger.info("Player connected: %s", request.sid)


@socketio.on(JOIN_GAME_EVENT)
def handle_join_game(data=None):
    dispatcher.join_game(request.sid, data or {})


@socketio.on(READY_EVENT)
def handle_ready(data=None):
    dispatcher.ready(request.sid, data)


@socketio.on(TURN_EVENT)
def handle_turn(data=None):
    dispatcher.turn(request.sid, data)


@socketio.on(SET_SPEED_EVENT)
def handle_set_speed(data=None):
    dispatcher.set_speed(request.sid, data)


@socketio.on(RESTART_EVENT)
def handle_restart(_data=None):
    dispatcher.restart(request.sid)


@socketio.on("disconnect")
def handle_disconnect(*_args):
    logger.info("Player disconnected: %s", request.sid)
    dispatcher.disconnect(request.sid)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/api/rooms")
def list_rooms():
    return jsonify([room.summary() for room in dispatcher.registry.list_rooms()])


@app.get("/api/rooms/<room_id>/leaderboard")
def room_leaderboard(room_id):
    room = dispatcher.registry.get_room(room_id)
    if not room:
        return {"message": "Room not found"}, 404
    return room.standings()


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    port = int(os.environ.get("PORT", "5000"))
    socketio.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=port)
