"""Routes client intents to rooms and replies to the sender.

The transport is anything with ``send(sid, event, payload)``,
``broadcast(room_id, event, payload)``, ``subscribe(sid, room_id)`` and
``unsubscribe(sid, room_id)``. Room-wide events reach the transport through
the registry's broadcaster, never through this class.
"""

import logging

from commands import Restart, SetReady, SetSpeed, Turn
from settings import ERROR_EVENT, JOINED_EVENT

logger = logging.getLogger(__name__)

DEFAULT_ROOM = "default"


def _field(data, key):
    # Clients send either the bare value or {key: value}.
    if isinstance(data, dict):
        return data.get(key)
    return data


def _room_id(payload):
    room_id = payload.get("roomId")
    if isinstance(room_id, str) and room_id.strip():
        return room_id.strip()
    return DEFAULT_ROOM


class Dispatcher:
    def __init__(self, registry, transport):
        self.registry = registry
        self.transport = transport

    def join_game(self, sid, data):
        payload = data if isinstance(data, dict) else {}
        room_id = _room_id(payload)
        current = self.registry.get_room_by_player(sid)

        room, error = self.registry.join(sid, room_id, payload.get("name"))
        if error:
            logger.info("Join to room %s rejected for %s: %s", room_id, sid, error)
            self.transport.send(sid, ERROR_EVENT, {"message": error})
            return False

        if current is not None and current.room_id != room_id:
            self.transport.unsubscribe(sid, current.room_id)
        self.transport.subscribe(sid, room_id)
        self.transport.send(
            sid,
            JOINED_EVENT,
            {"playerId": sid, "roomId": room_id, "config": self.registry.config.to_client()},
        )
        room.broadcast_state()
        return True

    def ready(self, sid, data):
        room = self.registry.get_room_by_player(sid)
        if room:
            room.handle(SetReady(sid, bool(_field(data, "ready"))))

    def turn(self, sid, data):
        room = self.registry.get_room_by_player(sid)
        if room:
            room.handle(Turn(sid, _field(data, "direction")))

    def set_speed(self, sid, data):
        room = self.registry.get_room_by_player(sid)
        if room:
            room.handle(SetSpeed(sid, _field(data, "speed")))

    def restart(self, sid):
        room = self.registry.get_room_by_player(sid)
        if room:
            room.handle(Restart(sid))

    def leave(self, sid):
        room_id = self.registry.leave(sid)
        if room_id is not None:
            self.transport.unsubscribe(sid, room_id)
        return room_id

    def disconnect(self, sid):
        self.leave(sid)
