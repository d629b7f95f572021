import logging
import threading

from commands import Join, Leave
from game_room import GameRoom

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Room map plus the connection-to-room membership map.

    A room exists only while it has at least one avatar: it is created by
    the first successful join and dropped by the leave that empties it.
    """

    def __init__(self, config, scheduler, broadcaster=None, room_factory=GameRoom):
        self.config = config
        self.rooms = {}
        self.memberships = {}
        self.lock = threading.Lock()
        self._scheduler = scheduler
        self._broadcaster = broadcaster or (lambda room_id, event, payload: None)
        self._room_factory = room_factory

    def _new_room(self, room_id):
        def broadcast(event, payload):
            self._broadcaster(room_id, event, payload)

        return self._room_factory(room_id, self.config, self._scheduler, broadcast=broadcast)

    def join(self, sid, room_id, name):
        """Seat ``sid`` in ``room_id``; a previous room is left only once the new seat is taken."""
        with self.lock:
            previous = self.memberships.get(sid)
            room = self.rooms.get(room_id)
            created = room is None
            if created:
                room = self._new_room(room_id)
            avatar, error = room.handle(Join(sid, name))
            if error:
                if created:
                    room.close()
                return None, error
            if created:
                self.rooms[room_id] = room
                logger.info("Room %s created", room_id)
            if previous is not None and previous != room_id:
                self._leave(sid)
            self.memberships[sid] = room_id
            return room, None

    def leave(self, sid):
        """Remove ``sid`` from its room; returns the room id it left, if any."""
        with self.lock:
            return self._leave(sid)

    def _leave(self, sid):
        room_id = self.memberships.pop(sid, None)
        if room_id is None:
            return None
        room = self.rooms.get(room_id)
        if room is None:
            return room_id
        room.handle(Leave(sid))
        if room.is_empty():
            room.close()
            del self.rooms[room_id]
            logger.info("Room %s destroyed", room_id)
        return room_id

    def get_room(self, room_id):
        with self.lock:
            return self.rooms.get(room_id)

    def get_room_by_player(self, sid):
        with self.lock:
            room_id = self.memberships.get(sid)
            if room_id is None:
                return None
            return self.rooms.get(room_id)

    def list_rooms(self):
        with self.lock:
            return list(self.rooms.values())
