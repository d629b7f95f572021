from dataclasses import dataclass, field

UP = "UP"
RIGHT = "RIGHT"
DOWN = "DOWN"
LEFT = "LEFT"

# Clockwise; turning right steps forward, left steps back.
HEADINGS = (UP, RIGHT, DOWN, LEFT)

DIRECTION_VECTORS = {
    UP: (0, -1),
    DOWN: (0, 1),
    LEFT: (-1, 0),
    RIGHT: (1, 0),
}


@dataclass
class Avatar:
    id: str
    name: str
    color: str
    slot: int
    x: float = 0.0
    y: float = 0.0
    direction: str = RIGHT
    trail: list = field(default_factory=list)
    alive: bool = True
    ready: bool = False

    def move(self, speed):
        if not self.alive:
            return
        dx, dy = DIRECTION_VECTORS[self.direction]
        new_x = self.x + dx * speed
        new_y = self.y + dy * speed

        # Sub-unit steps are folded into the next recorded point.
        if not self.trail:
            self.trail.append((new_x, new_y))
        else:
            last_x, last_y = self.trail[-1]
            if abs(new_x - last_x) >= 1 or abs(new_y - last_y) >= 1:
                self.trail.append((new_x, new_y))

        self.x = new_x
        self.y = new_y

    def turn(self, turn):
        if self.direction not in HEADINGS:
            return
        index = HEADINGS.index(self.direction)
        if turn == "left":
            index = (index - 1) % len(HEADINGS)
        elif turn == "right":
            index = (index + 1) % len(HEADINGS)
        else:
            return
        self.direction = HEADINGS[index]

    def reset(self, start):
        self.x = start.x
        self.y = start.y
        self.direction = start.direction
        self.trail = []
        self.alive = True
        self.ready = False

    def begin_trail(self):
        self.trail = [(self.x, self.y)]
        self.alive = True

    def to_snapshot(self):
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "x": self.x,
            "y": self.y,
            "direction": self.direction,
            "trail": [{"x": x, "y": y} for x, y in self.trail],
            "alive": self.alive,
            "ready": self.ready,
        }
