"""Wall and trail hit tests for the light-trail arena."""

import math

# At speed 1 the trail is one point per unit travelled, so a turn leaves the
# head next to a long run of its own points.
CRAWL_SPEED = 1
CRAWL_SELF_BUFFER = 150


def points_collide(x1, y1, x2, y2, width):
    """Two points touch when strictly closer than one stroke width."""
    return math.hypot(x1 - x2, y1 - y2) < width


class CollisionDetector:
    def __init__(self, config):
        self.config = config

    def collides(self, avatar, avatars, speed):
        return self.hits_wall(avatar) or self.hits_trail(avatar, avatars, speed)

    def hits_wall(self, avatar):
        half = self.config.line_width / 2
        return (
            avatar.x < half
            or avatar.x > self.config.arena_width - half
            or avatar.y < half
            or avatar.y > self.config.arena_height - half
        )

    def self_buffer(self, speed):
        """Number of the avatar's newest trail points it cannot hit."""
        if speed == CRAWL_SPEED:
            return CRAWL_SELF_BUFFER
        pixel_buffer = self.config.line_width * 3
        points_needed = math.ceil(pixel_buffer / speed)
        return max(points_needed, math.ceil(10 * speed / 2))

    def hits_trail(self, avatar, avatars, speed):
        width = self.config.line_width
        for other in avatars:
            trail = other.trail
            if other.id == avatar.id:
                check_length = max(0, len(trail) - self.self_buffer(speed))
            else:
                check_length = len(trail)
            for index in range(check_length):
                px, py = trail[index]
                if points_collide(avatar.x, avatar.y, px, py, width):
                    return True
        return False
