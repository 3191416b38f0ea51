"""Camera that follows a player through a stage.

Positions of the followed target are 16.16 fixed point; every scroll value
and boundary kept by the camera is in whole pixels.
"""

from __future__ import annotations

from dataclasses import dataclass

from retrostage.stage import CHUNK_SIZE

__all__ = [
    "SCREEN_YSIZE",
    "DEFAULT_SCREEN_XSIZE",
    "SCREEN_SCROLL_UP",
    "SCREEN_SCROLL_DOWN",
    "CAMERA_LAG_MAX",
    "DASH_SPEED",
    "CameraTarget",
    "Camera",
]

SCREEN_YSIZE = 240
DEFAULT_SCREEN_XSIZE = 320
SCREEN_SCROLL_UP = SCREEN_YSIZE // 2 - 16
SCREEN_SCROLL_DOWN = SCREEN_YSIZE // 2 + 16

CAMERA_LAG_MAX = 64
DASH_SPEED = 0x5F5C2

_SCROLL_STEP = 16
_X_SNAP_DISTANCE = 25
_Y_SNAP_MARGIN = 17
_TRACK_MOVE = 32
_MOVE_DECAY = 6
_LAG_STEP = 2
_SCROLL_DEADZONE = 8
_WATER_BELOW_STAGE = 128


@dataclass
class CameraTarget:
    """The player state the camera reads and whose screen position it sets."""

    x_pos: int = 0
    y_pos: int = 0
    x_velocity: int = 0
    speed: int = 0
    screen_x_pos: int = 0
    screen_y_pos: int = 0
    look_pos: int = 0
    track_scroll: bool = False
    gravity: int = 1
    direction: int = 0
    dashing: bool = False


@dataclass
class Camera:
    """Scroll position, stage boundaries and shake state of the stage camera."""

    screen_width: int = DEFAULT_SCREEN_XSIZE
    style: int = 0
    enabled: bool = True
    adjust_y: int = 0
    x_scroll_offset: int = 0
    y_scroll_offset: int = 0
    x_scroll_a: int = 0
    x_scroll_b: int = 0
    y_scroll_a: int = 0
    y_scroll_b: int = SCREEN_YSIZE
    y_scroll_move: int = 0
    earthquake_x: int = 0
    earthquake_y: int = 0
    camera_lag: int = 0
    x_boundary1: int = 0
    new_x_boundary1: int = 0
    y_boundary1: int = 0
    new_y_boundary1: int = 0
    x_boundary2: int = 0
    y_boundary2: int = 0
    new_x_boundary2: int = 0
    new_y_boundary2: int = 0
    water_level: int = 0x7FFFFFF

    def __post_init__(self) -> None:
        if self.screen_width <= 0:
            raise ValueError("screen width must be positive")
        if not self.x_scroll_b:
            self.x_scroll_b = self.screen_width

    @property
    def centre_x(self) -> int:
        return self.screen_width // 2

    @property
    def scroll_left(self) -> int:
        return self.centre_x - _SCROLL_DEADZONE

    @property
    def scroll_right(self) -> int:
        return self.centre_x + _SCROLL_DEADZONE

    def reset(self) -> None:
        """Restore the scroll state a stage starts with."""
        self.enabled = True
        self.adjust_y = 0
        self.x_scroll_offset = 0
        self.y_scroll_offset = 0
        self.y_scroll_a = 0
        self.y_scroll_b = SCREEN_YSIZE
        self.x_scroll_a = 0
        self.x_scroll_b = self.screen_width
        self.y_scroll_move = 0
        self.earthquake_x = 0
        self.earthquake_y = 0

    def set_bounds(self, width_chunks: int, height_chunks: int) -> None:
        """Set the boundaries to a layout of the given size in chunks."""
        if width_chunks < 0 or height_chunks < 0:
            raise ValueError("layout size must not be negative")
        width = width_chunks * CHUNK_SIZE
        height = height_chunks * CHUNK_SIZE
        self.x_boundary1 = self.new_x_boundary1 = 0
        self.y_boundary1 = self.new_y_boundary1 = 0
        self.x_boundary2 = self.new_x_boundary2 = width
        self.y_boundary2 = self.new_y_boundary2 = height
        self.water_level = height + _WATER_BELOW_STAGE

    def centre_on(self, x_pos: int, y_pos: int) -> None:
        """Place the scroll window around a 16.16 fixed point position."""
        left = (x_pos >> 16) - self.centre_x
        top = (y_pos >> 16) - SCREEN_SCROLL_UP
        self.x_scroll_a = left
        self.x_scroll_b = left + self.screen_width
        self.y_scroll_a = top
        self.y_scroll_b = top + SCREEN_YSIZE

    def follow(self, target: CameraTarget) -> None:
        """Scroll towards the target, catching up in steps when it is far away."""
        player_x = target.x_pos >> 16
        self._update_y_boundaries()
        self._update_x_boundaries(target)

        scroll_a = self.x_scroll_a
        scroll_b = self.x_scroll_b
        distance = player_x - (self.centre_x + self.x_scroll_a)
        if abs(distance) >= _X_SNAP_DISTANCE:
            scroll_a += _SCROLL_STEP if distance > 0 else -_SCROLL_STEP
            scroll_b = self.screen_width + scroll_a
        else:
            if player_x > self.scroll_right + scroll_a:
                scroll_a = player_x - self.scroll_right
                scroll_b = self.screen_width + scroll_a
            if player_x < self.scroll_left + scroll_a:
                scroll_a = player_x - self.scroll_left
                scroll_b = self.screen_width + scroll_a
        if scroll_a < self.x_boundary1:
            scroll_a = self.x_boundary1
            scroll_b = self.screen_width + self.x_boundary1
        if scroll_b > self.x_boundary2:
            scroll_b = self.x_boundary2
            scroll_a = self.x_boundary2 - self.screen_width
        self.x_scroll_a = scroll_a
        self.x_scroll_b = scroll_b
        self._place_x(target, player_x)

        self._update_y_scroll_move(target, bool(target.track_scroll))
        self._place_y(target, self._scroll_y(target))
        self._shake_x()
        self._shake_y()

    def follow_cd_style(self, target: CameraTarget) -> None:
        """Follow with the camera leading ahead of a fast-moving target."""
        player_x = target.x_pos >> 16
        self._update_y_boundaries()
        self._update_x_boundaries(target)

        if not target.gravity:
            if target.direction:
                if target.dashing or target.speed < -DASH_SPEED:
                    if self.camera_lag < CAMERA_LAG_MAX:
                        self.camera_lag += _LAG_STEP
                else:
                    self._decay_lag()
            elif target.dashing or target.speed > DASH_SPEED:
                if self.camera_lag > -CAMERA_LAG_MAX:
                    self.camera_lag -= _LAG_STEP
            else:
                self._decay_lag()

        lag = self.camera_lag
        quake = self.earthquake_x
        centre = self.centre_x
        if player_x <= lag + centre + self.x_boundary1:
            target.screen_x_pos = quake + player_x - self.x_boundary1
            self.x_scroll_offset = self.x_boundary1 - quake
        else:
            self.x_scroll_offset = quake + player_x - centre - lag
            target.screen_x_pos = lag + centre - quake
            if player_x - lag > self.x_boundary2 - centre:
                target.screen_x_pos = quake + centre + player_x - (self.x_boundary2 - centre)
                self.x_scroll_offset = self.x_boundary2 - self.screen_width - quake
        self.x_scroll_a = self.x_scroll_offset
        self.x_scroll_b = self.screen_width + self.x_scroll_offset

        self._update_y_scroll_move(target, target.track_scroll == 1)
        self._place_y(target, self._scroll_y(target))
        self._shake_x()
        self._shake_y()

    def follow_h_locked(self, target: CameraTarget) -> None:
        """Follow vertically while the horizontal scroll window stays put."""
        player_x = target.x_pos >> 16
        self._update_y_boundaries()
        self._place_x(target, player_x)
        self._update_y_scroll_move(target, target.track_scroll == 1)
        adjust_y = self._scroll_y(target)
        self._shake_y()
        self._place_y(target, adjust_y)

    def follow_locked(self, target: CameraTarget) -> None:
        """Place the target on screen without moving the scroll window."""
        player_x = target.x_pos >> 16
        self._place_x(target, player_x)
        self._place_y(target, self.adjust_y + (target.y_pos >> 16))
        self._shake_x()
        self._shake_y()

    def _decay_lag(self) -> None:
        if self.camera_lag < 0:
            self.camera_lag += _LAG_STEP
        if self.camera_lag > 0:
            self.camera_lag -= _LAG_STEP

    def _update_y_boundaries(self) -> None:
        bottom = self.y_scroll_offset + SCREEN_YSIZE
        if self.new_y_boundary1 > self.y_boundary1:
            if self.y_scroll_offset <= self.new_y_boundary1:
                self.y_boundary1 = self.y_scroll_offset
            else:
                self.y_boundary1 = self.new_y_boundary1
        if self.new_y_boundary1 < self.y_boundary1:
            if self.y_scroll_offset <= self.y_boundary1:
                self.y_boundary1 -= 1
            else:
                self.y_boundary1 = self.new_y_boundary1
        if self.new_y_boundary2 < self.y_boundary2:
            if bottom >= self.y_boundary2 or bottom <= self.new_y_boundary2:
                self.y_boundary2 -= 1
            else:
                self.y_boundary2 = bottom
        if self.new_y_boundary2 > self.y_boundary2:
            if bottom >= self.y_boundary2:
                self.y_boundary2 += 1
            else:
                self.y_boundary2 = self.new_y_boundary2

    def _update_x_boundaries(self, target: CameraTarget) -> None:
        right = self.screen_width + self.x_scroll_offset
        if self.new_x_boundary1 > self.x_boundary1:
            if self.x_scroll_offset <= self.new_x_boundary1:
                self.x_boundary1 = self.x_scroll_offset
            else:
                self.x_boundary1 = self.new_x_boundary1
        if self.new_x_boundary1 < self.x_boundary1:
            if self.x_scroll_offset <= self.x_boundary1:
                self.x_boundary1 -= 1
                if target.x_velocity < 0:
                    self.x_boundary1 += target.x_velocity >> 16
                    if self.x_boundary1 < self.new_x_boundary1:
                        self.x_boundary1 = self.new_x_boundary1
            else:
                self.x_boundary1 = self.new_x_boundary1
        if self.new_x_boundary2 < self.x_boundary2:
            if right >= self.x_boundary2:
                self.x_boundary2 = right
            else:
                self.x_boundary2 = self.new_x_boundary2
        if self.new_x_boundary2 > self.x_boundary2:
            if right >= self.x_boundary2:
                self.x_boundary2 += 1
                if target.x_velocity > 0:
                    self.x_boundary2 += target.x_velocity >> 16
                    if self.x_boundary2 > self.new_x_boundary2:
                        self.x_boundary2 = self.new_x_boundary2
            else:
                self.x_boundary2 = self.new_x_boundary2

    def _place_x(self, target: CameraTarget, player_x: int) -> None:
        quake = self.earthquake_x
        centre = self.centre_x
        scroll_a = self.x_scroll_a
        scroll_b = self.x_scroll_b
        if player_x <= centre + scroll_a:
            target.screen_x_pos = quake + player_x - scroll_a
            self.x_scroll_offset = scroll_a - quake
        else:
            self.x_scroll_offset = quake + player_x - centre
            target.screen_x_pos = centre - quake
            if player_x > scroll_b - centre:
                target.screen_x_pos = quake + centre + player_x - (scroll_b - centre)
                self.x_scroll_offset = scroll_b - self.screen_width - quake

    def _update_y_scroll_move(self, target: CameraTarget, tracking: bool) -> None:
        if tracking:
            self.y_scroll_move = _TRACK_MOVE
            return
        if self.y_scroll_move == _TRACK_MOVE:
            move = 2 * ((SCREEN_SCROLL_UP - target.screen_y_pos - target.look_pos) >> 1)
            self.y_scroll_move = max(-_TRACK_MOVE, min(_TRACK_MOVE, move))
        if self.y_scroll_move > 0:
            self.y_scroll_move -= _MOVE_DECAY
        if self.y_scroll_move < 0:
            self.y_scroll_move += _MOVE_DECAY

    def _scroll_y(self, target: CameraTarget) -> int:
        """Move the vertical scroll window; return the adjusted player y."""
        adjust_y = self.adjust_y + (target.y_pos >> 16)
        view_y = target.look_pos + adjust_y
        move = self.y_scroll_move
        scroll_a = self.y_scroll_a
        scroll_b = self.y_scroll_b
        offset = view_y - (scroll_a + SCREEN_SCROLL_UP)
        if abs(offset) >= abs(move) + _Y_SNAP_MARGIN:
            scroll_a += _SCROLL_STEP if offset > 0 else -_SCROLL_STEP
            scroll_b = scroll_a + SCREEN_YSIZE
        elif move == _TRACK_MOVE:
            if view_y > scroll_a + move + SCREEN_SCROLL_UP:
                scroll_a = view_y - (move + SCREEN_SCROLL_UP)
                scroll_b = scroll_a + SCREEN_YSIZE
            if view_y < scroll_a + SCREEN_SCROLL_UP - move:
                scroll_a = view_y - (SCREEN_SCROLL_UP - move)
                scroll_b = scroll_a + SCREEN_YSIZE
        else:
            scroll_a = view_y + move - SCREEN_SCROLL_UP
            scroll_b = scroll_a + SCREEN_YSIZE
        if scroll_a < self.y_boundary1:
            scroll_a = self.y_boundary1
            scroll_b = self.y_boundary1 + SCREEN_YSIZE
        if scroll_b > self.y_boundary2:
            scroll_b = self.y_boundary2
            scroll_a = self.y_boundary2 - SCREEN_YSIZE
        self.y_scroll_a = scroll_a
        self.y_scroll_b = scroll_b
        return adjust_y

    def _place_y(self, target: CameraTarget, adjust_y: int) -> None:
        quake = self.earthquake_y
        view_y = target.look_pos + adjust_y
        if view_y <= self.y_scroll_a + SCREEN_SCROLL_UP:
            target.screen_y_pos = adjust_y - self.y_scroll_a - quake
            self.y_scroll_offset = quake + self.y_scroll_a
        else:
            self.y_scroll_offset = quake + view_y - SCREEN_SCROLL_UP
            target.screen_y_pos = SCREEN_SCROLL_UP - target.look_pos - quake
            if view_y > self.y_scroll_b - SCREEN_SCROLL_DOWN:
                target.screen_y_pos = (
                    adjust_y - (self.y_scroll_b - SCREEN_SCROLL_DOWN) + quake + SCREEN_SCROLL_UP
                )
                self.y_scroll_offset = self.y_scroll_b - SCREEN_YSIZE - quake
        target.screen_y_pos -= self.adjust_y

    @staticmethod
    def _flip(quake: int) -> int:
        if not quake:
            return 0
        return ~quake if quake < 0 else -quake

    def _shake_x(self) -> None:
        self.earthquake_x = self._flip(self.earthquake_x)

    def _shake_y(self) -> None:
        self.earthquake_y = self._flip(self.earthquake_y)