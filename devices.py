# chip8vm, a Chip-8 interpreter.

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""pygame backed display, keypad and buzzer for the Chip-8 core."""

import logging
from array import array

import pygame

from chip8 import VIDEO_X, VIDEO_Y, RenderError

# Size of one Chip-8 pixel in screen pixels
VIDEO_RES = 8
# Pixel colors for display
PIXEL_ON = (255,255,255)
PIXEL_OFF = (64,64,64)

TONE_HZ = 440
TONE_VOLUME = 0.1

# The key map is a little jumbled since the
# Chip-8 has a slightly skewed layout, where
# internal key values are identical to their
# face value in hex.
# I've mapped their equivalents to a grid beginning at key 1 and
# proceeding 4 keys across each row and all the way down

# +-----+-----+-----+-----+
# | 1/1 | 2/2 | 3/3 | C/4 |
# +-----+-----+-----+-----+
# | 4/Q | 5/W | 6/E | D/R |
# +-----+-----+-----+-----+
# | 7/A | 8/S | 9/D | E/F |
# +-----+-----+-----+-----+
# | A/Z | 0/X | B/C | F/V |
# +-----+-----+-----+-----+

KEY_MAP = [
    pygame.K_x, pygame.K_1, pygame.K_2, pygame.K_3,
    pygame.K_q, pygame.K_w, pygame.K_e, pygame.K_a,
    pygame.K_s, pygame.K_d, pygame.K_z, pygame.K_c,
    pygame.K_4, pygame.K_r, pygame.K_f, pygame.K_v
]


def key_for(pygame_key):
    """Chip-8 key value for a pygame key constant, or None if unmapped"""
    if pygame_key in KEY_MAP:
        return KEY_MAP.index(pygame_key)
    return None


class PygameRenderer:
    """Draws the 64x32 grid as scale x scale rectangles on a pygame surface"""

    def __init__(self, screen, scale=VIDEO_RES):
        self.screen = screen
        self.scale = scale

    def clear(self):
        try:
            pygame.draw.rect(self.screen, PIXEL_OFF,
                             (0, 0, VIDEO_X * self.scale, VIDEO_Y * self.scale))
            pygame.display.flip()
        except pygame.error as e:
            raise RenderError(f"Clearing the display failed: {e}") from e

    def draw(self, grid):
        try:
            for cell, lit in enumerate(grid):
                y_off, x_off = divmod(cell, VIDEO_X)
                color = PIXEL_ON if lit else PIXEL_OFF
                pygame.draw.rect(self.screen, color,
                                 (x_off * self.scale, y_off * self.scale,
                                  self.scale, self.scale))
            pygame.display.flip()
        except pygame.error as e:
            raise RenderError(f"Drawing the display failed: {e}") from e


class PygameInput:
    """Hex keypad read from the pygame keyboard state and event queue"""

    def block_for_key(self):
        # Halt execution and wait for a keypress.
        # Quitting or escape give up and return None.
        pygame.event.clear(pygame.KEYDOWN)
        while True:
            event = pygame.event.wait()
            logging.debug(f"Event found {event.type}")
            if event.type == pygame.QUIT:
                return None
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return None
                key = key_for(event.key)
                if key is not None:
                    logging.debug(f"Key {event.key} is Chip-8 key {key:1x}")
                    return key

    def is_key_down(self, key):
        if not 0 <= key < len(KEY_MAP):
            return False
        return bool(pygame.key.get_pressed()[KEY_MAP[key]])


# Mixer sample format -> (array typecode, high level, low level).
# Negative formats are signed, 32 unsigned is float.
SAMPLE_TYPES = {
    8: ("B", 255, 0),
    -8: ("b", 127, -127),
    16: ("H", 65535, 0),
    -16: ("h", 32767, -32767),
    32: ("f", 1.0, -1.0),
    -32: ("i", 2 ** 31 - 1, -(2 ** 31 - 1)),
}


def build_tone_samples(frequency=TONE_HZ, settings=None):
    """One period of a square wave in the mixer's sample format.

    settings is a (rate, format, channels) tuple as returned by
    pygame.mixer.get_init(), which is asked when it isn't given.
    """
    # modified from: https://gist.github.com/ohsqueezy/6540433
    sample_rate, sample_format, channels = settings or pygame.mixer.get_init()
    if sample_format not in SAMPLE_TYPES:
        raise pygame.error(f"Unsupported mixer sample format {sample_format}")
    typecode, high, low = SAMPLE_TYPES[sample_format]
    period = int(round(sample_rate / frequency))
    samples = array(typecode, [low] * (period * channels))
    for t in range(period):
        level = high if t < period / 2 else low
        for c in range(channels):
            samples[t * channels + c] = level
    return samples


class PygameBeeper:
    """Square wave buzzer on the pygame mixer.

    If the mixer can't be opened the beeper stays silent.
    """

    def __init__(self):
        self.sound = None
        self.sounding = False
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(44100, -16, 1, 1024)
            self.sound = pygame.mixer.Sound(buffer=build_tone_samples())
            self.sound.set_volume(TONE_VOLUME)
        except pygame.error as e:
            logging.warning(f"No audio available, sound disabled: {e}")

    def start_tone(self):
        if self.sound is not None and not self.sounding:
            logging.debug("Tone on")
            self.sound.play(-1)
        self.sounding = True

    def stop_tone(self):
        if self.sound is not None and self.sounding:
            logging.debug("Tone off")
            self.sound.stop()
        self.sounding = False
