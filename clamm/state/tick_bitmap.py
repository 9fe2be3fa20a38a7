"""Packed bitmap of initialized ticks.

Ticks are first compressed by the tick spacing, then stored one bit per
compressed tick in 256-bit words keyed by compressed_tick >> 8. A set bit
means the tick has nonzero gross liquidity. Searching for the next
initialized tick only ever looks at one word, so a swap pays per word it
walks through rather than per tick in the range.
"""

from __future__ import annotations

from clamm.constants import MAX_UINT256
from clamm.errors import MisalignedTick
from clamm.math.bit_math import least_significant_bit, most_significant_bit


def _position(compressed: int) -> tuple[int, int]:
    """Split a compressed tick into (word position, bit position)."""
    return compressed >> 8, compressed % 256


class TickBitmap:
    """Sparse map of word position -> 256-bit word.

    Words that become zero are dropped, so the map only holds words with
    at least one initialized tick.
    """

    def __init__(self, words: dict[int, int] | None = None) -> None:
        self._words: dict[int, int] = dict(words) if words else {}

    @property
    def words(self) -> dict[int, int]:
        """Copy of the nonzero words keyed by word position."""
        return dict(self._words)

    def copy(self) -> TickBitmap:
        return TickBitmap(self._words)

    def flip_tick(self, tick: int, tick_spacing: int) -> None:
        """Toggle the initialized bit for a tick.

        Raises:
            MisalignedTick: If tick is not a multiple of tick_spacing
        """
        if tick % tick_spacing != 0:
            raise MisalignedTick(f"Tick {tick} is not a multiple of spacing {tick_spacing}")
        word_pos, bit_pos = _position(tick // tick_spacing)
        word = self._words.get(word_pos, 0) ^ (1 << bit_pos)
        if word:
            self._words[word_pos] = word
        else:
            self._words.pop(word_pos, None)

    def is_initialized(self, tick: int, tick_spacing: int) -> bool:
        if tick % tick_spacing != 0:
            return False
        word_pos, bit_pos = _position(tick // tick_spacing)
        return bool(self._words.get(word_pos, 0) >> bit_pos & 1)

    def next_initialized_tick_within_one_word(
        self,
        tick: int,
        tick_spacing: int,
        lte: bool,
    ) -> tuple[int, bool]:
        """Find the next initialized tick in the same word as tick.

        Searching to the left (lte=True) includes tick itself; searching to
        the right starts strictly after it. When nothing is set in the rest
        of the word the word boundary is returned with initialized=False so
        the caller can continue into the next word.

        Args:
            tick: Starting tick (need not be aligned)
            tick_spacing: Pool tick spacing
            lte: Search toward lower ticks (True) or higher ticks (False)

        Returns:
            Tuple of (next_tick, initialized)
        """
        # Floor division rounds negative ticks toward negative infinity
        compressed = tick // tick_spacing

        if lte:
            word_pos, bit_pos = _position(compressed)
            # All bits at or to the right of bit_pos
            mask = (1 << bit_pos) - 1 + (1 << bit_pos)
            masked = self._words.get(word_pos, 0) & mask

            if masked:
                return (compressed - (bit_pos - most_significant_bit(masked))) * tick_spacing, True
            return (compressed - bit_pos) * tick_spacing, False

        word_pos, bit_pos = _position(compressed + 1)
        # All bits at or to the left of bit_pos
        mask = ~((1 << bit_pos) - 1) & MAX_UINT256
        masked = self._words.get(word_pos, 0) & mask

        if masked:
            return (compressed + 1 + (least_significant_bit(masked) - bit_pos)) * tick_spacing, True
        return (compressed + 1 + (255 - bit_pos)) * tick_spacing, False


__all__ = ["TickBitmap"]
