"""
Human-like pacing for outbound WhatsApp messages

Sending a burst of identical-interval messages is what gets numbers flagged
as bots. Messages in a batch are spaced by a random delay whose range grows
with the batch size, and each message carries a short "typing..." presence
delay that the gateway plays before delivering it.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

# (max batch size, min delay ms, max delay ms); batches above the last bound use it
DELAY_TIERS = [
    (3, 3000, 8000),  # 3-8 seconds
    (10, 8000, 20000),  # 8-20 seconds
]
LARGE_BATCH_DELAY = (15000, 45000)  # 15-45 seconds

PRESENCE_DELAY_MIN_MS = 1500
PRESENCE_DELAY_MAX_MS = 3500


def delay_range_ms(total_messages: int) -> tuple[int, int]:
    for max_size, min_ms, max_ms in DELAY_TIERS:
        if total_messages <= max_size:
            return min_ms, max_ms
    return LARGE_BATCH_DELAY


def humanized_delay_ms(
    total_messages: int, current_index: int, rng: Optional[random.Random] = None
) -> int:
    """
    Delay to wait before sending message `current_index` (0-based) of a batch.
    The first message of a batch goes out immediately.
    """
    if current_index <= 0:
        return 0

    base_min, base_max = delay_range_ms(total_messages)
    random_factor = (rng or random).random()
    delay = int(base_min + (base_max - base_min) * random_factor)

    logger.debug(f"Humanized delay for message {current_index + 1}/{total_messages}: {delay}ms")
    return delay


def presence_delay_ms(rng: Optional[random.Random] = None) -> int:
    """Simulated typing time attached to the send call itself"""
    spread = PRESENCE_DELAY_MAX_MS - PRESENCE_DELAY_MIN_MS
    return int(PRESENCE_DELAY_MIN_MS + (rng or random).random() * spread)


class BatchContext:
    """
    Pacing state for one batch of sends within one run.

    A batch is a unit's reminders or a company's marketing messages. Create a
    new context per batch; nothing carries over between runs.
    """

    def __init__(
        self,
        total_messages: int,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.total_messages = total_messages
        self.index = 0
        self._sleep = sleep
        self._rng = rng

    async def wait_turn(self, recipient_label: str = "") -> int:
        """Sleep before the next send and advance the batch index. Returns the delay in ms."""
        delay = humanized_delay_ms(self.total_messages, self.index, self._rng)
        if delay > 0:
            logger.info(f"⏳ Waiting {delay}ms before sending to {recipient_label}...")
            await self._sleep(delay / 1000)
        self.index += 1
        return delay

    def presence_delay(self) -> int:
        return presence_delay_ms(self._rng)
