import random

import pytest

from barbershop.services.pacing import (
    BatchContext,
    delay_range_ms,
    humanized_delay_ms,
    presence_delay_ms,
)


class FixedRandom(random.Random):
    def __init__(self, value):
        super().__init__()
        self.value = value

    def random(self):
        return self.value


@pytest.mark.parametrize(
    "total,expected",
    [(1, (3000, 8000)), (3, (3000, 8000)), (4, (8000, 20000)), (10, (8000, 20000)), (11, (15000, 45000))],
)
def test_delay_tiers(total, expected):
    assert delay_range_ms(total) == expected


def test_first_message_has_no_delay():
    for total in (1, 5, 50):
        assert humanized_delay_ms(total, 0) == 0


def test_small_batch_delay_bounds():
    rng = random.Random(7)
    for _ in range(200):
        assert 3000 <= humanized_delay_ms(2, 1, rng) < 8000


def test_large_batch_delay_bounds():
    rng = random.Random(11)
    for index in range(1, 15):
        assert 15000 <= humanized_delay_ms(15, index, rng) < 45000


def test_delay_is_linear_in_random_draw():
    assert humanized_delay_ms(2, 1, FixedRandom(0.0)) == 3000
    assert humanized_delay_ms(2, 1, FixedRandom(0.5)) == 5500
    assert humanized_delay_ms(5, 1, FixedRandom(0.5)) == 14000


def test_presence_delay_bounds():
    rng = random.Random(3)
    for _ in range(200):
        assert 1500 <= presence_delay_ms(rng) < 3500


async def test_batch_context_sleeps_between_sends(sleeper):
    batch = BatchContext(3, sleep=sleeper, rng=FixedRandom(0.0))

    delays = [await batch.wait_turn("x") for _ in range(3)]

    assert delays == [0, 3000, 3000]
    assert sleeper.calls == [3.0, 3.0]
    assert batch.index == 3
