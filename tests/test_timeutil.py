from datetime import datetime, timezone

import pytest

from zaplog.timeutil import time_to_millis


@pytest.mark.parametrize(
    "seconds, stamp",
    [(0, 0), (1, 1000), (1.5, 1500)],
)
def test_time_to_millis(seconds, stamp):
    t = datetime.fromtimestamp(seconds, tz=timezone.utc)
    assert time_to_millis(t) == stamp


def test_naive_datetime_is_utc():
    naive = datetime(1970, 1, 1, 0, 0, 1)
    aware = naive.replace(tzinfo=timezone.utc)
    assert time_to_millis(naive) == time_to_millis(aware) == 1000


def test_truncates_toward_zero_before_epoch():
    t = datetime(1969, 12, 31, 23, 59, 59, 999500, tzinfo=timezone.utc)
    assert time_to_millis(t) == 0