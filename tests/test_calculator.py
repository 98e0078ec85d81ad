from datetime import timedelta

import pytest

from conftest import at
from prayer_clock.prayer.calculator import (
    PrayerPeriodCalculator,
    calculate_period,
    prayer_windows,
)
from prayer_clock.prayer.period import (
    AfterIsha,
    BeforeFajr,
    BetweenPrayers,
    InProgress,
)
from prayer_clock.prayer.times import PrayerName


def test_before_fajr(today):
    period = PrayerPeriodCalculator.calculate(at(3, 0), today)

    assert period.state == BeforeFajr(next_fajr=today.fajr)
    assert period.current_prayer is None
    assert period.next_prayer.name is PrayerName.FAJR
    assert period.next_prayer.time == today.fajr
    assert period.period_end == today.fajr


def test_during_fajr_deadline_is_sunrise(today):
    period = PrayerPeriodCalculator.calculate(at(5, 30), today)

    assert period.state == InProgress(prayer=PrayerName.FAJR, deadline=today.sunrise)
    assert period.current_prayer is PrayerName.FAJR
    assert period.next_prayer.name is PrayerName.DHUHR
    assert period.next_prayer.time == today.dhuhr


def test_after_sunrise_before_dhuhr_is_between_prayers(today):
    period = PrayerPeriodCalculator.calculate(at(7, 0), today)

    assert period.state == BetweenPrayers(
        previous=PrayerName.FAJR, next=PrayerName.DHUHR, next_start=today.dhuhr
    )
    assert period.current_prayer is None
    assert period.next_prayer.name is PrayerName.DHUHR
    assert period.period_start == today.sunrise
    assert period.period_end == today.dhuhr


@pytest.mark.parametrize(
    "hour, minute, prayer, deadline_field, next_prayer",
    [
        (12, 30, PrayerName.DHUHR, "asr", PrayerName.ASR),
        (15, 29, PrayerName.DHUHR, "asr", PrayerName.ASR),
        (15, 30, PrayerName.ASR, "maghrib", PrayerName.MAGHRIB),
        (17, 59, PrayerName.ASR, "maghrib", PrayerName.MAGHRIB),
        (18, 0, PrayerName.MAGHRIB, "isha", PrayerName.ISHA),
        (19, 59, PrayerName.MAGHRIB, "isha", PrayerName.ISHA),
    ],
)
def test_afternoon_and_evening_chain(today, hour, minute, prayer, deadline_field, next_prayer):
    period = PrayerPeriodCalculator.calculate(at(hour, minute), today)

    assert period.state == InProgress(prayer=prayer, deadline=getattr(today, deadline_field))
    assert period.current_prayer is prayer
    assert period.next_prayer.name is next_prayer


def test_isha_until_midnight_with_tomorrow(today, tomorrow):
    period = PrayerPeriodCalculator.calculate(at(23, 0), today, tomorrow)

    assert period.state == InProgress(prayer=PrayerName.ISHA, deadline=today.midnight)
    assert period.next_prayer.name is PrayerName.FAJR
    assert period.next_prayer.time == tomorrow.fajr


def test_isha_crosses_calendar_midnight(today, tomorrow):
    period = PrayerPeriodCalculator.calculate(at(0, 15, days=1), today, tomorrow)

    assert period.current_prayer is PrayerName.ISHA
    assert period.period_end == today.midnight


def test_after_isha_with_tomorrow(today, tomorrow):
    period = PrayerPeriodCalculator.calculate(at(1, 0, days=1), today, tomorrow)

    assert period.state == AfterIsha(tomorrow_fajr=tomorrow.fajr)
    assert period.current_prayer is None
    assert period.next_prayer.name is PrayerName.FAJR
    assert period.next_prayer.time == tomorrow.fajr
    assert period.period_start == today.midnight
    assert period.period_end == tomorrow.fajr


def test_after_isha_without_tomorrow_degrades(today):
    period = PrayerPeriodCalculator.calculate(at(1, 0, days=1), today)

    assert period.state == AfterIsha(tomorrow_fajr=None)
    assert period.next_prayer is None
    assert period.period_end is None
    assert period.period_progress == 0.0


@pytest.mark.parametrize(
    "boundary, expected_kind, expected_prayer",
    [
        ("fajr", "in_progress", PrayerName.FAJR),
        ("sunrise", "between_prayers", None),
        ("dhuhr", "in_progress", PrayerName.DHUHR),
        ("asr", "in_progress", PrayerName.ASR),
        ("maghrib", "in_progress", PrayerName.MAGHRIB),
        ("isha", "in_progress", PrayerName.ISHA),
        ("midnight", "after_isha", None),
    ],
)
def test_exact_boundary_belongs_to_following_period(today, tomorrow, boundary, expected_kind, expected_prayer):
    period = PrayerPeriodCalculator.calculate(getattr(today, boundary), today, tomorrow)

    assert period.state.kind == expected_kind
    assert period.current_prayer is expected_prayer


def test_one_microsecond_before_deadline_is_still_in_progress(today):
    period = PrayerPeriodCalculator.calculate(today.sunrise - timedelta(microseconds=1), today)

    assert period.current_prayer is PrayerName.FAJR


def test_every_minute_of_the_day_has_exactly_one_state(today, tomorrow):
    now = at(0, 0)
    end = tomorrow.fajr
    while now < end:
        period = PrayerPeriodCalculator.calculate(now, today, tomorrow)
        matches = [w for w in prayer_windows(today) if w.start <= now < w.deadline]
        if matches:
            assert len(matches) == 1
            assert period.current_prayer is matches[0].prayer
        else:
            assert period.current_prayer is None
        now += timedelta(minutes=1)


def test_conceptual_cycle_order(today, tomorrow):
    descriptions = []
    now = at(0, 0)
    switch_day = at(3, 0, days=1)
    while now < tomorrow.fajr + timedelta(minutes=1):
        if now < switch_day:
            period = calculate_period(now, today, tomorrow)
        else:
            period = calculate_period(now, tomorrow)
        if not descriptions or descriptions[-1] != period.state.description:
            descriptions.append(period.state.description)
        now += timedelta(minutes=1)

    assert descriptions == [
        "Before Fajr",
        "Fajr Period",
        "Between Fajr and Dhuhr",
        "Dhuhr Period",
        "Asr Period",
        "Maghrib Period",
        "Isha Period",
        "After Isha",
        "Before Fajr",
        "Fajr Period",
    ]


def test_identical_inputs_give_identical_output(today, tomorrow):
    now = at(14, 3, 27)
    first = PrayerPeriodCalculator.calculate(now, today, tomorrow)
    second = PrayerPeriodCalculator.calculate(now, today, tomorrow)

    assert first == second
    assert first.model_dump() == second.model_dump()


def test_inputs_are_not_mutated(today, tomorrow):
    before = today.model_dump()
    PrayerPeriodCalculator.calculate(at(9, 0), today, tomorrow)

    assert today.model_dump() == before


def test_mismatched_day_still_returns_a_period(today):
    period = PrayerPeriodCalculator.calculate(at(12, 0, days=10), today)

    assert period.state.kind == "after_isha"


def test_concurrent_calls_are_independent(today, tomorrow):
    from concurrent.futures import ThreadPoolExecutor

    instants = [at(0, 0) + timedelta(minutes=7 * i) for i in range(400)]
    expected = [PrayerPeriodCalculator.calculate(now, today, tomorrow) for now in instants]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda now: PrayerPeriodCalculator.calculate(now, today, tomorrow), instants))

    assert results == expected
