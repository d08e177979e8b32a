from datetime import date
from typing import Mapping

from app.core.clock import Clock


def current_streak(heatmap: Mapping[date, int], clock: Clock) -> int:
    """
    Consecutive reading days ending today or yesterday.

    A day counts if it is a key of the heatmap; page totals are irrelevant.
    If the latest day is older than yesterday the streak is already broken.
    """
    if not heatmap:
        return 0

    today = clock.today()
    yesterday = clock.add_days(today, -1)

    last_day = max(heatmap)
    if last_day != today and last_day != yesterday:
        return 0

    days = set(heatmap)
    streak = 0
    check = last_day
    while check in days:
        streak += 1
        check = clock.add_days(check, -1)

    return streak


def longest_streak(heatmap: Mapping[date, int], clock: Clock) -> int:
    """Longest run of consecutive reading days anywhere in the history"""
    longest = 0
    current = 0
    previous = None

    for day in sorted(heatmap):
        if previous is not None and clock.add_days(previous, 1) == day:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = day

    return longest
