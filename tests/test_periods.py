from datetime import date

import pytest

from periods import resolve_period


@pytest.mark.parametrize(
    "slug,today,start,end",
    [
        ("this_month", date(2024, 2, 10), date(2024, 2, 1), date(2024, 2, 29)),
        ("this_month", date(2023, 12, 31), date(2023, 12, 1), date(2023, 12, 31)),
        ("last_month", date(2024, 3, 15), date(2024, 2, 1), date(2024, 2, 29)),
        ("last_month", date(2024, 1, 5), date(2023, 12, 1), date(2023, 12, 31)),
        ("this_year", date(2024, 7, 4), date(2024, 1, 1), date(2024, 12, 31)),
    ],
)
def test_resolve_period(slug, today, start, end) -> None:
    period = resolve_period(slug, today=today)

    assert period.slug == slug
    assert (period.start, period.end) == (start, end)


def test_unknown_period() -> None:
    with pytest.raises(ValueError):
        resolve_period("next_decade", today=date(2024, 1, 1))
