from datetime import date, datetime, timedelta, timezone

import pytest

from src.models.growth.age import age_in_days, age_in_months, completed_months, to_date


class TestToDate:
    def test_accepts_date_datetime_and_string(self):
        assert to_date(date(2024, 3, 1)) == date(2024, 3, 1)
        assert to_date(datetime(2024, 3, 1, 10, 30)) == date(2024, 3, 1)
        assert to_date("2024-03-01") == date(2024, 3, 1)

    def test_aware_values_are_converted_to_utc(self):
        assert to_date("2024-01-01T23:30:00-05:00") == date(2024, 1, 2)
        eastern = timezone(timedelta(hours=9))
        assert to_date(datetime(2024, 1, 1, 3, 0, tzinfo=eastern)) == date(2023, 12, 31)


class TestAge:
    def test_fractional_months(self):
        assert age_in_months(date(2024, 1, 1), date(2024, 1, 1)) == 0.0
        assert age_in_months("2024-01-01", "2024-07-01") == pytest.approx(182 / 30.4375)
        assert age_in_days(date(2020, 1, 1), date(2021, 1, 1)) == 366

    def test_before_birth(self):
        with pytest.raises(ValueError):
            age_in_months(date(2024, 5, 1), date(2024, 4, 30))
        with pytest.raises(ValueError):
            completed_months(date(2024, 5, 1), date(2024, 4, 30))

    @pytest.mark.parametrize(
        "born,on,months",
        [
            (date(2024, 1, 15), date(2024, 3, 15), 2),
            (date(2024, 1, 15), date(2024, 3, 14), 1),
            (date(2024, 1, 31), date(2024, 2, 29), 0),
            (date(2023, 11, 5), date(2024, 2, 5), 3),
        ],
    )
    def test_completed_months(self, born, on, months):
        assert completed_months(born, on) == months

    def test_defaults_to_today(self):
        assert age_in_days(date.today() - timedelta(days=2)) >= 1
