from datetime import date
from typing import Tuple

from dateutil.relativedelta import relativedelta


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    first_day = date(year, month, 1)
    last_day = first_day + relativedelta(months=1, days=-1)
    return first_day, last_day
