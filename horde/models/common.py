from enum import Enum


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class Currency(str, Enum):
    NGN = "NGN"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


class DateFormat(str, Enum):
    MM_DD_YYYY = "MM/DD/YYYY"
    DD_MM_YYYY = "DD/MM/YYYY"
    YYYY_MM_DD = "YYYY-MM-DD"


class TimeFormat(str, Enum):
    HOUR_12 = "12h"
    HOUR_24 = "24h"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


CURRENCY_SYMBOLS = {
    Currency.NGN: "₦",
    Currency.USD: "$",
    Currency.EUR: "€",
    Currency.GBP: "£",
}

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def get_currency_symbol(currency) -> str:
    return CURRENCY_SYMBOLS[Currency(currency)]


def month_name(month: int) -> str:
    """Name of a 1-based month."""
    return MONTH_NAMES[month - 1]
