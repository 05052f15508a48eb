from decimal import Decimal

from .money import as_money

SOURCE_NAMES = {
    "SALE": "Sales",
    "QUOTATION": "Quotations",
    "OTHER_INCOME": "Other Income",
    "PURCHASE": "Purchases",
    "OTHER_EXPENSES": "Other Expenses",
}

NON_DEDUCTIBLE_CATEGORIES = frozenset(
    {
        "FINES_PENALTIES",
        "BENEFITS_IN_KIND",
        "NON_APPROVED_PENSION",
        "PERSONAL_LIVING_EXPENSES",
        "PERSONAL_EXPENSES",
    }
)

CATEGORY_LABELS = {
    "OPERATING": "Operating Activities",
    "INVESTING": "Investing Activities",
    "FINANCING": "Financing Activities",
}


def format_currency(amount: Decimal | float | int | None, symbol: str = "₦") -> str:
    value = as_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_source_name(source: str) -> str:
    return SOURCE_NAMES.get(source, source)


def format_category_name(category: str) -> str:
    return " ".join(word[:1] + word[1:].lower() for word in category.split("_"))


def format_flow_category(flow_category: str) -> str:
    return CATEGORY_LABELS.get(flow_category, format_category_name(flow_category))


def is_deductible_category(category: str) -> bool:
    return category not in NON_DEDUCTIBLE_CATEGORIES
