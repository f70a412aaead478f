"""
Partner qualification checks.
"""
from typing import Any, Iterable, Mapping, Optional

REQUIRED_FIELDS = ("cpf", "rg", "marital_status", "birth_date", "nationality", "address")
MARRIED_STATUSES = {"casado", "uniao_estavel"}
TAX_RETURN_CATEGORY = "tax_return"


def _category(document: Any) -> Optional[str]:
    if isinstance(document, Mapping):
        category = document.get("category")
    else:
        category = getattr(document, "category", None)
    # Enum members compare by value
    return getattr(category, "value", category)


def is_data_complete(qualification: Optional[Mapping[str, Any]], documents: Iterable[Any] = ()) -> bool:
    """
    True when the qualification data is enough to put the partner in the
    company's articles: every base field filled, the property regime set for
    married / civil-union partners, and a tax return on file for partners who
    declare income tax.
    """
    data = qualification or {}
    if not all(data.get(field) for field in REQUIRED_FIELDS):
        return False
    if data.get("marital_status") in MARRIED_STATUSES and not data.get("property_regime"):
        return False
    if data.get("declares_income_tax"):
        return any(_category(doc) == TAX_RETURN_CATEGORY for doc in documents or ())
    return True


def user_is_data_complete(user) -> bool:
    return is_data_complete(getattr(user, "qualification_data", None), getattr(user, "documents", None) or ())


def missing_fields(qualification: Optional[Mapping[str, Any]], documents: Iterable[Any] = ()) -> list:
    """Names of what is still missing, used for the phase 1 checklist."""
    data = qualification or {}
    missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
    if data.get("marital_status") in MARRIED_STATUSES and not data.get("property_regime"):
        missing.append("property_regime")
    if data.get("declares_income_tax") and not any(
        _category(doc) == TAX_RETURN_CATEGORY for doc in documents or ()
    ):
        missing.append(TAX_RETURN_CATEGORY)
    return missing
