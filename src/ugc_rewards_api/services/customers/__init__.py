"""Customer ledger and eligibility rules."""

from .eligibility import ELIGIBILITY_ORDER_THRESHOLD, is_eligible
from .ledger import CustomerLedger, CustomerLedgerError, CustomerNotFoundError, ExternalCustomer

__all__ = [
    "CustomerLedger",
    "CustomerLedgerError",
    "CustomerNotFoundError",
    "ELIGIBILITY_ORDER_THRESHOLD",
    "ExternalCustomer",
    "is_eligible",
]
