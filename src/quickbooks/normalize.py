"""
Flatten QuickBooks query payloads into simple record shapes

QuickBooks answers a query with ``{"QueryResponse": {"<Entity>": [...]}}``.
Any of those levels can be missing (an empty result has no entity key at all),
so every function here treats a missing collection as empty.
"""

from typing import Any, Dict, List, Optional

from .models import (
    Account,
    Bill,
    BillLineItem,
    Customer,
    Invoice,
    InvoiceLineItem,
    Payment,
)

SUBTOTAL_LINE = "SubTotalLineDetail"


def extract_entities(payload: Optional[Dict[str, Any]], entity: str) -> List[Dict[str, Any]]:
    """Return the list of ``entity`` objects in a query payload, or []"""
    if not isinstance(payload, dict):
        return []
    query_response = payload.get("QueryResponse")
    if not isinstance(query_response, dict):
        return []

    items = query_response.get(entity)
    if items is None:
        return []
    if isinstance(items, dict):
        return [items]
    return [item for item in items if isinstance(item, dict)]


def _ref(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def _amount(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _optional_amount(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _active(value: Any) -> bool:
    # Absent means active; inactive records are only returned when asked for
    return True if value is None else bool(value)


def invoice_status(total: float, balance: float) -> str:
    """Paid when nothing is owed, Unpaid when nothing was paid, Partial otherwise"""
    if balance == 0:
        return "Paid"
    if balance == total:
        return "Unpaid"
    return "Partial"


def bill_status(balance: float) -> str:
    return "Paid" if balance == 0 else "Unpaid"


def normalize_accounts(payload: Optional[Dict[str, Any]]) -> List[Account]:
    return [
        Account(
            id=account.get("Id"),
            name=account.get("Name"),
            account_type=account.get("AccountType"),
            account_sub_type=account.get("AccountSubType"),
            current_balance=_amount(account.get("CurrentBalance")),
            active=_active(account.get("Active")),
        )
        for account in extract_entities(payload, "Account")
    ]


def normalize_customers(payload: Optional[Dict[str, Any]]) -> List[Customer]:
    return [
        Customer(
            id=customer.get("Id"),
            display_name=customer.get("DisplayName"),
            company_name=customer.get("CompanyName"),
            primary_email=_ref(customer, "PrimaryEmailAddr").get("Address"),
            primary_phone=_ref(customer, "PrimaryPhone").get("FreeFormNumber"),
            balance=_amount(customer.get("Balance")),
            active=_active(customer.get("Active")),
        )
        for customer in extract_entities(payload, "Customer")
    ]


def _invoice_line_items(invoice: Dict[str, Any]) -> List[InvoiceLineItem]:
    items = []
    for line in invoice.get("Line") or []:
        if not isinstance(line, dict) or line.get("DetailType") == SUBTOTAL_LINE:
            continue
        detail = _ref(line, "SalesItemLineDetail")
        items.append(InvoiceLineItem(
            description=line.get("Description"),
            amount=_amount(line.get("Amount")),
            quantity=_optional_amount(detail.get("Qty", line.get("Qty"))),
            unit_price=_optional_amount(detail.get("UnitPrice", line.get("UnitPrice"))),
        ))
    return items


def normalize_invoices(payload: Optional[Dict[str, Any]]) -> List[Invoice]:
    invoices = []
    for invoice in extract_entities(payload, "Invoice"):
        customer = _ref(invoice, "CustomerRef")
        total = _amount(invoice.get("TotalAmt"))
        balance = _amount(invoice.get("Balance"))
        invoices.append(Invoice(
            id=invoice.get("Id"),
            customer_id=customer.get("value"),
            customer_name=customer.get("name"),
            txn_date=invoice.get("TxnDate"),
            due_date=invoice.get("DueDate"),
            total_amount=total,
            balance=balance,
            status=invoice_status(total, balance),
            line_items=_invoice_line_items(invoice),
        ))
    return invoices


def normalize_bills(payload: Optional[Dict[str, Any]]) -> List[Bill]:
    bills = []
    for bill in extract_entities(payload, "Bill"):
        vendor = _ref(bill, "VendorRef")
        balance = _amount(bill.get("Balance"))
        bills.append(Bill(
            id=bill.get("Id"),
            vendor_id=vendor.get("value"),
            vendor_name=vendor.get("name"),
            txn_date=bill.get("TxnDate"),
            due_date=bill.get("DueDate"),
            total_amount=_amount(bill.get("TotalAmt")),
            balance=balance,
            status=bill_status(balance),
            line_items=[
                BillLineItem(description=line.get("Description"), amount=_amount(line.get("Amount")))
                for line in bill.get("Line") or []
                if isinstance(line, dict)
            ],
        ))
    return bills


def normalize_payments(payload: Optional[Dict[str, Any]]) -> List[Payment]:
    return [
        Payment(
            id=payment.get("Id"),
            customer_id=_ref(payment, "CustomerRef").get("value"),
            customer_name=_ref(payment, "CustomerRef").get("name"),
            txn_date=payment.get("TxnDate"),
            amount=_amount(payment.get("TotalAmt")),
            payment_method_name=_ref(payment, "PaymentMethodRef").get("name"),
        )
        for payment in extract_entities(payload, "Payment")
    ]
