"""
Tests for normalization of QuickBooks payloads
"""

import pytest

from src.quickbooks.normalize import (
    bill_status,
    extract_entities,
    invoice_status,
    normalize_accounts,
    normalize_bills,
    normalize_customers,
    normalize_invoices,
    normalize_payments,
)


@pytest.mark.parametrize("normalize,entity", [
    (normalize_accounts, "Account"),
    (normalize_customers, "Customer"),
    (normalize_invoices, "Invoice"),
    (normalize_bills, "Bill"),
    (normalize_payments, "Payment"),
])
@pytest.mark.parametrize("payload_factory", [
    lambda entity: None,
    lambda entity: {},
    lambda entity: {"QueryResponse": None},
    lambda entity: {"QueryResponse": {}},
    lambda entity: {"QueryResponse": {entity: []}},
    lambda entity: {"QueryResponse": {"startPosition": 1, "maxResults": 0}},
])
def test_empty_collections_yield_empty_list(normalize, entity, payload_factory):
    assert normalize(payload_factory(entity)) == []


def test_single_object_is_wrapped():
    payload = {"QueryResponse": {"Account": {"Id": "7", "Name": "Savings"}}}
    assert extract_entities(payload, "Account") == [{"Id": "7", "Name": "Savings"}]


class TestInvoiceStatus:

    @pytest.mark.parametrize("balance,expected", [
        (100, "Unpaid"),
        (0, "Paid"),
        (40, "Partial"),
    ])
    def test_status_from_balance(self, balance, expected):
        payload = {"QueryResponse": {"Invoice": [{"Id": "1", "TotalAmt": 100, "Balance": balance}]}}

        invoice = normalize_invoices(payload)[0]

        assert invoice.status == expected
        assert invoice.balance == balance
        assert invoice.total_amount == 100

    def test_zero_total_zero_balance_is_paid(self):
        assert invoice_status(0, 0) == "Paid"


class TestBillStatus:

    @pytest.mark.parametrize("balance,expected", [
        (0, "Paid"),
        (250, "Unpaid"),
        (100, "Unpaid"),
    ])
    def test_never_partial(self, balance, expected):
        payload = {"QueryResponse": {"Bill": [{"Id": "1", "TotalAmt": 250, "Balance": balance}]}}
        assert normalize_bills(payload)[0].status == expected

    def test_helper(self):
        assert bill_status(0) == "Paid"
        assert bill_status(0.01) == "Unpaid"


def test_accounts():
    payload = {"QueryResponse": {"Account": [
        {
            "Id": "35",
            "Name": "Checking",
            "AccountType": "Bank",
            "AccountSubType": "Checking",
            "CurrentBalance": 1201.0,
            "Active": True,
        },
        {"Id": "36", "Name": "Old Savings", "Active": False},
    ]}}

    first, second = normalize_accounts(payload)

    assert first.model_dump(by_alias=True) == {
        "id": "35",
        "name": "Checking",
        "accountType": "Bank",
        "accountSubType": "Checking",
        "currentBalance": 1201.0,
        "active": True,
    }
    assert second.current_balance == 0.0
    assert second.active is False


def test_customers_contact_details():
    payload = {"QueryResponse": {"Customer": [{
        "Id": "58",
        "DisplayName": "Amy's Bird Sanctuary",
        "CompanyName": "Amy's Bird Sanctuary",
        "PrimaryEmailAddr": {"Address": "birds@intuit.com"},
        "PrimaryPhone": {"FreeFormNumber": "(650) 555-3311"},
        "Balance": 239.0,
    }, {
        "Id": "59",
        "DisplayName": "No Contact Ltd",
    }]}}

    amy, other = normalize_customers(payload)

    assert amy.primary_email == "birds@intuit.com"
    assert amy.primary_phone == "(650) 555-3311"
    assert amy.balance == 239.0
    assert amy.active is True
    assert other.primary_email is None
    assert other.primary_phone is None


def test_invoice_line_items():
    payload = {"QueryResponse": {"Invoice": [{
        "Id": "130",
        "CustomerRef": {"value": "1", "name": "Amy's Bird Sanctuary"},
        "TxnDate": "2024-02-10",
        "DueDate": "2024-03-11",
        "TotalAmt": 150.0,
        "Balance": 150.0,
        "Line": [
            {
                "Description": "Weekly gardening",
                "Amount": 100.0,
                "DetailType": "SalesItemLineDetail",
                "SalesItemLineDetail": {"Qty": 4, "UnitPrice": 25},
            },
            {"Description": "Fertilizer", "Amount": 50.0, "Qty": 2, "UnitPrice": 25},
            {"Amount": 150.0, "DetailType": "SubTotalLineDetail", "SubTotalLineDetail": {}},
        ],
    }]}}

    invoice = normalize_invoices(payload)[0]
    dumped = invoice.model_dump(by_alias=True)

    assert dumped["customerId"] == "1"
    assert dumped["customerName"] == "Amy's Bird Sanctuary"
    assert dumped["txnDate"] == "2024-02-10"
    assert dumped["dueDate"] == "2024-03-11"
    assert dumped["lineItems"] == [
        {"description": "Weekly gardening", "amount": 100.0, "quantity": 4.0, "unitPrice": 25.0},
        {"description": "Fertilizer", "amount": 50.0, "quantity": 2.0, "unitPrice": 25.0},
    ]


def test_bill_vendor_and_lines():
    payload = {"QueryResponse": {"Bill": [{
        "Id": "25",
        "VendorRef": {"value": "41", "name": "Hall Properties"},
        "TxnDate": "2024-01-15",
        "TotalAmt": 900,
        "Balance": 900,
        "Line": [{"Description": "Rent", "Amount": 900}],
    }]}}

    bill = normalize_bills(payload)[0]

    assert bill.vendor_id == "41"
    assert bill.vendor_name == "Hall Properties"
    assert bill.due_date is None
    assert [item.model_dump(by_alias=True) for item in bill.line_items] == [
        {"description": "Rent", "amount": 900.0}
    ]


def test_payments():
    payload = {"QueryResponse": {"Payment": [{
        "Id": "120",
        "CustomerRef": {"value": "7", "name": "Kookies by Kathy"},
        "TxnDate": "2024-04-01",
        "TotalAmt": 75,
        "PaymentMethodRef": {"value": "1", "name": "Check"},
    }]}}

    assert normalize_payments(payload)[0].model_dump(by_alias=True) == {
        "id": "120",
        "customerId": "7",
        "customerName": "Kookies by Kathy",
        "txnDate": "2024-04-01",
        "amount": 75.0,
        "paymentMethodName": "Check",
    }
