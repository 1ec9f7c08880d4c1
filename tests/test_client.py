"""
Tests for the QuickBooks API client
"""

from unittest.mock import Mock

import pytest
import requests

from src.quickbooks.client import QuickBooksClient, build_txn_date_query
from src.quickbooks.errors import QuickBooksError, QuickBooksErrorType
from src.quickbooks.models import API_BASE_SANDBOX, TokenState
from src.quickbooks.oauth_client import TOKEN_URL
from src.quickbooks.storage import MemoryStore

ACCOUNTS = {"QueryResponse": {"Account": [{"Id": "1", "Name": "Checking"}]}}


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_client(qb_config, session, store, make_credentials):
    def _make(expires_in=3600):
        return QuickBooksClient(qb_config, make_credentials(expires_in=expires_in), store=store, session=session)
    return _make


class TestQueries:

    def test_query_request(self, make_client, session, make_response):
        session.get.return_value = make_response(200, ACCOUNTS)
        client = make_client()

        assert client.get_accounts() == ACCOUNTS

        args, kwargs = session.get.call_args
        assert args[0] == f"{API_BASE_SANDBOX}/company/123145/query"
        assert kwargs["params"] == {"query": "select * from Account STARTPOSITION 1 MAXRESULTS 1000"}
        assert kwargs["headers"]["Authorization"] == "Bearer access-1"
        assert kwargs["headers"]["Accept"] == "application/json"
        assert kwargs["timeout"] == 5

    def test_invoice_date_window(self, make_client, session, make_response):
        session.get.return_value = make_response(200, {"QueryResponse": {}})

        make_client().get_invoices("2024-01-01", "2024-06-01")

        assert session.get.call_args.kwargs["params"] == {
            "query": "select * from Invoice WHERE TxnDate >= '2024-01-01' AND TxnDate <= '2024-06-01'"
                     " STARTPOSITION 1 MAXRESULTS 1000"
        }

    def test_pages_are_merged(self, make_client, session, make_response):
        full_page = [{"Id": str(i), "DisplayName": f"Customer {i}"} for i in range(1000)]
        session.get.side_effect = [
            make_response(200, {"QueryResponse": {"Customer": full_page, "startPosition": 1, "maxResults": 1000}}),
            make_response(200, {"QueryResponse": {"Customer": [{"Id": "1000"}, {"Id": "1001"}]}}),
        ]

        payload = make_client().get_customers()

        assert len(payload["QueryResponse"]["Customer"]) == 1002
        assert payload["QueryResponse"]["Customer"][-1] == {"Id": "1001"}
        assert payload["QueryResponse"]["maxResults"] == 1002
        queries = [call.kwargs["params"]["query"] for call in session.get.call_args_list]
        assert queries == [
            "select * from Customer STARTPOSITION 1 MAXRESULTS 1000",
            "select * from Customer STARTPOSITION 1001 MAXRESULTS 1000",
        ]

    def test_company_info_url(self, make_client, session, make_response):
        session.get.return_value = make_response(200, {"CompanyInfo": {"CompanyName": "Acme"}})

        make_client().get_company_info()

        assert session.get.call_args.args[0] == f"{API_BASE_SANDBOX}/company/123145/companyinfo/123145"

    def test_report_parameters(self, make_client, session, make_response):
        session.get.return_value = make_response(200, {"Header": {"ReportName": "ProfitAndLoss"}})
        client = make_client()

        client.get_profit_and_loss_report("2024-01-01", "2024-06-01")
        assert session.get.call_args.args[0].endswith("/reports/ProfitAndLoss")
        assert session.get.call_args.kwargs["params"] == {"start_date": "2024-01-01", "end_date": "2024-06-01"}

        client.get_balance_sheet_report("2024-06-01")
        assert session.get.call_args.args[0].endswith("/reports/BalanceSheet")
        assert session.get.call_args.kwargs["params"] == {"as_of": "2024-06-01"}

        client.get_cash_flow_report("2024-01-01", "2024-06-01")
        assert session.get.call_args.args[0].endswith("/reports/CashFlow")

    def test_invalid_date_is_rejected_locally(self, make_client, session):
        with pytest.raises(QuickBooksError) as exc_info:
            make_client().get_bills("2024-01-01' OR 1=1 --", None)

        assert exc_info.value.error_type == QuickBooksErrorType.INVALID_REQUEST
        session.get.assert_not_called()


class TestBuildQuery:

    def test_no_dates(self):
        assert build_txn_date_query("Payment") == "select * from Payment"

    def test_start_only(self):
        assert build_txn_date_query("Bill", start_date="2024-01-01") == \
            "select * from Bill WHERE TxnDate >= '2024-01-01'"

    def test_end_only(self):
        assert build_txn_date_query("Bill", end_date="2024-06-01") == \
            "select * from Bill WHERE TxnDate <= '2024-06-01'"


class TestTokenRefresh:

    def test_refresh_once_before_call_when_near_expiry(self, make_client, session, store,
                                                        make_response, token_body):
        session.post.return_value = make_response(200, token_body)
        session.get.return_value = make_response(200, ACCOUNTS)
        client = make_client(expires_in=290)

        client.get_accounts()

        assert session.post.call_count == 1
        assert session.post.call_args.args[0] == TOKEN_URL
        assert session.get.call_args.kwargs["headers"]["Authorization"] == "Bearer access-2"
        assert client.credentials.refresh_token == "refresh-2"
        assert client.token_state == TokenState.VALID
        assert store.load_credentials().access_token == "access-2"

        client.get_accounts()
        assert session.post.call_count == 1

    def test_no_refresh_outside_margin(self, make_client, session, make_response):
        session.get.return_value = make_response(200, ACCOUNTS)

        make_client(expires_in=310).get_accounts()

        session.post.assert_not_called()

    def test_refresh_failure_keeps_old_token(self, make_client, session, make_response):
        session.post.return_value = make_response(400, {"error": "invalid_grant"})
        client = make_client(expires_in=60)

        with pytest.raises(QuickBooksError) as exc_info:
            client.get_customers()

        assert exc_info.value.error_type == QuickBooksErrorType.AUTHENTICATION
        assert client.credentials.access_token == "access-1"
        assert client.token_state == TokenState.FAILED
        session.get.assert_not_called()

    def test_failed_state_is_sticky_until_new_credentials(self, make_client, session, make_response,
                                                          make_credentials):
        session.post.return_value = make_response(400, {"error": "invalid_grant"})
        client = make_client(expires_in=60)

        with pytest.raises(QuickBooksError):
            client.get_customers()
        with pytest.raises(QuickBooksError) as exc_info:
            client.get_customers()

        assert exc_info.value.error_type == QuickBooksErrorType.AUTHENTICATION
        assert session.post.call_count == 1

        session.get.return_value = make_response(200, ACCOUNTS)
        client.update_credentials(make_credentials(access_token="access-3"))

        assert client.token_state == TokenState.VALID
        assert client.get_accounts() == ACCOUNTS

    def test_persist_failure_does_not_fail_the_call(self, qb_config, session, make_credentials,
                                                    make_response, token_body):
        broken_store = Mock(spec=MemoryStore)
        broken_store.save_credentials.side_effect = RuntimeError("disk full")
        session.post.return_value = make_response(200, token_body)
        session.get.return_value = make_response(200, ACCOUNTS)
        client = QuickBooksClient(qb_config, make_credentials(expires_in=10), store=broken_store, session=session)

        assert client.get_accounts() == ACCOUNTS
        assert client.credentials.access_token == "access-2"


class TestErrorClassification:

    @pytest.mark.parametrize("status_code,expected", [
        (401, QuickBooksErrorType.AUTHENTICATION),
        (429, QuickBooksErrorType.RATE_LIMIT),
        (500, QuickBooksErrorType.SERVER_ERROR),
        (400, QuickBooksErrorType.INVALID_REQUEST),
    ])
    def test_http_errors(self, make_client, session, make_response, status_code, expected):
        session.get.return_value = make_response(
            status_code,
            {"Fault": {"Error": [{"Message": "failed", "Detail": "detail text"}]}},
            headers={"intuit_tid": "tid-1"},
        )

        with pytest.raises(QuickBooksError) as exc_info:
            make_client().get_accounts()

        assert exc_info.value.error_type == expected
        assert exc_info.value.message == "detail text"
        assert exc_info.value.intuit_tid == "tid-1"

    @pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
    def test_network_errors(self, make_client, session, exc):
        session.get.side_effect = exc

        with pytest.raises(QuickBooksError) as exc_info:
            make_client().get_accounts()

        assert exc_info.value.error_type == QuickBooksErrorType.CONNECTION

    def test_unreadable_body(self, make_client, session, make_response):
        session.get.return_value = make_response(200)

        with pytest.raises(QuickBooksError) as exc_info:
            make_client().get_accounts()

        assert exc_info.value.error_type == QuickBooksErrorType.UNKNOWN


class TestConnection:

    def test_success(self, make_client, session, make_response):
        session.get.return_value = make_response(200, {"CompanyInfo": {"CompanyName": "Acme Corp"}})

        result = make_client().test_connection()

        assert result.success is True
        assert result.company_name == "Acme Corp"
        assert result.error is None

    def test_failure_never_raises(self, make_client, session):
        session.get.side_effect = requests.ConnectionError("refused")

        result = make_client().test_connection()

        assert result.success is False
        assert result.error.error_type == QuickBooksErrorType.CONNECTION
