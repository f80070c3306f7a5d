"""Tests for the Supabase REST client, with the HTTP session mocked out."""

from unittest.mock import MagicMock

import pytest
import requests

from order_logistics.base_client import ConflictError
from order_logistics.models import OrderStatus, ShippingType
from order_logistics.supabase_client import SupabaseClient, drawer_from_row, order_from_row

ORDER_ROW = {
    "id": 42,
    "local_order_id": "FCD-0042",
    "client_id": "c1",
    "store_id": "s1",
    "status": "stored",
    "shipment_id": "sh1",
    "price_in_mru": 1000,
    "commission": 100,
    "shipping_cost": 200,
    "local_delivery_cost": 150,
    "amount_paid": 500,
    "is_delivery_fee_prepaid": None,
    "weight": 1.5,
    "storage_location": "A-01",
    "shipping_type": "fast",
}


def _response(payload=None, status=200):
    resp = MagicMock()
    resp.content = b"" if payload is None else b"x"
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def client():
    c = SupabaseClient(url="https://example.supabase.co/", api_key="key")
    c.session = MagicMock()
    return c


class TestConstruction:

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_ANON_KEY"):
            SupabaseClient()

    def test_env_vars_are_used(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "env-key")
        c = SupabaseClient()
        assert c.base_url == "https://env.supabase.co/rest/v1"
        assert c.session.headers["apikey"] == "env-key"
        assert c.session.headers["Authorization"] == "Bearer env-key"

    def test_rejects_plain_http(self):
        with pytest.raises(ValueError, match="https"):
            SupabaseClient(url="http://example.com", api_key="k")


class TestRowMapping:

    def test_order_from_row(self):
        order = order_from_row(ORDER_ROW)
        assert order.id == "42"
        assert order.status == OrderStatus.STORED
        assert order.shipping_type == ShippingType.FAST
        assert order.is_delivery_fee_prepaid is False
        assert order.storage_location == "A-01"

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            order_from_row({**ORDER_ROW, "status": "lost"})

    def test_drawer_from_row(self):
        drawer = drawer_from_row({"id": 1, "name": "A", "capacity": None, "rows": 2, "columns": 4})
        assert drawer.slot_count == 8


class TestReads:

    def test_get_orders_filters_by_status(self, client):
        client.session.request.return_value = _response([ORDER_ROW])
        orders = client.get_orders([OrderStatus.STORED, OrderStatus.ARRIVED_AT_OFFICE])
        method, url = client.session.request.call_args.args
        params = client.session.request.call_args.kwargs["params"]
        assert (method, url) == ("GET", "https://example.supabase.co/rest/v1/Orders")
        assert params["status"] == "in.(stored,arrived_at_office)"
        assert params["order"] == "local_order_id.desc,id.desc"
        assert (params["limit"], params["offset"]) == (1000, 0)
        assert orders[0].local_order_id == "FCD-0042"

    def test_get_orders_reads_every_page(self, client):
        client.page_size = 2
        rows = [{**ORDER_ROW, "id": i} for i in range(3)]
        client.session.request.side_effect = [_response(rows[:2]), _response(rows[2:])]
        orders = client.get_orders([OrderStatus.STORED])
        assert [o.id for o in orders] == ["0", "1", "2"]
        offsets = [c.kwargs["params"]["offset"] for c in client.session.request.call_args_list]
        assert offsets == [0, 2]

    def test_get_orders_full_last_page_needs_one_more_read(self, client):
        client.page_size = 1
        client.session.request.side_effect = [_response([ORDER_ROW]), _response([])]
        assert len(client.get_orders()) == 1
        assert client.session.request.call_count == 2

    def test_get_order_missing(self, client):
        client.session.request.return_value = _response([])
        assert client.get_order("nope") is None

    def test_get_pricing_config_defaults_without_row(self, client):
        client.session.request.return_value = _response([])
        assert client.get_pricing_config().fast_rate == 450

    def test_http_errors_propagate(self, client):
        client.session.request.return_value = _response(status=500)
        with pytest.raises(requests.HTTPError):
            client.get_drawers()


class TestWrites:

    def test_assign_storage_slot_is_guarded(self, client):
        client.session.request.return_value = _response([ORDER_ROW])
        order = client.assign_storage_slot("42", "A-01", OrderStatus.ARRIVED_AT_OFFICE)
        kwargs = client.session.request.call_args.kwargs
        assert kwargs["params"]["status"] == "eq.arrived_at_office"
        assert kwargs["json"] == {"status": "stored", "storage_location": "A-01"}
        assert kwargs["headers"] == {"Prefer": "return=representation"}
        assert order.storage_location == "A-01"

    def test_assign_storage_slot_conflict(self, client):
        client.session.request.return_value = _response([])
        with pytest.raises(ConflictError):
            client.assign_storage_slot("42", "A-01", OrderStatus.ARRIVED_AT_OFFICE)

    def test_mark_settled(self, client):
        client.session.request.return_value = _response()
        client.mark_settled(["1", "2"], "2026-10-19T00:00:00+00:00")
        kwargs = client.session.request.call_args.kwargs
        assert kwargs["params"] == {"id": "in.(1,2)"}
        assert kwargs["json"] == {"withdrawal_date": "2026-10-19T00:00:00+00:00"}

    def test_mark_settled_nothing(self, client):
        client.mark_settled([], "now")
        client.session.request.assert_not_called()

    def test_record_payment(self, client):
        client.session.request.return_value = _response()
        client.record_payment("42", 300, "Cash", "Bulk Payment")
        method, url = client.session.request.call_args.args
        assert method == "POST"
        assert url.endswith("/OrderPayments")
        assert client.session.request.call_args.kwargs["json"]["amount"] == 300
