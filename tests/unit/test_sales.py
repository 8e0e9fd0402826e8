"""
Unit tests for sales reconciliation against storefront orders.
"""
from datetime import timedelta

import pytest

from gunmerch.errors import ProviderError
from gunmerch.services.sales import LEDGER_COLLECTION, SalesReconciler, ledger_key


def _order(order_id, *items, created="2024-05-30T10:00:00+00:00"):
    return {"order_id": order_id, "created": created, "total": "24.99", "items": list(items)}


def _item(item_id, external_id="", remote_product_id=None, quantity=1, price=24.99):
    return {"item_id": item_id, "external_id": external_id, "remote_product_id": remote_product_id,
            "quantity": quantity, "price": price}


def _storefront(mocker, name, orders=None, *, configured=True, error=None):
    backend = mocker.Mock()
    backend.name = name
    backend.is_configured = configured
    if error:
        backend.list_fulfilled_orders.side_effect = error
    else:
        backend.list_fulfilled_orders.return_value = orders or []
    return backend


@pytest.fixture
def live_design(designs, sample_design_data):
    design_id = designs.create_design(sample_design_data)
    designs.update_design_status(design_id, "approved")
    designs.record_remote_product(design_id, "9001", "printful")
    designs.update_design_status(design_id, "live")
    return design_id


@pytest.fixture
def make_reconciler(json_store, designs, settings, activity, notifier, clock):
    def _make(storefronts):
        return SalesReconciler(json_store, designs, settings, activity, notifier, storefronts, clock=clock)
    return _make


@pytest.mark.unit
class TestSalesReconciler:

    def test_applies_sale_and_marks_sold(self, mocker, make_reconciler, designs, notifier, live_design):
        printful = _storefront(mocker, "printful", [_order("1", _item("11", f"{live_design}-v0", quantity=2))])

        processed = make_reconciler({"printful": printful}).sync_sales()

        design = designs.get_design(live_design)
        assert processed[0]["items"][0]["status"] == "applied"
        assert design["sales_count"] == 2
        assert design["revenue"] == 49.98
        assert design["status"] == "sold"
        assert designs.get_stats()["total_revenue"] == 49.98
        assert [n["key"] for n in notifier.pending()] == [f"sale_{live_design}"]
        assert notifier.pending()[0]["message"] == "New sale: 'Boating Accident Survivor' shirt sold!"

    def test_rerun_does_not_double_count(self, mocker, make_reconciler, designs, json_store, live_design):
        orders = [_order("1", _item("11", f"{live_design}-v0"))]
        reconciler = make_reconciler({"printful": _storefront(mocker, "printful", orders)})

        reconciler.sync_sales()
        second = reconciler.sync_sales()

        assert designs.get_design(live_design)["sales_count"] == 1
        assert second[0]["items"][0]["status"] == "already_applied"
        assert json_store.get(LEDGER_COLLECTION, ledger_key("printful", "1", "11"))["design_id"] == live_design

    def test_new_item_in_overlapping_window_is_counted(self, mocker, make_reconciler, designs, live_design):
        backend = _storefront(mocker, "printful", [_order("1", _item("11", f"{live_design}-v0"))])
        reconciler = make_reconciler({"printful": backend})
        reconciler.sync_sales()

        backend.list_fulfilled_orders.return_value = [
            _order("1", _item("11", f"{live_design}-v0")),
            _order("2", _item("21", f"{live_design}-v1", price=19.5)),
        ]
        reconciler.sync_sales()

        design = designs.get_design(live_design)
        assert design["sales_count"] == 2
        assert design["revenue"] == 44.49

    def test_unmatched_items_are_reported(self, mocker, make_reconciler, designs, live_design):
        orders = [_order("1", _item("11", "not-ours"), _item("12", "", remote_product_id="nope"))]

        processed = make_reconciler({"printful": _storefront(mocker, "printful", orders)}).sync_sales()

        statuses = [i["status"] for i in processed[0]["items"]]
        assert statuses == ["unmatched", "unmatched"]
        assert processed[0]["items"][0]["design_id"] == 0
        assert designs.get_design(live_design)["sales_count"] == 0

    def test_matches_by_remote_product_id(self, mocker, make_reconciler, designs, live_design):
        orders = [_order("5", _item("51", "", remote_product_id="9001"))]

        processed = make_reconciler({"shopify": _storefront(mocker, "shopify", orders)}).sync_sales()

        assert processed[0]["items"][0]["design_id"] == live_design
        assert designs.get_design(live_design)["sales_count"] == 1

    def test_sold_design_keeps_counting(self, mocker, make_reconciler, designs, live_design):
        orders = [_order("1", _item("11", str(live_design))), _order("2", _item("21", str(live_design)))]

        make_reconciler({"printful": _storefront(mocker, "printful", orders)}).sync_sales()

        design = designs.get_design(live_design)
        assert design["status"] == "sold"
        assert design["sales_count"] == 2

    def test_failing_backend_is_skipped(self, mocker, make_reconciler, designs, activity, live_design):
        broken = _storefront(mocker, "shopify", error=ProviderError("timeout"))
        working = _storefront(mocker, "printful", [_order("1", _item("11", str(live_design)))])

        processed = make_reconciler({"shopify": broken, "printful": working}).sync_sales()

        assert len(processed) == 1
        assert designs.get_design(live_design)["sales_count"] == 1
        [error] = activity.get_logs(level="error")
        assert error["message"] == "Failed to sync sales from shopify: timeout"

    def test_unconfigured_backend_not_called(self, mocker, make_reconciler):
        idle = _storefront(mocker, "shopify", configured=False)

        assert make_reconciler({"shopify": idle}).sync_sales() == []
        idle.list_fulfilled_orders.assert_not_called()

    def test_window_uses_setting(self, mocker, make_reconciler, settings, clock):
        settings.update({"sales_window_days": 3})
        backend = _storefront(mocker, "printful")

        make_reconciler({"printful": backend}).sync_backend(backend)

        since = backend.list_fulfilled_orders.call_args.args[0]
        assert clock() - since == timedelta(days=3)
