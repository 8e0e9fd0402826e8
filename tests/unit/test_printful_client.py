"""
Unit tests for PrintfulClient.
"""
from datetime import datetime, timezone

import httpx
import pytest
import respx

from gunmerch.errors import ConfigurationError, ProviderError
from gunmerch.services.printful_client import PrintfulClient

TEMPLATE = {
    "sync_product": {"id": 77, "name": "Template Tee"},
    "sync_variants": [
        {
            "variant_id": 4012,
            "retail_price": "24.99",
            "options": [{"id": "embroidery_type", "value": "flat"}],
            "files": [
                {"type": "default", "id": 1, "url": "https://files/old.png",
                 "position": {"area_width": 1800, "area_height": 2400, "top": 0, "left": 0}},
                {"type": "back", "id": 2, "url": "https://files/back.png"},
                {"type": "preview", "id": 3, "url": "https://files/preview.png"},
            ],
        },
        {"variant_id": "4013", "files": []},
    ],
}


@pytest.fixture
def printful():
    return PrintfulClient("pf-token", store_id="123", template_product_id="77")


@pytest.mark.unit
class TestPrintfulClient:

    def test_headers(self, printful):
        assert printful.headers["Authorization"] == "Bearer pf-token"
        assert printful.headers["X-PF-Store-Id"] == "123"
        assert "X-PF-Store-Id" not in PrintfulClient("t").headers

    def test_unconfigured_raises(self):
        with pytest.raises(ConfigurationError):
            PrintfulClient(None).get_store()

    @respx.mock
    def test_test_connection(self, printful):
        respx.get("https://api.printful.com/store").mock(return_value=httpx.Response(
            200, json={"code": 200, "result": {"name": "GunMerch", "type": "native"}}))

        result = printful.test_connection()

        assert result == {"success": True, "store_name": "GunMerch", "store_type": "native"}

    @pytest.mark.parametrize("store_type,expected", [
        ("native", True), ("api", True), ("", True), ("shopify", False), ("woocommerce", False),
    ])
    @respx.mock
    def test_can_create_products(self, printful, store_type, expected):
        respx.get("https://api.printful.com/store").mock(return_value=httpx.Response(
            200, json={"result": {"type": store_type}}))

        assert printful.can_create_products() is expected

    @respx.mock
    def test_error_message_from_body(self, printful):
        respx.get("https://api.printful.com/store").mock(return_value=httpx.Response(
            401, json={"code": 401, "error": {"message": "Invalid token"}}))

        with pytest.raises(ProviderError, match="Invalid token") as exc:
            printful.get_store()
        assert exc.value.status == 401

    @respx.mock
    def test_find_product_by_external_id(self, printful):
        route = respx.get("https://api.printful.com/store/products/@42").mock(return_value=httpx.Response(
            200, json={"result": {"sync_product": {"id": 9001, "external_id": "42", "name": "Tee"}}}))

        found = printful.find_product_by_external_id("42")

        assert found == {"id": "9001", "external_id": "42", "name": "Tee"}
        assert route.called

    @respx.mock
    def test_find_product_missing_returns_none(self, printful):
        respx.get("https://api.printful.com/store/products/@42").mock(return_value=httpx.Response(
            404, json={"error": {"message": "Not found"}}))

        assert printful.find_product_by_external_id("42") is None

    @respx.mock
    def test_find_product_server_error_raises(self, printful):
        respx.get("https://api.printful.com/store/products/@42").mock(return_value=httpx.Response(500, text="oops"))

        with pytest.raises(ProviderError):
            printful.find_product_by_external_id("42")

    @respx.mock
    def test_upload_asset_resolves_canonical_url(self, printful):
        post = respx.post("https://api.printful.com/files").mock(return_value=httpx.Response(
            200, json={"result": {"id": 555, "url": None, "status": "waiting"}}))
        respx.get("https://api.printful.com/files/555").mock(return_value=httpx.Response(
            200, json={"result": {"id": 555, "url": "https://files.printful.com/555.png"}}))

        uploaded = printful.upload_asset(url="https://merch.example.com/designs/1/asset", file_name="d.png")

        assert uploaded == {"id": "555", "url": "https://files.printful.com/555.png"}
        assert b'"filename":"d.png"' in post.calls.last.request.content.replace(b" ", b"")

    def test_template_requires_configuration(self):
        with pytest.raises(ConfigurationError):
            PrintfulClient("t").get_template_product()

    def test_build_payload_swaps_front_file(self, printful):
        payload = printful.build_product_payload(TEMPLATE, design={"id": 42, "title": "Molon Labe"},
                                                 file_url="https://files/new.png", file_id="555")

        assert payload["sync_product"] == {"name": "Molon Labe", "external_id": "42",
                                           "thumbnail": "https://files/new.png"}
        first, second = payload["sync_variants"]
        assert first["external_id"] == "42-v0"
        assert second["external_id"] == "42-v1"
        assert first["variant_id"] == 4012 and second["variant_id"] == 4013
        assert first["files"][0] == {"type": "default", "id": 555,
                                     "position": TEMPLATE["sync_variants"][0]["files"][0]["position"]}
        assert first["files"][1] == {"type": "back", "id": 2}
        assert all(f["type"] != "preview" for f in first["files"])
        assert first["options"] == [{"id": "embroidery_type", "value": "flat"}]
        # variant without files still gets the print file in the front slot
        assert second["files"] == [{"type": "front", "id": 555}]

    def test_build_payload_is_deterministic(self, printful):
        a = printful.build_product_payload(TEMPLATE, design={"id": 5}, file_url="u")
        b = printful.build_product_payload(TEMPLATE, design={"id": 5}, file_url="u")

        assert a == b
        assert a["sync_variants"][0]["files"][0]["url"] == "u"

    @respx.mock
    def test_create_product(self, printful):
        respx.post("https://api.printful.com/store/products").mock(return_value=httpx.Response(
            200, json={"result": {"id": 9001, "external_id": "42"}}))

        assert printful.create_product({"sync_product": {}, "sync_variants": []}) == "9001"

    @respx.mock
    def test_list_fulfilled_orders_paginates_and_filters(self, printful):
        since = datetime(2024, 6, 1, tzinfo=timezone.utc)
        recent = int(datetime(2024, 6, 3, tzinfo=timezone.utc).timestamp())
        old = int(datetime(2024, 5, 1, tzinfo=timezone.utc).timestamp())
        page1 = {"result": [{"id": 1, "created": recent, "retail_costs": {"total": "24.99"},
                             "items": [{"id": 11, "external_id": "42-v0", "quantity": 1, "retail_price": "24.99"}]}],
                 "paging": {"total": 2, "offset": 0, "limit": 100}}
        page2 = {"result": [{"id": 2, "created": old, "items": []}],
                 "paging": {"total": 2, "offset": 1, "limit": 100}}
        route = respx.get("https://api.printful.com/orders").mock(side_effect=[
            httpx.Response(200, json=page1), httpx.Response(200, json=page2)])

        orders = printful.list_fulfilled_orders(since)

        assert route.call_count == 2
        assert "status=fulfilled" in str(route.calls[0].request.url)
        assert len(orders) == 1
        assert orders[0]["order_id"] == "1"
        assert orders[0]["items"] == [{"item_id": "11", "external_id": "42-v0", "remote_product_id": None,
                                       "quantity": 1, "price": 24.99}]
