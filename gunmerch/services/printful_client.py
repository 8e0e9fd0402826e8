from datetime import datetime, timezone

import httpx

from ..errors import ConfigurationError, ProviderError

PRINTFUL_API_BASE = "https://api.printful.com"
FRONT_FILE_TYPES = ("front", "default")
# Store types that accept product creation through the API; the rest are
# ecommerce-platform integrations (Shopify, Etsy, WooCommerce...).
API_STORE_TYPES = ("native", "api", "manual")
ORDERS_PAGE_SIZE = 100


class PrintfulClient:
    name = "printful"

    def __init__(self, api_key: str | None, store_id: str | None = None,
                 template_product_id: str | None = None, timeout: float = 60):
        self.api_key = api_key
        self.store_id = store_id
        self.template_product_id = template_product_id
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if store_id:
            self.headers["X-PF-Store-Id"] = str(store_id)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request(self, method: str, endpoint: str, *, params: dict | None = None, json: dict | None = None) -> dict:
        if not self.is_configured:
            raise ConfigurationError("Printful API key not configured")
        url = f"{PRINTFUL_API_BASE}{endpoint}"
        with httpx.Client(timeout=self.timeout) as client:
            r = client.request(method, url, headers=self.headers, params=params, json=json)
        try:
            body = r.json()
        except ValueError:
            body = {}
        if r.status_code < 200 or r.status_code >= 300:
            err = body.get("error") if isinstance(body, dict) else None
            message = (err or {}).get("message") if isinstance(err, dict) else None
            raise ProviderError(message or f"Unknown API error — body: {r.text[:500]}",
                                endpoint=endpoint, status=r.status_code)
        return body

    # --- store ---------------------------------------------------------------
    def get_store(self) -> dict:
        return self._request("GET", "/store").get("result") or {}

    def test_connection(self) -> dict:
        store = self.get_store()
        return {
            "success": True,
            "store_name": store.get("name", ""),
            "store_type": store.get("type", ""),
        }

    def can_create_products(self) -> bool:
        """API-platform stores accept product creation; platform-connected stores do not."""
        store_type = str(self.get_store().get("type") or "").lower()
        return not store_type or store_type in API_STORE_TYPES

    # --- products ------------------------------------------------------------
    def get_product(self, product_id) -> dict:
        return self._request("GET", f"/store/products/{product_id}").get("result") or {}

    def find_product_by_external_id(self, external_id: str) -> dict | None:
        try:
            result = self.get_product(f"@{external_id}")
        except ProviderError as e:
            if e.status == 404:
                return None
            raise
        sync_product = result.get("sync_product") or {}
        if not sync_product.get("id"):
            return None
        return {"id": str(sync_product["id"]), "external_id": sync_product.get("external_id"),
                "name": sync_product.get("name")}

    def get_template_product(self) -> dict:
        if not self.template_product_id:
            raise ConfigurationError("Printful template product not configured")
        return self.get_product(self.template_product_id)

    def upload_asset(self, *, url: str, file_name: str) -> dict:
        """Add a print file to the Printful file library by URL; returns id and canonical URL."""
        result = self._request("POST", "/files", json={"url": url, "filename": file_name}).get("result") or {}
        file_id = result.get("id")
        if not file_id:
            raise ProviderError("Printful did not return a file id", endpoint="/files")
        canonical = result.get("url")
        if not canonical:
            info = self._request("GET", f"/files/{file_id}").get("result") or {}
            canonical = info.get("url") or info.get("preview_url")
        return {"id": str(file_id), "url": canonical or url}

    def build_product_payload(self, template: dict, *, design: dict, file_url: str,
                              file_id: str | None = None) -> dict:
        """Clone the template's variants, swapping the new print file into the front slot.

        Variant external ids are ``"{design_id}-v{n}"`` so repeated builds are stable.
        """
        design_id = design["id"]
        new_file = {"url": file_url}
        if file_id:
            new_file = {"id": int(file_id)} if str(file_id).isdigit() else {"url": file_url}

        variants = []
        for n, v in enumerate(template.get("sync_variants") or []):
            files = []
            replaced = False
            for f in v.get("files") or []:
                ftype = f.get("type") or "default"
                if ftype == "preview":
                    continue
                if ftype in FRONT_FILE_TYPES and not replaced:
                    entry = {"type": ftype, **new_file}
                    replaced = True
                else:
                    entry = {"type": ftype}
                    if f.get("id"):
                        entry["id"] = f["id"]
                    else:
                        entry["url"] = f.get("url")
                if isinstance(f.get("position"), dict):
                    entry["position"] = f["position"]
                if f.get("options"):
                    entry["options"] = f["options"]
                files.append(entry)
            if not replaced:
                files.insert(0, {"type": "front", **new_file})

            entry = {
                "variant_id": int(v["variant_id"]),
                "external_id": f"{design_id}-v{n}",
                "retail_price": str(v.get("retail_price") or "24.99"),
                "files": files,
            }
            opts = [{"id": o["id"], "value": o["value"]} for o in (v.get("options") or []) if "id" in o]
            if opts:
                entry["options"] = opts
            variants.append(entry)

        return {
            "sync_product": {
                "name": design.get("title") or f"Design {design_id}",
                "external_id": str(design_id),
                "thumbnail": file_url,
            },
            "sync_variants": variants,
        }

    def create_product(self, payload: dict) -> str:
        result = self._request("POST", "/store/products", json=payload).get("result") or {}
        if not result.get("id"):
            raise ProviderError("Failed to create product in Printful", endpoint="/store/products")
        return str(result["id"])

    # --- orders --------------------------------------------------------------
    def list_fulfilled_orders(self, since: datetime) -> list[dict]:
        orders = []
        offset = 0
        cutoff = since.timestamp()
        while True:
            body = self._request("GET", "/orders", params={
                "status": "fulfilled", "offset": offset, "limit": ORDERS_PAGE_SIZE,
            })
            page = body.get("result") or []
            for order in page:
                created = int(order.get("created") or 0)
                if created and created < cutoff:
                    continue
                orders.append(self._normalize_order(order))
            total = int((body.get("paging") or {}).get("total") or 0)
            offset += len(page)
            if not page or offset >= total:
                break
        return orders

    @staticmethod
    def _normalize_order(order: dict) -> dict:
        created = order.get("created")
        costs = order.get("retail_costs") or order.get("costs") or {}
        return {
            "order_id": str(order.get("id")),
            "created": datetime.fromtimestamp(int(created), tz=timezone.utc).isoformat() if created else None,
            "total": costs.get("total"),
            "items": [
                {
                    "item_id": str(item.get("id")),
                    "external_id": item.get("external_id") or "",
                    "remote_product_id": None,
                    "quantity": int(item.get("quantity") or 0),
                    "price": float(item.get("retail_price") or item.get("price") or 0),
                }
                for item in (order.get("items") or [])
            ],
        }
