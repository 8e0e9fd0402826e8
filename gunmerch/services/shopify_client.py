from datetime import datetime
from urllib.parse import urlencode

import httpx

from ..errors import ConfigurationError, ProviderError

SKU_PREFIX = "GMA-"
EXTERNAL_TAG_PREFIX = "gunmerch-ext-"


def external_id_from_sku(sku: str | None) -> str:
    """``GMA-42-v1`` -> ``42-v1``."""
    sku = (sku or "").strip()
    return sku[len(SKU_PREFIX):] if sku.upper().startswith(SKU_PREFIX) else ""


def _next_page_info(link: str | None) -> str | None:
    # link format: <...page_info=XYZ>; rel="next"
    if not link or 'rel="next"' not in link:
        return None
    for part in link.split(","):
        if 'rel="next"' in part and "page_info=" in part:
            start = part.find("page_info=") + len("page_info=")
            end = part.find(">", start)
            return part[start:end].split("&")[0]
    return None


class ShopifyClient:
    name = "shopify"

    def __init__(self, store_domain: str | None, admin_token: str | None, api_version: str = "2024-10",
                 template_product_id: str | None = None, timeout: float = 60):
        self.domain = (store_domain or "").replace("https://", "").replace("http://", "").strip("/")
        self.token = admin_token
        self.api_version = api_version
        self.template_product_id = template_product_id
        self.timeout = timeout
        self.base = f"https://{self.domain}/admin/api/{self.api_version}"
        self.headers = {
            "X-Shopify-Access-Token": self.token or "",
            "Content-Type": "application/json",
        }

    @property
    def is_configured(self) -> bool:
        return bool(self.domain and self.token)

    def _check(self):
        if not self.is_configured:
            raise ConfigurationError("Shopify not configured")

    def _raise_for_status(self, r: httpx.Response, endpoint: str):
        if 200 <= r.status_code < 300:
            return
        try:
            errors = r.json().get("errors")
        except ValueError:
            errors = None
        raise ProviderError(str(errors) if errors else f"Unknown API error — body: {r.text[:500]}",
                            endpoint=endpoint, status=r.status_code)

    def _get(self, endpoint: str, params: dict | None = None) -> dict:
        self._check()
        with httpx.Client(timeout=self.timeout) as client:
            r = client.get(f"{self.base}/{endpoint}", headers=self.headers, params=params)
            self._raise_for_status(r, endpoint)
            return r.json()

    def _graphql(self, query: str, variables: dict) -> dict:
        self._check()
        url = f"{self.base}/graphql.json"
        payload = {"query": query, "variables": variables}
        with httpx.Client(timeout=self.timeout) as client:
            r = client.post(url, headers=self.headers, json=payload)
            self._raise_for_status(r, "graphql.json")
            body = r.json()
            if body.get("errors"):
                messages = ", ".join(e.get("message", "Unknown GraphQL error") for e in body["errors"])
                raise ProviderError(messages, endpoint="graphql.json")
            return body.get("data") or {}

    def test_connection(self) -> dict:
        shop = self._get("shop.json").get("shop") or {}
        return {"success": True, "store_name": shop.get("name", ""), "store_email": shop.get("email", "")}

    def can_create_products(self) -> bool:
        return self.is_configured

    def get_product(self, product_id: str) -> dict:
        """Fetch a single product by ID from Shopify (returns product dict or raises)."""
        return self._get(f"products/{product_id}.json").get("product", {})

    def find_product_by_external_id(self, external_id: str) -> dict | None:
        query = """
        query ProductByExternalTag($query: String!) {
          products(first: 1, query: $query) {
            nodes { id legacyResourceId title }
          }
        }
        """
        data = self._graphql(query, {"query": f"tag:'{EXTERNAL_TAG_PREFIX}{external_id}'"})
        nodes = ((data.get("products") or {}).get("nodes")) or []
        if not nodes:
            return None
        node = nodes[0]
        return {"id": str(node.get("legacyResourceId") or node.get("id")), "external_id": str(external_id),
                "name": node.get("title")}

    def get_template_product(self) -> dict:
        if not self.template_product_id:
            raise ConfigurationError("Shopify template product not configured")
        return self.get_product(self.template_product_id)

    def upload_asset(self, *, url: str, file_name: str) -> dict:
        """Register the artwork in Shopify Files and return its id and CDN URL when ready."""
        mutation = """
        mutation UploadDesignFile($files: [FileCreateInput!]!) {
          fileCreate(files: $files) {
            files {
              id
              ... on MediaImage { image { url } }
            }
            userErrors { field message }
          }
        }
        """
        data = self._graphql(mutation, {"files": [{"originalSource": url, "contentType": "IMAGE", "alt": file_name}]})
        payload = data.get("fileCreate") or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            raise ProviderError("; ".join(e.get("message", "Unknown user error") for e in user_errors),
                                endpoint="fileCreate")
        files = payload.get("files") or []
        if not files:
            raise ProviderError("Shopify did not return the uploaded file", endpoint="fileCreate")
        image = files[0].get("image") or {}
        return {"id": files[0].get("id"), "url": image.get("url") or url}

    def build_product_payload(self, template: dict, *, design: dict, file_url: str,
                              file_id: str | None = None) -> dict:
        design_id = design["id"]
        tags = [t.strip() for t in str(template.get("tags") or "").split(",") if t.strip()]
        tags += ["gunmerch-ai", f"{EXTERNAL_TAG_PREFIX}{design_id}"]

        variants = []
        for n, v in enumerate(template.get("variants") or []):
            entry = {
                "price": v.get("price"),
                "sku": f"{SKU_PREFIX}{design_id}-v{n}",
                "inventory_management": None,
                "fulfillment_service": v.get("fulfillment_service") or "manual",
                "requires_shipping": v.get("requires_shipping", True),
            }
            for i in range(1, 4):
                if v.get(f"option{i}") is not None:
                    entry[f"option{i}"] = v[f"option{i}"]
            if v.get("weight") is not None:
                entry["weight"] = v["weight"]
                entry["weight_unit"] = v.get("weight_unit") or "g"
            variants.append(entry)

        title = design.get("title") or f"Design {design_id}"
        return {
            "title": title,
            "body_html": f"<p>{design.get('concept') or ''}</p>",
            "product_type": template.get("product_type") or "T-Shirt",
            "vendor": template.get("vendor") or "",
            "tags": ", ".join(dict.fromkeys(tags)),
            "options": [{"name": o.get("name"), "values": o.get("values") or []}
                        for o in (template.get("options") or [])],
            "variants": variants,
            "images": [{"src": file_url, "alt": title}],
            "status": "active",
        }

    def create_product(self, payload: dict) -> str:
        self._check()
        with httpx.Client(timeout=self.timeout) as client:
            r = client.post(f"{self.base}/products.json", headers=self.headers, json={"product": payload})
            self._raise_for_status(r, "products.json")
            product = r.json().get("product") or {}
        if not product.get("id"):
            raise ProviderError("Failed to create product in Shopify", endpoint="products.json")
        return str(product["id"])

    def list_fulfilled_orders(self, since: datetime) -> list[dict]:
        """Fetch shipped orders created after ``since`` via REST pagination using page_info."""
        self._check()
        params = {"status": "any", "fulfillment_status": "shipped",
                  "created_at_min": since.isoformat(), "limit": 250}
        orders = []
        next_page_info = None
        with httpx.Client(timeout=self.timeout) as client:
            while True:
                query = params if not next_page_info else {"limit": params["limit"], "page_info": next_page_info}
                r = client.get(f"{self.base}/orders.json?{urlencode(query)}", headers=self.headers)
                self._raise_for_status(r, "orders.json")
                orders.extend(self._normalize_order(o) for o in r.json().get("orders", []))
                next_page_info = _next_page_info(r.headers.get("Link"))
                if not next_page_info:
                    break
        return orders

    @staticmethod
    def _normalize_order(order: dict) -> dict:
        return {
            "order_id": str(order.get("id")),
            "created": order.get("created_at"),
            "total": order.get("total_price"),
            "items": [
                {
                    "item_id": str(li.get("id")),
                    "external_id": external_id_from_sku(li.get("sku")),
                    "remote_product_id": str(li["product_id"]) if li.get("product_id") else None,
                    "quantity": int(li.get("quantity") or 0),
                    "price": float(li.get("price") or 0),
                }
                for li in (order.get("line_items") or [])
            ],
        }
