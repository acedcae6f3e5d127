# api_client.py
import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError as SchemaError

from errors import NetworkError
from schemas import CashSale, PaymentConfirmation, PendingUpiPayment, Product

logger = logging.getLogger("POS_Billing.API")

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 55.0
GENERIC_ERROR = "Something went wrong. Please try again."


class Session:
    """Who is signed in at this counter. Passed to the client explicitly."""
    def __init__(self, token: str = None, user: dict = None):
        self.token = token
        self.user = user or {}

    @property
    def is_authenticated(self):
        return bool(self.token)


class ApiClient:
    """
    Thin client for the storefront backend. Every call either returns a
    typed model or raises NetworkError; nothing is retried.
    """
    def __init__(self, base_url: str = DEFAULT_BASE_URL, session: Session = None,
                 timeout: float = DEFAULT_TIMEOUT, transport=None):
        self.session = session or Session()
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _headers(self):
        headers = {}
        if self.session.token:
            headers['x-admin-token'] = self.session.token
        return headers

    def _request(self, method: str, path: str, **kwargs):
        try:
            resp = self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkError("Could not reach the server. Check the connection and try again.") from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        message = body.get('message') if isinstance(body, dict) else None

        if resp.status_code == 401:
            logger.error(f"Authentication error: {message or 'Unauthorized'}")
        if resp.is_error:
            logger.error(f"{method} {path} returned {resp.status_code}: {message}")
            raise NetworkError(message or GENERIC_ERROR, resp.status_code)
        if isinstance(body, dict) and body.get('success') is False:
            logger.error(f"{method} {path} rejected: {message}")
            raise NetworkError(message or GENERIC_ERROR, resp.status_code)
        return body

    def _parse(self, model, data):
        try:
            return model.model_validate(data)
        except SchemaError as e:
            logger.error(f"Unexpected {model.__name__} response: {e}")
            raise NetworkError("Unexpected response from server.") from e

    # Products
    def search_products(self, query: str):
        """Suggestions for the search box. The server answers a list or {data: [...]}."""
        body = self._request("GET", f"/api/product/by-name/{quote(query, safe='')}")
        if isinstance(body, dict):
            body = body.get('data') or []
        if not isinstance(body, list):
            raise NetworkError("Unexpected response from server.")
        return [self._parse(Product, row) for row in body]

    def product_by_barcode(self, code: str):
        body = self._request("GET", f"/api/product/by-barcode/{quote(code, safe='')}")
        if isinstance(body, dict) and isinstance(body.get('data'), dict):
            body = body['data']
        return self._parse(Product, body)

    # Payments
    def create_offline_order(self, payload: dict):
        """
        Create a counter order. Returns CashSale when the server settled it
        and sent receipt data, PendingUpiPayment when it awaits a UPI payment.
        """
        body = self._request("POST", "/api/payment/create-offline-order", json=payload)
        if not isinstance(body, dict):
            raise NetworkError("Unexpected response from server.")
        if body.get('saleDataForReceipt'):
            sale = self._parse(CashSale, body)
            logger.info(f"Order {sale.order.id} created, invoice {sale.receipt.invoice_number}")
            return sale
        return self._parse(PendingUpiPayment, body)

    def mark_paid(self, order_id: str, payment_method: str):
        body = self._request("POST", "/api/payment/mark-paid",
                             json={'orderId': order_id, 'paymentMethod': payment_method})
        return self._parse(PaymentConfirmation, body)
