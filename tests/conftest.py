"""Shared fixtures and fakes for the billing counter tests."""
import json

import pytest

from errors import PrinterUnavailable
from schemas import CashSale, PaymentConfirmation, PendingUpiPayment, Product, SaleReceipt


RECEIPT_DATA = {
    "invoiceNumber": "INV-1001",
    "shop": {"name": "Corner Store", "address": "12 Market Road", "phone": "9876543210"},
    "items": [
        {"name": "Cotton Shirt", "quantity": 2, "rate": 200, "total": 400},
        {"name": "Socks", "qty": 1, "price": 50, "lineTotal": 50},
    ],
    "subtotal": 450,
    "discountAmount": 40,
    "flatDiscount": 50,
    "grandTotal": 360,
    "paymentMode": "Cash",
    "createdAt": "2024-03-05T14:30:00",
}


@pytest.fixture
def receipt_data():
    return json.loads(json.dumps(RECEIPT_DATA))


@pytest.fixture
def sale(receipt_data):
    return SaleReceipt.model_validate(receipt_data)


def make_product(id="p1", name="Cotton Shirt", price=200, discount=0, **extra):
    return Product.model_validate({"_id": id, "name": name, "price": price,
                                   "discount": discount, **extra})


@pytest.fixture
def shirt():
    return make_product("p1", "Cotton Shirt", 200, 0, barcode="8901234567890")


@pytest.fixture
def socks():
    return make_product("p2", "Socks", 100, 50, sku="SOCK-01")


class FakeApi:
    """Records calls and answers with canned responses."""
    def __init__(self, sale_receipt=None, upi=False, products=None):
        self.calls = []
        self.sale_receipt = sale_receipt or SaleReceipt.model_validate(RECEIPT_DATA)
        self.upi = upi
        self.products = products or {}
        self.search_results = []
        self.search_error = None

    def product_by_barcode(self, code):
        self.calls.append(("product_by_barcode", code))
        return self.products[code]

    def search_products(self, query):
        self.calls.append(("search_products", query))
        if self.search_error is not None:
            raise self.search_error
        return self.search_results

    def create_offline_order(self, payload):
        self.calls.append(("create_offline_order", payload))
        if self.upi:
            return PendingUpiPayment.model_validate({
                "order": {"_id": "ord-9", "status": "pending"},
                "upiUri": "upi://pay?pa=shop@upi&am=360.00",
                "amount": payload["total"],
            })
        return CashSale.model_validate({
            "order": {"_id": "ord-1", "status": "paid"},
            "saleDataForReceipt": self.sale_receipt.model_dump(),
        })

    def mark_paid(self, order_id, payment_method):
        self.calls.append(("mark_paid", order_id, payment_method))
        return PaymentConfirmation.model_validate({"receipt": self.sale_receipt.model_dump()})


class FakePrinter:
    def __init__(self, fail=False):
        self.fail = fail
        self.printed = []
        self.labels = []

    def print_receipt(self, sale):
        if self.fail:
            raise PrinterUnavailable("Print bridge is not running.")
        self.printed.append(sale)

    def print_label(self, tspl):
        self.labels.append(tspl)


class FakeTimer:
    """Stands in for threading.Timer; fire() runs the callback synchronously."""
    created = []

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.started = False
        self.cancelled = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


@pytest.fixture
def fake_timer():
    FakeTimer.created = []
    return FakeTimer


class FakeWebSocket:
    """
    Minimal QZ Tray stand-in. `responder(message)` returns the reply dict
    for each call; the certificate handshake is answered automatically.
    """
    def __init__(self, responder=None):
        self.connected = True
        self.sent = []
        self._inbox = []
        self.responder = responder or (lambda msg: {"uid": msg["uid"], "result": None})

    def send(self, raw):
        msg = json.loads(raw)
        self.sent.append(msg)
        if "call" in msg:
            replies = self.responder(msg)
            if isinstance(replies, dict):
                replies = [replies]
            self._inbox.extend(json.dumps(r) for r in replies)
        else:
            self._inbox.append(json.dumps({"uid": msg["uid"]}))

    def recv(self):
        return self._inbox.pop(0)

    def close(self):
        self.connected = False

    def calls(self, method):
        return [m for m in self.sent if m.get("call") == method]

