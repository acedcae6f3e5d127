# models.py
import logging
from enum import Enum
from typing import NamedTuple

import pricing
from errors import ValidationError, PrinterUnavailable
from schemas import PendingUpiPayment, Product

logger = logging.getLogger("POS_Billing.Counter")


class PaymentMode(str, Enum):
    CASH = "Cash"
    UPI = "UPI"


class CartLine:
    """One product entry in the cart."""
    def __init__(self, product_id: str, name: str, base_price, discount_percent=0,
                 quantity: int = 1, selected_variant_id: str = None):
        _check_quantity(quantity)
        self.product_id = product_id
        self.name = name
        self.base_price = pricing.to_decimal(base_price)
        # clamped once here; the per-line resolver trusts this
        self.discount_percent = pricing.clamp_percent(discount_percent)
        self.quantity = quantity
        self.selected_variant_id = selected_variant_id

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1, variant_id: str = None):
        return cls(product.id, product.name, product.price, product.discount,
                   quantity, variant_id)

    @property
    def unit_price(self):
        return pricing.unit_price(self.base_price, self.discount_percent)

    @property
    def line_total(self):
        return pricing.line_total(self.base_price, self.discount_percent, self.quantity)

    def to_payload(self):
        return {
            'productId': self.product_id,
            'name': self.name,
            'price': float(self.base_price),
            'quantity': self.quantity,
            'discount': float(self.discount_percent),
            'variantId': self.selected_variant_id,
        }


def _check_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Quantity must be a whole number of at least 1.")


class Cart:
    """Ordered cart lines, one per product."""
    def __init__(self):
        self.lines = []

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)

    @property
    def is_empty(self):
        return not self.lines

    def add(self, product: Product, qty: int = 1, variant_id: str = None):
        """Add a product; a product already in the cart just gains quantity."""
        _check_quantity(qty)
        for line in self.lines:
            if line.product_id == product.id:
                line.quantity += qty
                return line
        line = CartLine.from_product(product, qty, variant_id)
        self.lines.append(line)
        return line

    def find(self, product_id: str):
        for line in self.lines:
            if line.product_id == product_id:
                return line
        raise ValidationError(f"Product {product_id} is not in the cart.")

    def set_quantity(self, product_id: str, qty: int):
        _check_quantity(qty)
        line = self.find(product_id)
        line.quantity = qty
        return line

    def select_variant(self, product_id: str, variant_id: str):
        line = self.find(product_id)
        line.selected_variant_id = variant_id
        return line

    def remove(self, product_id: str):
        self.lines = [ln for ln in self.lines if ln.product_id != product_id]

    def clear(self):
        self.lines = []

    @property
    def total_quantity(self):
        return sum(ln.quantity for ln in self.lines)

    @property
    def subtotal(self):
        return pricing.subtotal(self.lines)


class Customer:
    """Optional walk-in customer details attached to an order."""
    def __init__(self, name: str = "", phone: str = ""):
        self.name = (name or "").strip()
        self.phone = (phone or "").strip()

    def validate(self):
        if not self.name:
            raise ValidationError("Customer name is required.")
        if self.phone and not (self.phone.isdigit() and len(self.phone) == 10):
            raise ValidationError("Customer phone must be 10 digits.")

    def to_payload(self):
        return {'name': self.name, 'phone': self.phone}


class DerivedTotals(NamedTuple):
    subtotal: object
    payable_total: object
    change_due: object


class SaleResult:
    """A completed sale and what happened when its receipt was printed."""
    def __init__(self, receipt, printed: bool, print_error: str = None):
        self.receipt = receipt
        self.printed = printed
        self.print_error = print_error


class BillingCounter:
    """
    Coordinates one counter session: cart editing, payment and receipt
    printing. The order lives on the server; nothing is stored here
    beyond the receipts of the current shift.
    """
    def __init__(self, api, printer=None, config=None):
        self.api = api
        self.printer = printer
        self.config = config or {}
        self.cart = Cart()
        self.completed = []
        self.last_receipt = None
        self.pending_upi = None
        self.reset()

    def reset(self):
        """Start a fresh cart (after a sale or an explicit cancel)."""
        self.cart.clear()
        self.payment_mode = PaymentMode.CASH
        self.flat_discount = pricing.ZERO
        self.order_discount_percent = pricing.ZERO
        self.cash_tendered = ""
        self.customer = None
        self.pending_upi = None

    # Cart editing
    def scan_and_add(self, barcode: str, qty: int = 1):
        """
        Look a barcode up on the server and add the product.
        Raises ValidationError on a blank barcode, NetworkError if not found.
        """
        barcode = (barcode or "").strip()
        if not barcode:
            raise ValidationError("Enter a barcode or SKU.")
        product = self.api.product_by_barcode(barcode)
        line = self.cart.add(product, qty)
        logger.info(f"Added {qty} x {product.name} ({product.id})")
        return line

    def add_product(self, product: Product, qty: int = 1, variant_id: str = None):
        line = self.cart.add(product, qty, variant_id)
        logger.info(f"Added {qty} x {product.name} ({product.id})")
        return line

    def set_payment_mode(self, mode):
        try:
            self.payment_mode = PaymentMode(mode)
        except ValueError:
            raise ValidationError(f"Unknown payment mode: {mode}")

    def set_flat_discount(self, amount):
        value = pricing.parse_amount(amount)
        if value < 0:
            raise ValidationError("Flat discount cannot be negative.")
        self.flat_discount = value

    def set_order_discount_percent(self, percent):
        self.order_discount_percent = pricing.clamp_percent(pricing.parse_amount(percent))

    def set_cash_tendered(self, value):
        # kept raw: the field is typed live and may be half-entered
        self.cash_tendered = value

    def set_customer(self, name: str = "", phone: str = ""):
        if not (name or phone):
            self.customer = None
            return
        customer = Customer(name, phone)
        customer.validate()
        self.customer = customer

    # Derived values
    def totals(self):
        sub = self.cart.subtotal
        payable = pricing.payable_total(sub, self.flat_discount, self.order_discount_percent)
        if self.payment_mode == PaymentMode.CASH:
            change = pricing.change_due(self.cash_tendered, payable)
        else:
            change = pricing.round2(0)
        return DerivedTotals(sub, payable, change)

    def build_order_payload(self):
        totals = self.totals()
        payload = {
            'items': [ln.to_payload() for ln in self.cart],
            'paymentMode': self.payment_mode.value,
            'flatDiscount': float(self.flat_discount),
            'discountPercent': float(self.order_discount_percent),
            'subtotal': float(totals.subtotal),
            'total': float(totals.payable_total),
        }
        if self.customer is not None:
            payload['customer'] = self.customer.to_payload()
        return payload

    # Payment
    def pay(self):
        """
        Send the cart to the server as an offline order.

        Cash: the sale completes and a SaleResult is returned.
        UPI: the PendingUpiPayment is returned and kept until
        confirm_upi() is called.
        """
        if self.pending_upi is not None:
            raise ValidationError(
                f"Order {self.pending_upi.order.id} is waiting for UPI payment. "
                "Confirm or cancel it before taking a new payment.")
        if self.cart.is_empty:
            raise ValidationError("Cart is empty. Add products before paying.")
        payload = self.build_order_payload()
        logger.info(f"Creating {self.payment_mode.value} order for {len(self.cart)} line(s), "
                    f"total {payload['total']:.2f}")
        result = self.api.create_offline_order(payload)
        if isinstance(result, PendingUpiPayment):
            self.pending_upi = result
            logger.info(f"Order {result.order.id} waiting for UPI payment")
            return result
        return self._complete(result.receipt)

    def confirm_upi(self):
        """Mark the pending UPI order as paid and complete the sale."""
        if self.pending_upi is None:
            raise ValidationError("There is no UPI payment waiting for confirmation.")
        order_id = self.pending_upi.order.id
        confirmation = self.api.mark_paid(order_id, PaymentMode.UPI.value)
        logger.info(f"Order {order_id} marked paid")
        return self._complete(confirmation.receipt)

    def cancel_pending_upi(self):
        """
        Stop waiting for the UPI payment. The cart is kept so the sale can
        be taken another way; the order stays unpaid on the server.
        """
        if self.pending_upi is None:
            raise ValidationError("There is no UPI payment waiting for confirmation.")
        order_id = self.pending_upi.order.id
        self.pending_upi = None
        logger.warning(f"UPI payment for order {order_id} abandoned; order left unpaid")
        return order_id

    def _complete(self, receipt):
        self.completed.append(receipt)
        self.last_receipt = receipt
        self.reset()
        try:
            self.print_receipt(receipt)
        except PrinterUnavailable as e:
            # the order is already recorded; printing is best-effort
            logger.warning(f"Receipt for {receipt.invoice_number} not printed: {e}")
            return SaleResult(receipt, printed=False, print_error=str(e))
        return SaleResult(receipt, printed=True)

    def print_receipt(self, receipt):
        if self.printer is None:
            raise PrinterUnavailable("No receipt printer is configured.")
        self.printer.print_receipt(receipt)

    def reprint_last(self):
        if self.last_receipt is None:
            raise ValidationError("No completed sale to re-print.")
        self.print_receipt(self.last_receipt)
        return self.last_receipt
