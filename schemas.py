# schemas.py
"""
Typed shapes of the API responses the billing counter consumes.

The backend speaks camelCase and is not always consistent about field
names, so each field lists the aliases seen in practice. Unknown fields
are ignored.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class Variant(ApiModel):
    """A colour/size option of a product."""
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    color: Optional[str] = None
    size: Optional[str] = None

    @property
    def label(self):
        return " / ".join(p for p in (self.color, self.size) if p) or self.id


class Product(ApiModel):
    """A catalogue product as returned by search and barcode lookup."""
    id: str = Field(validation_alias=AliasChoices("_id", "id", "productId"))
    name: str = "Product"
    price: Decimal = Decimal("0")
    discount: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("discount", "discountPercent"),
    )
    barcode: str = ""
    barcodes: List[str] = Field(default_factory=list)
    sku: str = ""
    variants: List[Variant] = Field(
        default_factory=list,
        validation_alias=AliasChoices("variants", "colors"),
    )

    @property
    def primary_barcode(self):
        if self.barcode:
            return self.barcode
        if self.barcodes:
            return self.barcodes[0]
        return self.sku


class ShopInfo(ApiModel):
    name: str = ""
    address: str = ""
    phone: str = ""


class ReceiptItem(ApiModel):
    name: str
    quantity: int = Field(validation_alias=AliasChoices("quantity", "qty"))
    rate: Decimal = Field(validation_alias=AliasChoices("rate", "price"))
    total: Decimal = Field(validation_alias=AliasChoices("total", "lineTotal", "amount"))


class SaleReceipt(ApiModel):
    """The server's `saleDataForReceipt` block."""
    invoice_number: str = Field(
        validation_alias=AliasChoices("invoiceNumber", "invoiceNo", "invoice_number"))
    shop: ShopInfo = Field(default_factory=ShopInfo)
    items: List[ReceiptItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    percent_discount_amount: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices(
            "discountAmount", "percentDiscountAmount", "percent_discount_amount"),
    )
    flat_discount_amount: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices(
            "flatDiscount", "flatDiscountAmount", "flat_discount_amount"),
    )
    grand_total: Decimal = Field(
        validation_alias=AliasChoices("grandTotal", "total", "grand_total"))
    payment_mode: str = Field(
        default="Cash",
        validation_alias=AliasChoices("paymentMode", "paymentMethod", "payment_mode"),
    )
    created_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "date", "created_at"),
    )


class OrderRef(ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id", "orderId"))
    status: str = ""


class CashSale(ApiModel):
    """Order created and settled at once; the receipt comes back immediately."""
    order: OrderRef
    receipt: SaleReceipt = Field(validation_alias=AliasChoices("saleDataForReceipt", "receipt"))
    message: str = ""


class PendingUpiPayment(ApiModel):
    """Order created, waiting for the customer to pay by UPI."""
    order: OrderRef
    qr_code: Optional[str] = Field(default=None, validation_alias=AliasChoices("qrCode", "qr_code"))
    upi_uri: Optional[str] = Field(default=None, validation_alias=AliasChoices("upiUri", "upi_uri"))
    amount: Optional[Decimal] = None
    message: str = ""


class PaymentConfirmation(ApiModel):
    receipt: SaleReceipt = Field(validation_alias=AliasChoices("saleDataForReceipt", "receipt"))
    message: str = ""
