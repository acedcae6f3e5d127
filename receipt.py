# receipt.py
"""
Receipt layout for thermal printers.

format_receipt() decides what goes on which line; a ReceiptEncoder
decides how bold/alignment/barcode/cut become bytes. EscPosEncoder is
used for real printers, PlainTextEncoder for previews and archive copies.
"""
import datetime

MIN_LINE_WIDTH = 24

# Item table: name | qty | rate | amount, one space between columns
QTY_WIDTH = 3
RATE_WIDTH = 8
AMOUNT_WIDTH = 9
GUTTER = 1
# below this the name gets its own line and the numbers go underneath
MIN_NAME_WIDTH = 8


class ReceiptEncoder:
    """Collects receipt output. The base class writes text only."""
    def __init__(self, encoding: str = "cp437"):
        self.encoding = encoding
        self._buf = bytearray()

    def initialize(self):
        pass

    def bold(self, on: bool):
        pass

    def align(self, where: str):
        pass

    def barcode(self, data: str):
        pass

    def cut(self):
        pass

    def text(self, line: str):
        self._buf += (line + "\n").encode(self.encoding, errors="replace")

    def feed(self, lines: int = 1):
        self._buf += b"\n" * lines

    def output(self) -> bytes:
        return bytes(self._buf)


class PlainTextEncoder(ReceiptEncoder):
    """No control codes; the barcode is shown as its text."""
    def __init__(self, encoding: str = "utf-8"):
        super().__init__(encoding)

    def barcode(self, data: str):
        self.text(f"*{data}*")

    def as_text(self) -> str:
        return self.output().decode(self.encoding)


class EscPosEncoder(ReceiptEncoder):
    """ESC/POS control codes for common 58/80 mm thermal printers."""
    ESC = b"\x1b"
    GS = b"\x1d"
    ALIGNMENTS = {'left': 0, 'center': 1, 'right': 2}
    CODE128 = 73

    def __init__(self, encoding: str = "cp437", barcode_height: int = 60, barcode_width: int = 2):
        super().__init__(encoding)
        self.barcode_height = barcode_height
        self.barcode_width = barcode_width

    def initialize(self):
        self._buf += self.ESC + b"@"

    def bold(self, on: bool):
        self._buf += self.ESC + b"E" + bytes([1 if on else 0])

    def align(self, where: str):
        self._buf += self.ESC + b"a" + bytes([self.ALIGNMENTS[where]])

    def feed(self, lines: int = 1):
        self._buf += self.ESC + b"d" + bytes([max(0, min(lines, 255))])

    def barcode(self, data: str):
        # code set B; the whole payload must fit in one length byte
        payload = b"{B" + data.encode("ascii", errors="replace")[:253]
        self._buf += self.GS + b"h" + bytes([self.barcode_height])
        self._buf += self.GS + b"w" + bytes([self.barcode_width])
        self._buf += self.GS + b"H" + bytes([2])
        self._buf += self.GS + b"k" + bytes([self.CODE128, len(payload)]) + payload
        self._buf += b"\n"

    def cut(self):
        self._buf += self.GS + b"V" + bytes([66, 0])


def fit(text, width: int) -> str:
    """Left-align and pad or truncate to exactly `width` columns."""
    return str(text)[:width].ljust(width)


def right(text, width: int) -> str:
    """Right-align. Never truncates: a wide number widens the line instead."""
    return str(text).rjust(width)


def center(text, width: int) -> str:
    return str(text)[:width].center(width)


def pair(label, value, width: int) -> str:
    """Label on the left, value flush right. The label gives way, the value never does."""
    value = str(value)
    label_width = width - len(value) - GUTTER
    if label_width < 1:
        return right(value, width)
    return fit(label, label_width) + " " * GUTTER + value


def item_columns(width: int):
    name_width = width - QTY_WIDTH - RATE_WIDTH - AMOUNT_WIDTH - 3 * GUTTER
    return name_width, QTY_WIDTH, RATE_WIDTH, AMOUNT_WIDTH


def _row(columns, widths):
    gap = " " * GUTTER
    name, *numbers = columns
    name_w, *number_ws = widths
    return gap.join([fit(name, name_w)] + [right(n, w) for n, w in zip(numbers, number_ws)])


def item_header(width: int) -> str:
    widths = item_columns(width)
    if widths[0] < MIN_NAME_WIDTH:
        return pair("Item", "Amount", width)
    return _row(("Item", "Qty", "Rate", "Amount"), widths)


def item_lines(item, width: int):
    """
    One row per item when every number fits its column. Otherwise the
    name gets a line of its own and "qty x rate" and the amount go below.
    """
    widths = item_columns(width)
    qty, rate, amount = str(item.quantity), _money(item.rate), _money(item.total)
    if widths[0] >= MIN_NAME_WIDTH and all(
            len(n) <= w for n, w in zip((qty, rate, amount), widths[1:])):
        return [_row((item.name, qty, rate, amount), widths)]

    detail = f"  {qty} x {rate}"
    if len(detail) + GUTTER + len(amount) <= width:
        return [fit(item.name, width), pair(detail, amount, width)]
    return [fit(item.name, width), right(detail.strip(), width), right(amount, width)]


def _money(amount, currency=""):
    return f"{currency}{amount:.2f}"


def _timestamp(sale):
    when = sale.created_at or datetime.datetime.now()
    return when.strftime("%d-%m-%Y %H:%M")


def format_receipt(sale, line_width: int = 32, encoder: ReceiptEncoder = None,
                   currency: str = "Rs.") -> bytes:
    """
    Render a SaleReceipt. Every text line is exactly `line_width` columns;
    numbers are never cut, so only a number wider than the paper can overrun.
    Returns the encoder's bytes (ESC/POS by default).
    """
    if line_width < MIN_LINE_WIDTH:
        raise ValueError(f"line width must be at least {MIN_LINE_WIDTH}, got {line_width}")
    enc = encoder if encoder is not None else EscPosEncoder()
    w = line_width
    rule = "-" * w

    enc.initialize()

    # Header
    enc.align('center')
    enc.bold(True)
    enc.text(center(sale.shop.name, w))
    enc.bold(False)
    if sale.shop.address:
        enc.text(center(sale.shop.address, w))
    if sale.shop.phone:
        enc.text(center(f"Ph: {sale.shop.phone}", w))
    enc.align('left')
    enc.text(rule)
    enc.text(pair("Invoice:", sale.invoice_number, w))
    enc.text(pair("Date:", _timestamp(sale), w))
    enc.text(rule)

    # Items
    enc.bold(True)
    enc.text(item_header(w))
    enc.bold(False)
    for item in sale.items:
        for line in item_lines(item, w):
            enc.text(line)
    enc.text(rule)

    # Totals
    enc.text(pair("Subtotal", _money(sale.subtotal, currency), w))
    enc.text(pair("Discount (%)", "-" + _money(sale.percent_discount_amount, currency), w))
    enc.text(pair("Flat discount", "-" + _money(sale.flat_discount_amount, currency), w))
    enc.bold(True)
    enc.text(pair("TOTAL", _money(sale.grand_total, currency), w))
    enc.bold(False)
    enc.text(pair("Paid by", sale.payment_mode, w))
    enc.text(rule)

    # Footer
    enc.align('center')
    enc.text(center("Thank you for shopping with us!", w))
    enc.barcode(sale.invoice_number)
    enc.align('left')
    enc.feed(3)
    enc.cut()
    return enc.output()


def receipt_text(sale, line_width: int = 32, currency: str = "Rs.") -> str:
    """The receipt as plain text, for previews and text archives."""
    enc = PlainTextEncoder()
    format_receipt(sale, line_width, enc, currency)
    return enc.as_text()
