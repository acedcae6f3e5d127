# print_bridge.py
"""
Client for the local QZ Tray print bridge.

QZ Tray listens on a local WebSocket and accepts JSON calls such as
`printers.find` and `print`. Raw printer bytes are sent base64-encoded.
Any failure to reach it, or a bridge-side error, is PrinterUnavailable.
"""
import base64
import json
import logging
import time
import uuid

import websocket

from errors import PrinterUnavailable
from receipt import MIN_LINE_WIDTH, EscPosEncoder, format_receipt

logger = logging.getLogger("POS_Billing.Print")

DEFAULT_BRIDGE_URL = "ws://localhost:8182"


class PrintBridge:
    """What the counter needs from a print bridge."""
    def connect(self):
        raise NotImplementedError

    def disconnect(self):
        raise NotImplementedError

    @property
    def is_connected(self):
        raise NotImplementedError

    def find_printers(self):
        raise NotImplementedError

    def print_raw(self, printer: str, data: bytes):
        raise NotImplementedError


class QzTrayBridge(PrintBridge):
    def __init__(self, url: str = DEFAULT_BRIDGE_URL, certificate: str = None,
                 timeout: float = 5.0, connection_factory=websocket.create_connection):
        self.url = url
        self.certificate = certificate
        self.timeout = timeout
        self._connection_factory = connection_factory
        self._ws = None

    @property
    def is_connected(self):
        return self._ws is not None and self._ws.connected

    def connect(self):
        if self.is_connected:
            return
        try:
            self._ws = self._connection_factory(self.url, timeout=self.timeout)
        except (websocket.WebSocketException, OSError) as e:
            self._ws = None
            logger.error(f"Print bridge not reachable at {self.url}: {e}")
            raise PrinterUnavailable(
                "Print bridge is not running. Start QZ Tray and try again.") from e
        # the bridge expects the site certificate before any call
        self._send({'certificate': self.certificate, 'uid': _uid()})
        self._receive()
        logger.info(f"Connected to print bridge at {self.url}")

    def disconnect(self):
        if self._ws is not None:
            try:
                self._ws.close()
            finally:
                self._ws = None

    def _send(self, message: dict):
        try:
            self._ws.send(json.dumps(message))
        except (websocket.WebSocketException, OSError) as e:
            self._ws = None
            raise PrinterUnavailable(f"Lost connection to print bridge: {e}") from e

    def _receive(self):
        try:
            raw = self._ws.recv()
        except (websocket.WebSocketException, OSError) as e:
            self._ws = None
            raise PrinterUnavailable(f"Lost connection to print bridge: {e}") from e
        try:
            return json.loads(raw)
        except ValueError:
            return {}

    def call(self, method: str, params: dict = None):
        """Send one call and wait for the reply carrying the same uid."""
        if not self.is_connected:
            raise PrinterUnavailable("Print bridge is not connected.")
        uid = _uid()
        self._send({
            'call': method,
            'params': params or {},
            'uid': uid,
            'timestamp': int(time.time() * 1000),
            'position': {'x': 0, 'y': 0},
            'signature': "",
        })
        while True:
            reply = self._receive()
            if reply.get('uid') != uid:
                continue
            if reply.get('error'):
                raise PrinterUnavailable(f"Print bridge error: {reply['error']}")
            return reply.get('result')

    def find_printers(self):
        found = self.call("printers.find")
        if found is None:
            return []
        if isinstance(found, str):
            return [found]
        return list(found)

    def print_raw(self, printer: str, data: bytes):
        self.call("print", {
            'printer': {'name': printer},
            'options': {'copies': 1},
            'data': [{
                'type': 'raw',
                'format': 'command',
                'flavor': 'base64',
                'data': base64.b64encode(data).decode("ascii"),
            }],
        })


def _uid():
    return uuid.uuid4().hex[:8]


class ReceiptPrinter:
    """Formats receipts and labels and sends them through a bridge."""
    def __init__(self, bridge: PrintBridge, printer_name: str = "", line_width: int = 32,
                 encoding: str = "cp437", currency: str = "Rs."):
        if line_width < MIN_LINE_WIDTH:
            raise ValueError(f"printer line_width must be at least {MIN_LINE_WIDTH}, got {line_width}")
        self.bridge = bridge
        self.printer_name = printer_name
        self.line_width = line_width
        self.encoding = encoding
        self.currency = currency

    @classmethod
    def from_config(cls, config: dict, bridge: PrintBridge = None):
        cfg = config.get('printer', {})
        if bridge is None:
            bridge = QzTrayBridge(cfg.get('bridge_url', DEFAULT_BRIDGE_URL),
                                  cfg.get('certificate') or None)
        return cls(bridge,
                   printer_name=cfg.get('name', ""),
                   line_width=int(cfg.get('line_width', 32)),
                   encoding=cfg.get('encoding', "cp437"),
                   currency=cfg.get('currency', "Rs."))

    def resolve_printer(self):
        """Configured printer if the bridge knows it, else the first one found."""
        self.bridge.connect()
        found = self.bridge.find_printers()
        if self.printer_name and self.printer_name in found:
            return self.printer_name
        if not found:
            raise PrinterUnavailable("No printers found. Check the printer and QZ Tray.")
        if self.printer_name:
            logger.warning(f"Printer '{self.printer_name}' not found, using '{found[0]}'")
        return found[0]

    def print_receipt(self, sale):
        data = format_receipt(sale, self.line_width, EscPosEncoder(self.encoding), self.currency)
        printer = self.resolve_printer()
        self.bridge.print_raw(printer, data)
        logger.info(f"Receipt {sale.invoice_number} sent to {printer}")

    def print_label(self, tspl: str):
        printer = self.resolve_printer()
        self.bridge.print_raw(printer, tspl.encode("ascii", errors="replace"))
        logger.info(f"Label sent to {printer}")
