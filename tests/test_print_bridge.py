import base64

import pytest
import websocket

from conftest import FakeWebSocket
from errors import PrinterUnavailable
from print_bridge import QzTrayBridge, ReceiptPrinter


def printers_responder(printers):
    def respond(msg):
        if msg["call"] == "printers.find":
            return {"uid": msg["uid"], "result": printers}
        return {"uid": msg["uid"], "result": None}
    return respond


def make_bridge(ws):
    return QzTrayBridge("ws://bridge.test", certificate="CERT",
                        connection_factory=lambda url, timeout: ws)


class TestQzTrayBridge:
    def test_connect_sends_certificate_first(self):
        ws = FakeWebSocket()
        bridge = make_bridge(ws)
        bridge.connect()
        assert bridge.is_connected
        assert ws.sent[0]["certificate"] == "CERT"

    def test_unreachable_bridge(self):
        def refuse(url, timeout):
            raise ConnectionRefusedError("refused")
        bridge = QzTrayBridge(connection_factory=refuse)
        with pytest.raises(PrinterUnavailable, match="QZ Tray"):
            bridge.connect()
        assert not bridge.is_connected

    def test_call_without_connection(self):
        with pytest.raises(PrinterUnavailable):
            make_bridge(FakeWebSocket()).find_printers()

    def test_find_printers(self):
        bridge = make_bridge(FakeWebSocket(printers_responder(["POS-80", "Label"])))
        bridge.connect()
        assert bridge.find_printers() == ["POS-80", "Label"]

    @pytest.mark.parametrize("result,expected", [(None, []), ("POS-80", ["POS-80"])])
    def test_find_printers_single_or_none(self, result, expected):
        bridge = make_bridge(FakeWebSocket(printers_responder(result)))
        bridge.connect()
        assert bridge.find_printers() == expected

    def test_reply_matched_by_uid(self):
        def respond(msg):
            return [{"uid": "someone-else", "result": ["Wrong"]},
                    {"uid": msg["uid"], "result": ["Right"]}]
        bridge = make_bridge(FakeWebSocket(respond))
        bridge.connect()
        assert bridge.find_printers() == ["Right"]

    def test_bridge_error(self):
        bridge = make_bridge(FakeWebSocket(lambda msg: {"uid": msg["uid"], "error": "Printer offline"}))
        bridge.connect()
        with pytest.raises(PrinterUnavailable, match="Printer offline"):
            bridge.print_raw("POS-80", b"hi")

    def test_print_raw_sends_base64(self):
        ws = FakeWebSocket()
        bridge = make_bridge(ws)
        bridge.connect()
        bridge.print_raw("POS-80", b"\x1b@hello")
        call = ws.calls("print")[0]
        assert call["params"]["printer"] == {"name": "POS-80"}
        data = call["params"]["data"][0]
        assert data["type"] == "raw" and data["format"] == "command" and data["flavor"] == "base64"
        assert base64.b64decode(data["data"]) == b"\x1b@hello"

    def test_lost_connection(self):
        ws = FakeWebSocket()
        bridge = make_bridge(ws)
        bridge.connect()

        def broken(raw):
            raise websocket.WebSocketConnectionClosedException("closed")
        ws.send = broken
        with pytest.raises(PrinterUnavailable, match="Lost connection"):
            bridge.find_printers()
        assert not bridge.is_connected

    def test_disconnect(self):
        ws = FakeWebSocket()
        bridge = make_bridge(ws)
        bridge.connect()
        bridge.disconnect()
        assert not ws.connected
        assert not bridge.is_connected


class TestReceiptPrinter:
    def make_printer(self, printers, name="POS-80"):
        ws = FakeWebSocket(printers_responder(printers))
        return ReceiptPrinter(make_bridge(ws), printer_name=name), ws

    def test_uses_configured_printer(self):
        printer, _ = self.make_printer(["Label", "POS-80"])
        assert printer.resolve_printer() == "POS-80"

    def test_falls_back_to_first_printer(self):
        printer, _ = self.make_printer(["Label"], name="Missing")
        assert printer.resolve_printer() == "Label"

    def test_no_printers(self):
        printer, _ = self.make_printer([])
        with pytest.raises(PrinterUnavailable, match="No printers"):
            printer.resolve_printer()

    def test_print_receipt_sends_escpos(self, sale):
        printer, ws = self.make_printer(["POS-80"])
        printer.print_receipt(sale)
        data = base64.b64decode(ws.calls("print")[0]["params"]["data"][0]["data"])
        assert data.startswith(b"\x1b@")
        assert b"INV-1001" in data

    def test_print_label(self):
        printer, ws = self.make_printer(["POS-80"])
        printer.print_label("SIZE 50 mm,25 mm\nPRINT 1\n")
        data = base64.b64decode(ws.calls("print")[0]["params"]["data"][0]["data"])
        assert data == b"SIZE 50 mm,25 mm\nPRINT 1\n"

    def test_from_config(self):
        config = {"printer": {"name": "TVS", "line_width": "48", "currency": "₹",
                              "bridge_url": "ws://example:9000"}}
        printer = ReceiptPrinter.from_config(config)
        assert printer.printer_name == "TVS"
        assert printer.line_width == 48
        assert printer.bridge.url == "ws://example:9000"
        assert printer.bridge.certificate is None


@pytest.mark.parametrize("width", [0, 20, "16"])
def test_too_narrow_line_width_rejected_at_startup(width):
    with pytest.raises(ValueError, match="line_width"):
        ReceiptPrinter.from_config({"printer": {"line_width": width}})
