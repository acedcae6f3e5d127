# ui.py
import tkinter as tk
import ttkbootstrap as ttk
from tkinter import filedialog, messagebox, simpledialog
import datetime
import logging
import os
import threading

from reportlab.platypus.doctemplate import LayoutError

from errors import ValidationError, NetworkError, PrinterUnavailable
from labels import LabelSettings, build_label
from models import BillingCounter, PaymentMode
from pricing import discount_breakdown, discounted_mrp, format_money
from schemas import PendingUpiPayment
from search import ProductSearch
from utils import (archive_receipt, export_report, export_reports, load_transactions,
                   shift_sales_frame, shift_summary, transactions_report)

logger = logging.getLogger("POS_Billing.UI")

BOOTSTRAP_THEMES = {
    "dark": "darkly",
    "light": "cosmo",
    "default": "cosmo"
}


class BillingUI:
    def __init__(self, counter: BillingCounter, config=None):
        self.counter = counter
        self.config = config or {}
        ui_cfg = self.config.get("ui", {})
        self.currency = ui_cfg.get("currency", "₹")

        theme = BOOTSTRAP_THEMES.get(ui_cfg.get("theme", "default"), "cosmo")
        self.root = ttk.Window(themename=theme)
        self.root.title("Billing Counter")
        self.root.geometry("1100x720")
        self.root.minsize(900, 600)

        # Input variables
        self.barcode_var = tk.StringVar()
        self.qty_var = tk.IntVar(value=1)
        self.search_var = tk.StringVar()
        self.flat_var = tk.StringVar(value="0")
        self.percent_var = tk.StringVar(value="0")
        self.tendered_var = tk.StringVar()
        self.payment_var = tk.StringVar(value=PaymentMode.CASH.value)
        self.customer_name_var = tk.StringVar()
        self.customer_phone_var = tk.StringVar()

        # Derived displays
        self.items_var = tk.StringVar()
        self.subtotal_var = tk.StringVar()
        self.savings_var = tk.StringVar()
        self.total_var = tk.StringVar()
        self.change_var = tk.StringVar()
        self.upi_var = tk.StringVar()

        # (widget, state when unlocked); locked while a request runs or UPI is pending
        self._inputs = []
        self._busy = False
        self._suggestions = []
        debounce = self.config.get("search", {}).get("debounce_ms", 300) / 1000.0
        self.search = ProductSearch(counter.api, self._on_search_results, delay=debounce)

        self._build_gui()
        self._bind_live_fields()
        self._refresh()

    def _build_gui(self):
        """Build the billing window"""
        self._create_menu_bar()
        self._create_status_bar()

        main_frame = ttk.Frame(self.root)
        main_frame.pack(expand=True, fill='both', padx=10, pady=10)

        left = ttk.Frame(main_frame)
        left.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5)
        right = ttk.Frame(main_frame)
        right.pack(side=tk.RIGHT, fill=tk.Y, padx=5, pady=5, ipadx=10)

        # Barcode entry
        scan_frame = ttk.LabelFrame(left, text="Scan Product", bootstyle="primary")
        scan_frame.pack(fill=tk.X, padx=5, pady=5)

        ttk.Label(scan_frame, text="Barcode / SKU:").grid(row=0, column=0, padx=5, pady=5, sticky=tk.W)
        barcode_entry = ttk.Entry(scan_frame, textvariable=self.barcode_var, width=24)
        barcode_entry.grid(row=0, column=1, padx=5, pady=5)
        barcode_entry.bind('<Return>', lambda e: self._add_by_barcode())
        barcode_entry.focus_set()

        ttk.Label(scan_frame, text="Qty:").grid(row=0, column=2, padx=5, pady=5, sticky=tk.W)
        qty_entry = ttk.Entry(scan_frame, textvariable=self.qty_var, width=5)
        qty_entry.grid(row=0, column=3, padx=5, pady=5)
        add_btn = ttk.Button(scan_frame, text="Add", command=self._add_by_barcode, bootstyle="success")
        add_btn.grid(row=0, column=4, padx=5, pady=5)
        self._inputs += [(barcode_entry, tk.NORMAL), (qty_entry, tk.NORMAL), (add_btn, tk.NORMAL)]

        # Search with suggestions
        search_frame = ttk.LabelFrame(left, text="Search Products", bootstyle="primary")
        search_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Entry(search_frame, textvariable=self.search_var).pack(fill=tk.X, padx=5, pady=5)
        self.suggestion_list = tk.Listbox(search_frame, height=5)
        self.suggestion_list.pack(fill=tk.X, padx=5, pady=(0, 5))
        self.suggestion_list.bind("<Double-1>", lambda e: self._add_suggestion())
        self.suggestion_list.bind("<Return>", lambda e: self._add_suggestion())

        # Cart table
        cart_frame = ttk.LabelFrame(left, text="Cart", bootstyle="primary")
        cart_frame.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        cart_scroll = ttk.Scrollbar(cart_frame)
        cart_scroll.pack(side=tk.RIGHT, fill=tk.Y)

        cols = ("Product", "Qty", "Rate", "Disc %", "Amount")
        self.cart_tv = ttk.Treeview(cart_frame, columns=cols, show='headings', height=10,
                                    yscrollcommand=cart_scroll.set)
        self.cart_tv.column("Product", width=260, anchor=tk.W)
        self.cart_tv.column("Qty", width=60, anchor=tk.CENTER)
        self.cart_tv.column("Rate", width=90, anchor=tk.E)
        self.cart_tv.column("Disc %", width=70, anchor=tk.E)
        self.cart_tv.column("Amount", width=100, anchor=tk.E)
        for c in cols:
            self.cart_tv.heading(c, text=c)
        self.cart_tv.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        cart_scroll.config(command=self.cart_tv.yview)
        self.cart_tv.bind("<Double-1>", lambda e: self._edit_quantity())

        cart_btn_frame = ttk.Frame(left)
        cart_btn_frame.pack(fill=tk.X, padx=5, pady=5)
        for text, command, style in (("Edit Quantity", self._edit_quantity, "primary"),
                                     ("Remove Selected", self._remove_selected, "danger"),
                                     ("Clear Cart", self._clear_cart, "warning")):
            btn = ttk.Button(cart_btn_frame, text=text, command=command, bootstyle=style)
            btn.pack(side=tk.LEFT, padx=5)
            self._inputs.append((btn, tk.NORMAL))
        self.label_btn = ttk.Button(cart_btn_frame, text="Print Label", command=self._print_label,
                                    bootstyle="secondary")
        self.label_btn.pack(side=tk.RIGHT, padx=5)
        ttk.Label(cart_btn_frame, textvariable=self.items_var).pack(side=tk.RIGHT, padx=10)

        # Checkout panel
        checkout = ttk.LabelFrame(right, text="Checkout", bootstyle="primary")
        checkout.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        row = 0
        ttk.Label(checkout, text="Subtotal:").grid(row=row, column=0, padx=5, pady=8, sticky=tk.W)
        ttk.Label(checkout, textvariable=self.subtotal_var, font=("Arial", 12)).grid(
            row=row, column=1, padx=5, pady=8, sticky=tk.E)

        row += 1
        ttk.Label(checkout, text=f"Flat discount ({self.currency}):").grid(row=row, column=0, padx=5, pady=5, sticky=tk.W)
        flat_entry = ttk.Entry(checkout, textvariable=self.flat_var, width=10)
        flat_entry.grid(row=row, column=1, padx=5, pady=5, sticky=tk.E)

        row += 1
        ttk.Label(checkout, text="Discount (%):").grid(row=row, column=0, padx=5, pady=5, sticky=tk.W)
        percent_entry = ttk.Entry(checkout, textvariable=self.percent_var, width=10)
        percent_entry.grid(row=row, column=1, padx=5, pady=5, sticky=tk.E)

        row += 1
        ttk.Label(checkout, textvariable=self.savings_var, bootstyle="success").grid(
            row=row, column=0, columnspan=2, padx=5, pady=2, sticky=tk.E)

        row += 1
        ttk.Separator(checkout, orient=tk.HORIZONTAL).grid(row=row, column=0, columnspan=2, sticky=tk.EW, padx=5, pady=5)

        row += 1
        ttk.Label(checkout, text="TOTAL:", font=("Arial", 12, "bold")).grid(row=row, column=0, padx=5, pady=8, sticky=tk.W)
        ttk.Label(checkout, textvariable=self.total_var, font=("Arial", 14, "bold")).grid(
            row=row, column=1, padx=5, pady=8, sticky=tk.E)

        row += 1
        ttk.Label(checkout, text="Payment Mode:").grid(row=row, column=0, padx=5, pady=5, sticky=tk.W)
        payment_combo = ttk.Combobox(checkout, textvariable=self.payment_var, state="readonly", width=10)
        payment_combo["values"] = tuple(m.value for m in PaymentMode)
        payment_combo.grid(row=row, column=1, padx=5, pady=5, sticky=tk.E)

        row += 1
        ttk.Label(checkout, text=f"Cash tendered ({self.currency}):").grid(row=row, column=0, padx=5, pady=5, sticky=tk.W)
        self.tendered_entry = ttk.Entry(checkout, textvariable=self.tendered_var, width=10)
        self.tendered_entry.grid(row=row, column=1, padx=5, pady=5, sticky=tk.E)

        row += 1
        ttk.Label(checkout, text="Change due:").grid(row=row, column=0, padx=5, pady=5, sticky=tk.W)
        ttk.Label(checkout, textvariable=self.change_var, font=("Arial", 12, "bold")).grid(
            row=row, column=1, padx=5, pady=5, sticky=tk.E)

        row += 1
        customer = ttk.LabelFrame(checkout, text="Customer (optional)", bootstyle="secondary")
        customer.grid(row=row, column=0, columnspan=2, sticky=tk.EW, padx=5, pady=10)
        ttk.Label(customer, text="Name:").grid(row=0, column=0, padx=5, pady=3, sticky=tk.W)
        name_entry = ttk.Entry(customer, textvariable=self.customer_name_var, width=18)
        name_entry.grid(row=0, column=1, padx=5, pady=3)
        ttk.Label(customer, text="Phone:").grid(row=1, column=0, padx=5, pady=3, sticky=tk.W)
        phone_entry = ttk.Entry(customer, textvariable=self.customer_phone_var, width=18)
        phone_entry.grid(row=1, column=1, padx=5, pady=3)

        row += 1
        self.pay_btn = ttk.Button(checkout, text="PAY", command=self._pay, bootstyle="success")
        self.pay_btn.grid(row=row, column=0, columnspan=2, padx=5, pady=15, sticky=tk.EW)

        # UPI orders wait here until the cashier sees the payment arrive
        row += 1
        ttk.Label(checkout, textvariable=self.upi_var, bootstyle="warning", wraplength=220).grid(
            row=row, column=0, columnspan=2, padx=5, sticky=tk.W)
        row += 1
        self.confirm_upi_btn = ttk.Button(checkout, text="Confirm UPI Payment", command=self._confirm_upi,
                                          bootstyle="success-outline")
        self.confirm_upi_btn.grid(row=row, column=0, padx=5, pady=5, sticky=tk.EW)
        self.cancel_upi_btn = ttk.Button(checkout, text="Cancel UPI Order", command=self._cancel_upi,
                                         bootstyle="danger-outline")
        self.cancel_upi_btn.grid(row=row, column=1, padx=5, pady=5, sticky=tk.EW)

        row += 1
        self.reprint_btn = ttk.Button(checkout, text="Re-print Last Receipt", command=self._reprint,
                                      bootstyle="info-outline")
        self.reprint_btn.grid(row=row, column=0, columnspan=2, padx=5, pady=5, sticky=tk.EW)

        self._inputs += [(flat_entry, tk.NORMAL), (percent_entry, tk.NORMAL),
                         (payment_combo, "readonly"), (self.tendered_entry, tk.NORMAL),
                         (name_entry, tk.NORMAL), (phone_entry, tk.NORMAL),
                         (self.suggestion_list, tk.NORMAL), (self.pay_btn, tk.NORMAL)]

    def _create_menu_bar(self):
        """Create the application menu bar"""
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="New Bill", command=self._clear_cart)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self._quit)

        reports_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Reports", menu=reports_menu)
        reports_menu.add_command(label="Shift Summary", command=self._show_shift_summary)
        reports_menu.add_command(label="Export Shift Sales...", command=self._export_shift_sales)
        reports_menu.add_separator()
        reports_menu.add_command(label="Profit & Loss from Transactions...",
                                 command=self._transactions_report)

    def _create_status_bar(self):
        """Create status bar at the bottom of the window"""
        self.status_bar = ttk.Frame(self.root, bootstyle="secondary")
        self.status_bar.pack(side=tk.BOTTOM, fill=tk.X)

        self.status_var = tk.StringVar(value="Ready")
        ttk.Label(self.status_bar, textvariable=self.status_var, padding=(5, 2),
                  bootstyle="inverse-secondary").pack(side=tk.LEFT, fill=tk.X, expand=True)

        self.datetime_var = tk.StringVar()
        ttk.Label(self.status_bar, textvariable=self.datetime_var, padding=(5, 2),
                  bootstyle="inverse-secondary").pack(side=tk.RIGHT)
        self._update_datetime()

    def _bind_live_fields(self):
        """Recompute totals on every keystroke in the discount and tender fields"""
        self.flat_var.trace_add("write", lambda *a: self._on_discount_change())
        self.percent_var.trace_add("write", lambda *a: self._on_discount_change())
        self.tendered_var.trace_add("write", lambda *a: self._on_tender_change())
        self.payment_var.trace_add("write", lambda *a: self._on_payment_mode_change())
        self.search_var.trace_add("write", lambda *a: self.search.update(self.search_var.get()))

    def _update_datetime(self):
        self.datetime_var.set(datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        self.root.after(1000, self._update_datetime)

    def _update_status(self, message):
        self.status_var.set(message)
        logger.info(message)

    def _money(self, amount):
        return format_money(amount, self.currency)

    # Background work
    def _in_background(self, work, on_success, busy_message, error_title):
        """
        Run a server or printer call on a worker thread so the window keeps
        repainting. The outcome is handed back to the Tk thread with
        root.after; on_success receives the call's return value.
        """
        if self._busy:
            self._update_status("Please wait for the current request to finish")
            return
        self._busy = True
        self._update_controls()
        self._update_status(busy_message)

        def run():
            try:
                result = work()
            except Exception as e:
                self.root.after(0, lambda err=e: self._background_done(error_title, error=err))
            else:
                self.root.after(0, lambda res=result: self._background_done(error_title, on_success, res))

        threading.Thread(target=run, daemon=True).start()

    def _background_done(self, error_title, on_success=None, result=None, error=None):
        self._busy = False
        self._refresh()
        if error is not None:
            self._show_error(error_title, error)
            self._update_status("Ready")
            return
        on_success(result)

    def _show_error(self, title, error):
        if isinstance(error, ValidationError):
            messagebox.showwarning(title, str(error))
        elif isinstance(error, NetworkError):
            logger.error(f"{title}: {error.message}")
            messagebox.showerror(title, error.message)
        elif isinstance(error, PrinterUnavailable):
            messagebox.showerror("Printer Unavailable", str(error))
        else:
            logger.error(f"{title}: {error}", exc_info=error)
            messagebox.showerror(title, f"An unexpected error occurred:\n{error}")

    def _update_controls(self):
        """Lock cart and payment inputs while a request runs or a UPI payment is pending"""
        pending = self.counter.pending_upi is not None
        locked = self._busy or pending
        for widget, state in self._inputs:
            widget.configure(state=tk.DISABLED if locked else state)
        if not locked and self.counter.payment_mode != PaymentMode.CASH:
            self.tendered_entry.configure(state=tk.DISABLED)

        upi_state = tk.NORMAL if pending and not self._busy else tk.DISABLED
        self.confirm_upi_btn.configure(state=upi_state)
        self.cancel_upi_btn.configure(state=upi_state)
        for btn in (self.reprint_btn, self.label_btn):
            btn.configure(state=tk.DISABLED if self._busy else tk.NORMAL)
        self.root.configure(cursor="watch" if self._busy else "")

    def _cart_locked(self):
        if self._busy:
            self._update_status("Please wait for the current request to finish")
            return True
        if self.counter.pending_upi is not None:
            messagebox.showinfo("UPI Payment Pending",
                                "Confirm or cancel the pending UPI payment before changing the bill.")
            return True
        return False

    # Live recomputation
    def _refresh(self):
        """Redraw the cart and every derived total"""
        self.cart_tv.delete(*self.cart_tv.get_children())
        for line in self.counter.cart:
            self.cart_tv.insert("", "end", iid=line.product_id, values=(
                line.name, line.quantity, f"{line.base_price:.2f}",
                f"{line.discount_percent:g}", f"{line.line_total:.2f}"
            ))
        totals = self.counter.totals()
        self.items_var.set(f"Items: {self.counter.cart.total_quantity}")
        self.subtotal_var.set(self._money(totals.subtotal))
        self.total_var.set(self._money(totals.payable_total))
        self.change_var.set(self._money(totals.change_due))

        parts = discount_breakdown(totals.subtotal, self.counter.flat_discount,
                                   self.counter.order_discount_percent)
        saved = parts['flat_discount'] + parts['percent_discount']
        self.savings_var.set(f"You save {self._money(saved)}" if saved else "")

        pending = self.counter.pending_upi
        self.upi_var.set(f"Order {pending.order.id} waiting for UPI payment" if pending else "")
        self._update_controls()

    def _on_discount_change(self):
        try:
            self.counter.set_flat_discount(self.flat_var.get())
        except ValidationError as e:
            self._update_status(str(e))
        self.counter.set_order_discount_percent(self.percent_var.get())
        self._refresh()

    def _on_tender_change(self):
        self.counter.set_cash_tendered(self.tendered_var.get())
        self._refresh()

    def _on_payment_mode_change(self):
        self.counter.set_payment_mode(self.payment_var.get())
        self._refresh()

    # Search
    def _on_search_results(self, query, products):
        # called from the debounce timer thread
        self.root.after(0, lambda: self._show_suggestions(query, products))

    def _show_suggestions(self, query, products):
        if query != self.search_var.get().strip():
            return
        self._suggestions = products
        self.suggestion_list.delete(0, tk.END)
        for p in products:
            if p.discount:
                price = f"MRP {self._money(p.price)}, now {self._money(discounted_mrp(p.price, p.discount))}"
            else:
                price = self._money(p.price)
            self.suggestion_list.insert(tk.END, f"{p.name}  ({price})")

    def _add_suggestion(self):
        if self._cart_locked():
            return
        selected = self.suggestion_list.curselection()
        if not selected:
            return
        product = self._suggestions[selected[0]]
        variant_id = None
        if product.variants:
            variant_id = self._choose_variant(product)
        self._add_product(product, variant_id)

    def _choose_variant(self, product):
        options = "\n".join(f"{i + 1}. {v.label}" for i, v in enumerate(product.variants))
        choice = simpledialog.askinteger("Select Variant", f"{product.name}\n\n{options}",
                                         minvalue=1, maxvalue=len(product.variants),
                                         parent=self.root)
        return product.variants[choice - 1].id if choice else None

    # Cart actions
    def _read_qty(self):
        try:
            return self.qty_var.get()
        except tk.TclError:
            raise ValidationError("Quantity must be a whole number of at least 1.")

    def _add_by_barcode(self):
        if self._cart_locked():
            return
        try:
            qty = self._read_qty()
        except ValidationError as e:
            messagebox.showwarning("Input Error", str(e))
            return
        barcode = self.barcode_var.get()
        self._in_background(lambda: self.counter.scan_and_add(barcode, qty),
                            self._added_by_barcode,
                            f"Looking up {barcode.strip()}...", "Product Not Found")

    def _added_by_barcode(self, line):
        self.barcode_var.set("")
        self.qty_var.set(1)
        self._refresh()
        self._update_status(f"Added {line.name}")

    def _add_product(self, product, variant_id=None):
        try:
            self.counter.add_product(product, self._read_qty(), variant_id)
        except ValidationError as e:
            messagebox.showwarning("Input Error", str(e))
            return
        self.qty_var.set(1)
        self._refresh()
        self._update_status(f"Added {product.name}")

    def _selected_line_id(self):
        selected = self.cart_tv.selection()
        if not selected:
            messagebox.showinfo("Selection", "Please select an item in the cart")
            return None
        return selected[0]

    def _edit_quantity(self):
        if self._cart_locked():
            return
        product_id = self._selected_line_id()
        if product_id is None:
            return
        line = self.counter.cart.find(product_id)
        new_qty = simpledialog.askinteger("Edit Quantity", f"Quantity for {line.name}:",
                                          initialvalue=line.quantity, minvalue=1, parent=self.root)
        if new_qty is None:
            return
        try:
            self.counter.cart.set_quantity(product_id, new_qty)
        except ValidationError as e:
            messagebox.showwarning("Input Error", str(e))
            return
        self._refresh()
        self._update_status(f"Updated {line.name} quantity to {new_qty}")

    def _remove_selected(self):
        if self._cart_locked():
            return
        product_id = self._selected_line_id()
        if product_id is None:
            return
        self.counter.cart.remove(product_id)
        self._refresh()
        self._update_status("Item removed from cart")

    def _clear_cart(self):
        if self._cart_locked() or self.counter.cart.is_empty:
            return
        if messagebox.askyesno("Clear Cart", "Are you sure you want to clear the cart?"):
            self._reset_form()
            self._update_status("Cart cleared")

    def _reset_form(self):
        self.counter.reset()
        self.flat_var.set("0")
        self.percent_var.set("0")
        self.tendered_var.set("")
        self.payment_var.set(PaymentMode.CASH.value)
        self.customer_name_var.set("")
        self.customer_phone_var.set("")
        self._refresh()

    # Payment
    def _pay(self):
        if self._busy:
            return
        try:
            self.counter.set_customer(self.customer_name_var.get(), self.customer_phone_var.get())
        except ValidationError as e:
            messagebox.showwarning("Cannot Pay", str(e))
            return
        self._in_background(self.counter.pay, self._payment_sent,
                            "Sending order to the server...", "Payment Failed")

    def _payment_sent(self, result):
        if isinstance(result, PendingUpiPayment):
            self._await_upi(result)
        else:
            self._sale_completed(result)

    def _await_upi(self, pending):
        uri = pending.upi_uri or "(scan the QR code shown to the customer)"
        amount = pending.amount if pending.amount is not None else self.counter.totals().payable_total
        self._refresh()
        self._update_status(f"Waiting for UPI payment on order {pending.order.id}")
        messagebox.showinfo("UPI Payment",
                            f"Ask the customer to pay {self._money(amount)} by UPI:\n\n{uri}\n\n"
                            "Press 'Confirm UPI Payment' once the payment is received, "
                            "or 'Cancel UPI Order' to take the payment another way.")

    def _confirm_upi(self):
        self._in_background(self.counter.confirm_upi, self._sale_completed,
                            "Confirming UPI payment...", "Payment Confirmation Failed")

    def _cancel_upi(self):
        if self.counter.pending_upi is None or self._busy:
            return
        order_id = self.counter.pending_upi.order.id
        if not messagebox.askyesno("Cancel UPI Order",
                                   f"Stop waiting for payment on order {order_id}?\n\n"
                                   "The order stays unpaid on the server and the cart is kept."):
            return
        try:
            self.counter.cancel_pending_upi()
        except ValidationError as e:
            messagebox.showwarning("Cancel UPI Order", str(e))
            return
        self._refresh()
        self._update_status(f"UPI order {order_id} left unpaid; cart kept")

    def _sale_completed(self, result):
        receipt = result.receipt
        self._reset_form()

        message = f"Sale {receipt.invoice_number} completed. Total {self._money(receipt.grand_total)}"
        warnings = []
        try:
            archived = archive_receipt(receipt, self.config)
        except (OSError, ValueError, LayoutError) as e:
            logger.error(f"Could not save a copy of receipt {receipt.invoice_number}: {e}")
            warnings.append(f"The receipt copy could not be saved:\n{e}")
        else:
            if archived:
                message += f"\nCopy saved to {archived}"
        if not result.printed:
            warnings.append(f"The sale is recorded but the receipt was not printed:\n"
                            f"{result.print_error}\n\nReconnect the printer and use 'Re-print Last Receipt'.")

        if warnings:
            title = "Receipt Not Printed" if not result.printed else "Receipt Copy Not Saved"
            messagebox.showwarning(title, "\n\n".join([message] + warnings))
        else:
            messagebox.showinfo("Sale Complete", message)
        self._update_status(f"Sale {receipt.invoice_number} completed")

    def _reprint(self):
        self._in_background(self.counter.reprint_last,
                            lambda receipt: self._update_status(f"Receipt {receipt.invoice_number} re-printed"),
                            "Re-printing last receipt...", "Re-print")

    def _print_label(self):
        selected = self.suggestion_list.curselection()
        if not selected:
            messagebox.showinfo("Print Label", "Select a product in the search results first")
            return
        product = self._suggestions[selected[0]]
        copies = simpledialog.askinteger("Print Label", f"Copies of '{product.name}':",
                                         initialvalue=1, minvalue=1, parent=self.root)
        if not copies:
            return
        printer = self.counter.printer
        if printer is None:
            messagebox.showerror("Printer Unavailable", "No printer is configured.")
            return
        tspl = build_label(product, copies, LabelSettings.from_config(self.config))
        self._in_background(lambda: printer.print_label(tspl),
                            lambda _: self._update_status(f"Sent {copies} label(s) for {product.name}"),
                            f"Printing labels for {product.name}...", "Print Label")

    # Reports
    def _export_settings(self):
        export_cfg = self.config.get("export", {})
        return export_cfg.get("default_dir", "exports"), export_cfg.get("format", "csv")

    def _show_shift_summary(self):
        summary = shift_summary(self.counter.completed)
        lines = [
            f"Sales: {summary['num_sales']}",
            f"Total: {self._money(summary['total_sales'])}",
            f"Average sale: {self._money(summary['average_sale'])}",
        ]
        for mode, total in summary['by_payment_mode'].items():
            lines.append(f"  {mode}: {self._money(total)}")
        lines.append(f"Best-selling item: {summary['best_selling_item'] or 'None'}")
        messagebox.showinfo("Shift Summary", "\n".join(lines))

    def _export_shift_sales(self):
        if not self.counter.completed:
            messagebox.showinfo("Export Shift Sales", "No sales have been completed in this shift.")
            return
        directory, fmt = self._export_settings()
        ext = ".xlsx" if fmt == "excel" else ".csv"
        file_path = filedialog.asksaveasfilename(
            parent=self.root, initialdir=directory, defaultextension=ext,
            initialfile=f"shift_sales_{datetime.datetime.now().strftime('%Y%m%d_%H%M')}{ext}",
            filetypes=[("CSV files", "*.csv"), ("Excel files", "*.xlsx")])
        if not file_path:
            return
        fmt = "excel" if file_path.lower().endswith(".xlsx") else "csv"
        try:
            export_report(shift_sales_frame(self.counter.completed), file_path, fmt)
        except (OSError, ValueError) as e:
            logger.error(f"Shift export failed: {e}")
            messagebox.showerror("Export Failed", str(e))
            return
        self._update_status(f"Shift sales exported to {file_path}")

    def _transactions_report(self):
        file_path = filedialog.askopenfilename(
            parent=self.root, title="Open transactions ledger",
            filetypes=[("Ledger files", "*.csv *.xlsx"), ("All files", "*.*")])
        if not file_path:
            return
        directory, fmt = self._export_settings()
        try:
            reports = transactions_report(load_transactions(file_path))
            paths = export_reports(reports, directory, fmt)
        except (OSError, ValueError) as e:
            logger.error(f"Transactions report failed for {file_path}: {e}")
            messagebox.showerror("Report Failed", str(e))
            return

        pnl = reports['profit_and_loss']
        lines = [f"{r.month}: revenue {self._money(r.revenue)}, expenses {self._money(r.expenses)}, "
                 f"profit {self._money(r.profit)} ({r.margin:g}%)" for r in pnl.itertuples()]
        lines = lines or ["No income or expense rows found."]
        lines.append(f"\nReports saved to {os.path.abspath(directory)}")
        messagebox.showinfo("Profit & Loss", "\n".join(lines))
        self._update_status(f"Wrote {len(paths)} report(s) from {os.path.basename(file_path)}")

    def _quit(self):
        self.search.cancel()
        self.root.quit()

    def run(self):
        self.root.mainloop()
