"""
checkout.py: Checkout and payment-confirmation workflow.

Workflow overview:
1. ``initiate``: price the cart against the current catalog, issue an
   invoice id and park the priced cart in the pending-order store.
2. ``confirm``: on the gateway's server-to-server callback, verify the
   signature, take the parked cart (once), and persist the order, its line
   items and the stock decrements in one transaction.

The cart is taken before the transaction-state check and is never put back,
whatever happens afterwards. A replayed callback therefore finds nothing and
is rejected, which is the only guard against duplicate orders.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping
from uuid import uuid4

from .errors import BadRequest, InsufficientStock, InternalError, NotFound, Unauthorized
from .utils import parse_object_id, round_money

log = logging.getLogger(__name__)

ACCEPTED_STATE = "1"
REQUIRED_CALLBACK_FIELDS = ("x_ref_payco", "x_transaction_id", "x_signature", "x_id_factura")


def build_signature(customer_id: str, secret_key: str, reference: str, transaction_id: str, amount: str, currency_code: str) -> str:
    """Hex SHA-256 over the ``^``-joined fields the gateway signs."""
    signature_string = "^".join(
        str(part if part is not None else "")
        for part in (customer_id, secret_key, reference, transaction_id, amount, currency_code)
    )
    return hashlib.sha256(signature_string.encode("utf-8")).hexdigest()


@dataclass
class PricedCart:
    items: List[Dict] = field(default_factory=list)
    descriptions: List[str] = field(default_factory=list)
    sub_total: float = 0.0
    tax: float = 0.0
    total: float = 0.0


class CheckoutService:
    def __init__(
        self,
        database,
        catalog,
        accounts,
        orders,
        pending_orders,
        *,
        merchant_customer_id: str,
        merchant_key: str,
        tax_rate: float = 0.19,
        pending_ttl_seconds: int = 300,
        currency: str = "usd",
        store_name: str = "Smartmart",
    ):
        self.database = database
        self.catalog = catalog
        self.accounts = accounts
        self.orders = orders
        self.pending_orders = pending_orders
        self.merchant_customer_id = merchant_customer_id
        self.merchant_key = merchant_key
        self.tax_rate = tax_rate
        self.pending_ttl_seconds = pending_ttl_seconds
        self.currency = currency
        self.store_name = store_name

    def price_cart(self, cart_items) -> PricedCart:
        """
        Price each cart line with the current catalog price.

        Stops at the first unknown/inactive product (``NotFound``) or the
        first line asking for more than is in stock (``InsufficientStock``).
        """
        priced = PricedCart()
        raw_subtotal = 0.0
        for cart_item in cart_items:
            product = self.catalog.get_product(cart_item.product_id)
            if not product:
                raise NotFound(f"Product {cart_item.product_id} not found")
            if int(product.get("stock_quantity", 0) or 0) < cart_item.quantity:
                raise InsufficientStock(
                    f"Insufficient stock for product {product.get('name', cart_item.product_id)}"
                )

            unit_price = round_money(product.get("price"))
            line_total = round_money(unit_price * cart_item.quantity)
            raw_subtotal += unit_price * cart_item.quantity
            priced.descriptions.append(f"{cart_item.quantity}x {product.get('name', '')}")
            priced.items.append(
                {
                    "product_id": str(product["_id"]),
                    "quantity": cart_item.quantity,
                    "price": unit_price,
                    "total": line_total,
                }
            )

        priced.sub_total = round_money(raw_subtotal)
        priced.tax = round_money(priced.sub_total * self.tax_rate)
        priced.total = round_money(priced.sub_total + priced.tax)
        return priced

    def initiate(self, cart_items, username: str, response_url: str, confirmation_url: str) -> Dict:
        priced = self.price_cart(cart_items)
        invoice = f"INV-{uuid4()}"

        self.pending_orders.set(
            invoice,
            {
                "items": priced.items,
                "sub_total": priced.sub_total,
                "tax": priced.tax,
                "total": priced.total,
            },
            self.pending_ttl_seconds,
        )
        log.info(f"[Invoice: {invoice}] Checkout started for {username}, total {priced.total}.")

        return {
            "currency": self.currency,
            "amount": priced.total,
            "tax_base": priced.sub_total,
            "tax": priced.tax,
            "name": f"Order from {self.store_name}",
            "description": " | ".join(priced.descriptions),
            "invoice": invoice,
            "external": "false",
            "response": response_url,
            "confirmation": confirmation_url,
            "x_extra1": username,
        }

    def verify_signature(self, callback: Mapping[str, str]) -> bool:
        expected = build_signature(
            self.merchant_customer_id,
            self.merchant_key,
            callback.get("x_ref_payco"),
            callback.get("x_transaction_id"),
            callback.get("x_amount"),
            callback.get("x_currency_code"),
        )
        supplied = str(callback.get("x_signature") or "")
        return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))

    def confirm(self, callback: Mapping[str, str]) -> Dict:
        """
        Handle the gateway's confirmation callback.

        Returns the response body. Raises ``BadRequest``, ``Unauthorized``,
        ``NotFound`` or ``InternalError``.
        """
        if any(not callback.get(name) for name in REQUIRED_CALLBACK_FIELDS):
            raise BadRequest("Missing required payment data")

        invoice = str(callback.get("x_id_factura"))
        log_prefix = f"[Invoice: {invoice}]"

        if not self.verify_signature(callback):
            log.warning(f"{log_prefix} Invalid signature on payment confirmation.")
            raise Unauthorized("Invalid signature")

        pending = self.pending_orders.take(invoice)
        if pending is None:
            log.warning(f"{log_prefix} Invalid or expired invoice.")
            raise Unauthorized("Invalid or expired invoice")

        status = str(callback.get("x_cod_transaction_state") or "")
        if status != ACCEPTED_STATE:
            log.info(f"{log_prefix} Payment not accepted (state {status!r}).")
            return {"message": "Payment not accepted"}

        username = str(callback.get("x_extra1") or "")
        user = self.accounts.find_user_by_username(username)
        if not user:
            log.warning(f"{log_prefix} User not found: {username!r}.")
            raise NotFound("User not found")

        order_id = self._persist_order(invoice, pending, callback, user)
        log.info(f"{log_prefix} Payment processed, order {order_id} created.")
        return {"message": "Payment processed successfully", "orderId": str(order_id)}

    def _persist_order(self, invoice: str, pending: Dict, callback: Mapping[str, str], user):
        """
        Write the order, its line items and the stock decrements.

        With transactions on, an exception aborts everything. Without them
        the writes made so far are undone by hand before ``InternalError``
        is raised, so a failed confirmation leaves no order behind.
        """
        written = {"order_id": None, "decremented": []}
        try:
            with self.database.transaction() as session:
                order = self.orders.create_order(
                    {
                        "invoice_id": invoice,
                        "first_name": str(callback.get("x_customer_name") or ""),
                        "last_name": str(callback.get("x_customer_lastname") or ""),
                        "sub_total": pending["sub_total"],
                        "tax": pending["tax"],
                        "tax_ico": _safe_amount(callback.get("x_tax_ico")),
                        "total": pending["total"],
                        "is_paid": True,
                        "payment_method": str(callback.get("x_franchise") or "unknown"),
                        "payment_reference": str(callback.get("x_ref_payco")),
                        "user_id": user["_id"],
                    },
                    session=session,
                )
                written["order_id"] = order["_id"]
                for item in pending["items"]:
                    if not self.catalog.decrement_stock(item["product_id"], item["quantity"], session=session):
                        raise InsufficientStock(
                            f"Stock for product {item['product_id']} changed before confirmation"
                        )
                    written["decremented"].append((item["product_id"], item["quantity"]))
                    self.orders.create_order_item(
                        {
                            "product_id": parse_object_id(item["product_id"]),
                            "quantity": item["quantity"],
                            "price": item["price"],
                            "order_id": order["_id"],
                        },
                        session=session,
                    )
        except Exception:
            if self.database.use_transactions:
                log.exception(f"[Invoice: {invoice}] Order creation failed, transaction rolled back.")
            else:
                log.exception(f"[Invoice: {invoice}] Order creation failed, undoing partial writes.")
                self._undo_writes(invoice, written)
            raise InternalError("Failed to process order")
        return order["_id"]

    def _undo_writes(self, invoice: str, written: Dict):
        try:
            for product_id, quantity in reversed(written["decremented"]):
                self.catalog.restore_stock(product_id, quantity)
            if written["order_id"] is not None:
                self.orders.delete_order(written["order_id"])
        except Exception:
            log.exception(f"[Invoice: {invoice}] Undo failed, order data needs manual repair.")


def _safe_amount(value) -> float:
    try:
        return round_money(value)
    except (TypeError, ValueError):
        return 0.0
