"""Chat Message Formatting — pure functions producing every user-facing text.

Invariants:
    - All functions are pure (no IO, no async, no DB)
    - Money is shown as IDR with dot thousands separators ("Rp 110.600") and
      USD with two decimals ("$7.00")
    - Error texts never contain internal details (exception names, tracebacks)

Design Decisions:
    - One module for all texts: handlers stay free of string assembly
    - WhatsApp markdown (*bold*, _italic_); the transport renders it as-is
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from chatshop.core.audit_record import OrderTotals
from chatshop.core.product import Product
from chatshop.core.session_state import CartItem

DIVIDER = "━━━━━━━━━━━━━━━━━━"


# ─── Money ───────────────────────────────────────────────────────

def format_idr(amount: int) -> str:
    return "Rp " + f"{amount:,}".replace(",", ".")


def format_usd(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def _to_idr(amount_usd: Decimal, rate: int) -> int:
    return int((amount_usd * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _price_line(price_usd: Decimal, rate: int) -> str:
    return f"{format_usd(price_usd)} ({format_idr(_to_idr(price_usd, rate))})"


# ─── Menu ────────────────────────────────────────────────────────

def main_menu(shop_name: str) -> str:
    return (
        f"*{shop_name}*\n{DIVIDER}\n"
        "1. Browse products\n"
        "2. View cart\n"
        "3. About us\n"
        "4. Contact support\n\n"
        "Type a number, or *menu* at any time to come back here.\n"
        "Other commands: *cart*, *history*"
    )


def about(shop_name: str) -> str:
    return (
        f"*About {shop_name}*\n\n"
        "We sell digital subscriptions and virtual cards.\n"
        "Orders are delivered in this chat right after the admin "
        "confirms your payment.\n\nType *menu* to go back."
    )


def contact(support_contact: str) -> str:
    return (
        "*Contact support*\n\n"
        f"Reach us at {support_contact}.\n\nType *menu* to go back."
    )


def invalid_menu_option() -> str:
    return "Please choose 1-4, or type *menu* to see the options again."


def maintenance(message: str) -> str:
    return f"🔧 {message}"


# ─── Browsing & cart ─────────────────────────────────────────────

def product_list(products: Sequence[Product], rate: int) -> str:
    if not products:
        return "No products are available right now. Please check back later."
    by_category: dict[str, list[Product]] = {}
    for product in products:
        by_category.setdefault(product.category, []).append(product)
    lines = ["*Our products*", DIVIDER]
    for category, items in by_category.items():
        lines.append(f"\n*{category.upper()}*")
        for product in items:
            availability = "" if product.in_stock else " _(out of stock)_"
            lines.append(
                f"• {product.name} — {_price_line(product.price_usd, rate)}"
                f"{availability}\n  id: `{product.id}`"
            )
    lines.append(
        "\nType a product name or id to add it to your cart, "
        "*cart* to review, *menu* to go back."
    )
    return "\n".join(lines)


def product_added(item: CartItem, cart_size: int, rate: int) -> str:
    return (
        f"✅ *{item.name}* added to your cart "
        f"({_price_line(item.unit_price_usd, rate)}).\n"
        f"Items in cart: {cart_size}\n\n"
        "Add another product, or type *cart* to check out."
    )


def product_not_found(query: str) -> str:
    return (
        f"Sorry, I couldn't find a product matching \"{query}\".\n"
        "Type *1* from the menu to see the full list."
    )


def product_unavailable(name: str) -> str:
    return f"Sorry, *{name}* is out of stock right now."


def empty_cart() -> str:
    return "Your cart is empty. Type *1* from the menu to browse products."


def cart_view(cart: Sequence[CartItem], total_usd: Decimal, rate: int) -> str:
    lines = ["*Your cart*", DIVIDER]
    for index, item in enumerate(cart, start=1):
        lines.append(f"{index}. {item.name} — {format_usd(item.unit_price_usd)}")
    lines.append(DIVIDER)
    lines.append(f"*Total:* {format_usd(total_usd)} ({format_idr(_to_idr(total_usd, rate))})")
    lines.append("\nType *checkout* to place the order or *clear* to empty the cart.")
    return "\n".join(lines)


def checkout_hint() -> str:
    return "Type *checkout* to place your order, *clear* to empty the cart, or *menu*."


def cart_cleared() -> str:
    return "🗑️ Your cart has been cleared."


# ─── Checkout ────────────────────────────────────────────────────

def out_of_stock(names: Iterable[str]) -> str:
    listed = ", ".join(names)
    return (
        f"❌ Checkout cancelled: not enough stock for {listed}.\n"
        "Your cart was not changed. Remove the item (*clear*) or try later."
    )


def order_summary(
    order_id: str, cart: Sequence[CartItem], total_usd: Decimal, total_idr: int,
) -> str:
    lines = ["*Order created*", DIVIDER, f"Order ID: `{order_id}`", ""]
    for item in cart:
        lines.append(f"• {item.name} — {format_usd(item.unit_price_usd)}")
    lines.append(DIVIDER)
    lines.append(f"*Total:* {format_usd(total_usd)} = *{format_idr(total_idr)}*")
    lines.append("")
    lines.append(payment_menu())
    return "\n".join(lines)


def payment_menu() -> str:
    return (
        "*Choose a payment method:*\n"
        "1. QRIS (all e-wallets & banks)\n"
        "2. DANA\n"
        "3. GoPay\n"
        "4. OVO\n"
        "5. ShopeePay\n"
        "6. Bank transfer"
    )


def bank_menu() -> str:
    return "*Choose your bank:*\n1. BCA\n2. BNI\n3. BRI\n4. Mandiri"


def invalid_payment_choice() -> str:
    return "Invalid choice. Reply with a number from 1 to 6.\n\n" + payment_menu()


def invalid_bank_choice() -> str:
    return "Invalid choice. Reply with a number from 1 to 4.\n\n" + bank_menu()


def payment_method_unavailable(label: str) -> str:
    return f"{label} is not available right now. Please pick another method.\n\n" + payment_menu()


def qris_instructions(order_id: str, total_idr: int, invoice_id: str) -> str:
    return (
        "*QRIS payment*\n"
        f"Order: `{order_id}`\n"
        f"Amount: *{format_idr(total_idr)}*\n"
        f"Invoice: `{invoice_id}`\n\n"
        "Scan the QR code sent with this message using any e-wallet or "
        "banking app. Then type *check* to see the payment status, or send "
        "a screenshot of the payment."
    )


def invoice_creation_failed() -> str:
    return (
        "Sorry, we couldn't create a QRIS invoice right now. "
        "Please choose another payment method.\n\n" + payment_menu()
    )


def manual_transfer_instructions(
    label: str, account_number: str, holder: str, total_idr: int, order_id: str,
) -> str:
    return (
        f"*{label} transfer*\n"
        f"Order: `{order_id}`\n"
        f"Amount: *{format_idr(total_idr)}*\n\n"
        f"Send exactly this amount to:\n{label}: *{account_number}*\n"
        f"Name: {holder}\n\n"
        "After paying, send a screenshot of the transfer here."
    )


def awaiting_payment_hint(order_id: str) -> str:
    return (
        f"Waiting for payment of order `{order_id}`.\n"
        "Send a screenshot of your payment, or type *check* for the status."
    )


def proof_received(order_id: str) -> str:
    return (
        f"📨 Thanks! Your payment proof for `{order_id}` was forwarded to the admin.\n"
        "You'll receive your products here once it's approved."
    )


def admin_proof_notice(
    order_id: str, customer_id: str, total_idr: int, item_count: int, method: str,
) -> str:
    return (
        "*New payment proof*\n"
        f"Order: `{order_id}`\n"
        f"Customer: {mask_customer_id(customer_id)}\n"
        f"Items: {item_count}\n"
        f"Amount: {format_idr(total_idr)}\n"
        f"Method: {method}\n\n"
        f"Approve with: /approve {order_id}"
    )


def proof_ignored() -> str:
    return "There is no order waiting for payment. Type *cart* to check out first."


def awaiting_approval(order_id: str | None) -> str:
    return (
        f"Your order `{order_id}` is waiting for admin approval. "
        "You'll be notified here as soon as it's confirmed."
    )


# ─── Payment status ──────────────────────────────────────────────

def no_active_invoice() -> str:
    return (
        "There is no active invoice for your order. If you paid by manual "
        "transfer, send a screenshot of the payment instead."
    )


def verify_manually() -> str:
    return (
        "We couldn't reach the payment provider to verify your payment. "
        "The admin will verify it manually; please send a payment screenshot."
    )


def payment_status(status: str, order_id: str | None) -> str:
    match status:
        case "SUCCEEDED":
            return (
                f"✅ Payment for `{order_id}` is confirmed. "
                "Send the payment screenshot so the admin can release your order."
            )
        case "PENDING":
            return f"⏳ Payment for `{order_id}` is still pending."
        case "EXPIRED":
            return f"⌛ The invoice for `{order_id}` has expired. Type *cart* to check out again."
        case "FAILED":
            return f"❌ Payment for `{order_id}` failed. Type *cart* to try again."
        case _:
            return f"Payment status for `{order_id}`: {status}."


# ─── History ─────────────────────────────────────────────────────

def order_history(orders: Sequence[dict[str, Any]]) -> str:
    if not orders:
        return "You have no orders yet."
    lines = ["*Your recent orders*", DIVIDER]
    for order in orders:
        created: datetime = order["created_at"]
        lines.append(
            f"• `{order['order_id']}` — {created:%Y-%m-%d} — "
            f"{format_idr(order['total_idr'])} ({order['item_count']} items)"
        )
    return "\n".join(lines)


# ─── Approval & delivery ─────────────────────────────────────────

def order_not_pending(order_id: str, step: str) -> str:
    return (
        f"Order `{order_id}` is not pending approval (current step: {step}). "
        "Nothing was delivered."
    )


def payment_not_verified(order_id: str, status: str) -> str:
    return f"Payment for `{order_id}` is not verified (status: {status}). Nothing was delivered."


def payment_check_failed(order_id: str) -> str:
    return (
        f"Could not verify payment for `{order_id}` with the gateway. "
        "Check it manually and retry /approve."
    )


def delivery_failed(order_id: str, missing: Sequence[str] = ()) -> str:
    detail = f" Missing codes for: {', '.join(missing)}." if missing else ""
    return (
        f"❌ Delivery for `{order_id}` failed: not enough product codes in the vault."
        f"{detail} Stock and cart were left untouched."
    )


def approval_success(order_id: str, customer_id: str, delivered: int) -> str:
    return (
        f"✅ Order `{order_id}` approved. {delivered} item(s) delivered to "
        f"{mask_customer_id(customer_id)}."
    )


def delivery_message(order_id: str, deliveries: Sequence[tuple[str, str]]) -> str:
    """deliveries: (product name, raw code) pairs."""
    lines = ["🎉 *Your order is ready!*", f"Order: `{order_id}`", DIVIDER]
    for name, code in deliveries:
        lines.append(f"*{name}*")
        lines.extend(_credential_lines(code))
        lines.append("")
    lines.append("Thank you for shopping with us! Type *menu* to order again.")
    return "\n".join(lines)


def _credential_lines(code: str) -> list[str]:
    for separator in (":", "|"):
        if separator in code:
            login, _, password = code.partition(separator)
            if "@" in login:
                return [f"Email: `{login.strip()}`", f"Password: `{password.strip()}`"]
    return [f"Code: `{code}`"]


# ─── Errors & limits ─────────────────────────────────────────────

def generic_apology() -> str:
    return "Sorry, something went wrong on our side. Please try again in a moment."


def rate_limited(limit: int, wait_seconds: int) -> str:
    return (
        f"You're sending messages too fast (limit {limit} per minute). "
        f"Please wait {wait_seconds} seconds."
    )


def order_limit_reached(limit: int, wait_seconds: int) -> str:
    hours = max(1, round(wait_seconds / 3600))
    return (
        f"You've reached the daily limit of {limit} orders. "
        f"Please try again in about {hours} hour(s)."
    )


def cooldown_active(wait_seconds: int) -> str:
    return f"Too many errors occurred. Please wait {wait_seconds} seconds before trying again."


def mask_customer_id(customer_id: str) -> str:
    digits = customer_id.split("@", 1)[0]
    return f"***{digits[-4:]}"


# ─── Admin ───────────────────────────────────────────────────────

def admin_help() -> str:
    return (
        "*Admin commands*\n"
        "/approve <orderId>\n"
        "/stock [<productId> <quantity>]\n"
        "/addproduct id|name|price|description|stock|category\n"
        "/editproduct id|field|value\n"
        "/removeproduct <productId>\n"
        "/settings [<key> <value>] | /settings help\n"
        "/broadcast <message>\n"
        "/stats\n"
        "/status\n"
        "/generate-desc <productId>"
    )


def admin_command_failed(detail: str) -> str:
    return f"⚠️ Command failed: {detail}"


def stock_list(products: Sequence[Product], low_threshold: int) -> str:
    if not products:
        return "The catalog is empty."
    lines = ["*Stock*", DIVIDER]
    for product in products:
        if product.stock == 0:
            marker = "🔴"
        elif product.stock <= low_threshold:
            marker = "🟡"
        else:
            marker = "🟢"
        lines.append(f"{marker} `{product.id}` {product.name}: {product.stock}")
    return "\n".join(lines)


def stock_updated(product: Product, previous: int) -> str:
    return f"Stock for `{product.id}` updated: {previous} → {product.stock}."


def product_created(product: Product) -> str:
    return (
        f"✅ Product `{product.id}` added: {product.name}, "
        f"{format_usd(product.price_usd)}, stock {product.stock}, "
        f"category {product.category}."
    )


def product_exists(product_id: str) -> str:
    return f"A product with id `{product_id}` already exists."


def product_removed(product_id: str) -> str:
    return f"🗑️ Product `{product_id}` removed."


def product_updated(product: Product, field: str) -> str:
    value = format_usd(product.price_usd) if field == "price" else getattr(product, field)
    return f"✅ `{product.id}` {field} set to: {value}"


def settings_list(values: dict[str, Any]) -> str:
    lines = ["*Settings*", DIVIDER]
    lines.extend(f"{key}: {value}" for key, value in sorted(values.items()))
    lines.append("\nChange with /settings <key> <value>")
    return "\n".join(lines)


def settings_help(types: dict[str, type]) -> str:
    lines = ["*Setting keys*", DIVIDER]
    lines.extend(f"{key} ({kind.__name__})" for key, kind in sorted(types.items()))
    lines.append("\nBooleans accept true/false, yes/no, on/off, 1/0.")
    return "\n".join(lines)


def setting_updated(key: str, old_value: Any, new_value: Any) -> str:
    return f"✅ {key}: {old_value} → {new_value}"


def broadcast_message(shop_name: str, text: str) -> str:
    return f"📢 *{shop_name}*\n\n{text}"


def stats_report(
    active_sessions: int, windows: Sequence[tuple[str, OrderTotals]],
) -> str:
    lines = ["*Statistics*", DIVIDER, f"Active sessions: {active_sessions}", ""]
    for label, totals in windows:
        lines.append(
            f"*{label}*: {totals.created_count} created, "
            f"{totals.delivered_count} delivered, "
            f"revenue {format_idr(totals.revenue_idr)}"
        )
    return "\n".join(lines)


def status_report(
    uptime_seconds: int, sessions: int, products: int,
    cache_entries: int, cache_hit_rate: float, pending_audit_writes: int,
) -> str:
    hours, remainder = divmod(uptime_seconds, 3600)
    minutes = remainder // 60
    return (
        "*System status*\n"
        f"{DIVIDER}\n"
        f"Uptime: {hours}h {minutes}m\n"
        f"Sessions: {sessions}\n"
        f"Products: {products}\n"
        f"Cache: {cache_entries} entries, {cache_hit_rate:.0%} hit rate\n"
        f"Pending audit writes: {pending_audit_writes}"
    )


def ai_disabled() -> str:
    return "The AI assistant is disabled."


def generated_description(product: Product, text: str) -> str:
    return f"*{product.name}* — generated description:\n\n{text}"
