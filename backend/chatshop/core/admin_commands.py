"""Admin Commands — pure parsing of the admin command grammar.

Invariants:
    - parse_admin_command never mutates anything; it returns a typed command or Err
    - /addproduct has exactly 6 pipe fields; /editproduct exactly 3
    - /approve takes exactly one order id argument
    - An unrecognized /command parses to ShowAdminHelp, never Err

Design Decisions:
    - One frozen dataclass per command: handlers dispatch with `match` on type
    - Grammar mistakes return CommandValidationError carrying the usage line
"""

from dataclasses import dataclass
from typing import Union

from chatshop.core.domain_types import OrderId, ProductId
from chatshop.core.errors import CommandValidationError
from chatshop.core.product import (
    EDITABLE_FIELDS, Product, is_valid_product_id, parse_price, parse_quantity,
)
from chatshop.core.result import Err, Ok, Result

ADMIN_COMMANDS = frozenset({
    "/approve", "/stock", "/addproduct", "/removeproduct", "/editproduct",
    "/settings", "/broadcast", "/stats", "/status", "/generate-desc",
})

USAGE = {
    "/approve": "/approve <orderId>",
    "/stock": "/stock [<productId> <quantity>]",
    "/addproduct": "/addproduct <id>|<name>|<price>|<description>|<stock>|<category>",
    "/removeproduct": "/removeproduct <productId>",
    "/editproduct": "/editproduct <id>|<field>|<value>  (field: name, price, description)",
    "/settings": "/settings [<key> <value>] | /settings help",
    "/broadcast": "/broadcast <message>",
    "/generate-desc": "/generate-desc <productId>",
}


@dataclass(frozen=True)
class ApproveOrder:
    order_id: OrderId


@dataclass(frozen=True)
class ListStock:
    pass


@dataclass(frozen=True)
class SetStock:
    product_id: ProductId
    quantity: int


@dataclass(frozen=True)
class AddProduct:
    product: Product


@dataclass(frozen=True)
class RemoveProduct:
    product_id: ProductId


@dataclass(frozen=True)
class EditProduct:
    product_id: ProductId
    field: str
    value: str


@dataclass(frozen=True)
class ShowSettings:
    help: bool = False


@dataclass(frozen=True)
class UpdateSetting:
    key: str
    value: str


@dataclass(frozen=True)
class Broadcast:
    message: str


@dataclass(frozen=True)
class ShowStats:
    pass


@dataclass(frozen=True)
class ShowStatus:
    pass


@dataclass(frozen=True)
class GenerateDescription:
    product_id: ProductId


@dataclass(frozen=True)
class ShowAdminHelp:
    pass


AdminCommand = Union[
    ApproveOrder, ListStock, SetStock, AddProduct, RemoveProduct, EditProduct,
    ShowSettings, UpdateSetting, Broadcast, ShowStats, ShowStatus,
    GenerateDescription, ShowAdminHelp,
]


def command_name(text: str) -> str:
    """Lowercased first token, e.g. '/approve'."""
    parts = text.strip().split(maxsplit=1)
    return parts[0].lower() if parts else ""


def is_admin_command(text: str) -> bool:
    return command_name(text).startswith("/")


def parse_admin_command(text: str) -> Result[AdminCommand]:
    name = command_name(text)
    parts = text.strip().split(maxsplit=1)
    args = parts[1].strip() if len(parts) > 1 else ""
    match name:
        case "/approve":
            return _parse_approve(args)
        case "/stock":
            return _parse_stock(args)
        case "/addproduct":
            return _parse_add_product(args)
        case "/removeproduct":
            return _parse_single_id(name, args, RemoveProduct)
        case "/editproduct":
            return _parse_edit_product(args)
        case "/settings":
            return _parse_settings(args)
        case "/broadcast":
            if not args:
                return _usage_error(name)
            return Ok(Broadcast(args))
        case "/stats":
            return Ok(ShowStats())
        case "/status":
            return Ok(ShowStatus())
        case "/generate-desc":
            return _parse_single_id(name, args, GenerateDescription)
        case _:
            return Ok(ShowAdminHelp())


def _usage_error(name: str, problem: str = "Invalid format.") -> Err:
    return Err(CommandValidationError(
        f"{problem}\nUsage: {USAGE[name]}", command=name,
    ))


def _parse_approve(args: str) -> Result[AdminCommand]:
    tokens = args.split()
    if len(tokens) != 1:
        return _usage_error("/approve")
    return Ok(ApproveOrder(OrderId(tokens[0])))


def _parse_stock(args: str) -> Result[AdminCommand]:
    tokens = args.split()
    if not tokens:
        return Ok(ListStock())
    if len(tokens) != 2:
        return _usage_error("/stock")
    quantity = parse_quantity(tokens[1])
    if quantity is None:
        return _usage_error("/stock", "Quantity must be a non-negative whole number.")
    return Ok(SetStock(ProductId(tokens[0].lower()), quantity))


def _parse_single_id(name: str, args: str, factory) -> Result[AdminCommand]:
    tokens = args.split()
    if len(tokens) != 1:
        return _usage_error(name)
    return Ok(factory(ProductId(tokens[0].lower())))


def _parse_add_product(args: str) -> Result[AdminCommand]:
    fields = [f.strip() for f in args.split("|")]
    if len(fields) != 6:
        return _usage_error("/addproduct", "Expected exactly 6 fields separated by |.")
    product_id, name, raw_price, description, raw_stock, category = fields
    product_id = product_id.lower()
    if not is_valid_product_id(product_id):
        return _usage_error(
            "/addproduct", "Product id may only contain a-z, 0-9 and '-'.",
        )
    if not name:
        return _usage_error("/addproduct", "Product name cannot be empty.")
    price = parse_price(raw_price)
    if price is None:
        return _usage_error("/addproduct", "Price must be a number greater than 0.")
    stock = parse_quantity(raw_stock)
    if stock is None:
        return _usage_error(
            "/addproduct", "Stock must be a non-negative whole number.",
        )
    return Ok(AddProduct(Product(
        id=ProductId(product_id),
        name=name,
        price_usd=price,
        stock=stock,
        category=category.lower() or "general",
        description=description,
    )))


def _parse_edit_product(args: str) -> Result[AdminCommand]:
    fields = [f.strip() for f in args.split("|")]
    if len(fields) != 3:
        return _usage_error("/editproduct", "Expected exactly 3 fields separated by |.")
    product_id, field_name, value = fields
    field_name = field_name.lower()
    if field_name not in EDITABLE_FIELDS:
        return _usage_error(
            "/editproduct", f"Field must be one of: {', '.join(EDITABLE_FIELDS)}.",
        )
    if not value:
        return _usage_error("/editproduct", "Value cannot be empty.")
    if field_name == "price" and parse_price(value) is None:
        return _usage_error("/editproduct", "Price must be a number greater than 0.")
    return Ok(EditProduct(ProductId(product_id.lower()), field_name, value))


def _parse_settings(args: str) -> Result[AdminCommand]:
    if not args:
        return Ok(ShowSettings())
    tokens = args.split(maxsplit=1)
    if tokens[0].lower() == "help":
        return Ok(ShowSettings(help=True))
    if len(tokens) != 2:
        return _usage_error("/settings")
    return Ok(UpdateSetting(tokens[0], tokens[1]))
