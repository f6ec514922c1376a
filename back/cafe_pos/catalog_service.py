"""
Catalog lookup used by the order core.

Products, prices and categories are maintained elsewhere; the order core
only needs the current price (and name, for the line snapshot).
"""

from sqlmodel import Session, select

from .errors import NotFoundError
from .models import OrderItem, OrderItemCreate, Product


def get_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def get_products(session: Session, product_ids: list[int]) -> dict[int, Product]:
    """Fetch several products at once, keyed by id. Unknown ids are absent."""
    if not product_ids:
        return {}
    products = session.exec(
        select(Product).where(Product.id.in_(set(product_ids)))
    ).all()
    return {p.id: p for p in products}


def price_items(
    session: Session,
    items: list[OrderItemCreate],
) -> tuple[list[OrderItem], int]:
    """
    Build unsaved OrderItems with the current price snapshotted.

    Entries referencing unknown products are skipped, not rejected.
    The active flag is not checked here.

    Returns:
        (order_items, total_cents) where total_cents is the sum of line totals
    """
    products = get_products(session, [item.product_id for item in items])

    order_items: list[OrderItem] = []
    total_cents = 0
    for item in items:
        product = products.get(item.product_id)
        if product is None:
            continue
        order_items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                price_cents=product.price_cents,
            )
        )
        total_cents += product.price_cents * item.quantity

    return order_items, total_cents
