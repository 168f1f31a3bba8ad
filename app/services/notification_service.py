"""Fire-and-forget order notifications.

Called after the owning transaction has committed. Queueing or delivery
problems are logged and swallowed here so they can never fail a checkout or a
status change.
"""

from __future__ import annotations

from app.core.logging import get_logger
from app.schemas.order import OrderRead
from app.services import email_service

logger = get_logger(__name__)

_STATUS_MESSAGES = {
    "pending": "Recibimos tu pedido y te llamaremos para confirmarlo.",
    "confirmed": "Tu pedido fue confirmado.",
    "preparing": "Estamos preparando tu pedido.",
    "ready": "Tu pedido está listo.",
    "delivered": "Tu pedido fue entregado. ¡Que lo disfrutes!",
    "cancelled": "Tu pedido fue cancelado.",
}


def _customer_email(order: OrderRead) -> str | None:
    info = order.customer_info or {}
    return info.get("email") or None


def _order_summary(order: OrderRead) -> str:
    lines = [f"- {item.quantity} x {item.name} ({item.price:.2f})" for item in order.items]
    lines.append(f"Subtotal: {order.subtotal:.2f}")
    lines.append(f"Impuestos: {order.tax_amount:.2f}")
    lines.append(f"Envío: {order.delivery_fee:.2f}")
    lines.append(f"Total: {order.total_amount:.2f}")
    return "\n".join(lines)


def notify_order_created(order: OrderRead) -> None:
    try:
        email = _customer_email(order)
        if email:
            email_service.send_customer_email(
                to_email=email,
                subject=f"Pedido {order.order_id} recibido",
                message=f"{_STATUS_MESSAGES['pending']}\n\n{_order_summary(order)}",
                order_id=order.order_id,
            )
        email_service.send_admin_alert(
            subject=f"Nuevo pedido {order.order_id}",
            message=(
                f"Cliente: {order.user_id}\n"
                f"Teléfono: {order.contact_phone}\n\n"
                f"{_order_summary(order)}"
            ),
            order_id=order.order_id,
        )
    except Exception:
        logger.warning(
            "Order notification failed",
            exc_info=True,
            extra={"order_id": order.order_id, "event": "order_created"},
        )


def notify_order_status(order: OrderRead) -> None:
    try:
        email = _customer_email(order)
        if not email:
            return
        email_service.send_customer_email(
            to_email=email,
            subject=f"Pedido {order.order_id}: {order.status.value}",
            message=_STATUS_MESSAGES.get(order.status.value, f"Nuevo estado: {order.status.value}"),
            order_id=order.order_id,
        )
    except Exception:
        logger.warning(
            "Order notification failed",
            exc_info=True,
            extra={"order_id": order.order_id, "event": "status_changed"},
        )
