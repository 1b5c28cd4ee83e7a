"""
Store-related email templates.
"""

from libs.common.emails.core import format_money, send_email


async def send_store_order_confirmation_email(
    to_email: str,
    customer_name: str,
    order_id: int,
    items: list[dict],  # [{"title": str, "quantity": int, "line_total": int}]
    total_amount: int,
    discount_amount: int,
    delivery_fee: int,
    final_amount: int,
) -> bool:
    """
    Send order confirmation email once an order has been created.
    """
    subject = f"Order Confirmed - #{order_id}"

    items_text = "\n".join(
        f"  - {item['title']} x{item['quantity']} - {format_money(item['line_total'])}"
        for item in items
    )
    items_html = "".join(
        f"<tr><td>{item['title']}</td>"
        f"<td style='text-align:center'>{item['quantity']}</td>"
        f"<td style='text-align:right'>{format_money(item['line_total'])}</td></tr>"
        for item in items
    )

    body = f"""Hi {customer_name},

Thank you for your order! It is now being processed.

Order #{order_id}

Items:
{items_text}

Subtotal: {format_money(total_amount)}
{f"Discount: -{format_money(discount_amount)}" if discount_amount > 0 else ""}
{f"Delivery Fee: {format_money(delivery_fee)}" if delivery_fee > 0 else ""}
Total: {format_money(final_amount)}

We'll let you know when your order ships.
"""

    html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2>Order Confirmed</h2>
        <p>Hi {customer_name},</p>
        <p>Thank you for your order! It is now being processed.</p>
        <p><strong>Order #{order_id}</strong></p>
        <table style="width: 100%; border-collapse: collapse;">
            <tr><th style="text-align:left">Item</th><th>Qty</th><th style="text-align:right">Total</th></tr>
            {items_html}
        </table>
        <p>
            Subtotal: {format_money(total_amount)}<br/>
            {f"Discount: -{format_money(discount_amount)}<br/>" if discount_amount > 0 else ""}
            {f"Delivery Fee: {format_money(delivery_fee)}<br/>" if delivery_fee > 0 else ""}
            <strong>Total: {format_money(final_amount)}</strong>
        </p>
        <p>We'll let you know when your order ships.</p>
    </div>
</body>
</html>
"""

    return await send_email(to_email, subject, body, html_body)
