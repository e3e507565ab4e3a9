from decimal import Decimal


def as_number(value):
    """Decimal -> int when whole, float otherwise, so money stays a plain JSON number."""
    if value is None:
        return 0
    value = Decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def to_millis(dt) -> int:
    return int(dt.timestamp() * 1000)


def stock_item_to_dict(item) -> dict:
    return {
        'id': str(item.id),
        'name': item.name,
        'category': item.category,
        'buyingPrice': as_number(item.buying_price),
        'profit': as_number(item.profit),
        'mrp': as_number(item.mrp),
        'imageUrl': item.image_url,
        'salesCount': item.sales_count,
        'quantity': item.quantity,
    }


def bill_item_to_dict(line) -> dict:
    return {
        'itemId': line.item_id,
        'name': line.name,
        'mrp': as_number(line.mrp),
        'quantity': line.quantity,
        'profit': as_number(line.profit),
    }


def bill_to_dict(bill) -> dict:
    return {
        'id': str(bill.id),
        'items': [bill_item_to_dict(line) for line in bill.items.all()],
        'totalAmount': as_number(bill.total_amount),
        'totalProfit': as_number(bill.total_profit),
        'createdAt': to_millis(bill.created_at),
        'paymentMethod': bill.payment_method,
    }
