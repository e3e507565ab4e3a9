"""Session cart: the working set of lines before a bill is committed.

Lines are keyed by stock item id and hold a snapshot of the item's name and
prices (money stored as strings so the session stays JSON-serializable).
Stock limits are enforced here, at the cart level; the commit itself does
not check them.
"""

CART_SESSION_KEY = 'cart'


def get_cart(request):
    cart = request.session.get(CART_SESSION_KEY, {})
    request.session.setdefault(CART_SESSION_KEY, cart)
    return cart


def save_cart(request, cart):
    request.session[CART_SESSION_KEY] = cart
    request.session.modified = True


def clear_cart(request):
    save_cart(request, {})


def snapshot(stock_item, quantity):
    return {
        'itemId': str(stock_item.id),
        'name': stock_item.name,
        'mrp': str(stock_item.mrp),
        'quantity': quantity,
        'profit': str(stock_item.profit),
    }


def add_item(cart, stock_item, quantity=1):
    if quantity <= 0:
        raise ValueError('Quantity must be positive.')
    key = str(stock_item.id)
    new_qty = (cart[key]['quantity'] if key in cart else 0) + quantity
    if new_qty > stock_item.quantity:
        raise ValueError(f'Cannot add more. Only {stock_item.quantity} in stock.')
    if key in cart:
        cart[key]['quantity'] = new_qty
    else:
        cart[key] = snapshot(stock_item, new_qty)
    return cart[key]


def set_quantity(cart, stock_item, quantity):
    key = str(stock_item.id)
    if quantity <= 0:
        cart.pop(key, None)
        return None
    if quantity > stock_item.quantity:
        raise ValueError(f'Cannot add more. Only {stock_item.quantity} in stock.')
    if key in cart:
        cart[key]['quantity'] = quantity
    else:
        cart[key] = snapshot(stock_item, quantity)
    return cart[key]


def remove_item(cart, item_id):
    return cart.pop(str(item_id), None) is not None


def cart_lines(cart):
    return list(cart.values())
