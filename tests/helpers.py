from decimal import Decimal

ADDRESS = {
    "address": "1 Main Street",
    "city": "Springfield",
    "postal_code": "12345",
    "country": "US",
}


def line(product, quantity=1, price=None):
    return {
        "product_id": product.id,
        "name": product.name,
        "image_url": product.image_url,
        "price": Decimal(price) if price is not None else product.price,
        "quantity": quantity,
    }


def wire_line(product, quantity=1):
    return {
        "product_id": product.id,
        "name": product.name,
        "image_url": product.image_url,
        "price": str(product.price),
        "quantity": quantity,
    }


WIRE_ADDRESS = {
    "address": ADDRESS["address"],
    "city": ADDRESS["city"],
    "postalCode": ADDRESS["postal_code"],
    "country": ADDRESS["country"],
}
