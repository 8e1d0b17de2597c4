from .inventory import Product, ProductVariant, to_cents, from_cents
from .sales import Sale
from .settings import UserSettings

__all__ = [
    'Product', 'ProductVariant',
    'Sale',
    'UserSettings',
    'to_cents', 'from_cents',
]
