from .inventory import Category, Brand, Product, InventoryAdjustment
from .attributes import Attribute, ProductAttribute
from .suppliers import Supplier
from .customers import Customer, CreditLedgerEntry
from .sales import Sale, SaleLine
from .auth import User, SessionToken
from .settings import CompanyProfile

__all__ = [
    'Category', 'Brand', 'Product', 'InventoryAdjustment',
    'Attribute', 'ProductAttribute',
    'Supplier',
    'Customer', 'CreditLedgerEntry',
    'Sale', 'SaleLine',
    'User', 'SessionToken',
    'CompanyProfile',
]
