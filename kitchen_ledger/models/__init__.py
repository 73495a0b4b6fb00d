"""Models package - imports all models for the application"""
from ..extensions import db

# Import in dependency order for PostgreSQL table creation
from .user import User, Role
from .location import Location, LocationKind, PrepStation
from .ingredient import Ingredient
from .stock import StockHolding
from .recipe import Product, ProductRecipeItem, PrepRecipe, PrepRecipeInput
from .prep_task import PrepTask, PrepTaskStatus
from .order import Visit, VisitStatus, Order, OrderItem
from .buffet import PanModel, ServingPan, PanStatus, Delivery, DeliveryStatus, PanShipment
from .waste import WasteRecord, WasteReason

__all__ = [
    'db',
    'User', 'Role',
    'Location', 'LocationKind', 'PrepStation',
    'Ingredient',
    'StockHolding',
    'Product', 'ProductRecipeItem', 'PrepRecipe', 'PrepRecipeInput',
    'PrepTask', 'PrepTaskStatus',
    'Visit', 'VisitStatus', 'Order', 'OrderItem',
    'PanModel', 'ServingPan', 'PanStatus', 'Delivery', 'DeliveryStatus', 'PanShipment',
    'WasteRecord', 'WasteReason',
]
