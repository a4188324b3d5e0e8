from ecofinds.db.base_class import Base


# IMPORT ALL MODELS HERE (THIS REGISTERS THEM WITH Base.metadata)
from ecofinds.models.user import User
from ecofinds.models.category import Category
from ecofinds.models.product import Product
from ecofinds.models.cart import CartItem
from ecofinds.models.order import Order, OrderItem
from ecofinds.models.wishlist import Wishlist
