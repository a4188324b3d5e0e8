from ecofinds.models.user import User
from ecofinds.models.category import Category
from ecofinds.models.product import Product, ProductCondition
from ecofinds.models.cart import CartItem
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.models.wishlist import Wishlist
