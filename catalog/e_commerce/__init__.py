# Import models first
from .models import Category, Product, Review, CartItems, WishlistItems

# Router last to avoid circular imports
from .routes import router
