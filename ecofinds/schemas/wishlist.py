from pydantic import BaseModel


class WishlistStatus(BaseModel):
    product_id: int
    in_wishlist: bool
