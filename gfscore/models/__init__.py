from .product import Product
from .vote import Vote, RegisteredVoter, AnonymousVoter, VoterIdentity
from .price_snapshot import PriceSnapshot
from .setting import Setting

__all__ = [
    "Product",
    "Vote",
    "RegisteredVoter",
    "AnonymousVoter",
    "VoterIdentity",
    "PriceSnapshot",
    "Setting",
]
