from .auth import User, SessionToken
from .revenue import Store, OrderItem, DailyStoreRevenue

__all__ = [
    'User', 'SessionToken',
    'Store', 'OrderItem', 'DailyStoreRevenue',
]
