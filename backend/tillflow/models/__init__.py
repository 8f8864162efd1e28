from .shops import Shop, ShopStaff
from .sessions import StaffSession, ClockInRequest
from .orders import Order, OrderItem, OrderStatusChange
from .security import SecurityEvent

__all__ = [
    'Shop', 'ShopStaff',
    'StaffSession', 'ClockInRequest',
    'Order', 'OrderItem', 'OrderStatusChange',
    'SecurityEvent',
]
