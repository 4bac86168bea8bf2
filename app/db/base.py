from app.db.session import Base
from app.models.user import User
from app.models.restaurant import Restaurant, Branch
from app.models.table import RestaurantTable
from app.models.time_slot import TimeSlot
from app.models.coupon import Coupon
from app.models.booking import Booking
from app.models.notification import Notification
