from app.models.user import User
from app.models.restaurant import Restaurant, Branch
from app.models.table import RestaurantTable, TableLocationType
from app.models.time_slot import TimeSlot, MealType
from app.models.coupon import Coupon, OfferType
from app.models.booking import Booking, BookingStatus, OccasionType, TERMINAL_STATUSES
from app.models.notification import Notification
