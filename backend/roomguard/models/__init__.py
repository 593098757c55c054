from roomguard.models.activity_log import ActivityLog  # noqa: F401
from roomguard.models.branch import Branch  # noqa: F401
from roomguard.models.class_group import ClassGroup, TimetableEntry  # noqa: F401
from roomguard.models.notification import Notification, NotificationType  # noqa: F401
from roomguard.models.reservation import BLOCKING_STATUSES, Reservation, ReservationStatus  # noqa: F401
from roomguard.models.room import Room, RoomCategory, RoomType  # noqa: F401
from roomguard.models.user import User, UserRole  # noqa: F401
