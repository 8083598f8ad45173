from .user import User
from .login_token import LoginToken
from .booking import Booking
from .host_contact import HostContact
from .notification import Notification
from .notification_event import NotificationEvent
# base mixins are imported by the above as needed
