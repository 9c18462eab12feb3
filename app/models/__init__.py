from .user.user import User
from .trips.trip_model import Trip
from .trips.trip_destination import TripDestination
from .trips.trip_route import TripRoute
from .trips.trip_tracker import TripTracker
from .reviews.review_models import TripReview, PlatformReview
from .tickets.ticket_model import GeneratedTicket
