"""
URL configuration for the booking audit API.

Routes:
    /               - List bookings (GET)
    /{id}/          - Booking detail (GET)
    /{id}/history/  - Status history (GET)
    /{id}/payments/ - Payments with refunds (GET)
"""

from rest_framework.routers import SimpleRouter

from bookings.views import BookingViewSet

router = SimpleRouter()
router.register(r"", BookingViewSet, basename="booking")

app_name = "bookings"
urlpatterns = router.urls
