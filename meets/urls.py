"""URL configuration for the meet entry API."""

from rest_framework.routers import DefaultRouter

from .views import AthleteViewSet, FavoriteViewSet, MeetViewSet, TrackEventViewSet

router = DefaultRouter()
router.register(r"meets", MeetViewSet, basename="meet")
router.register(r"athletes", AthleteViewSet, basename="athlete")
router.register(r"events", TrackEventViewSet, basename="track-event")
router.register(r"favorites", FavoriteViewSet, basename="favorite")

urlpatterns = router.urls
