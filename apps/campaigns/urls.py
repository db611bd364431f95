from rest_framework.routers import SimpleRouter

from .views import JobCampaignViewSet

router = SimpleRouter()
router.register("", JobCampaignViewSet, basename="campaign")

urlpatterns = router.urls
