from django.urls import path

from .views import (
    ListingFeedbackView,
    MyFeedbackView,
    ComplaintListCreateView,
    ResolveComplaintView,
)

urlpatterns = [
    path("listings/<int:listing_id>/", ListingFeedbackView.as_view(), name="listing-feedback"),
    path("me/", MyFeedbackView.as_view(), name="my-feedback"),
    path("complaints/", ComplaintListCreateView.as_view(), name="complaint-list-create"),
    path("complaints/<int:complaint_id>/resolve/", ResolveComplaintView.as_view(), name="complaint-resolve"),
]
