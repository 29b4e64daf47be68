from django.urls import path
from .views import (
    ListingListCreateView,
    ListingDetailView,
    CancelListingView,
    CompleteListingView,
    ListingContactView,
    ListingTimelineView,
    ListingRequestsView,
    MyRequestsView,
    AcceptRequestView,
    RejectRequestView,
)

urlpatterns = [
    # Listings
    path("listings/", ListingListCreateView.as_view(), name="listing-list-create"),
    path("listings/<int:listing_id>/", ListingDetailView.as_view(), name="listing-detail"),
    path("listings/<int:listing_id>/cancel/", CancelListingView.as_view(), name="listing-cancel"),
    path("listings/<int:listing_id>/complete/", CompleteListingView.as_view(), name="listing-complete"),
    path("listings/<int:listing_id>/contact/", ListingContactView.as_view(), name="listing-contact"),
    path("listings/<int:listing_id>/timeline/", ListingTimelineView.as_view(), name="listing-timeline"),

    # Requests
    path("listings/<int:listing_id>/requests/", ListingRequestsView.as_view(), name="listing-requests"),
    path("requests/mine/", MyRequestsView.as_view(), name="my-requests"),
    path("requests/<int:request_id>/accept/", AcceptRequestView.as_view(), name="request-accept"),
    path("requests/<int:request_id>/reject/", RejectRequestView.as_view(), name="request-reject"),
]
