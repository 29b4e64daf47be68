from .listings import (
    ListingListCreateView,
    ListingDetailView,
    CancelListingView,
    CompleteListingView,
    ListingContactView,
    ListingTimelineView,
)
from .requests import (
    ListingRequestsView,
    MyRequestsView,
    AcceptRequestView,
    RejectRequestView,
)
