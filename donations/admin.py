from django.contrib import admin
from .models import Listing, DonationRequest, ListingTransition


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ('id', 'food_category', 'donor', 'status', 'quantity', 'quantity_unit', 'expiry_time')
    list_filter = ('status', 'food_type')
    search_fields = ('food_category', 'location', 'donor__username')
    date_hierarchy = 'created_at'
    readonly_fields = ('version', 'created_at', 'updated_at')


@admin.register(DonationRequest)
class DonationRequestAdmin(admin.ModelAdmin):
    list_display = ('listing', 'ngo', 'status', 'requested_pickup_time', 'created_at')
    list_filter = ('status',)
    search_fields = ('ngo__username', 'listing__food_category')


@admin.register(ListingTransition)
class ListingTransitionAdmin(admin.ModelAdmin):
    list_display = ('listing', 'from_status', 'to_status', 'actor', 'created_at')
    list_filter = ('to_status',)
    search_fields = ('listing__food_category', 'actor__username')
