from django.contrib import admin
from .models import Feedback, Complaint


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ('listing', 'from_user', 'to_user', 'stars', 'created_at')
    list_filter = ('stars', 'created_at')
    search_fields = ('comment', 'from_user__username', 'to_user__username')


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ('id', 'type', 'from_user', 'to_user', 'status', 'created_at')
    list_filter = ('status', 'type')
    search_fields = ('description', 'from_user__username', 'to_user__username')
    readonly_fields = ('created_at', 'updated_at')
