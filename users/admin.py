from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'org_name', 'verification_status', 'is_blocked', 'is_staff')
    list_filter = ('role', 'verification_status', 'is_blocked', 'is_staff', 'is_superuser', 'is_active')
    search_fields = ('username', 'email', 'name', 'org_name')
    fieldsets = UserAdmin.fieldsets + (
        ('Foodshare Profile', {'fields': ('role', 'name', 'org_name', 'contact', 'address', 'avatar_url', 'supabase_id')}),
        ('Moderation', {'fields': ('verification_status', 'is_blocked', 'blocked_reason', 'blocked_at')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Foodshare Profile', {'fields': ('role', 'name', 'org_name', 'contact')}),
    )
