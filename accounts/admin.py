from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    # show extra fields in admin
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Job Portal", {"fields": ("name", "role", "company", "phone")}),
    )
    list_display = ("username", "email", "name", "role", "company", "is_active", "is_staff")
    list_filter = DjangoUserAdmin.list_filter + ("role",)
