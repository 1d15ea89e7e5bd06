from django.contrib import admin

from .models import Job


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("title", "company", "location", "job_type", "status", "employer", "created_at")
    list_filter = ("status", "job_type", "salary_currency")
    search_fields = ("title", "company", "location")
    readonly_fields = ("version", "created_at", "updated_at")
