from django.contrib import admin

from .models import Application, ApplicationEvent


class ApplicationEventInline(admin.TabularInline):
    model = ApplicationEvent
    extra = 0
    readonly_fields = ("status", "note", "actor", "created_at")
    can_delete = False


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "job", "candidate", "status", "created_at", "updated_at")
    list_filter = ("status",)
    search_fields = ("job__title", "candidate__email", "candidate__name")
    readonly_fields = ("resume", "version", "created_at", "updated_at")
    inlines = [ApplicationEventInline]
