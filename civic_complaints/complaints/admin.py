from django.contrib import admin

from .models import AuditRecord, Complaint, ComplaintNote, UserProfile, Vote


class ComplaintNoteInline(admin.TabularInline):
    model = ComplaintNote
    extra = 0
    can_delete = False
    readonly_fields = ("event", "note", "added_by", "added_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = (
        "reference_id",
        "title",
        "category",
        "status",
        "priority",
        "citizen",
        "assigned_field_staff",
        "archived",
        "created_at",
    )
    list_filter = ("status", "category", "priority", "archived", "is_public", "created_at")
    search_fields = ("reference_id", "title", "citizen__username", "address", "city")
    readonly_fields = (
        "reference_id",
        "status",
        "created_at",
        "last_updated",
        "upvotes",
        "downvotes",
        "view_count",
    )
    inlines = [ComplaintNoteInline]


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "department", "job_role", "max_workload", "is_on_leave")
    list_filter = ("role", "department", "is_on_leave")
    search_fields = ("user__username", "user__email", "job_role")


@admin.register(Vote)
class VoteAdmin(admin.ModelAdmin):
    list_display = ("id", "complaint", "voter", "direction", "cast_at")
    list_filter = ("direction",)
    search_fields = ("complaint__reference_id", "voter__username")
    readonly_fields = ("cast_at",)


@admin.register(AuditRecord)
class AuditRecordAdmin(admin.ModelAdmin):
    list_display = ("id", "action", "entity_type", "entity_id", "performed_by", "created_at")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "reason")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
