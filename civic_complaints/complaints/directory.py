from .models import UserProfile


class StaffDirectory:
    """Answers staff lookups for the lifecycle from ``UserProfile`` rows.

    Anything exposing the same two methods can be passed to the lifecycle
    instead, which keeps the engine independent of where accounts live.
    """

    def _profile(self, staff_id):
        try:
            return UserProfile.objects.select_related("user").get(user_id=staff_id)
        except (UserProfile.DoesNotExist, ValueError, TypeError):
            return None

    def is_active_field_staff(self, staff_id) -> bool:
        profile = self._profile(staff_id)
        return bool(profile and profile.is_field_staff and profile.user.is_active)

    def department_of(self, staff_id):
        """Return the staff member's department, or ``None`` for unknown ids."""
        profile = self._profile(staff_id)
        if profile is None:
            return None
        return profile.department or ""


default_directory = StaffDirectory()
