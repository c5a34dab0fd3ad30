"""
Django admin registrations for the registry models.

Superusers can inspect identities, institutions, donors and the audit
trail at ``/admin/``.  Audit events are read-only.
"""

from django.contrib import admin

from .models import AuditEvent, Donor, FirstAdminClaim, Institution, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'first_name', 'email', 'phone', 'role', 'credential_method', 'is_active')
    list_filter = ('role', 'credential_method', 'is_active')
    search_fields = ('username', 'first_name', 'email', 'phone', 'google_id')
    exclude = ('password',)


@admin.register(FirstAdminClaim)
class FirstAdminClaimAdmin(admin.ModelAdmin):
    list_display = ('key', 'user', 'claimed_at')


class DonorInline(admin.TabularInline):
    model = Donor
    extra = 0


@admin.register(Institution)
class InstitutionAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'created_at')
    search_fields = ('name',)
    inlines = (DonorInline,)


@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'age', 'blood_group', 'institution', 'created_at')
    list_filter = ('blood_group', 'institution')
    search_fields = ('name', 'contact', 'address', 'institution__name')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'actor_id', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
