from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Profile


class ProfileInline(admin.StackedInline):
    model = Profile
    can_delete = False
    fk_name = 'user'


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    inlines = [ProfileInline]
    list_display = ('username', 'first_name', 'last_name', 'email', 'get_role', 'get_school')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Contact', {'fields': ('phone_number', 'photo')}),
    )

    def get_role(self, obj):
        return getattr(getattr(obj, 'profile', None), 'role', '')
    get_role.short_description = 'Role'

    def get_school(self, obj):
        profile = getattr(obj, 'profile', None)
        return profile.school if profile else None
    get_school.short_description = 'School'


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'school', 'role')
    list_filter = ('role', 'school')
    search_fields = ('user__username', 'user__first_name', 'user__last_name')
