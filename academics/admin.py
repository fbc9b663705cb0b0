from django.contrib import admin
from .models import ClassRoom, Section, Subject, StudentProfile, TeacherAssignment, Term


@admin.register(ClassRoom)
class ClassRoomAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'name', 'class_teacher']
    list_filter = ['school']
    search_fields = ['name']


@admin.register(Section)
class SectionAdmin(admin.ModelAdmin):
    list_display = ['id', 'classroom', 'name']


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'name', 'code']
    search_fields = ['name', 'code']


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'school', 'classroom', 'roll_number', 'discipline']
    list_filter = ['school', 'classroom']
    search_fields = ['user__username', 'user__first_name', 'user__last_name', 'roll_number']
    fieldsets = (
        (None, {'fields': ('user', 'school', 'classroom', 'section', 'roll_number', 'gender', 'guardian')}),
        ('Conduct', {'fields': ('discipline', 'time_management', 'smartness', 'attendance_remarks')}),
    )


@admin.register(TeacherAssignment)
class TeacherAssignmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'teacher', 'subject', 'classroom']
    list_filter = ['classroom__school']


@admin.register(Term)
class TermAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'term_name', 'year', 'status', 'next_term_starts', 'next_term_ends']
    list_filter = ['school', 'status', 'year']
    actions = ['make_active']

    @admin.action(description='Make selected term the active term')
    def make_active(self, request, queryset):
        if queryset.count() != 1:
            self.message_user(request, 'Select exactly one term to activate.', level='error')
            return
        term = queryset.first().activate()
        self.message_user(request, f'{term} is now the active term.')
