from django.contrib import admin
from .models import AttendanceRecord


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'student', 'classroom', 'subject', 'date', 'status']
    list_filter = ['date', 'status', 'school']
