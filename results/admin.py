from django.contrib import admin
from .models import Examination, Result, StudentOverallResult, Grading, CommentBand


@admin.register(Examination)
class ExaminationAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'exam_type', 'school', 'term', 'classroom', 'subject', 'exam_date', 'total_marks', 'pass_marks']
    list_filter = ['school', 'term', 'exam_type', 'classroom', 'exam_date']
    search_fields = ['name']
    date_hierarchy = 'exam_date'


@admin.register(Result)
class ResultAdmin(admin.ModelAdmin):
    list_display = ['id', 'examination', 'student_name', 'subject', 'marks_obtained', 'total_marks', 'percentage', 'grade', 'is_passed']
    list_filter = ['examination', 'subject', 'grade', 'is_passed']
    search_fields = ['student__user__first_name', 'student__user__last_name', 'student__roll_number']
    readonly_fields = ['percentage', 'grade', 'is_passed']

    def student_name(self, obj):
        return obj.student.full_name
    student_name.short_description = 'Student'


@admin.register(StudentOverallResult)
class StudentOverallResultAdmin(admin.ModelAdmin):
    list_display = ['id', 'examination', 'student_name', 'total_marks_obtained', 'total_marks_possible', 'percentage', 'grade', 'rank', 'is_passed']
    list_filter = ['examination', 'is_passed', 'grade']
    search_fields = ['student__user__first_name', 'student__user__last_name']
    readonly_fields = ['total_marks_obtained', 'total_marks_possible', 'percentage', 'grade', 'rank']

    def student_name(self, obj):
        return obj.student.full_name
    student_name.short_description = 'Student'


@admin.register(Grading)
class GradingAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'grade', 'from_percentage', 'to_percentage', 'comment']
    list_filter = ['school']


@admin.register(CommentBand)
class CommentBandAdmin(admin.ModelAdmin):
    list_display = ['id', 'school', 'kind', 'from_percentage', 'to_percentage', 'comment']
    list_filter = ['school', 'kind']
