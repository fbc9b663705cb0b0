from rest_framework import serializers
from .models import AttendanceRecord
from .aggregation import STATUS_CHOICES


class AttendanceRecordSerializer(serializers.ModelSerializer):
    student_name = serializers.SerializerMethodField()
    classroom_name = serializers.SerializerMethodField()
    subject_name = serializers.CharField(source='subject.name', read_only=True, default='')

    class Meta:
        model = AttendanceRecord
        fields = [
            'id', 'school', 'student', 'student_name', 'classroom', 'classroom_name',
            'subject', 'subject_name', 'date', 'status', 'note',
        ]

    def to_internal_value(self, data):
        # Status arrives capitalised from some clients ("Present")
        if hasattr(data, 'get') and isinstance(data.get('status'), str):
            data = data.copy()
            data['status'] = data['status'].strip().lower()
        return super().to_internal_value(data)

    def validate(self, data):
        student = data.get('student', getattr(self.instance, 'student', None))
        day = data.get('date', getattr(self.instance, 'date', None))
        subject = data['subject'] if 'subject' in data else getattr(self.instance, 'subject', None)

        # NULL subjects never collide in the unique index, so check whole-day records here
        existing = AttendanceRecord.objects.filter(student=student, date=day, subject=subject)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError(
                "Attendance for this student on this date is already recorded. Update it or use bulk_save."
            )
        return data

    def get_student_name(self, obj):
        return obj.student.full_name

    def get_classroom_name(self, obj):
        classroom = obj.classroom or obj.student.classroom
        return classroom.name if classroom else 'N/A'


class BulkAttendanceItemSerializer(serializers.Serializer):
    """One row of a bulk attendance submission"""
    student = serializers.IntegerField()
    date = serializers.DateField()
    status = serializers.ChoiceField(choices=STATUS_CHOICES)
    subject = serializers.IntegerField(required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_internal_value(self, data):
        if hasattr(data, 'get') and isinstance(data.get('status'), str):
            data = dict(data)
            data['status'] = data['status'].strip().lower()
        return super().to_internal_value(data)


class AttendanceSummarySerializer(serializers.Serializer):
    """Serializer for attendance summary/report"""
    date = serializers.DateField()
    classroom = serializers.CharField()
    section = serializers.CharField()
    total_students = serializers.IntegerField()
    present_count = serializers.IntegerField()
    absent_count = serializers.IntegerField()
    late_count = serializers.IntegerField()
    unmarked_count = serializers.IntegerField()
    attendance_percentage = serializers.FloatField()


class MonthlyAttendanceSerializer(serializers.Serializer):
    """Serializer for monthly attendance report"""
    student_id = serializers.IntegerField()
    student_name = serializers.CharField()
    classroom = serializers.CharField()
    section = serializers.CharField()
    total_days = serializers.IntegerField()
    present_days = serializers.IntegerField()
    absent_days = serializers.IntegerField()
    late_days = serializers.IntegerField()
    attendance_percentage = serializers.FloatField()
    is_at_risk = serializers.BooleanField()
