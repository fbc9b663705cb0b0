import logging
from collections import defaultdict
from datetime import date as date_cls, timedelta

from django.conf import settings
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from academics.models import StudentProfile
from schools.utils import resolve_school_id
from users.permissions import RolePermission
from .aggregation import (
    PRESENT, ABSENT, LATE, aggregate_attendance, at_risk_students, lowest_attendance,
    attendance_overview, AttendanceSummary,
)
from .models import AttendanceRecord
from .serializers import (
    AttendanceRecordSerializer, BulkAttendanceItemSerializer,
    AttendanceSummarySerializer, MonthlyAttendanceSerializer,
)

logger = logging.getLogger(__name__)

# Look-back window in days for the insights page
PERIOD_DAYS = {
    'week': 7,
    'month': 30,
    'term': 120,
    'year': 365,
}


def _risk_threshold(request):
    value = request.query_params.get('threshold')
    if value in (None, ''):
        return getattr(settings, 'ATTENDANCE_RISK_THRESHOLD', 80)
    return float(value)


class AttendanceRecordViewSet(viewsets.ModelViewSet):
    queryset = AttendanceRecord.objects.select_related(
        'student__user', 'student__classroom', 'classroom', 'subject', 'school'
    ).all()
    serializer_class = AttendanceRecordSerializer
    permission_classes = [RolePermission]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['school', 'student', 'classroom', 'subject', 'date', 'status']

    @action(detail=False, methods=['post'])
    def bulk_save(self, request):
        """Bulk save or update attendance records"""
        records_data = request.data.get('records', [])

        if not records_data:
            return Response({'detail': 'No records provided'}, status=status.HTTP_400_BAD_REQUEST)

        created = 0
        updated = 0
        errors = []

        for index, record_data in enumerate(records_data):
            item = BulkAttendanceItemSerializer(data=record_data)
            if not item.is_valid():
                errors.append({'index': index, 'student': record_data.get('student'), 'error': item.errors})
                continue
            data = item.validated_data

            try:
                student = StudentProfile.objects.get(pk=data['student'])
            except StudentProfile.DoesNotExist:
                errors.append({'index': index, 'student': data['student'], 'error': 'Student not found'})
                continue

            # One record per student, date and subject: update in place if marked already
            _, was_created = AttendanceRecord.objects.update_or_create(
                student=student,
                date=data['date'],
                subject_id=data.get('subject'),
                defaults={
                    'school_id': student.school_id,
                    'classroom_id': student.classroom_id,
                    'status': data['status'],
                    'note': data.get('note') or '',
                },
            )
            if was_created:
                created += 1
            else:
                updated += 1

        if errors:
            logger.warning(f"Bulk attendance: {len(errors)} rows rejected")
        logger.info(f"Bulk attendance saved: {created} created, {updated} updated")

        return Response({
            'success': not errors,
            'created': created,
            'updated': updated,
            'saved': created + updated,
            'errors': errors,
        }, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'])
    def daily_summary(self, request):
        """Get attendance summary by date, classroom, and section"""
        school_id = request.query_params.get('school')
        date = request.query_params.get('date')

        if not school_id or not date:
            return Response({'detail': 'school and date parameters are required'}, status=status.HTTP_400_BAD_REQUEST)

        students = StudentProfile.objects.filter(school_id=school_id).select_related('classroom', 'section')

        # Whole-day records win over per-subject ones
        attendance_map = {}
        records = AttendanceRecord.objects.filter(school_id=school_id, date=date).order_by('subject_id')
        for record in records:
            if record.subject_id is None or record.student_id not in attendance_map:
                attendance_map[record.student_id] = record.status

        summary_data = defaultdict(lambda: {'total': 0, PRESENT: 0, ABSENT: 0, LATE: 0, 'unmarked': 0})

        for student in students:
            classroom_name = student.classroom.name if student.classroom else 'No Class'
            section_name = student.section.name if student.section else 'No Section'
            counts = summary_data[(classroom_name, section_name)]

            counts['total'] += 1
            marked = attendance_map.get(student.id)
            if marked in (PRESENT, ABSENT, LATE):
                counts[marked] += 1
            else:
                counts['unmarked'] += 1

        summaries = []
        for (classroom, section), data in summary_data.items():
            percentage = (data[PRESENT] / data['total'] * 100) if data['total'] > 0 else 0
            summaries.append({
                'date': date,
                'classroom': classroom,
                'section': section,
                'total_students': data['total'],
                'present_count': data[PRESENT],
                'absent_count': data[ABSENT],
                'late_count': data[LATE],
                'unmarked_count': data['unmarked'],
                'attendance_percentage': round(percentage, 2),
            })

        serializer = AttendanceSummarySerializer(summaries, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def monthly_report(self, request):
        """Get monthly attendance report for students"""
        school_id = request.query_params.get('school')
        month = request.query_params.get('month')  # Format: YYYY-MM
        classroom_id = request.query_params.get('classroom')
        section_id = request.query_params.get('section')

        if not school_id or not month:
            return Response({'detail': 'school and month parameters are required'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            year, month_num = map(int, month.split('-'))
            start_date = date_cls(year, month_num, 1)
            if month_num == 12:
                end_date = date_cls(year + 1, 1, 1)
            else:
                end_date = date_cls(year, month_num + 1, 1)
            threshold = _risk_threshold(request)
        except ValueError:
            return Response({'detail': 'Invalid month or threshold. Use YYYY-MM'}, status=status.HTTP_400_BAD_REQUEST)

        students = StudentProfile.objects.filter(school_id=school_id)
        if classroom_id:
            students = students.filter(classroom_id=classroom_id)
        if section_id:
            students = students.filter(section_id=section_id)
        students = students.select_related('user', 'classroom', 'section')

        records = AttendanceRecord.objects.filter(
            student__in=students,
            date__gte=start_date,
            date__lt=end_date,
        ).select_related('student__user')
        summaries = aggregate_attendance((r.to_entry() for r in records), risk_threshold=threshold)

        reports = []
        for student in students:
            summary = summaries.get(student.id) or AttendanceSummary(student_id=student.id)
            reports.append({
                'student_id': student.id,
                'student_name': student.full_name,
                'classroom': student.classroom.name if student.classroom else 'N/A',
                'section': student.section.name if student.section else 'N/A',
                'total_days': summary.total,
                'present_days': summary.present,
                'absent_days': summary.absent,
                'late_days': summary.late,
                'attendance_percentage': round(summary.attendance_rate, 2),
                'is_at_risk': summary.is_at_risk,
            })

        serializer = MonthlyAttendanceSerializer(reports, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def insights(self, request):
        """At-risk students and attendance overview for a recent period"""
        try:
            school_id = resolve_school_id(request)
            threshold = _risk_threshold(request)
        except ValueError:
            return Response({'detail': 'Invalid school or threshold'}, status=status.HTTP_400_BAD_REQUEST)
        if not school_id:
            return Response({'detail': 'school parameter required'}, status=status.HTTP_400_BAD_REQUEST)

        period = request.query_params.get('period', 'month')
        days = PERIOD_DAYS.get(period, PERIOD_DAYS['month'])
        start_date = timezone.now().date() - timedelta(days=days)

        records = AttendanceRecord.objects.filter(school_id=school_id, date__gte=start_date)
        classroom_id = request.query_params.get('classroom')
        if classroom_id:
            records = records.filter(classroom_id=classroom_id)
        records = records.select_related('student__user').order_by('date', 'id')

        summaries = aggregate_attendance((r.to_entry() for r in records), risk_threshold=threshold)
        limit = getattr(settings, 'AT_RISK_LIST_LIMIT', 10)

        return Response({
            'period': period,
            'start_date': start_date,
            'threshold': threshold,
            'overview': attendance_overview(summaries),
            'at_risk': [s.as_dict() for s in at_risk_students(summaries)],
            'lowest': [s.as_dict() for s in lowest_attendance(summaries, limit=limit)],
        })

    @action(detail=False, methods=['get'])
    def student_summary(self, request):
        """Attendance counts and rate for one student"""
        student_id = request.query_params.get('student')
        if not student_id:
            return Response({'detail': 'student parameter required'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            student = StudentProfile.objects.select_related('user').get(pk=student_id)
            threshold = _risk_threshold(request)
        except (StudentProfile.DoesNotExist, ValueError):
            return Response({'detail': 'Student not found'}, status=status.HTTP_404_NOT_FOUND)

        records = AttendanceRecord.objects.filter(student=student).select_related('student__user')
        start = request.query_params.get('start')
        end = request.query_params.get('end')
        if start:
            records = records.filter(date__gte=start)
        if end:
            records = records.filter(date__lte=end)

        summaries = aggregate_attendance((r.to_entry() for r in records), risk_threshold=threshold)
        summary = summaries.get(student.id) or AttendanceSummary(
            student_id=student.id,
            is_at_risk=0.0 < threshold,
            student_name=student.full_name,
        )
        return Response(summary.as_dict())
