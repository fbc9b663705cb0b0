import csv
import logging

from django.db import transaction
from django.http import HttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from academics.models import ClassRoom, StudentProfile, Subject, TeacherAssignment, Term
from academics.terms import ACTIVE
from attendance.models import AttendanceRecord
from schools.utils import resolve_school_id
from users.permissions import RolePermission
from .aggregation import aggregate_results, results_by_exam_type
from .exceptions import InvalidRecordError, MissingDataError
from .grading import classify, default_scale, find_gaps
from .models import Examination, Result, StudentOverallResult, Grading, CommentBand, school_scale, comment_bands
from .records import ExamResultRecord
from .report_cards import ReportLayout, compose, compose_class
from .serializers import (
    ExaminationSerializer, ResultSerializer, StudentOverallResultSerializer,
    GradingSerializer, CommentBandSerializer,
)

logger = logging.getLogger(__name__)


class ExaminationViewSet(viewsets.ModelViewSet):
    queryset = Examination.objects.select_related('school', 'term', 'classroom', 'subject').all()
    serializer_class = ExaminationSerializer
    permission_classes = [RolePermission]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['school', 'term', 'classroom', 'subject', 'exam_type']
    search_fields = ['name']

    @action(detail=True, methods=['post'])
    def bulk_results(self, request, pk=None):
        """Create or update results in bulk for an examination"""
        examination = self.get_object()
        results_data = request.data.get('results', [])

        if not results_data:
            return Response(
                {"detail": "No results data provided"},
                status=status.HTTP_400_BAD_REQUEST
            )

        created = 0
        updated = 0
        errors = []

        with transaction.atomic():
            for idx, result_item in enumerate(results_data):
                item = dict(result_item)
                item['exam_type'] = examination.exam_type
                item.setdefault('subject_id', item.get('subjectId') or examination.subject_id)
                if not (item.get('total_marks') or item.get('totalMarks')):
                    item['total_marks'] = examination.total_marks

                try:
                    record = ExamResultRecord.from_mapping(item)
                except InvalidRecordError as exc:
                    errors.append({'index': idx, 'error': str(exc)})
                    continue

                if record.marks_obtained > record.total_marks:
                    errors.append({'index': idx, 'error': 'Marks obtained cannot exceed total marks'})
                    continue

                # Validate student belongs to exam class
                student = StudentProfile.objects.filter(id=record.student_id).first()
                if student is None:
                    errors.append({'index': idx, 'error': f'Student with id {record.student_id} not found'})
                    continue
                if student.classroom_id != examination.classroom_id:
                    errors.append({
                        'index': idx,
                        'error': f'Student does not belong to class {examination.classroom.name}'
                    })
                    continue

                subject = Subject.objects.filter(id=record.subject_id, school_id=examination.school_id).first()
                if subject is None:
                    errors.append({'index': idx, 'error': f'Subject with id {record.subject_id} not found'})
                    continue

                _, is_created = Result.objects.update_or_create(
                    examination=examination,
                    student=student,
                    subject=subject,
                    defaults={
                        'marks_obtained': record.marks_obtained,
                        'total_marks': record.total_marks,
                        'remarks': record.remarks or '',
                    }
                )

                if is_created:
                    created += 1
                else:
                    updated += 1

        for error in errors:
            logger.warning(f"Bulk results for examination {examination.id}: row {error['index']}: {error['error']}")
        logger.info(f"Bulk results for examination {examination.id}: {created} created, {updated} updated")

        return Response({
            'message': 'Bulk result creation completed',
            'created': created,
            'updated': updated,
            'errors': errors
        })

    @action(detail=True, methods=['get'])
    def standings(self, request, pk=None):
        """Overall results of an examination in rank order"""
        examination = self.get_object()
        overall = StudentOverallResult.objects.filter(examination=examination).select_related('student__user')
        return Response(StudentOverallResultSerializer(overall, many=True).data)


class ResultViewSet(viewsets.ModelViewSet):
    queryset = Result.objects.select_related('examination', 'student__user', 'subject').all()
    serializer_class = ResultSerializer
    permission_classes = [RolePermission]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['examination', 'examination__term', 'examination__exam_type', 'student', 'subject', 'grade', 'is_passed']
    search_fields = ['student__user__first_name', 'student__user__last_name', 'student__roll_number']

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Per-subject averages and overall statistics for a student"""
        student_id = request.query_params.get('student')
        if not student_id:
            return Response({"detail": "student parameter required"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            student = StudentProfile.objects.get(pk=student_id)
        except (StudentProfile.DoesNotExist, ValueError):
            return Response({"detail": "Student not found"}, status=status.HTTP_404_NOT_FOUND)

        results = Result.objects.filter(student=student).select_related('examination', 'subject')
        term_id = request.query_params.get('term')
        if term_id:
            results = results.filter(examination__term_id=term_id)
        exam_type = request.query_params.get('exam_type')
        if exam_type:
            results = results.filter(examination__exam_type=exam_type.upper())

        records = [r.to_record() for r in results]
        summary = aggregate_results(records)
        scale = school_scale(student.school_id)

        data = summary.as_dict()
        data['student'] = student.id
        data['grade'] = classify(summary.overall_average, scale) if summary.count else None
        data['subjects'] = {r.subject_id: r.subject_name for r in records}
        data['by_exam_type'] = {
            kind: round(aggregate_results(group).overall_average, 2)
            for kind, group in results_by_exam_type(records).items()
        }
        return Response(data)

    @action(detail=False, methods=['get'])
    def export_csv(self, request):
        """Export results to CSV"""
        qs = self.filter_queryset(self.get_queryset())

        response = HttpResponse(content_type='text/csv; charset=utf-8-sig')
        response['Content-Disposition'] = 'attachment; filename="results_export.csv"'

        writer = csv.writer(response)
        writer.writerow(['Serial', 'Roll Number', 'Student Name', 'Examination', 'Exam Type', 'Subject',
                         'Marks', 'Total', 'Percentage', 'Grade', 'Status'])

        for idx, result in enumerate(qs, start=1):
            student = result.student
            status_text = 'Passed' if result.is_passed else 'Failed'

            writer.writerow([
                idx,
                student.roll_number or '',
                student.full_name,
                result.examination.name,
                result.examination.exam_type,
                result.subject.name,
                result.marks_obtained,
                result.total_marks,
                result.percentage,
                result.grade,
                status_text
            ])

        return response


class GradingViewSet(viewsets.ModelViewSet):
    queryset = Grading.objects.select_related('school').all()
    serializer_class = GradingSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['school']

    @action(detail=False, methods=['get'])
    def coverage(self, request):
        """Ranges of 0-100 the school's grading scale leaves ungraded"""
        try:
            school_id = resolve_school_id(request)
        except ValueError:
            return Response({"detail": "Invalid school id"}, status=status.HTTP_400_BAD_REQUEST)
        if not school_id:
            return Response({"detail": "school parameter required"}, status=status.HTTP_400_BAD_REQUEST)

        entries = school_scale(school_id)
        uses_default = not entries
        gaps = [] if uses_default else find_gaps(entries)
        return Response({
            'school': school_id,
            'uses_default': uses_default,
            'entries': len(entries or default_scale()),
            'gaps': [{'from': start, 'to': end} for start, end in gaps],
        })


class CommentBandViewSet(viewsets.ModelViewSet):
    queryset = CommentBand.objects.select_related('school').all()
    serializer_class = CommentBandSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['school', 'kind']


def _school_header(school):
    return {
        'id': school.id,
        'name': school.name,
        'address': school.address or '',
        'email': school.email or '',
        'phone_number': school.phone_number or '',
        'logo': school.logo.url if school.logo else '',
    }


def _resolve_term(request, school_id):
    term_id = request.query_params.get('term')
    terms = Term.objects.filter(school_id=school_id)
    term = terms.filter(pk=term_id).first() if term_id else terms.filter(status=ACTIVE).first()
    if term is None:
        raise MissingDataError('Term not found' if term_id else 'No active term')
    return term


def _layout(request):
    return request.query_params.get('type', ReportLayout.MID_END).lower()


def _class_subjects(classroom_id):
    subjects = {}
    assignments = TeacherAssignment.objects.filter(classroom_id=classroom_id).select_related('subject', 'teacher')
    for assignment in assignments:
        teacher = assignment.teacher
        subjects.setdefault(assignment.subject_id, {
            'id': assignment.subject_id,
            'name': assignment.subject.name,
            'teacher_name': f"{teacher.first_name} {teacher.last_name}".strip() or teacher.username,
        })
    return list(subjects.values())


def _attendance_entries(students, term):
    """Attendance of the term's year, grouped per student."""
    entries = {}
    records = AttendanceRecord.objects.filter(student__in=students, date__year=term.year).select_related('student__user')
    for record in records:
        entries.setdefault(record.student_id, []).append(record.to_entry())
    return entries


class ReportCardMixin:
    permission_classes = [RolePermission]

    def handle_exception(self, exc):
        if isinstance(exc, MissingDataError):
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        if isinstance(exc, ValueError):
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return super().handle_exception(exc)

    def card_options(self, school_id, request):
        return {
            'comments': comment_bands(school_id),
            'grading_scale': school_scale(school_id) or None,
            'layout': _layout(request),
        }


class StudentReportCardView(ReportCardMixin, APIView):
    """Report card of one student for a term"""

    def get(self, request, student_id):
        student = StudentProfile.objects.select_related('user', 'school', 'classroom', 'section').filter(pk=student_id).first()
        if student is None:
            raise MissingDataError(f"Student {student_id} not found")
        term = _resolve_term(request, student.school_id)

        results = Result.objects.filter(student=student, examination__term=term).select_related('examination', 'subject')
        attendance = _attendance_entries([student], term)

        card = compose(
            student.identity(),
            _school_header(student.school),
            term.identity(),
            [r.to_record() for r in results],
            conduct=student.conduct(),
            subjects=_class_subjects(student.classroom_id) if student.classroom_id else None,
            attendance=attendance.get(student.id),
            **self.card_options(student.school_id, request)
        )
        return Response(card.as_dict())


class ClassReportCardView(ReportCardMixin, APIView):
    """Report cards of every student in a class for a term"""

    def get(self, request, classroom_id):
        classroom = ClassRoom.objects.select_related('school').filter(pk=classroom_id).first()
        if classroom is None:
            raise MissingDataError(f"Class {classroom_id} not found")
        term = _resolve_term(request, classroom.school_id)

        students = list(
            StudentProfile.objects.filter(classroom=classroom).select_related('user', 'classroom', 'section')
        )
        results_by_student = {}
        results = Result.objects.filter(
            student__in=students, examination__term=term
        ).select_related('examination', 'subject')
        for result in results:
            results_by_student.setdefault(result.student_id, []).append(result.to_record())

        cards = compose_class(
            [s.identity() for s in students],
            _school_header(classroom.school),
            term.identity(),
            results_by_student,
            conduct_by_student={s.id: s.conduct() for s in students},
            attendance_by_student=_attendance_entries(students, term),
            subjects=_class_subjects(classroom.id),
            **self.card_options(classroom.school_id, request)
        )
        return Response({
            'classroom': {'id': classroom.id, 'name': classroom.name},
            'term': term.identity(),
            'count': len(cards),
            'report_cards': [card.as_dict() for card in cards],
        })
