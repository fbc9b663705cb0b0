from rest_framework import viewsets, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.db.models import Count, Q
from .models import School
from .serializers import SchoolSerializer
from .utils import resolve_school_id
from academics.models import ClassRoom, StudentProfile, Subject, Term
from academics.terms import ACTIVE
from attendance.models import AttendanceRecord
from attendance.aggregation import PRESENT, ABSENT, LATE
from results.aggregation import aggregate_results
from results.models import Result
from users.models import Profile
from users.permissions import RolePermission
from datetime import timedelta
from django.utils import timezone


class SchoolViewSet(viewsets.ModelViewSet):
    queryset = School.objects.all()
    serializer_class = SchoolSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)


@api_view(['GET'])
@permission_classes([RolePermission])
def dashboard_stats(request):
    """
    Get statistics for the admin dashboard
    """
    try:
        school_id = resolve_school_id(request)
    except ValueError:
        return Response({"detail": "Invalid school_id"}, status=status.HTTP_400_BAD_REQUEST)
    if not school_id:
        return Response({"detail": "No school specified"}, status=status.HTTP_400_BAD_REQUEST)

    try:
        school_obj = School.objects.get(id=school_id)
    except School.DoesNotExist:
        return Response({"detail": "School not found"}, status=status.HTTP_404_NOT_FOUND)

    students_count = StudentProfile.objects.filter(school_id=school_id).count()
    teachers_count = Profile.objects.filter(school_id=school_id, role='teacher').count()
    classes_count = ClassRoom.objects.filter(school_id=school_id).count()
    subjects_count = Subject.objects.filter(school_id=school_id).count()

    # Attendance for the last 7 days
    today = timezone.now().date()
    week_ago = today - timedelta(days=7)
    attendance_data = (
        AttendanceRecord.objects.filter(school_id=school_id, date__gte=week_ago)
        .values('date')
        .annotate(
            present=Count('id', filter=Q(status=PRESENT)),
            absent=Count('id', filter=Q(status=ABSENT)),
            late=Count('id', filter=Q(status=LATE)),
        )
        .order_by('date')
    )

    # Performance for the active term
    active = Term.objects.filter(school_id=school_id, status=ACTIVE).first()
    performance = None
    if active:
        results = Result.objects.filter(examination__term=active).select_related('examination', 'subject')
        performance = aggregate_results(r.to_record() for r in results).as_dict()

    class_distribution = StudentProfile.objects.filter(
        school_id=school_id
    ).values('classroom__name').annotate(
        count=Count('id')
    ).order_by('classroom__name')

    return Response({
        'school_id': school_id,
        'school_name': school_obj.name,
        'students_count': students_count,
        'teachers_count': teachers_count,
        'classes_count': classes_count,
        'subjects_count': subjects_count,
        'active_term': {'id': active.id, 'name': active.term_name, 'year': active.year} if active else None,
        'performance': performance,
        'attendance_data': list(attendance_data),
        'class_distribution': list(class_distribution),
    })
