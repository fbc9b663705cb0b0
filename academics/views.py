from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from schools.utils import resolve_school_id
from users.permissions import RolePermission
from .models import ClassRoom, Section, Subject, StudentProfile, TeacherAssignment, Term
from .serializers import (
    ClassRoomSerializer, SectionSerializer, SubjectSerializer, StudentProfileSerializer,
    ConductSerializer, TeacherAssignmentSerializer, TermSerializer,
)
from .terms import active_term


class ClassRoomViewSet(viewsets.ModelViewSet):
    queryset = ClassRoom.objects.select_related('school').prefetch_related('sections', 'students').all()
    serializer_class = ClassRoomSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['school']
    search_fields = ['name']

    @action(detail=True, methods=['get'])
    def students(self, request, pk=None):
        """Get all students in a specific class"""
        classroom = self.get_object()
        students = StudentProfile.objects.filter(classroom=classroom).select_related('user', 'section')
        serializer = StudentProfileSerializer(students, many=True, context={'request': request})
        return Response(serializer.data)


class SectionViewSet(viewsets.ModelViewSet):
    queryset = Section.objects.select_related('classroom').all()
    serializer_class = SectionSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['classroom']


class SubjectViewSet(viewsets.ModelViewSet):
    queryset = Subject.objects.select_related('school').all()
    serializer_class = SubjectSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['school']
    search_fields = ['name', 'code']


class StudentProfileViewSet(viewsets.ModelViewSet):
    queryset = StudentProfile.objects.select_related('user', 'school', 'classroom', 'section', 'guardian').all()
    serializer_class = StudentProfileSerializer
    permission_classes = [RolePermission]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['school', 'classroom', 'section', 'guardian']
    search_fields = ['user__username', 'user__first_name', 'user__last_name', 'roll_number']

    @action(detail=True, methods=['post'])
    def update_conduct(self, request, pk=None):
        """Set the conduct remarks printed on the report card"""
        student = self.get_object()
        serializer = ConductSerializer(student, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class TeacherAssignmentViewSet(viewsets.ModelViewSet):
    queryset = TeacherAssignment.objects.select_related('teacher', 'subject', 'classroom').all()
    serializer_class = TeacherAssignmentSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['classroom__school', 'classroom', 'teacher', 'subject']


class TermViewSet(viewsets.ModelViewSet):
    queryset = Term.objects.select_related('school').all()
    serializer_class = TermSerializer
    permission_classes = [RolePermission]
    write_roles = ('admin',)
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['school', 'status', 'year']

    def destroy(self, request, *args, **kwargs):
        term = self.get_object()
        if term.examinations.exists():
            return Response(
                {"detail": "Cannot delete term with associated examinations"},
                status=status.HTTP_400_BAD_REQUEST
            )
        return super().destroy(request, *args, **kwargs)

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        """Make this the school's only active term"""
        term = self.get_object().activate()
        terms = Term.objects.filter(school_id=term.school_id)
        return Response({
            'active': TermSerializer(term).data,
            'terms': TermSerializer(terms, many=True).data,
        })

    @action(detail=False, methods=['get'])
    def active(self, request):
        """Get the active term of a school"""
        try:
            school_id = resolve_school_id(request)
        except ValueError:
            return Response({"detail": "Invalid school id"}, status=status.HTTP_400_BAD_REQUEST)
        if not school_id:
            return Response({"detail": "school parameter required"}, status=status.HTTP_400_BAD_REQUEST)

        terms = {t.id: t for t in Term.objects.filter(school_id=school_id)}
        current = active_term(t.to_record() for t in terms.values())
        if current is None:
            return Response({"detail": "No active term"}, status=status.HTTP_404_NOT_FOUND)
        return Response(TermSerializer(terms[current.id]).data)
