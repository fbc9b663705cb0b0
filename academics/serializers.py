from rest_framework import serializers
from schools.models import School
from .models import ClassRoom, Section, Subject, StudentProfile, TeacherAssignment, Term
from django.contrib.auth import get_user_model
from users.models import Profile
from users.serializers import UserSerializer
import secrets
import string

User = get_user_model()


class ClassRoomSerializer(serializers.ModelSerializer):
    school_id = serializers.PrimaryKeyRelatedField(source='school', queryset=School.objects.all(), write_only=True)
    student_count = serializers.SerializerMethodField()
    sections = serializers.SerializerMethodField()

    class Meta:
        model = ClassRoom
        fields = ['id', 'school', 'school_id', 'name', 'description', 'class_teacher', 'student_count', 'sections']
        read_only_fields = ['school']

    def get_student_count(self, obj):
        return obj.students.count()

    def get_sections(self, obj):
        return [{'id': s.id, 'name': s.name} for s in obj.sections.all()]


class SectionSerializer(serializers.ModelSerializer):
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)

    class Meta:
        model = Section
        fields = ['id', 'classroom', 'classroom_name', 'name']


class SubjectSerializer(serializers.ModelSerializer):
    school_id = serializers.PrimaryKeyRelatedField(source='school', queryset=School.objects.all(), write_only=True)
    assigned_teachers = serializers.SerializerMethodField()

    class Meta:
        model = Subject
        fields = ['id', 'school', 'school_id', 'name', 'code', 'assigned_teachers']
        read_only_fields = ['school']

    def get_assigned_teachers(self, obj):
        teachers = []
        for assignment in obj.assignments.select_related('teacher', 'classroom').all():
            teacher = assignment.teacher
            teachers.append({
                'id': teacher.id,
                'name': f"{teacher.first_name} {teacher.last_name}".strip() or teacher.username,
                'classroom': assignment.classroom.name,
            })
        return teachers


class StudentProfileSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    school_id = serializers.PrimaryKeyRelatedField(source='school', queryset=School.objects.all(), write_only=True)
    classroom_id = serializers.PrimaryKeyRelatedField(source='classroom', queryset=ClassRoom.objects.all(), write_only=True, allow_null=True, required=False)
    section_id = serializers.PrimaryKeyRelatedField(source='section', queryset=Section.objects.all(), write_only=True, allow_null=True, required=False)
    guardian_id = serializers.PrimaryKeyRelatedField(source='guardian', queryset=User.objects.all(), write_only=True, allow_null=True, required=False)
    classroom_name = serializers.CharField(source='classroom.name', read_only=True, default='')
    # Optional write-only fields to create the login account on the fly
    username = serializers.CharField(write_only=True, required=False)
    password = serializers.CharField(write_only=True, required=False)
    first_name = serializers.CharField(write_only=True, required=False, allow_blank=True)
    last_name = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = StudentProfile
        fields = [
            'id', 'user', 'username', 'password', 'first_name', 'last_name',
            'school', 'school_id', 'classroom', 'classroom_id', 'classroom_name',
            'section', 'section_id', 'roll_number', 'gender', 'guardian', 'guardian_id',
            'discipline', 'time_management', 'smartness', 'attendance_remarks',
        ]
        read_only_fields = ['school', 'classroom', 'section', 'guardian']

    def validate(self, data):
        if self.instance is None:
            username = data.get('username') or ''
            first_name = (data.get('first_name') or '').strip()
            if not username and not first_name:
                raise serializers.ValidationError({'first_name': 'Provide at least a username or a first name'})
            if username and User.objects.filter(username=username).exists():
                raise serializers.ValidationError({'username': 'This username is already taken.'})
        return data

    def _unique_username(self, first_name):
        base = (first_name or 'student').lower().replace(' ', '')
        username = f"{base}{User.objects.count() + 1}"
        orig = username
        idx = 1
        while User.objects.filter(username=username).exists():
            idx += 1
            username = f"{orig}{idx}"
        return username

    def create(self, validated_data):
        username = validated_data.pop('username', None)
        password = validated_data.pop('password', None)
        first_name = validated_data.pop('first_name', '')
        last_name = validated_data.pop('last_name', '')

        if not password:
            alphabet = string.ascii_letters + string.digits
            password = ''.join(secrets.choice(alphabet) for _ in range(10))
        user = User.objects.create_user(
            username=username or self._unique_username(first_name),
            password=password,
            first_name=first_name or '',
            last_name=last_name or '',
        )
        Profile.objects.update_or_create(user=user, defaults={'school': validated_data['school'], 'role': 'student'})
        return StudentProfile.objects.create(user=user, **validated_data)

    def update(self, instance, validated_data):
        first_name = validated_data.pop('first_name', None)
        last_name = validated_data.pop('last_name', None)
        validated_data.pop('username', None)
        validated_data.pop('password', None)

        if first_name is not None or last_name is not None:
            if first_name is not None:
                instance.user.first_name = first_name
            if last_name is not None:
                instance.user.last_name = last_name
            instance.user.save()

        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance


class ConductSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentProfile
        fields = ['discipline', 'time_management', 'smartness', 'attendance_remarks']


class TeacherAssignmentSerializer(serializers.ModelSerializer):
    teacher_name = serializers.SerializerMethodField()
    subject_name = serializers.CharField(source='subject.name', read_only=True)
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)

    class Meta:
        model = TeacherAssignment
        fields = ['id', 'teacher', 'teacher_name', 'subject', 'subject_name', 'classroom', 'classroom_name']

    def get_teacher_name(self, obj):
        return f"{obj.teacher.first_name} {obj.teacher.last_name}".strip() or obj.teacher.username


class TermSerializer(serializers.ModelSerializer):
    class Meta:
        model = Term
        fields = ['id', 'school', 'term_name', 'year', 'next_term_starts', 'next_term_ends', 'status', 'created_at']
        read_only_fields = ['created_at']

    def validate(self, data):
        starts = data.get('next_term_starts', getattr(self.instance, 'next_term_starts', None))
        ends = data.get('next_term_ends', getattr(self.instance, 'next_term_ends', None))
        if starts and ends and starts > ends:
            raise serializers.ValidationError({'next_term_ends': 'Next term cannot end before it starts.'})
        return data

