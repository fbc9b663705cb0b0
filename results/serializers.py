from django.conf import settings
from rest_framework import serializers

from .exceptions import GradingScaleError
from .grading import validate_scale
from .models import Examination, Result, StudentOverallResult, Grading, CommentBand
from .records import GradingScaleEntry


class ExaminationSerializer(serializers.ModelSerializer):
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)
    subject_name = serializers.CharField(source='subject.name', read_only=True, default='')
    term_name = serializers.CharField(source='term.term_name', read_only=True)
    total_marks = serializers.IntegerField(min_value=1, required=False)
    pass_marks = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = Examination
        fields = [
            'id', 'school', 'term', 'term_name', 'name', 'exam_type', 'classroom', 'classroom_name',
            'subject', 'subject_name', 'exam_date', 'total_marks', 'pass_marks',
        ]

    def validate(self, data):
        school = data.get('school', getattr(self.instance, 'school', None))
        term = data.get('term', getattr(self.instance, 'term', None))
        classroom = data.get('classroom', getattr(self.instance, 'classroom', None))
        if term and school and term.school_id != school.id:
            raise serializers.ValidationError({'term': 'Term belongs to another school.'})
        if classroom and school and classroom.school_id != school.id:
            raise serializers.ValidationError({'classroom': 'Class belongs to another school.'})

        total = data.get('total_marks', getattr(self.instance, 'total_marks', None))
        if total is None:
            total = data['total_marks'] = getattr(settings, 'DEFAULT_TOTAL_MARKS', 100)
        if 'pass_marks' not in data and self.instance is None:
            data['pass_marks'] = getattr(settings, 'DEFAULT_PASS_MARKS', 40)
        pass_marks = data.get('pass_marks', getattr(self.instance, 'pass_marks', 0))
        if pass_marks > total:
            raise serializers.ValidationError({'pass_marks': 'Pass marks cannot exceed total marks.'})
        return data


class ResultSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.full_name', read_only=True)
    roll_number = serializers.CharField(source='student.roll_number', read_only=True, default='')
    subject_name = serializers.CharField(source='subject.name', read_only=True)
    examination_name = serializers.CharField(source='examination.name', read_only=True)
    exam_type = serializers.CharField(source='examination.exam_type', read_only=True)

    class Meta:
        model = Result
        fields = [
            'id', 'examination', 'examination_name', 'exam_type', 'student', 'student_name', 'roll_number',
            'subject', 'subject_name', 'marks_obtained', 'total_marks', 'percentage', 'grade',
            'is_passed', 'remarks',
        ]
        read_only_fields = ['percentage', 'grade', 'is_passed']

    def validate(self, data):
        exam = data.get('examination', getattr(self.instance, 'examination', None))
        student = data.get('student', getattr(self.instance, 'student', None))
        marks = data.get('marks_obtained', getattr(self.instance, 'marks_obtained', None))
        total = data.get('total_marks') or getattr(self.instance, 'total_marks', None) or exam.total_marks

        if marks is not None and marks < 0:
            raise serializers.ValidationError({'marks_obtained': 'Marks cannot be negative.'})
        if total <= 0:
            raise serializers.ValidationError({'total_marks': 'Total marks must be greater than zero.'})
        if marks is not None and marks > total:
            raise serializers.ValidationError({'marks_obtained': 'Marks obtained cannot exceed total marks.'})
        if student and student.classroom_id != exam.classroom_id:
            raise serializers.ValidationError({'student': f'Student does not belong to class {exam.classroom.name}'})
        return data


class StudentOverallResultSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.full_name', read_only=True)
    roll_number = serializers.CharField(source='student.roll_number', read_only=True, default='')

    class Meta:
        model = StudentOverallResult
        fields = [
            'id', 'examination', 'student', 'student_name', 'roll_number', 'total_marks_obtained',
            'total_marks_possible', 'percentage', 'grade', 'rank', 'is_passed',
        ]


class RangeSerializerMixin:
    """Expose from_percentage/to_percentage as ``from``/``to``."""

    def get_fields(self):
        fields = super().get_fields()
        fields['from'] = serializers.DecimalField(
            source='from_percentage', max_digits=5, decimal_places=2, coerce_to_string=False,
        )
        fields['to'] = serializers.DecimalField(
            source='to_percentage', max_digits=5, decimal_places=2, coerce_to_string=False,
        )
        return fields

    def _bounds(self, data):
        lower = data.get('from_percentage', getattr(self.instance, 'from_percentage', None))
        upper = data.get('to_percentage', getattr(self.instance, 'to_percentage', None))
        school = data.get('school', getattr(self.instance, 'school', None))
        return lower, upper, school


class GradingSerializer(RangeSerializerMixin, serializers.ModelSerializer):
    class Meta:
        model = Grading
        fields = ['id', 'school', 'grade', 'comment']

    def validate(self, data):
        lower, upper, school = self._bounds(data)
        grade = data.get('grade', getattr(self.instance, 'grade', ''))

        others = Grading.objects.filter(school=school)
        if self.instance is not None:
            others = others.exclude(pk=self.instance.pk)
        entries = [g.to_entry() for g in others]
        entries.append(GradingScaleEntry(lower=float(lower), upper=float(upper), grade=grade))

        try:
            validate_scale(entries)
        except GradingScaleError as exc:
            raise serializers.ValidationError(str(exc))
        return data


class CommentBandSerializer(RangeSerializerMixin, serializers.ModelSerializer):
    class Meta:
        model = CommentBand
        fields = ['id', 'school', 'kind', 'comment']

    def validate(self, data):
        lower, upper, school = self._bounds(data)
        kind = data.get('kind', getattr(self.instance, 'kind', None))

        if lower >= upper:
            raise serializers.ValidationError('From value must be less than to value')
        if lower < 0 or upper > 100:
            raise serializers.ValidationError('Range must lie within 0-100')

        overlapping = CommentBand.objects.filter(
            school=school, kind=kind, from_percentage__lte=upper, to_percentage__gte=lower,
        )
        if self.instance is not None:
            overlapping = overlapping.exclude(pk=self.instance.pk)
        if overlapping.exists():
            raise serializers.ValidationError('Range overlaps an existing comment')
        return data
