from django.db import models
from schools.models import School
from academics.models import ClassRoom, Subject, StudentProfile, Term
from .grading import classify
from .records import ExamType, ExamResultRecord, GradingScaleEntry, RemarkBand


class Examination(models.Model):
    """Exam/Test definition for a class in a term"""
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='examinations')
    term = models.ForeignKey(Term, on_delete=models.RESTRICT, related_name='examinations')
    name = models.CharField(max_length=200)
    exam_type = models.CharField(max_length=20, choices=ExamType.CHOICES, default=ExamType.END)
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='examinations')
    subject = models.ForeignKey(Subject, on_delete=models.SET_NULL, null=True, blank=True, related_name='examinations')
    exam_date = models.DateField(null=True, blank=True)
    total_marks = models.PositiveIntegerField(default=100)
    pass_marks = models.PositiveIntegerField(default=40)

    class Meta:
        ordering = ['-exam_date', 'name']
        indexes = [
            models.Index(fields=['school', 'classroom'], name='exam_school_class_idx'),
            models.Index(fields=['term', 'exam_type'], name='exam_term_type_idx'),
            models.Index(fields=['exam_date'], name='exam_date_idx'),
        ]

    def __str__(self):
        return f"{self.name} - {self.classroom.name}"


class Grading(models.Model):
    """One range of a school's grading scale"""
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='gradings')
    from_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    to_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    grade = models.CharField(max_length=5)
    comment = models.CharField(max_length=100, blank=True)

    class Meta:
        ordering = ['-from_percentage']
        indexes = [
            models.Index(fields=['school'], name='grading_school_idx'),
        ]

    def __str__(self):
        return f"{self.grade} ({self.from_percentage}-{self.to_percentage})"

    def to_entry(self):
        return GradingScaleEntry(
            lower=float(self.from_percentage),
            upper=float(self.to_percentage),
            grade=self.grade,
            comment=self.comment,
        )


def school_scale(school_id):
    """The school's authored grading scale, empty when it relies on the defaults."""
    return [g.to_entry() for g in Grading.objects.filter(school_id=school_id)]


class CommentBand(models.Model):
    """Banded class teacher / head teacher comment"""
    CLASS_TEACHER = 'class_teacher'
    HEAD_TEACHER = 'head_teacher'
    KIND_CHOICES = [
        (CLASS_TEACHER, 'Class Teacher'),
        (HEAD_TEACHER, 'Head Teacher'),
    ]

    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='comment_bands')
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    from_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    to_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    comment = models.TextField()

    class Meta:
        ordering = ['kind', '-from_percentage']
        indexes = [
            models.Index(fields=['school', 'kind'], name='commentband_school_kind_idx'),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} {self.from_percentage}-{self.to_percentage}"

    def to_band(self):
        return RemarkBand(
            lower=float(self.from_percentage),
            upper=float(self.to_percentage),
            comment=self.comment,
        )


def comment_bands(school_id):
    bands = {CommentBand.CLASS_TEACHER: [], CommentBand.HEAD_TEACHER: []}
    for band in CommentBand.objects.filter(school_id=school_id):
        bands[band.kind].append(band.to_band())
    return bands


class Result(models.Model):
    """Individual student result for a subject in an exam"""
    examination = models.ForeignKey(Examination, on_delete=models.CASCADE, related_name='results')
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='results')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='results')

    marks_obtained = models.DecimalField(max_digits=6, decimal_places=2)
    total_marks = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)

    # Auto-calculated
    percentage = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade = models.CharField(max_length=5, blank=True)
    is_passed = models.BooleanField(default=False)

    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('examination', 'student', 'subject')
        ordering = ['examination', 'student', 'subject']
        indexes = [
            models.Index(fields=['examination', 'student'], name='result_exam_student_idx'),
            models.Index(fields=['student'], name='result_student_idx'),
        ]

    def save(self, *args, scale=None, **kwargs):
        exam = self.examination
        if not self.total_marks:
            self.total_marks = exam.total_marks

        percentage = self.to_record().percentage
        if scale is None:
            scale = school_scale(exam.school_id)
        self.percentage = round(percentage, 2)
        # An uncovered percentage leaves the grade blank until the scale is fixed
        self.grade = classify(percentage, scale) or ''
        self.is_passed = percentage >= exam.pass_marks * 100 / exam.total_marks if exam.total_marks else False

        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'total_marks', 'percentage', 'grade', 'is_passed'}
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.student.full_name} - {self.subject.name} - {self.grade}"

    def to_record(self):
        return ExamResultRecord(
            student_id=self.student_id,
            subject_id=self.subject_id,
            exam_type=self.examination.exam_type,
            marks_obtained=float(self.marks_obtained),
            total_marks=float(self.total_marks),
            date=self.examination.exam_date,
            subject_name=self.subject.name,
            remarks=self.remarks,
        )


class StudentOverallResult(models.Model):
    """Overall result summary for a student in an exam"""
    examination = models.ForeignKey(Examination, on_delete=models.CASCADE, related_name='overall_results')
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='overall_results')

    total_marks_obtained = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    total_marks_possible = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    percentage = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade = models.CharField(max_length=5, blank=True)

    rank = models.IntegerField(null=True, blank=True)
    is_passed = models.BooleanField(default=False)

    class Meta:
        unique_together = ('examination', 'student')
        ordering = ['rank', 'student']
        indexes = [
            models.Index(fields=['examination', '-percentage'], name='overall_exam_pct_idx'),
        ]

    def __str__(self):
        return f"{self.student.full_name} - {self.percentage}%"
