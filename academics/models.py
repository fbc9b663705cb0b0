import logging

from django.db import models, transaction
from django.conf import settings
from schools.models import School
from .terms import ACTIVE, INACTIVE, STATUS_CHOICES, TermRecord, set_active_term, changed_terms

# Use the project's custom user model
User = settings.AUTH_USER_MODEL

logger = logging.getLogger(__name__)


class ClassRoom(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='classrooms')
    name = models.CharField(max_length=100)  # e.g., P.5, Senior 2
    description = models.TextField(blank=True, null=True)
    class_teacher = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='homerooms')

    class Meta:
        unique_together = ('school', 'name')
        ordering = ['name']
        indexes = [
            models.Index(fields=['school', 'name'], name='classroom_school_name_idx'),
        ]

    def __str__(self):
        return f"{self.school.name} - {self.name}"


class Section(models.Model):
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='sections')
    name = models.CharField(max_length=50)  # e.g., East, West

    class Meta:
        unique_together = ('classroom', 'name')

    def __str__(self):
        return f"{self.classroom.name} - {self.name}"


class Subject(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='subjects')
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, blank=True, null=True)

    class Meta:
        unique_together = ('school', 'name')
        ordering = ['name']
        indexes = [
            models.Index(fields=['school', 'name'], name='subject_school_name_idx'),
        ]

    def __str__(self):
        return self.name


class StudentProfile(models.Model):
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='student_profile')
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='students')
    classroom = models.ForeignKey(ClassRoom, on_delete=models.SET_NULL, null=True, blank=True, related_name='students')
    section = models.ForeignKey(Section, on_delete=models.SET_NULL, null=True, blank=True, related_name='students')
    roll_number = models.CharField(max_length=50, blank=True, null=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    guardian = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='children')

    # Conduct remarks printed on the report card
    discipline = models.CharField(max_length=50, blank=True)
    time_management = models.CharField(max_length=50, blank=True)
    smartness = models.CharField(max_length=50, blank=True)
    attendance_remarks = models.CharField(max_length=50, blank=True)

    class Meta:
        ordering = ['roll_number', 'id']
        indexes = [
            models.Index(fields=['school'], name='student_school_idx'),
            models.Index(fields=['school', 'classroom'], name='student_school_class_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.school.name})"

    @property
    def full_name(self):
        return self.user.get_full_name() or self.user.username

    def conduct(self):
        return {
            'discipline': self.discipline,
            'time_management': self.time_management,
            'smartness': self.smartness,
            'attendance_remarks': self.attendance_remarks,
        }

    def identity(self):
        """Student header block used by report cards."""
        return {
            'id': self.id,
            'name': self.full_name,
            'roll_number': self.roll_number or '',
            'gender': self.gender,
            'class_name': self.classroom.name if self.classroom else '',
            'section_name': self.section.name if self.section else '',
        }


class TeacherAssignment(models.Model):
    teacher = models.ForeignKey(User, on_delete=models.CASCADE, related_name='assignments')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='assignments')
    classroom = models.ForeignKey(ClassRoom, on_delete=models.CASCADE, related_name='assignments')

    class Meta:
        unique_together = ('teacher', 'subject', 'classroom')

    def __str__(self):
        return f"{self.teacher} - {self.subject.name} - {self.classroom.name}"


class Term(models.Model):
    """Academic term. At most one term per school is Active."""
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='terms')
    term_name = models.CharField(max_length=100)  # e.g., Term 1
    year = models.PositiveIntegerField()
    next_term_starts = models.DateField(null=True, blank=True)
    next_term_ends = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=INACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['school', 'status'], name='term_school_status_idx'),
        ]

    def __str__(self):
        return f"{self.term_name} {self.year} ({self.status})"

    def to_record(self):
        return TermRecord.from_model(self)

    def identity(self):
        return {
            'id': self.id,
            'name': self.term_name,
            'year': self.year,
            'next_term_starts': self.next_term_starts,
            'next_term_ends': self.next_term_ends,
        }

    def save(self, *args, **kwargs):
        with transaction.atomic():
            super().save(*args, **kwargs)
            if self.status == ACTIVE:
                self._demote_siblings()

    def activate(self):
        """Make this the school's only Active term."""
        self.status = ACTIVE
        self.save()
        return self

    def _demote_siblings(self):
        siblings = Term.objects.select_for_update().filter(school_id=self.school_id)
        before = [term.to_record() for term in siblings]
        after = set_active_term(before, self.pk)
        demoted = [term.id for term in changed_terms(before, after) if term.id != self.pk]
        if demoted:
            Term.objects.filter(pk__in=demoted).update(status=INACTIVE)
            logger.info(f"Activated term {self.pk} for school {self.school_id}; deactivated {demoted}")
