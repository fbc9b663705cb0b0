from django.db import models
from schools.models import School
from academics.models import ClassRoom, Subject, StudentProfile
from .aggregation import AttendanceEntry, STATUS_CHOICES, PRESENT


class AttendanceRecord(models.Model):
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='attendance_records')
    student = models.ForeignKey(StudentProfile, on_delete=models.CASCADE, related_name='attendances')
    classroom = models.ForeignKey(ClassRoom, on_delete=models.SET_NULL, null=True, blank=True, related_name='attendance_records')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, null=True, blank=True, related_name='attendance_records')
    date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=PRESENT)
    note = models.TextField(blank=True, null=True)

    class Meta:
        unique_together = ('student', 'date', 'subject')
        ordering = ['-date']
        indexes = [
            models.Index(fields=['school', 'date'], name='attendance_school_date_idx'),
            models.Index(fields=['student', 'date'], name='attendance_student_date_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'date'],
                condition=models.Q(subject__isnull=True),
                name='attendance_student_day_uniq',
            ),
        ]

    def __str__(self):
        return f"{self.student.user.username} - {self.date} - {self.status}"

    def to_entry(self):
        return AttendanceEntry(
            student_id=self.student_id,
            date=self.date,
            status=self.status,
            class_id=self.classroom_id,
            subject_id=self.subject_id,
            student_name=self.student.full_name,
        )
