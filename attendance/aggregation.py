"""
Attendance aggregation for the insights pages and report cards.

Every record counts towards the student's total; only ``present`` counts as
attended, so late arrivals lower the rate the same way absences do.
"""
from dataclasses import dataclass
from datetime import date as date_cls

from results.exceptions import InvalidRecordError

DEFAULT_RISK_THRESHOLD = 80

PRESENT = 'present'
ABSENT = 'absent'
LATE = 'late'
EXCUSED = 'excused'

STATUS_CHOICES = [
    (PRESENT, 'Present'),
    (ABSENT, 'Absent'),
    (LATE, 'Late'),
    (EXCUSED, 'Excused'),
]


@dataclass(frozen=True)
class AttendanceEntry:
    student_id: object
    date: object
    status: str
    class_id: object = None
    subject_id: object = None
    student_name: str = ''

    @classmethod
    def from_mapping(cls, data):
        student_id = data.get('student_id', data.get('studentId', data.get('student')))
        status = data.get('status')
        if student_id in (None, ''):
            raise InvalidRecordError('Attendance records need a student')
        if not status:
            raise InvalidRecordError('Attendance records need a status')

        record_date = data.get('date')
        if record_date is not None and not isinstance(record_date, date_cls):
            try:
                record_date = date_cls.fromisoformat(str(record_date)[:10])
            except ValueError:
                raise InvalidRecordError(f"Invalid date: {record_date!r}")

        return cls(
            student_id=student_id,
            date=record_date,
            status=str(status).strip().lower(),
            class_id=data.get('class_id', data.get('classId', data.get('classroom'))),
            subject_id=data.get('subject_id', data.get('subjectId', data.get('subject'))),
            student_name=data.get('student_name', data.get('studentName', '')) or '',
        )


@dataclass(frozen=True)
class AttendanceSummary:
    student_id: object
    present: int = 0
    absent: int = 0
    late: int = 0
    other: int = 0
    attendance_rate: float = 0.0
    is_at_risk: bool = False
    student_name: str = ''

    @property
    def total(self):
        return self.present + self.absent + self.late + self.other

    def as_dict(self, precision=2):
        return {
            'student_id': self.student_id,
            'student_name': self.student_name,
            'present': self.present,
            'absent': self.absent,
            'late': self.late,
            'other': self.other,
            'total': self.total,
            'attendance_rate': round(self.attendance_rate, precision),
            'is_at_risk': self.is_at_risk,
        }


def attendance_rate(present, total):
    return present / total * 100 if total > 0 else 0.0


def aggregate_attendance(records, risk_threshold=DEFAULT_RISK_THRESHOLD):
    """
    Count attendance per student and flag those below ``risk_threshold``.

    Args:
        records: iterable of AttendanceEntry
        risk_threshold: rate (percent) below which a student is at risk

    Returns:
        dict of student_id -> AttendanceSummary, in order of first appearance
    """
    counts = {}
    names = {}
    for record in records:
        tally = counts.setdefault(record.student_id, {PRESENT: 0, ABSENT: 0, LATE: 0, 'other': 0})
        if record.status in (PRESENT, ABSENT, LATE):
            tally[record.status] += 1
        else:
            tally['other'] += 1
        if record.student_name and record.student_id not in names:
            names[record.student_id] = record.student_name

    summaries = {}
    for student_id, tally in counts.items():
        total = sum(tally.values())
        rate = attendance_rate(tally[PRESENT], total)
        summaries[student_id] = AttendanceSummary(
            student_id=student_id,
            present=tally[PRESENT],
            absent=tally[ABSENT],
            late=tally[LATE],
            other=tally['other'],
            attendance_rate=rate,
            is_at_risk=rate < risk_threshold,
            student_name=names.get(student_id, ''),
        )
    return summaries


def at_risk_students(summaries):
    """At-risk students, lowest rate first. Equal rates keep input order."""
    flagged = [s for s in _values(summaries) if s.is_at_risk]
    return sorted(flagged, key=lambda s: s.attendance_rate)


def lowest_attendance(summaries, limit=10):
    return sorted(_values(summaries), key=lambda s: s.attendance_rate)[:limit]


def attendance_overview(summaries):
    values = _values(summaries)
    total_students = len(values)
    average = sum(s.attendance_rate for s in values) / total_students if total_students else 0.0
    return {
        'total_students': total_students,
        'average_attendance_rate': round(average, 2),
        'at_risk_count': sum(1 for s in values if s.is_at_risk),
    }


def _values(summaries):
    if isinstance(summaries, dict):
        return list(summaries.values())
    return list(summaries)
