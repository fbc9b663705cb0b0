"""
Record types consumed by the grading and aggregation helpers.

Upstream JSON (REST payloads, exported sheets) uses camelCase keys such as
``marksObtained``; the ORM uses snake_case. ``from_mapping`` accepts both so
the same validation runs at every boundary.
"""
from dataclasses import dataclass
from datetime import date as date_cls

from .exceptions import InvalidRecordError


class ExamType:
    BOT = 'BOT'
    MID = 'MID'
    END = 'END'
    QUIZ = 'QUIZ'
    ASSIGNMENT = 'ASSIGNMENT'

    ALL = (BOT, MID, END, QUIZ, ASSIGNMENT)
    CHOICES = [
        (BOT, 'Beginning of Term'),
        (MID, 'Mid Term'),
        (END, 'End of Term'),
        (QUIZ, 'Quiz'),
        (ASSIGNMENT, 'Assignment'),
    ]


def _pick(data, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _number(value, field):
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidRecordError(f"{field} must be a number, got {value!r}")


def _parse_date(value):
    if value is None or isinstance(value, date_cls):
        return value
    try:
        # Accept full ISO timestamps as sent by the dashboards
        return date_cls.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidRecordError(f"Invalid date: {value!r}")


@dataclass(frozen=True)
class ExamResultRecord:
    student_id: object
    subject_id: object
    exam_type: str
    marks_obtained: float
    total_marks: float
    date: object = None
    subject_name: str = ''
    remarks: str = ''

    @property
    def percentage(self):
        # marks * 100 / total keeps whole-number inputs exact
        return self.marks_obtained * 100 / self.total_marks

    @classmethod
    def from_mapping(cls, data):
        student_id = _pick(data, 'student_id', 'studentId')
        subject_id = _pick(data, 'subject_id', 'subjectId')
        exam_type = _pick(data, 'exam_type', 'examType')
        marks = _pick(data, 'marks_obtained', 'marksObtained')
        total = _pick(data, 'total_marks', 'totalMarks')

        missing = [
            name for name, value in (
                ('student_id', student_id),
                ('subject_id', subject_id),
                ('exam_type', exam_type),
                ('marks_obtained', marks),
                ('total_marks', total),
            ) if value is None or value == ''
        ]
        if missing:
            raise InvalidRecordError(f"Missing required fields: {', '.join(missing)}")

        exam_type = str(exam_type).upper()
        if exam_type not in ExamType.ALL:
            raise InvalidRecordError(f"Unknown exam type: {exam_type}")

        marks = _number(marks, 'marks_obtained')
        total = _number(total, 'total_marks')
        if marks < 0:
            raise InvalidRecordError('marks_obtained cannot be negative')
        if total <= 0:
            raise InvalidRecordError('total_marks must be greater than zero')

        return cls(
            student_id=student_id,
            subject_id=subject_id,
            exam_type=exam_type,
            marks_obtained=marks,
            total_marks=total,
            date=_parse_date(_pick(data, 'date')),
            subject_name=_pick(data, 'subject_name', 'subjectName', default=''),
            remarks=_pick(data, 'remarks', default=''),
        )


@dataclass(frozen=True)
class GradingScaleEntry:
    lower: float
    upper: float
    grade: str
    comment: str = ''

    def covers(self, percentage):
        return self.lower <= percentage <= self.upper

    @classmethod
    def from_mapping(cls, data):
        lower = _pick(data, 'from', 'lower', 'from_percentage')
        upper = _pick(data, 'to', 'upper', 'to_percentage')
        grade = _pick(data, 'grade')
        if lower is None or upper is None or not grade:
            raise InvalidRecordError('Grading entries need from, to and grade')
        return cls(
            lower=_number(lower, 'from'),
            upper=_number(upper, 'to'),
            grade=str(grade),
            comment=_pick(data, 'comment', default=''),
        )


@dataclass(frozen=True)
class RemarkBand:
    lower: float
    upper: float
    comment: str

    def covers(self, average):
        return self.lower <= average <= self.upper

    @classmethod
    def from_mapping(cls, data):
        lower = _pick(data, 'from', 'lower', 'from_percentage')
        upper = _pick(data, 'to', 'upper', 'to_percentage')
        if lower is None or upper is None:
            raise InvalidRecordError('Comment bands need from and to')
        return cls(
            lower=_number(lower, 'from'),
            upper=_number(upper, 'to'),
            comment=_pick(data, 'comment', default=''),
        )
