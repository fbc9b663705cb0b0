"""
Report card composition.

A report card is a read-only projection assembled on request from the
student, school and term, the student's exam results for the term, conduct
remarks, banded teacher comments and the school's grading scale. Two layouts
exist: BOT-MID (beginning and mid term columns) and MID-END (mid and end of
term columns).
"""
from dataclasses import asdict, dataclass, field

from attendance.aggregation import aggregate_attendance
from .aggregation import aggregate_results, results_by_exam_type, trend_remark
from .exceptions import MissingDataError
from .grading import classify, default_scale, pick_remark
from .records import ExamType


class ReportLayout:
    BOT_MID = 'bot-mid'
    MID_END = 'mid-end'

    ALL = (BOT_MID, MID_END)
    COLUMNS = {
        BOT_MID: ((ExamType.BOT, 'bot_term'), (ExamType.MID, 'mid_term')),
        MID_END: ((ExamType.MID, 'mid_term'), (ExamType.END, 'end_term')),
    }


DEFAULT_CONDUCT = {
    'discipline': 'Good',
    'time_management': 'Good',
    'smartness': 'Good',
    'attendance_remarks': 'Regular',
}
FULL_MARKS = 100


@dataclass
class ReportCardData:
    student: dict
    school: dict
    term: dict
    layout: str
    subjects: list = field(default_factory=list)
    performance: dict = field(default_factory=dict)
    conduct: dict = field(default_factory=dict)
    comments: dict = field(default_factory=dict)
    grading_scale: list = field(default_factory=list)

    def as_dict(self):
        return asdict(self)


def _require_identity(value, label):
    if not value or value.get('id') in (None, ''):
        raise MissingDataError(f"{label} is required to compose a report card")
    return dict(value)


def _initials(name):
    if not name:
        return 'N/A'
    return '.'.join(part[0] for part in name.split() if part)


def _cell(records, scale):
    if not records:
        return None
    summary = aggregate_results(records)
    percentage = summary.overall_average
    return {
        'marks': sum(r.marks_obtained for r in records),
        'total_marks': sum(r.total_marks for r in records),
        'percentage': round(percentage, 2),
        'grade': classify(percentage, scale),
    }


def _column_summary(records, scale):
    summary = aggregate_results(records)
    if not summary.count:
        return {'marks_obtained': 0, 'average': 0.0, 'grade': None, 'subjects_counted': 0}
    return {
        'marks_obtained': sum(r.marks_obtained for r in records),
        'average': round(summary.overall_average, 2),
        'grade': classify(summary.overall_average, scale),
        'subjects_counted': len(summary.by_subject),
    }


def compose(student, school, term, subject_results, conduct=None, comments=None,
            grading_scale=None, layout=ReportLayout.MID_END, subjects=None, attendance=None):
    """
    Build the report card for one student.

    Args:
        student: mapping with at least ``id`` (name, roll_number, class_name ...)
        school: mapping for the school header, may be None
        term: mapping with at least ``id`` (name, year, next term dates)
        subject_results: ExamResultRecord list for the student in the term
        conduct: mapping of conduct remarks, missing keys fall back to defaults
        comments: mapping of 'class_teacher'/'head_teacher' to RemarkBand lists
        grading_scale: GradingScaleEntry list, None for the built-in scale
        layout: ReportLayout.BOT_MID or ReportLayout.MID_END
        subjects: optional subject mappings (id, name, teacher_name) so that
            subjects without results still get a row
        attendance: optional AttendanceEntry list for the student

    Raises:
        MissingDataError: student or term is missing
    """
    student = _require_identity(student, 'Student')
    term = _require_identity(term, 'Term')
    if layout not in ReportLayout.ALL:
        raise ValueError(f"Unknown report layout: {layout}")

    columns = ReportLayout.COLUMNS[layout]
    results = list(subject_results or ())
    by_type = results_by_exam_type(results)

    rows = {}
    for subject in subjects or ():
        rows[subject['id']] = {
            'id': subject['id'],
            'name': subject.get('name', ''),
            'teacher_name': subject.get('teacher_name', ''),
        }
    for record in results:
        rows.setdefault(record.subject_id, {
            'id': record.subject_id,
            'name': record.subject_name,
            'teacher_name': '',
        })

    subject_rows = []
    for subject_id, info in rows.items():
        row = {
            'id': subject_id,
            'name': info['name'],
            'teacher_initials': _initials(info['teacher_name']),
        }
        percentages = []
        for exam_type, key in columns:
            records = [r for r in by_type.get(exam_type, ()) if r.subject_id == subject_id]
            row[key] = _cell(records, grading_scale)
            percentages.append(row[key]['percentage'] if row[key] else 0)
        cells = [row[key] for _, key in reversed(columns) if row[key]]
        row['full_marks'] = cells[0]['total_marks'] if cells else FULL_MARKS
        row['teacher_comment'] = trend_remark(percentages[0], percentages[1])
        subject_rows.append(row)

    performance = {
        key: _column_summary(by_type.get(exam_type, []), grading_scale)
        for exam_type, key in columns
    }
    final_average = performance[columns[-1][1]]['average']

    comments = comments or {}
    remarks = {
        'class_teacher': pick_remark(comments.get('class_teacher'), final_average),
        'head_teacher': pick_remark(comments.get('head_teacher'), final_average),
    }

    conduct_row = dict(DEFAULT_CONDUCT)
    conduct_row.update({k: v for k, v in (conduct or {}).items() if v})
    summaries = aggregate_attendance(attendance or ())
    summary = summaries.get(student['id'])
    conduct_row['attendance_percentage'] = round(summary.attendance_rate, 2) if summary else 0.0

    scale = grading_scale or default_scale()

    return ReportCardData(
        student=student,
        school=dict(school or {'id': None, 'name': ''}),
        term={
            'id': term['id'],
            'name': term.get('name') or term.get('term_name', ''),
            'year': term.get('year'),
            'next_term_starts': term.get('next_term_starts'),
            'next_term_ends': term.get('next_term_ends'),
        },
        layout=layout,
        subjects=subject_rows,
        performance=performance,
        conduct=conduct_row,
        comments=remarks,
        grading_scale=[
            {'from': e.lower, 'to': e.upper, 'grade': e.grade, 'comment': e.comment}
            for e in scale
        ],
    )


def compose_class(students, school, term, results_by_student, conduct_by_student=None,
                  attendance_by_student=None, **options):
    """Compose one card per student; students without results still get a card."""
    conduct_by_student = conduct_by_student or {}
    attendance_by_student = attendance_by_student or {}
    cards = []
    for student in students:
        student_id = student.get('id')
        cards.append(compose(
            student,
            school,
            term,
            results_by_student.get(student_id, ()),
            conduct=conduct_by_student.get(student_id),
            attendance=attendance_by_student.get(student_id),
            **options
        ))
    return cards
