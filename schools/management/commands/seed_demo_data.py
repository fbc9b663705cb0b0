from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model
from random import randint, choice, random
from datetime import timedelta, date

from schools.models import School
from users.models import Profile
from academics.models import ClassRoom, Section, Subject, StudentProfile, TeacherAssignment, Term
from attendance.aggregation import PRESENT, ABSENT, LATE
from attendance.models import AttendanceRecord
from results.grading import default_scale
from results.models import Examination, Result, Grading, CommentBand
from results.records import ExamType

User = get_user_model()

DEMO_COMMENTS = [
    (0, 49.99, 'Needs more effort to improve.'),
    (50, 69.99, 'Fair performance, keep working.'),
    (70, 100, 'Excellent work, keep it up.'),
]


class Command(BaseCommand):
    help = "Seed demo data for a given school: classes, subjects, teachers, students, terms, grading, exams, results, attendance"

    def add_arguments(self, parser):
        parser.add_argument('--school-id', type=int, help='Existing School ID to seed data for')
        parser.add_argument('--create-school', action='store_true', help='Create a new demo school if school-id not provided')
        parser.add_argument('--school-name', type=str, default='Demo School', help='Name for the demo school (if creating)')
        parser.add_argument('--students', type=int, default=20, help='Number of students to create')
        parser.add_argument('--teachers', type=int, default=5, help='Number of teachers to create')
        parser.add_argument('--classes', type=int, default=3, help='Number of classrooms to create')
        parser.add_argument('--sections-per-class', type=int, default=2, help='Number of sections per classroom')
        parser.add_argument('--subjects', type=int, default=4, help='Number of subjects to create')
        parser.add_argument('--attendance-days', type=int, default=30, help='Number of past days to create attendance for')

    def handle(self, *args, **options):
        school_id = options.get('school_id')
        create_school = options.get('create_school')
        school_name = options.get('school_name')
        num_students = options.get('students')
        num_teachers = options.get('teachers')
        num_classes = options.get('classes')
        sections_per_class = options.get('sections_per_class')
        num_subjects = options.get('subjects')
        attendance_days = options.get('attendance_days')

        # Resolve or create school
        if school_id:
            try:
                school = School.objects.get(id=school_id)
            except School.DoesNotExist:
                if not create_school:
                    raise CommandError(f"School with id={school_id} does not exist. Use --create-school to create it.")
                school = School.objects.create(id=school_id, name=school_name)
                self.stdout.write(self.style.WARNING(f"Created new School with id={school.id} name={school.name}"))
        elif create_school:
            school = School.objects.create(name=school_name)
            self.stdout.write(self.style.WARNING(f"Created new School with id={school.id} name={school.name}"))
        else:
            raise CommandError("Provide --school-id or use --create-school to create a demo school.")

        classrooms = []
        for i in range(1, num_classes + 1):
            cls, _ = ClassRoom.objects.get_or_create(school=school, name=f"Class {i}")
            classrooms.append(cls)
        self.stdout.write(self.style.SUCCESS(f"Classrooms: {len(classrooms)}"))

        # Sections A, B, C ...
        section_names = [chr(ord('A') + i) for i in range(sections_per_class)]
        for cls in classrooms:
            for sname in section_names:
                Section.objects.get_or_create(classroom=cls, name=sname)

        subjects = []
        for i in range(1, num_subjects + 1):
            sub, _ = Subject.objects.get_or_create(school=school, name=f"Subject {i}", defaults={'code': f"S{i:02d}"})
            subjects.append(sub)
        self.stdout.write(self.style.SUCCESS(f"Subjects: {len(subjects)}"))

        teachers = []
        for i in range(1, num_teachers + 1):
            username = f"teacher{i}_school{school.id}"
            user, _ = User.objects.get_or_create(username=username, defaults={"first_name": f"Teacher{i}", "last_name": "Demo"})
            Profile.objects.get_or_create(user=user, defaults={"school": school, "role": "teacher"})
            teachers.append(user)
        self.stdout.write(self.style.SUCCESS(f"Teachers: {len(teachers)}"))

        students = []
        for i in range(1, num_students + 1):
            username = f"student{i}_school{school.id}"
            user, _ = User.objects.get_or_create(username=username, defaults={"first_name": f"Student{i}", "last_name": "Demo"})
            Profile.objects.get_or_create(user=user, defaults={"school": school, "role": "student"})
            cls = choice(classrooms) if classrooms else None
            sec_list = list(cls.sections.all()) if cls else []
            sp, _ = StudentProfile.objects.get_or_create(user=user, defaults={
                "school": school,
                "classroom": cls,
                "section": choice(sec_list) if sec_list else None,
                "roll_number": str(1000 + i),
            })
            students.append(sp)
        self.stdout.write(self.style.SUCCESS(f"Students: {len(students)}"))

        # Every subject of every class gets a teacher
        for cls in classrooms:
            for idx, subject in enumerate(subjects):
                if teachers:
                    TeacherAssignment.objects.get_or_create(
                        teacher=teachers[idx % len(teachers)], subject=subject, classroom=cls,
                    )

        # Terms: the current one is activated last so it ends up the only active term
        today = date.today()
        terms = []
        for number in (1, 2, 3):
            term, _ = Term.objects.get_or_create(school=school, term_name=f"Term {number}", year=today.year)
            terms.append(term)
        current = terms[0].activate()
        self.stdout.write(self.style.SUCCESS(f"Active term: {current}"))

        if not Grading.objects.filter(school=school).exists():
            for entry in default_scale():
                # Authored scales may not touch, so each range stops just below the next one
                upper = entry.upper if entry.upper == 100 else entry.upper - 0.01
                Grading.objects.create(
                    school=school, from_percentage=entry.lower, to_percentage=upper,
                    grade=entry.grade, comment=entry.comment,
                )
        for kind, _ in CommentBand.KIND_CHOICES:
            for lower, upper, comment in DEMO_COMMENTS:
                CommentBand.objects.get_or_create(
                    school=school, kind=kind, from_percentage=lower, to_percentage=upper,
                    defaults={'comment': comment},
                )

        results_created = 0
        for cls in classrooms:
            class_students = [s for s in students if s.classroom_id == cls.id]
            for exam_type in (ExamType.BOT, ExamType.MID, ExamType.END):
                exam, _ = Examination.objects.get_or_create(
                    school=school, term=current, classroom=cls, exam_type=exam_type,
                    defaults={'name': f"{exam_type} {current.term_name}", 'exam_date': today},
                )
                for sp in class_students:
                    for subject in subjects:
                        Result.objects.update_or_create(
                            examination=exam, student=sp, subject=subject,
                            defaults={'marks_obtained': randint(25, 100)},
                        )
                        results_created += 1
        self.stdout.write(self.style.SUCCESS(f"Results: {results_created}"))

        attendance_created = 0
        for d in range(attendance_days):
            day = today - timedelta(days=d)
            for sp in students:
                roll = random()
                status = PRESENT if roll > 0.15 else (LATE if roll > 0.05 else ABSENT)
                _, created = AttendanceRecord.objects.get_or_create(
                    student=sp,
                    date=day,
                    subject=None,
                    defaults={"school": school, "classroom": sp.classroom, "status": status},
                )
                attendance_created += int(created)
        self.stdout.write(self.style.SUCCESS(f"Attendance records created: {attendance_created}"))

        self.stdout.write(self.style.SUCCESS("Demo data seeding complete."))
