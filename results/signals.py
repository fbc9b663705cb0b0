import logging

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .aggregation import aggregate_results
from .grading import classify
from .models import Result, StudentOverallResult, Grading, school_scale

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Result)
def calculate_overall_result_on_save(sender, instance, created, **kwargs):
    """
    Recalculate the student's overall result whenever a Result is saved.
    """
    calculate_student_overall_result(instance.examination, instance.student)


@receiver(post_delete, sender=Result)
def calculate_overall_result_on_delete(sender, instance, **kwargs):
    calculate_student_overall_result(instance.examination, instance.student)


@receiver(post_save, sender=Grading)
@receiver(post_delete, sender=Grading)
def regrade_on_scale_change(sender, instance, **kwargs):
    regrade_school(instance.school_id)


def calculate_student_overall_result(examination, student):
    """
    Combine a student's subject results in one examination and refresh ranks.
    """
    student_results = list(
        Result.objects.filter(examination=examination, student=student).select_related('examination', 'subject')
    )

    if not student_results:
        StudentOverallResult.objects.filter(examination=examination, student=student).delete()
        calculate_ranks(examination)
        return

    summary = aggregate_results(r.to_record() for r in student_results)

    StudentOverallResult.objects.update_or_create(
        examination=examination,
        student=student,
        defaults={
            'total_marks_obtained': sum(r.marks_obtained for r in student_results),
            'total_marks_possible': sum(r.total_marks for r in student_results),
            'percentage': round(summary.overall_average, 2),
            'grade': classify(summary.overall_average, school_scale(examination.school_id)) or '',
            # All subjects must be passed
            'is_passed': all(r.is_passed for r in student_results),
        }
    )

    calculate_ranks(examination)


def calculate_ranks(examination):
    """
    Assign ranks to all students in an examination, highest percentage first.
    """
    overall_results = StudentOverallResult.objects.filter(
        examination=examination
    ).order_by('-percentage', 'student_id')

    for rank, result in enumerate(overall_results, start=1):
        if result.rank != rank:
            result.rank = rank
            result.save(update_fields=['rank'])


def regrade_school(school_id):
    """Re-apply the school's grading scale to every stored result."""
    scale = school_scale(school_id)

    results = list(
        Result.objects.filter(examination__school_id=school_id).select_related('examination', 'subject')
    )
    for result in results:
        result.grade = classify(result.to_record().percentage, scale) or ''
    Result.objects.bulk_update(results, ['grade'])

    overall = list(StudentOverallResult.objects.filter(examination__school_id=school_id))
    for item in overall:
        item.grade = classify(float(item.percentage), scale) or ''
    StudentOverallResult.objects.bulk_update(overall, ['grade'])

    logger.info(f"Regraded {len(results)} results for school {school_id}")
