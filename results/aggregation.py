"""
Exam result aggregation used by dashboards, result pages and report cards.

All averages are taken over percentages rather than raw marks so that papers
marked out of different totals compare fairly. The overall average is the
mean of every individual percentage, so a subject with more results carries
more weight than one with fewer.
"""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ResultSummary:
    by_subject: dict = field(default_factory=dict)
    overall_average: float = 0.0
    highest: float = 0.0
    lowest: float = 0.0
    count: int = 0

    def as_dict(self, precision=2):
        return {
            'by_subject': {
                subject_id: round(average, precision)
                for subject_id, average in self.by_subject.items()
            },
            'overall_average': round(self.overall_average, precision),
            'highest': round(self.highest, precision),
            'lowest': round(self.lowest, precision),
            'count': self.count,
        }


def _mean(values):
    return sum(values) / len(values) if values else 0.0


def aggregate_results(results):
    """
    Reduce exam results to per-subject averages and overall statistics.

    Args:
        results: iterable of ExamResultRecord

    Returns:
        ResultSummary; an empty input gives an all-zero summary
    """
    percentages = []
    by_subject = {}
    for result in results:
        percentage = result.percentage
        percentages.append(percentage)
        by_subject.setdefault(result.subject_id, []).append(percentage)

    if not percentages:
        return ResultSummary()

    return ResultSummary(
        by_subject={subject_id: _mean(values) for subject_id, values in by_subject.items()},
        overall_average=_mean(percentages),
        highest=max(percentages),
        lowest=min(percentages),
        count=len(percentages),
    )


def results_by_exam_type(results):
    """Group records per exam type, keeping input order inside each group."""
    grouped = {}
    for result in results:
        grouped.setdefault(result.exam_type, []).append(result)
    return grouped


def trend_remark(earlier, later):
    """
    Teacher comment comparing two exam percentages of the same subject.

    Only meaningful when the earlier exam was sat (percentage above zero);
    otherwise the neutral 'Good' is returned.
    """
    if not earlier or earlier <= 0:
        return 'Good'
    later = later or 0
    if later > earlier:
        return 'Improved'
    if later < earlier:
        return 'Needs improvement'
    return 'Consistent'
